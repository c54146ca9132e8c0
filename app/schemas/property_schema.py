"""Canonical property view model.

This schema is the normalized, shape-stable representation of a listing used
for filtering, sorting and rendering. Raw API payloads in any of their
historical shapes are converted into it by ``normalizer_service.normalize``.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Contact(BaseModel):
    name: str = "Agent"
    phone: str = ""
    email: str = ""


class CanonicalProperty(BaseModel):
    """Canonical property: strongly typed, API-version agnostic."""
    model_config = ConfigDict(frozen=True)

    id: str = ""
    slug: str = ""
    title: str = ""
    description: str = ""

    price: Optional[float] = Field(None, description="None means price on request")
    currency: Optional[str] = None
    price_type: Optional[str] = None

    listing_type: Literal["rent", "sale"] = "sale"
    property_type: str = "apartment"
    status: str = "active"
    is_featured: bool = False

    bedrooms: int = 0
    bathrooms: int = 0
    square_footage: float = 0
    year_built: int

    # Location
    address: str = ""
    city: str = ""
    state: str = ""
    neighborhood: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    # Media
    main_image: str = ""
    images: List[str] = []

    # Building details (None when the API did not send them)
    floor_number: Optional[int] = None
    total_floors: Optional[int] = None
    balcony_count: Optional[int] = None
    orientation: Optional[str] = None
    view_type: Optional[str] = None
    building_age: Optional[int] = None
    building_type: Optional[str] = None
    floor_type: Optional[str] = None
    window_type: Optional[str] = None
    maintenance_fee: Optional[float] = None
    deposit_amount: Optional[float] = None
    annual_tax: Optional[float] = None

    features: List[str] = []
    contact: Contact = Contact()

    created_at: str = ""
    updated_at: str = ""

    normalized: Literal[True] = True

    @property
    def price_on_request(self) -> bool:
        return self.price is None
