"""FilterSpec: declarative, all-optional search constraints plus sort instructions.

Keys are accepted in snake_case (``min_price``) or in the camelCase spelling
the web client and URLs use (``minPrice``).
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SortKey = Literal["price", "date", "created_at", "squareFootage"]
SortOrder = Literal["asc", "desc"]


class FilterSpec(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    search: Optional[str] = None
    location: Optional[str] = None

    property_type: Optional[str] = None
    listing_type: Optional[Literal["rent", "sale", "all"]] = None
    price_type: Optional[str] = None
    currency: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None

    min_price: Optional[float] = None
    max_price: Optional[float] = None
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    min_square_footage: Optional[float] = None
    max_square_footage: Optional[float] = None

    min_floor_number: Optional[int] = None
    max_floor_number: Optional[int] = None
    min_total_floors: Optional[int] = None
    max_total_floors: Optional[int] = None
    min_balcony_count: Optional[int] = None
    max_balcony_count: Optional[int] = None
    orientation: Optional[str] = None
    view_type: Optional[str] = None

    min_building_age: Optional[int] = None
    max_building_age: Optional[int] = None
    building_type: Optional[str] = None
    floor_type: Optional[str] = None
    window_type: Optional[str] = None
    min_maintenance_fee: Optional[float] = None
    max_maintenance_fee: Optional[float] = None
    min_deposit_amount: Optional[float] = None
    max_deposit_amount: Optional[float] = None
    min_annual_tax: Optional[float] = None
    max_annual_tax: Optional[float] = None

    features: List[str] = []

    sort_by: Optional[SortKey] = None
    sort_order: SortOrder = "desc"

    page: int = Field(1, ge=1)
    per_page: Optional[int] = Field(None, ge=1)
