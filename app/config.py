"""Application settings loaded from environment variables."""
from typing import List
from pathlib import Path
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = Path(__file__).parent.parent / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Property-Search"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:8000"]
    api_key: str = ""

    # Localization
    default_language: str = "en"
    supported_languages: List[str] = ["en", "ar", "ku"]

    # Media
    media_base_url: str = "http://127.0.0.1:8000"
    placeholder_image: str = "/images/placeholder-property.svg"

    # Upstream marketplace API
    upstream_api_url: str = "http://127.0.0.1:8000/api/v1/properties"
    upstream_timeout: int = 30
    upstream_max_retries: int = 3
    upstream_backoff_factor: float = 0.5
    upstream_page_size: int = 50
    upstream_max_pages: int = 20

    # Paging
    default_per_page: int = 10
    max_per_page: int = 100

    @field_validator("cors_origins", "supported_languages", mode="before")
    @classmethod
    def parse_list(cls, v):
        if isinstance(v, str):
            import json
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("supported_languages")
    @classmethod
    def lowercase_languages(cls, v: List[str]) -> List[str]:
        return [lang.lower() for lang in v]

    @field_validator("default_language")
    @classmethod
    def lowercase_default_language(cls, v: str) -> str:
        return v.strip().lower()

    @model_validator(mode="after")
    def check_default_language(self):
        if self.default_language not in self.supported_languages:
            raise ValueError(
                f"default_language '{self.default_language}' is not in supported_languages"
            )
        return self


settings = Settings()
