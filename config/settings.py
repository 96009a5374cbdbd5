from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Core
    ENVIRONMENT: str = Field(default="production")
    LOG_LEVEL: str = Field(default="INFO")
    FIRESTORE_PROJECT_ID: str = Field(default="")

    # openFDA NDC directory (product registry)
    OPENFDA_NDC_URL: str = Field(default="https://api.fda.gov/drug/ndc.json")
    OPENFDA_API_KEY: str = Field(default="")

    # NADAC pricing dataset (data.medicaid.gov datastore query)
    NADAC_QUERY_URL: str = Field(
        default="https://data.medicaid.gov/api/1/datastore/query/99315a95-37ac-4eee-946a-3c523b4c481e/0"
    )

    # Transport policy lives here, not in the resolvers
    HTTP_TIMEOUT_S: float = Field(default=20.0)

    # Resolver caches (entries, oldest evicted first)
    VERIFY_CACHE_SIZE: int = Field(default=200)
    PRICE_CACHE_SIZE: int = Field(default=200)

    # Normalizer feature level: legacy | enhanced
    SCAN_STRICTNESS: str = Field(default="enhanced")

    # Manual-entry overrides keyed by raw scanned text
    MANUAL_ENTRY_ENABLED: bool = Field(default=True)


settings = Settings()
