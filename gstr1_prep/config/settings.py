from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read env from the process + optionally from a local .env
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # App
    APP_NAME: str = Field(default="gstr1_prep", validation_alias=AliasChoices("APP_NAME", "app_name"))
    LOG_LEVEL: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))

    # Pipeline
    DEFAULT_SELLER_STATE: str = Field(
        default="",
        validation_alias=AliasChoices("DEFAULT_SELLER_STATE", "default_seller_state"),
    )
    VALIDATION_CHUNK_SIZE: int = Field(
        default=500,
        gt=0,
        validation_alias=AliasChoices("VALIDATION_CHUNK_SIZE", "validation_chunk_size"),
    )

    # GSTIN search (public details enrichment); empty URL disables the lookup
    GSTIN_LOOKUP_URL: str = Field(default="", validation_alias=AliasChoices("GSTIN_LOOKUP_URL", "gstin_lookup_url"))
    GSTIN_LOOKUP_API_KEY: str = Field(default="", validation_alias=AliasChoices("GSTIN_LOOKUP_API_KEY", "gstin_lookup_api_key"))
    GSTIN_LOOKUP_TIMEOUT: float = Field(default=10.0, validation_alias=AliasChoices("GSTIN_LOOKUP_TIMEOUT", "gstin_lookup_timeout"))


settings = Settings()
