from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeeBandSetting(BaseModel):
    up_to_km: float | None = None
    fee: int
    per_km_increment: int = 0


class PaymentOptionSetting(BaseModel):
    label: str
    number: str


_DEFAULT_FEE_BANDS = [
    {"up_to_km": 2, "fee": 2500},
    {"up_to_km": 5, "fee": 3500},
    {"up_to_km": 8, "fee": 4500},
    {"up_to_km": 12, "fee": 5500},
    {"up_to_km": 18, "fee": 7000},
    {"up_to_km": 25, "fee": 8500},
    {"up_to_km": None, "fee": 8500, "per_km_increment": 500},
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(".env", ".env.docker"),
        extra="ignore",
        case_sensitive=False,
    )

    # App
    ENVIRONMENT: str = Field(default="local", validation_alias=AliasChoices("ENVIRONMENT", "environment"))
    APP_NAME: str = Field(default="dukabot", validation_alias=AliasChoices("APP_NAME", "app_name"))
    LOG_LEVEL: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))
    DEBUG: bool = Field(default=False, validation_alias=AliasChoices("DEBUG", "debug"))

    # Infrastructure
    DATABASE_URL: str = Field(
        default="postgresql+asyncpg://postgres:postgres@db:5432/dukabot",
        validation_alias=AliasChoices("DATABASE_URL", "database_url"),
    )
    REDIS_URL: str = Field(
        default="redis://redis:6379/0",
        validation_alias=AliasChoices("REDIS_URL", "redis_url"),
    )
    DB_CREATE_ALL: bool = Field(default=False, validation_alias=AliasChoices("DB_CREATE_ALL", "db_create_all"))

    # WhatsApp Meta
    WHATSAPP_VERIFY_TOKEN: str = Field(default="", validation_alias=AliasChoices("WHATSAPP_VERIFY_TOKEN", "whatsapp_verify_token"))
    WHATSAPP_ACCESS_TOKEN: str = Field(default="", validation_alias=AliasChoices("WHATSAPP_ACCESS_TOKEN", "whatsapp_access_token"))
    WHATSAPP_PHONE_NUMBER_ID: str = Field(default="", validation_alias=AliasChoices("WHATSAPP_PHONE_NUMBER_ID", "whatsapp_phone_number_id"))
    WHATSAPP_APP_SECRET: str = Field(default="", validation_alias=AliasChoices("WHATSAPP_APP_SECRET", "APP_SECRET", "whatsapp_app_secret"))
    WHATSAPP_API_BASE: str = Field(default="https://graph.facebook.com/v20.0", validation_alias=AliasChoices("WHATSAPP_API_BASE", "whatsapp_api_base"))
    WHATSAPP_SEND_VIA_QUEUE: bool = Field(default=False, validation_alias=AliasChoices("WHATSAPP_SEND_VIA_QUEUE", "whatsapp_send_via_queue"))

    # Sessions
    SESSION_BACKEND: str = Field(default="memory", validation_alias=AliasChoices("SESSION_BACKEND", "session_backend"))
    SESSION_TTL_SECONDS: int = Field(default=4 * 60 * 60, validation_alias=AliasChoices("SESSION_TTL_SECONDS", "session_ttl_seconds"))
    DEDUP_TTL_SECONDS: int = Field(default=24 * 60 * 60, validation_alias=AliasChoices("DEDUP_TTL_SECONDS", "dedup_ttl_seconds"))

    # Location & delivery pricing
    LOCATION_DATA_PATH: str = Field(default="", validation_alias=AliasChoices("LOCATION_DATA_PATH", "DATA_LOCATION_PATH", "location_data_path"))
    CATALOG_PATH: str = Field(default="", validation_alias=AliasChoices("CATALOG_PATH", "catalog_path"))
    REFERENCE_LAT: float | None = Field(default=-6.8357, validation_alias=AliasChoices("REFERENCE_LAT", "reference_lat"))
    REFERENCE_LON: float | None = Field(default=39.2724, validation_alias=AliasChoices("REFERENCE_LON", "reference_lon"))
    GPS_MATCH_RADIUS_M: float = Field(default=400.0, validation_alias=AliasChoices("GPS_MATCH_RADIUS_M", "gps_match_radius_m"))
    STREET_PAGE_SIZE: int = Field(default=9, validation_alias=AliasChoices("STREET_PAGE_SIZE", "street_page_size"))
    OUTSIDE_AREA_FLAT_FEE: int = Field(default=10_000, validation_alias=AliasChoices("OUTSIDE_AREA_FLAT_FEE", "OUTSIDE_DAR_FEE", "outside_area_flat_fee"))
    FEE_ROUNDING_STEP: int = Field(default=500, validation_alias=AliasChoices("FEE_ROUNDING_STEP", "fee_rounding_step"))
    DELIVERY_FEE_BANDS: list[FeeBandSetting] = Field(
        default_factory=lambda: [FeeBandSetting(**b) for b in _DEFAULT_FEE_BANDS],
        validation_alias=AliasChoices("DELIVERY_FEE_BANDS", "delivery_fee_bands"),
    )
    DELIVERY_FEE_OVERRIDES: dict[str, int] = Field(default_factory=dict, validation_alias=AliasChoices("DELIVERY_FEE_OVERRIDES", "delivery_fee_overrides"))

    # Orders
    ORDER_CODE_PREFIX: str = Field(default="UJ", validation_alias=AliasChoices("ORDER_CODE_PREFIX", "order_code_prefix"))

    # Payment options (mobile money tills)
    LIPA_NAMBA_TILL: str = Field(default="", validation_alias=AliasChoices("LIPA_NAMBA_TILL", "lipa_namba_till"))
    LIPA_NAMBA_NAME: str = Field(default="", validation_alias=AliasChoices("LIPA_NAMBA_NAME", "lipa_namba_name"))
    VODA_LNM_TILL: str = Field(default="", validation_alias=AliasChoices("VODA_LNM_TILL", "voda_lnm_till"))
    VODA_LNM_NAME: str = Field(default="", validation_alias=AliasChoices("VODA_LNM_NAME", "voda_lnm_name"))
    VODA_P2P_MSISDN: str = Field(default="", validation_alias=AliasChoices("VODA_P2P_MSISDN", "voda_p2p_msisdn"))
    VODA_P2P_NAME: str = Field(default="", validation_alias=AliasChoices("VODA_P2P_NAME", "voda_p2p_name"))
    PAYMENT_OPTIONS: list[PaymentOptionSetting] = Field(default_factory=list, validation_alias=AliasChoices("PAYMENT_OPTIONS", "payment_options"))


settings = Settings()
