# app/config.py
from pydantic import ValidationError
from pydantic_settings import BaseSettings

from app.errors import ConfigurationError

COUNTRY_SITES = {
    "CL": "MLC",
    "AR": "MLA",
    "MX": "MLM",
    "BR": "MLB",
    "CO": "MCO",
    "UY": "MLU",
    "PE": "MPE",
    "VE": "MLV",
    "EC": "MEC",
}

class Settings(BaseSettings):
    ML_CLIENT_ID: str
    ML_CLIENT_SECRET: str

    DATABASE_URL: str = "sqlite+aiosqlite:///./meli_scan.db"

    ML_API_BASE: str = "https://api.mercadolibre.com"
    ML_OAUTH_TOKEN_URL: str = "https://api.mercadolibre.com/oauth/token"
    ML_USER_AGENT: str = "KelokeTrendsBot/1.0"
    HTTP_TIMEOUT_SECONDS: float = 20.0

    DEFAULT_COUNTRY: str = "CL"
    DEFAULT_SITE_ID: str = "MLC"
    SCAN_BATCH: int = 5
    SCAN_LIMIT: int = 50
    SELLER_PREFIX: str = "SELLER:"
    DEFAULT_TOKEN_EXPIRES_IN: int = 21600

    LOG_LEVEL: str = "INFO"

    WEB_HOST: str = "0.0.0.0"
    WEB_PORT: int = 8000

    SCAN_SCHEDULE_ENABLED: bool = True
    SCAN_CRON_MINUTE: str = "*/10"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

def site_for_country(country: str | None) -> str:
    code = (country or settings.DEFAULT_COUNTRY).strip().upper()
    return COUNTRY_SITES.get(code, settings.DEFAULT_SITE_ID)

def load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as e:
        missing = ", ".join(str(err["loc"][0]) for err in e.errors())
        raise ConfigurationError(f"Missing or invalid settings: {missing}") from e

settings = load_settings()
