from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Base URL of the EdgeHomes backend API every page proxies
    BACKEND_URL: str = "http://localhost:4000"
    BASE_URL: str = "http://localhost:8000"

    # The backend signs session tokens with this key; we verify them with it
    SECRET_KEY: str
    ALGORITHM: str = "HS256"

    REDIS_URL: str = "redis://localhost:6379/0"

    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    BACKEND_TIMEOUT_SECONDS: float = 5.0
    CACHE_TTL_SECONDS: int = 60
    SEARCH_DEBOUNCE_SECONDS: float = 1.0
    PAYMENT_PENDING_REFRESH_SECONDS: int = 5

    # Flat fee added on top of the nightly/period price of every booking
    INSURANCE_FEE: int = 30000

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"


settings = Settings()
