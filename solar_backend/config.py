"""
Configuration management for the Solar Operations Dashboard
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Solar Operations Dashboard"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./solar_dashboard.db"

    # Security
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours

    # Default admin seeded on startup
    ADMIN_EMAIL: str = "admin@ofgen.co.ke"
    ADMIN_NAME: str = "System Administrator"
    ADMIN_PASSWORD: str = "admin123"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # REST client (used by services.api_client)
    API_BASE_URL: str = "http://localhost:8000/api"
    API_TIMEOUT_SECONDS: float = 30.0
    UNAUTHORIZED_ROUTE: str = "/unauthorized"

    # Listings
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # Service order defaults (KES)
    DEFAULT_ESTIMATED_HOURS: float = 4
    DEFAULT_LABOR_RATE: float = 3500.0
    DEFAULT_TRAVEL_COST: float = 7500.0
    DEFAULT_OTHER_COSTS: float = 2000.0
    DEFAULT_OVERHEAD_COSTS: float = 5000.0

    # Projects
    MILESTONE_SPACING_DAYS: int = 14

    # Counties offered by the site forms
    COUNTIES: list[str] = [
        "Nairobi", "Mombasa", "Kisumu", "Nakuru", "Kiambu", "Uasin Gishu", "Meru",
        "Kakamega", "Kilifi", "Machakos", "Nyeri", "Bungoma", "Garissa",
    ]

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
