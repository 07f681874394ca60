from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Database
    database_url: str = "duckdb://./chatravasa/data/chatravasa.duckdb"

    # JWT (tokens are minted by the identity provider, we only verify them)
    jwt_secret_key: str = "your-secret-key"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24 * 7

    # API
    api_title: str = "Chatravasa API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api/v1"

    # Meals
    hostel_timezone: str = "Asia/Kolkata"  # used when a hostel row has no timezone
    default_edit_deadline_hours: float = 2

    # Resident snapshot cache, 0 disables it
    snapshot_cache_ttl_seconds: int = 30
    snapshot_cache_size: int = 1024

    # Logging
    log_level: str = "INFO"
    log_json: bool = True
    log_file: Optional[str] = None

    debug: bool = False

    model_config = {"env_file": ".env", "case_sensitive": False, "extra": "ignore"}


settings = Settings()
