from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    casefeed_db_url: str = "sqlite+aiosqlite:///data/casefeed.db"

    # Logging
    casefeed_log_level: str = "info"

    # CORS
    casefeed_cors_origins: str = "http://localhost:3000"

    # JWT
    casefeed_secret_key: str = "dev-secret-key-change-in-production"
    casefeed_jwt_algorithm: str = "HS256"
    casefeed_jwt_expiry_seconds: int = 3600

    # Roles allowed to read activity feeds (comma-separated)
    casefeed_allowed_roles: str = "admin,leader,specialist,technician,socialWorker"

    # Pagination
    casefeed_default_page_size: int = 25
    casefeed_max_page_size: int = 100

    # Source providers
    casefeed_source_timeout: float = 10.0  # seconds, per provider call
    casefeed_source_max_rows: int = 1000
    casefeed_same_day_order: str = "insertion"  # "insertion" or "created_at"

    model_config = {"env_prefix": "", "case_sensitive": False, "env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def allowed_roles(self) -> frozenset[str]:
        return frozenset(r.strip() for r in self.casefeed_allowed_roles.split(",") if r.strip())


settings = Settings()
