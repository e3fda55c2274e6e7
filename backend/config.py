from pydantic_settings import BaseSettings
from pathlib import Path


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"  # development | test | staging | production
    APP_NAME: str = "Dots"
    DATABASE_URL: str = "sqlite:///data/dots.db"
    DATA_DIR: Path = Path("data")
    # IANA zone used to resolve "today" at the HTTP edge; empty = server local calendar.
    TIMEZONE: str = ""
    CORS_ORIGINS: list[str] = [
        "http://localhost:8050",
        "http://localhost:8001",
        "https://localhost:8050",
        "https://127.0.0.1:8050",
    ]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def is_production_like(self) -> bool:
        return (self.ENVIRONMENT or "").strip().lower() in {"production", "prod", "staging"}

    def validate_configuration(self) -> None:
        if not self.is_production_like:
            return

        errors: list[str] = []
        if self.DATABASE_URL.startswith("sqlite:///:memory:"):
            errors.append("DATABASE_URL must not be an in-memory database")
        if "*" in self.CORS_ORIGINS:
            errors.append("CORS_ORIGINS must list explicit origins")
        if errors:
            joined = "; ".join(errors)
            raise RuntimeError(f"Invalid production configuration: {joined}")


settings = Settings()
settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
