import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./occupancy.db"
    ENV: str = "dev"
    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"

    # Auto billing: charges are generated BILLING_LEAD_DAYS before the due date,
    # upcoming billings are listed BILLING_WINDOW_DAYS ahead
    BILLING_LEAD_DAYS: int = 10
    BILLING_WINDOW_DAYS: int = 30

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()


def configure_logging(level: str = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
