from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import SecretStr
from typing import List
import logging

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8')

    # Telegram Bot Token
    BOT_TOKEN: SecretStr

    # Telegram User IDs of admins (as a string)
    ADMIN_IDS: str = ""

    # --- Program generation API ---
    PROGRAM_ENDPOINT_URL: str = "https://glorious-ptarmigan-360.convex.site/vapi/generate-program"
    # Transport-level timeout in seconds; None leaves the request unbounded
    PROGRAM_REQUEST_TIMEOUT: float | None = None
    # Unfinished questionnaires are dropped after this many idle seconds; None keeps them
    PROGRAM_SESSION_IDLE_TIMEOUT: float | None = 3600

    # --- Webhook Settings ---
    WEBHOOK_HOST: str | None = None
    WEBHOOK_PATH: str = "/webhook/bot"
    WEB_SERVER_HOST: str = "0.0.0.0"
    WEB_SERVER_PORT: int = 8080

    # --- Database settings ---
    DATABASE_URL: str | None = None
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = SecretStr("postgres")
    POSTGRES_DB: str = "fitbot"
    POSTGRES_HOST: str = 'db'
    POSTGRES_PORT: int = 5432

    @property
    def admin_ids_list(self) -> List[int]:
        """ Parses the ADMIN_IDS string into a list of integers. """
        if not self.ADMIN_IDS:
            return []
        try:
            return [int(admin_id.strip()) for admin_id in self.ADMIN_IDS.split(',') if admin_id.strip()]
        except ValueError:
            logging.error("Could not parse ADMIN_IDS. Please ensure it's a comma-separated list of numbers.")
            return []

    @property
    def database_url(self) -> str:
        """ DATABASE_URL if given, otherwise the Postgres URL built from its parts. """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """ Loads the settings once, on first use. """
    return Settings()
