import os
import sys
from functools import lru_cache
from typing import List, Optional
from loguru import logger
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load .env before reading settings
load_dotenv()

PLACEHOLDER_TOKEN = "YOUR_BOT_TOKEN"


class Settings(BaseSettings):
    BOT_TOKEN: str = Field(validation_alias=AliasChoices("BOT_TOKEN", "TELEGRAM_BOT_TOKEN"))
    WEB_APP_URL: str = "https://t.me/NaijaValueorg_bot"
    BOT_USERNAME: str = "NaijaValueorg_bot"
    CHANNEL_URL: str = "https://t.me/naijavalueofficial"
    COMMUNITY_URL: str = "https://t.me/naijavaluecommunity"
    SUPPORT_CONTACT: str = "@naijavaluesupport"
    ADMIN_IDS: List[int] = []
    WITHDRAWAL_CHAT_IDS: List[int] = []
    REFERRAL_BONUS: int = 1000
    EARN_BONUS: int = 100
    BONUS_COOLDOWN: int = 60
    STORAGE: str = "memory"
    DB_URL: Optional[str] = None
    SEED_DEMO_USERS: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    FORMAT_LOG: str = "{time:YYYY-MM-DD at HH:mm:ss} | {level} | {message}"
    LOG_ROTATION: str = "10 MB"

    model_config = SettingsConfigDict(
        env_file=os.path.join(os.path.dirname(
            os.path.abspath(__file__)), "..", ".env"),
        extra="allow",
        populate_by_name=True,
    )

    @field_validator("BOT_TOKEN")
    @classmethod
    def token_is_set(cls, value: str) -> str:
        if not value or value == PLACEHOLDER_TOKEN:
            raise ValueError("Invalid Telegram bot token. Set BOT_TOKEN (or TELEGRAM_BOT_TOKEN).")
        return value

    @field_validator("STORAGE")
    @classmethod
    def storage_is_known(cls, value: str) -> str:
        value = value.lower()
        if value not in ("memory", "database"):
            raise ValueError(f"Unknown storage backend: {value}")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()


def setup_logging(settings: Settings):
    log_file_path = os.path.join(os.path.dirname(
        os.path.abspath(__file__)), "log.txt")
    logger.remove()
    logger.add(log_file_path, format=settings.FORMAT_LOG,
               level="INFO", rotation=settings.LOG_ROTATION)
    logger.add(sys.stderr, format=settings.FORMAT_LOG, level="INFO")
