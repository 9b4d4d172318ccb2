# config.py
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from globals import DEFAULT_GROQ_MODEL, DEFAULT_SUPADATA_ENDPOINT

PROFILES = ("manual", "youtube")


@dataclass(frozen=True)
class Config:
    telegram_token: str
    groq_api_key: str
    groq_api_endpoint: Optional[str]
    groq_model: str
    supadata_api_key: Optional[str]
    supadata_api_endpoint: str
    redis_url: Optional[str]
    profile: str
    environment: str

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"{name} не задан в окружении")
    return value


def load_config() -> Config:
    """
    Читает настройки один раз при старте (.env + окружение).
    Падает сразу, если нет обязательного значения.
    """
    load_dotenv()

    profile = os.getenv("BOT_PROFILE", "manual").strip().lower()
    if profile not in PROFILES:
        raise RuntimeError(f"BOT_PROFILE должен быть одним из {PROFILES}, получено: {profile}")

    # Ключ Supadata нужен только профилю, который разбирает видео
    supadata_api_key = _require("SUPADATA_API_KEY") if profile == "youtube" else os.getenv("SUPADATA_API_KEY")

    return Config(
        telegram_token=_require("TELEGRAM_TOKEN"),
        groq_api_key=_require("GROQ_API_KEY"),
        groq_api_endpoint=os.getenv("GROQ_API_ENDPOINT") or None,
        groq_model=os.getenv("GROQ_MODEL") or DEFAULT_GROQ_MODEL,
        supadata_api_key=supadata_api_key,
        supadata_api_endpoint=(os.getenv("SUPADATA_API_ENDPOINT") or DEFAULT_SUPADATA_ENDPOINT).rstrip("/"),
        redis_url=os.getenv("REDIS_URL") or None,
        profile=profile,
        environment=os.getenv("BOT_ENV", "development"),
    )
