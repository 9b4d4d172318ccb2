"""
Сборка приложения и чтение настроек.
"""
from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from ai import AIService
from config import Config, load_config
from db import InMemoryRecipeStore
from main import build_application, check_llm
from models import Recipe, VideoRecipe
from sessions import SessionStore
from transcripts import SupadataService

ENV_VARS = ("TELEGRAM_TOKEN", "GROQ_API_KEY", "GROQ_API_ENDPOINT", "GROQ_MODEL", "SUPADATA_API_KEY",
            "SUPADATA_API_ENDPOINT", "REDIS_URL", "BOT_PROFILE", "BOT_ENV")


def _config(profile: str) -> Config:
    return Config(
        telegram_token="123456:TEST-TOKEN",
        groq_api_key="groq-test",
        groq_api_endpoint=None,
        groq_model="llama-3.3-70b-versatile",
        supadata_api_key="supadata-test",
        supadata_api_endpoint="https://api.supadata.ai/v1",
        redis_url=None,
        profile=profile,
        environment="test",
    )


def _commands(application) -> set:
    names = set()
    for handlers in application.handlers.values():
        for handler in handlers:
            names.update(getattr(handler, "commands", ()))
    return names


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("config.load_dotenv", lambda: None)
    return monkeypatch


class TestBuildApplication:
    def test_manual_profile(self):
        application = build_application(_config("manual"))

        assert isinstance(application.bot_data["sessions"], SessionStore)
        assert isinstance(application.bot_data["ai"], AIService)
        store = application.bot_data["store"]
        assert isinstance(store, InMemoryRecipeStore) and store.record_cls is Recipe
        assert _commands(application) == {"start", "help", "myrecipes", "recipe", "cancel", "skip"}
        assert application.error_handlers

    def test_youtube_profile(self):
        application = build_application(_config("youtube"))

        assert "sessions" not in application.bot_data
        assert isinstance(application.bot_data["transcripts"], SupadataService)
        assert application.bot_data["store"].record_cls is VideoRecipe
        assert _commands(application) == {"start", "help", "recipe", "search", "list"}

    def test_llm_is_checked_on_startup(self):
        application = build_application(_config("manual"))
        assert application.post_init is check_llm


class TestCheckLlm:
    @staticmethod
    def _application(reachable: bool):
        ai = SimpleNamespace(test_connection=AsyncMock(return_value=reachable))
        return SimpleNamespace(bot_data={"ai": ai})

    def test_reachable_llm_is_logged_as_info(self, caplog):
        application = self._application(True)
        with caplog.at_level("INFO", logger="main"):
            asyncio.run(check_llm(application))

        application.bot_data["ai"].test_connection.assert_awaited_once()
        assert any(r.levelname == "INFO" and "доступен" in r.getMessage() for r in caplog.records)

    def test_unreachable_llm_only_warns(self, caplog):
        with caplog.at_level("INFO", logger="main"):
            asyncio.run(check_llm(self._application(False)))

        assert [r.levelname for r in caplog.records if r.name == "main"] == ["WARNING"]


class TestLoadConfig:
    def test_manual_profile_does_not_need_supadata(self, clean_env):
        clean_env.setenv("TELEGRAM_TOKEN", "t")
        clean_env.setenv("GROQ_API_KEY", "g")

        config = load_config()

        assert config.profile == "manual"
        assert config.supadata_api_key is None
        assert config.redis_url is None
        assert config.is_development

    def test_youtube_profile_requires_supadata(self, clean_env):
        clean_env.setenv("TELEGRAM_TOKEN", "t")
        clean_env.setenv("GROQ_API_KEY", "g")
        clean_env.setenv("BOT_PROFILE", "youtube")

        with pytest.raises(RuntimeError, match="SUPADATA_API_KEY"):
            load_config()

    def test_missing_token(self, clean_env):
        clean_env.setenv("GROQ_API_KEY", "g")
        with pytest.raises(RuntimeError, match="TELEGRAM_TOKEN"):
            load_config()

    def test_unknown_profile(self, clean_env):
        clean_env.setenv("BOT_PROFILE", "fridge")
        with pytest.raises(RuntimeError, match="BOT_PROFILE"):
            load_config()

    def test_endpoint_trailing_slash_is_dropped(self, clean_env):
        clean_env.setenv("TELEGRAM_TOKEN", "t")
        clean_env.setenv("GROQ_API_KEY", "g")
        clean_env.setenv("SUPADATA_API_ENDPOINT", "https://example.test/v1/")

        assert load_config().supadata_api_endpoint == "https://example.test/v1"
