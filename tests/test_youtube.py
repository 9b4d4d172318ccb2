"""
Профиль YouTube: команды и свободный текст.
"""
from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from telegram.constants import ParseMode

import youtube
from db import InMemoryRecipeStore, RedisRecipeStore
from errors import (AIResponseParseError, AIServiceError, InvalidURLError, TranscriptError,
                    TranscriptTooShortError)
from models import VideoRecipe


def _run(coro):
    """Запускает корутину синхронно (без pytest-asyncio)."""
    return asyncio.run(coro)


def _context(store=None, args=None, transcripts=None, ai=None):
    return SimpleNamespace(
        bot_data={
            "store": store if store is not None else InMemoryRecipeStore(VideoRecipe),
            "transcripts": transcripts or MagicMock(),
            "ai": ai or MagicMock(),
        },
        args=args or [],
    )


def _update(text=None):
    status = MagicMock()
    status.edit_text = AsyncMock()
    status.delete = AsyncMock()
    message = MagicMock()
    message.text = text
    message.reply_text = AsyncMock(return_value=status)
    update = MagicMock()
    update.effective_user.id = 42
    update.message = message
    return update, status


def _replies(update) -> list:
    return [c.args[0] for c in update.message.reply_text.call_args_list]


class TestRecipeCommand:
    def test_without_url_shows_usage(self):
        transcripts = MagicMock()
        transcripts.get_plain_text_transcript = AsyncMock()
        update, _ = _update("/recipe")

        _run(youtube.recipe_command(update, _context(transcripts=transcripts)))

        assert _replies(update)[0].startswith("Укажи ссылку на видео")
        transcripts.get_plain_text_transcript.assert_not_awaited()

    def test_success_replaces_status_with_card(self, make_video_recipe, monkeypatch):
        recipe = make_video_recipe()

        async def fake_pipeline(url, transcripts, ai, store, on_step=None):
            await on_step("шаг")
            await store.add(recipe)
            return recipe

        monkeypatch.setattr(youtube, "extract_recipe_from_video", fake_pipeline)
        context = _context(args=["https://youtu.be/dQw4w9WgXcQ"])
        update, status = _update("/recipe https://youtu.be/dQw4w9WgXcQ")

        _run(youtube.recipe_command(update, context))

        status.edit_text.assert_awaited_once_with("шаг")
        status.delete.assert_awaited_once()
        card_call = update.message.reply_text.call_args
        assert "Паста карбонара" in card_call.args[0]
        assert card_call.kwargs["parse_mode"] == ParseMode.HTML
        assert card_call.kwargs["link_preview_options"].is_disabled is True

    def test_failure_is_reported_in_status_message(self, monkeypatch):
        async def failing_pipeline(url, transcripts, ai, store, on_step=None):
            raise TranscriptTooShortError("слишком коротко")

        monkeypatch.setattr(youtube, "extract_recipe_from_video", failing_pipeline)
        update, status = _update("/recipe dQw4w9WgXcQ")

        _run(youtube.recipe_command(update, _context(args=["dQw4w9WgXcQ"])))

        status.delete.assert_not_awaited()
        assert "слишком короткий" in status.edit_text.call_args.args[0]


class TestDescribePipelineError:
    def test_messages_differ_by_cause(self):
        messages = {
            youtube.describe_pipeline_error(InvalidURLError("bad")),
            youtube.describe_pipeline_error(TranscriptTooShortError("short")),
            youtube.describe_pipeline_error(TranscriptError("missing", 404)),
            youtube.describe_pipeline_error(TranscriptError("down", 500)),
            youtube.describe_pipeline_error(AIResponseParseError("junk")),
            youtube.describe_pipeline_error(AIServiceError("down", 503)),
        }
        assert len(messages) == 6

    def test_balance_problem_is_shown_as_is(self):
        text = youtube.describe_pipeline_error(AIServiceError("Недостаточно средств", 429))
        assert "Недостаточно средств" in text


class TestSearchAndList:
    def test_search_without_query(self):
        update, _ = _update("/search")
        _run(youtube.search_command(update, _context()))
        assert _replies(update)[0].startswith("Укажи запрос")

    def test_search_finds_by_ingredient(self, make_video_recipe):
        store = InMemoryRecipeStore(VideoRecipe)
        _run(store.add(make_video_recipe()))
        update, _ = _update("/search яйца")

        _run(youtube.search_command(update, _context(store=store, args=["яйца"])))

        assert "Паста карбонара" in _replies(update)[0]

    def test_list_empty(self):
        update, _ = _update("/list")
        _run(youtube.list_command(update, _context()))
        assert _replies(update)[0].startswith("📭")

    def test_list_shows_all(self, make_video_recipe):
        store = InMemoryRecipeStore(VideoRecipe)
        _run(store.add(make_video_recipe("a", name="Суп")))
        _run(store.add(make_video_recipe("b", name="Салат")))
        update, _ = _update("/list")

        _run(youtube.list_command(update, _context(store=store)))

        text = _replies(update)[0]
        assert "Суп" in text and "Салат" in text


class TestFreeText:
    def test_exact_id_shows_card(self, make_video_recipe):
        store = InMemoryRecipeStore(VideoRecipe)
        recipe = make_video_recipe()
        _run(store.add(recipe))
        update, _ = _update(recipe.id)

        _run(youtube.handle_text(update, _context(store=store)))

        assert f"<code>{recipe.id}</code>" in _replies(update)[0]

    def test_falls_back_to_search(self, make_video_recipe):
        store = InMemoryRecipeStore(VideoRecipe)
        _run(store.add(make_video_recipe()))
        update, _ = _update("карбонара")

        _run(youtube.handle_text(update, _context(store=store)))

        assert _replies(update)[0].startswith("🔍 Найдено")

    def test_nothing_found(self):
        update, _ = _update("борщ")
        _run(youtube.handle_text(update, _context()))
        assert "ничего не найдено" in _replies(update)[0]

    def test_text_matching_index_name_is_searched_on_redis(self, fake_redis, make_video_recipe):
        store = RedisRecipeStore(VideoRecipe, fake_redis, "recipe")
        _run(store.add(make_video_recipe(name="ids soup")))
        update, _ = _update("ids")

        _run(youtube.handle_text(update, _context(store=store)))

        assert "ids soup" in _replies(update)[0]
