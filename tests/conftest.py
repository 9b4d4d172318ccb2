"""
Общие фикстуры тестов.
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest
from redis.exceptions import ResponseError

from models import Category, Ingredient, Recipe, VideoRecipe


@pytest.fixture
def make_recipe():
    """Фабрика рецептов ручного ввода."""
    def _make(recipe_id="r-1", user_id=42, title="Блины", category=Category.BREAKFAST,
              ingredients=None, created_at=None):
        created = created_at or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        return Recipe(
            id=recipe_id,
            user_id=user_id,
            title=title,
            category=category,
            ingredients=ingredients or [Ingredient(name="мука", amount="2", unit="стакан")],
            created_at=created,
            updated_at=created,
        )
    return _make


@pytest.fixture
def make_video_recipe():
    """Фабрика рецептов из YouTube."""
    def _make(recipe_id="recipe_1700000000000_abc123xyz", name="Паста карбонара",
              ingredients=None, original_language="en", created_at=None):
        return VideoRecipe(
            id=recipe_id,
            name=name,
            cooking_time="20 минут",
            ingredients=ingredients or ["200 г спагетти", "2 яйца", "100 г гуанчиале"],
            instructions=["Отварить пасту", "Смешать с яйцами"],
            original_language=original_language,
            youtube_url="https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            transcript="transcript text",
            created_at=created_at or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
        )
    return _make


class FakeRedis:
    """Минимальный асинхронный Redis: строки и множества в словарях.
    Как и настоящий сервер, отвечает WRONGTYPE на команду не для того типа ключа."""

    def __init__(self):
        self.strings = {}
        self.sets = {}
        self.closed = False

    def _check(self, key, kind):
        other = self.sets if kind == "string" else self.strings
        if key in other:
            raise ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")

    async def set(self, key, value):
        self.sets.pop(key, None)
        self.strings[key] = value
        return True

    async def get(self, key):
        self._check(key, "string")
        return self.strings.get(key)

    async def mget(self, keys):
        return [self.strings.get(k) for k in keys]

    async def sadd(self, key, *members):
        self._check(key, "set")
        target = self.sets.setdefault(key, set())
        before = len(target)
        target.update(members)
        return len(target) - before

    async def srem(self, key, *members):
        self._check(key, "set")
        target = self.sets.get(key, set())
        removed = len(target & set(members))
        target.difference_update(members)
        return removed

    async def smembers(self, key):
        self._check(key, "set")
        return set(self.sets.get(key, set()))

    async def scard(self, key):
        self._check(key, "set")
        return len(self.sets.get(key, set()))

    async def exists(self, *keys):
        return sum(1 for k in keys if k in self.strings or k in self.sets)

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.strings.pop(key, None) is not None:
                removed += 1
            elif self.sets.pop(key, None) is not None:
                removed += 1
        return removed

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_redis():
    return FakeRedis()
