# db.py
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import fields, replace
from datetime import datetime
from typing import Dict, Generic, List, Optional, Type, TypeVar, Union

import redis.asyncio as redis

from errors import RecipeNotFoundError
from models import Recipe, VideoRecipe, utcnow

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", Recipe, VideoRecipe)


def _matches(record, query: str, search_in_ingredients: bool) -> bool:
    """Совпадение по названию ИЛИ по любому ингредиенту, без учета регистра."""
    if query in record.display_name.lower():
        return True
    if search_in_ingredients:
        return any(query in ingredient.lower() for ingredient in record.ingredient_texts)
    return False


def _newest_first(records: List[RecordT]) -> List[RecordT]:
    return sorted(records, key=lambda r: r.created_at, reverse=True)


class RecipeStore(ABC, Generic[RecordT]):
    """
    Хранилище рецептов "ключ-значение".
    Любая выборка по коллекции = прочитать все записи и отфильтровать в памяти.
    """

    def __init__(self, record_cls: Type[RecordT]):
        self.record_cls = record_cls

    @abstractmethod
    async def add(self, record: RecordT) -> None:
        """Вставляет или заменяет запись по id."""

    @abstractmethod
    async def get(self, recipe_id: str) -> Optional[RecordT]:
        """Возвращает запись или None, если ее нет."""

    @abstractmethod
    async def _load_all(self) -> List[RecordT]:
        pass

    @abstractmethod
    async def delete(self, recipe_id: str) -> bool:
        """True - запись была и удалена, False - такой записи не было."""

    @abstractmethod
    async def count(self) -> int:
        pass

    @abstractmethod
    async def exists(self, recipe_id: str) -> bool:
        pass

    @abstractmethod
    async def clear(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def get_all(self) -> List[RecordT]:
        return _newest_first(await self._load_all())

    async def search(self, query: str, search_in_ingredients: bool = True) -> List[RecordT]:
        needle = query.strip().lower()
        if not needle:
            return []
        records = await self._load_all()
        return _newest_first([r for r in records if _matches(r, needle, search_in_ingredients)])

    async def update(self, recipe_id: str, **changes) -> RecordT:
        """Обновляет поля записи. Для несуществующего id - RecipeNotFoundError."""
        record = await self.get(recipe_id)
        if record is None:
            raise RecipeNotFoundError(recipe_id)
        changes.pop("id", None)
        if "updated_at" in {f.name for f in fields(record)}:
            changes.setdefault("updated_at", utcnow())
        updated = replace(record, **changes)
        await self.add(updated)
        return updated

    async def filter_by_language(self, language: str) -> List[RecordT]:
        records = await self._load_all()
        return _newest_first([r for r in records if getattr(r, "original_language", None) == language])

    async def filter_by_date(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[RecordT]:
        """Границы включительные, любую можно не задавать."""
        records = await self._load_all()
        selected = [
            r for r in records
            if (start is None or r.created_at >= start) and (end is None or r.created_at <= end)
        ]
        return _newest_first(selected)

    async def get_user_recipes(self, user_id: int) -> List[RecordT]:
        records = await self._load_all()
        return _newest_first([r for r in records if getattr(r, "user_id", None) == user_id])


class InMemoryRecipeStore(RecipeStore[RecordT]):
    """Хранилище в памяти процесса. Эталонная реализация, используется в тестах."""

    def __init__(self, record_cls: Type[RecordT]):
        super().__init__(record_cls)
        self._records: Dict[str, RecordT] = {}

    async def add(self, record: RecordT) -> None:
        self._records[record.id] = record

    async def get(self, recipe_id: str) -> Optional[RecordT]:
        return self._records.get(recipe_id)

    async def _load_all(self) -> List[RecordT]:
        return list(self._records.values())

    async def delete(self, recipe_id: str) -> bool:
        return self._records.pop(recipe_id, None) is not None

    async def count(self) -> int:
        return len(self._records)

    async def exists(self, recipe_id: str) -> bool:
        return recipe_id in self._records

    async def clear(self) -> None:
        self._records.clear()


class RedisRecipeStore(RecipeStore[RecordT]):
    """
    Хранилище в Redis.
    Раскладка: '<namespace>:<id>' -> JSON записи, '<namespace>_ids' -> множество живых id.
    Индекс лежит вне префикса '<namespace>:', поэтому ни один id записи не совпадет с ним.
    Запись и обновление множества не атомарны.
    """

    def __init__(self, record_cls: Type[RecordT], client: "redis.Redis", namespace: str):
        super().__init__(record_cls)
        self.client = client
        self.namespace = namespace

    @property
    def index_key(self) -> str:
        return f"{self.namespace}_ids"

    def _key(self, recipe_id: str) -> str:
        return f"{self.namespace}:{recipe_id}"

    def _decode(self, raw: Union[str, bytes]) -> RecordT:
        return self.record_cls.from_dict(json.loads(raw))

    async def add(self, record: RecordT) -> None:
        payload = json.dumps(record.to_dict(), ensure_ascii=False)
        await self.client.set(self._key(record.id), payload)
        await self.client.sadd(self.index_key, record.id)

    async def get(self, recipe_id: str) -> Optional[RecordT]:
        raw = await self.client.get(self._key(recipe_id))
        if raw is None:
            return None
        return self._decode(raw)

    async def _load_all(self) -> List[RecordT]:
        ids = await self.client.smembers(self.index_key)
        if not ids:
            return []
        keys = [self._key(i.decode() if isinstance(i, bytes) else i) for i in ids]
        records = []
        for key, raw in zip(keys, await self.client.mget(keys)):
            if raw is None:
                logger.warning(f"В индексе {self.index_key} есть id без записи: {key}")
                continue
            records.append(self._decode(raw))
        return records

    async def delete(self, recipe_id: str) -> bool:
        removed = await self.client.delete(self._key(recipe_id))
        await self.client.srem(self.index_key, recipe_id)
        return removed > 0

    async def count(self) -> int:
        return await self.client.scard(self.index_key)

    async def exists(self, recipe_id: str) -> bool:
        return await self.client.exists(self._key(recipe_id)) > 0

    async def clear(self) -> None:
        ids = await self.client.smembers(self.index_key)
        keys = [self._key(i.decode() if isinstance(i, bytes) else i) for i in ids]
        if keys:
            await self.client.delete(*keys)
        await self.client.delete(self.index_key)

    async def close(self) -> None:
        await self.client.aclose()


def get_redis_connection(redis_url: str) -> "redis.Redis":
    """Создает клиента Redis. Соединение открывается при первой команде."""
    return redis.Redis.from_url(redis_url, decode_responses=True)


def create_store(record_cls: Type[RecordT], namespace: str, redis_url: Optional[str] = None) -> RecipeStore[RecordT]:
    if redis_url:
        logger.info(f"Хранилище рецептов: Redis ({namespace})")
        return RedisRecipeStore(record_cls, get_redis_connection(redis_url), namespace)
    logger.info("Хранилище рецептов: память процесса")
    return InMemoryRecipeStore(record_cls)
