# models.py
"""
Модели данных бота: рецепты обоих профилей, черновик рецепта и сессия диалога.
Все записи умеют превращаться в словарь для JSON и обратно.
"""
from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _dt_from_str(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class Category(str, Enum):
    """Фиксированный список категорий рецепта (значения уходят в callback_data)."""
    MAIN_COURSE = "main_course"
    APPETIZER = "appetizer"
    DESSERT = "dessert"
    BEVERAGE = "beverage"
    SOUP = "soup"
    SALAD = "salad"
    BREAKFAST = "breakfast"
    SNACK = "snack"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Category"]:
        if not value:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class SessionState(str, Enum):
    IDLE = "idle"
    SELECTING_CATEGORY = "selecting_category"
    ADDING_TITLE = "adding_title"
    ADDING_PHOTO = "adding_photo"


# --- РУЧНОЙ ВВОД РЕЦЕПТА ---

@dataclass
class Ingredient:
    name: str
    amount: Optional[str] = None
    unit: Optional[str] = None
    classification: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "amount": self.amount,
            "unit": self.unit,
            "classification": self.classification,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ingredient":
        return cls(
            name=data["name"],
            amount=data.get("amount"),
            unit=data.get("unit"),
            classification=data.get("classification"),
        )

    def __str__(self) -> str:
        parts = [p for p in (self.amount, self.unit, self.name) if p]
        return " ".join(parts)


@dataclass
class PhotoRef:
    """Ссылка на фото в Telegram (самый большой вариант из присланных)."""
    file_id: str
    file_unique_id: str
    width: int
    height: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_id": self.file_id,
            "file_unique_id": self.file_unique_id,
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PhotoRef":
        return cls(
            file_id=data["file_id"],
            file_unique_id=data["file_unique_id"],
            width=int(data["width"]),
            height=int(data["height"]),
        )


@dataclass
class Recipe:
    id: str
    user_id: int
    title: str
    category: Category
    ingredients: List[Ingredient]
    created_at: datetime
    updated_at: datetime
    instructions: Optional[str] = None
    photo: Optional[PhotoRef] = None

    @property
    def display_name(self) -> str:
        return self.title

    @property
    def ingredient_texts(self) -> List[str]:
        return [ing.name for ing in self.ingredients]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "category": self.category.value,
            "ingredients": [ing.to_dict() for ing in self.ingredients],
            "instructions": self.instructions,
            "photo": self.photo.to_dict() if self.photo else None,
            "created_at": _dt_to_str(self.created_at),
            "updated_at": _dt_to_str(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Recipe":
        return cls(
            id=data["id"],
            user_id=int(data["user_id"]),
            title=data["title"],
            category=Category(data["category"]),
            ingredients=[Ingredient.from_dict(i) for i in data.get("ingredients", [])],
            instructions=data.get("instructions"),
            photo=PhotoRef.from_dict(data["photo"]) if data.get("photo") else None,
            created_at=_dt_from_str(data["created_at"]),
            updated_at=_dt_from_str(data["updated_at"]),
        )


@dataclass
class PartialRecipe:
    """Черновик, который заполняется по шагам диалога."""
    user_id: int
    ingredients: List[Ingredient]
    created_at: datetime = field(default_factory=utcnow)
    category: Optional[Category] = None
    title: Optional[str] = None
    instructions: Optional[str] = None
    photo: Optional[PhotoRef] = None

    def to_recipe(self, recipe_id: str) -> Recipe:
        if self.category is None or not self.title:
            raise ValueError("Черновик рецепта не заполнен: нужны категория и название")
        return Recipe(
            id=recipe_id,
            user_id=self.user_id,
            title=self.title,
            category=self.category,
            ingredients=list(self.ingredients),
            instructions=self.instructions,
            photo=self.photo,
            created_at=self.created_at,
            updated_at=utcnow(),
        )


@dataclass
class ClassificationResult:
    ingredients: List[Ingredient]
    suggested_category: Optional[Category] = None


@dataclass
class Session:
    user_id: int
    state: SessionState = SessionState.IDLE
    current_recipe: Optional[PartialRecipe] = None
    classified_ingredients: List[Ingredient] = field(default_factory=list)
    suggested_title: Optional[str] = None
    pending_delete: Optional[str] = None

    def reset(self) -> None:
        """Возвращает сессию в idle, не трогая ожидающее удаление."""
        self.state = SessionState.IDLE
        self.current_recipe = None
        self.classified_ingredients = []
        self.suggested_title = None


# --- РЕЦЕПТЫ ИЗ YOUTUBE ---

def generate_video_recipe_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"recipe_{int(time.time() * 1000)}_{suffix}"


@dataclass
class ExtractedRecipe:
    name: str
    cooking_time: str
    ingredients: List[str]
    instructions: List[str]
    detected_language: str

    def to_prompt_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "cookingTime": self.cooking_time,
            "ingredients": self.ingredients,
            "instructions": self.instructions,
            "detectedLanguage": self.detected_language,
        }


@dataclass
class VideoRecipe:
    id: str
    name: str
    cooking_time: str
    ingredients: List[str]
    instructions: List[str]
    original_language: str
    youtube_url: str
    transcript: str
    created_at: datetime

    @property
    def display_name(self) -> str:
        return self.name

    @property
    def ingredient_texts(self) -> List[str]:
        return list(self.ingredients)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "cookingTime": self.cooking_time,
            "ingredients": list(self.ingredients),
            "instructions": list(self.instructions),
            "originalLanguage": self.original_language,
            "youtubeUrl": self.youtube_url,
            "transcript": self.transcript,
            "createdAt": _dt_to_str(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VideoRecipe":
        return cls(
            id=data["id"],
            name=data["name"],
            cooking_time=data.get("cookingTime", ""),
            ingredients=list(data.get("ingredients", [])),
            instructions=list(data.get("instructions", [])),
            original_language=data.get("originalLanguage", "en"),
            youtube_url=data.get("youtubeUrl", ""),
            transcript=data.get("transcript", ""),
            created_at=_dt_from_str(data["createdAt"]),
        )


# --- ТРАНСКРИПТЫ ---

@dataclass
class TranscriptChunk:
    text: str
    offset: float
    duration: float
    lang: str


@dataclass
class TranscriptResponse:
    content: Union[str, List[TranscriptChunk]]
    lang: str
    available_langs: List[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "TranscriptResponse":
        content = data.get("content")
        if isinstance(content, list):
            content = [
                TranscriptChunk(
                    text=chunk.get("text", ""),
                    offset=chunk.get("offset", 0),
                    duration=chunk.get("duration", 0),
                    lang=chunk.get("lang", ""),
                )
                for chunk in content
            ]
        return cls(
            content=content,
            lang=data.get("lang", ""),
            available_langs=list(data.get("availableLangs") or []),
        )

    @property
    def text(self) -> Optional[str]:
        if self.content is None:
            return None
        if isinstance(self.content, str):
            return self.content
        return " ".join(chunk.text for chunk in self.content)
