# keyboards.py
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from globals import CATEGORY_LABELS
from models import Category, Recipe

CATEGORY_PREFIX = "category_"
VIEW_PREFIX = "view_"
DELETE_PREFIX = "delete_"
CONFIRM_YES = "confirm_yes"
CONFIRM_NO = "confirm_no"


class CallbackKind(str, Enum):
    CATEGORY = "category"
    VIEW = "view"
    DELETE = "delete"
    CONFIRM_YES = "confirm_yes"
    CONFIRM_NO = "confirm_no"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CallbackAction:
    kind: CallbackKind
    category: Optional[Category] = None
    recipe_id: Optional[str] = None


def parse_callback(data: Optional[str]) -> CallbackAction:
    """Разбирает callback_data кнопки один раз, на входе в роутер."""
    data = data or ""
    if data == CONFIRM_YES:
        return CallbackAction(CallbackKind.CONFIRM_YES)
    if data == CONFIRM_NO:
        return CallbackAction(CallbackKind.CONFIRM_NO)
    if data.startswith(CATEGORY_PREFIX):
        category = Category.parse(data[len(CATEGORY_PREFIX):])
        if category is not None:
            return CallbackAction(CallbackKind.CATEGORY, category=category)
    if data.startswith(VIEW_PREFIX) and len(data) > len(VIEW_PREFIX):
        return CallbackAction(CallbackKind.VIEW, recipe_id=data[len(VIEW_PREFIX):])
    if data.startswith(DELETE_PREFIX) and len(data) > len(DELETE_PREFIX):
        return CallbackAction(CallbackKind.DELETE, recipe_id=data[len(DELETE_PREFIX):])
    return CallbackAction(CallbackKind.UNKNOWN)


def build_category_keyboard(suggested: Optional[Category] = None) -> InlineKeyboardMarkup:
    """9 кнопок категорий по 3 в ряд. Предложенная LLM категория отмечена звездочкой."""
    keyboard = []
    row = []
    for category in Category:
        text = CATEGORY_LABELS[category.value]
        if category == suggested:
            text = f"⭐ {text}"
        row.append(InlineKeyboardButton(text, callback_data=f"{CATEGORY_PREFIX}{category.value}"))
        if len(row) == 3:
            keyboard.append(row)
            row = []
    if row:
        keyboard.append(row)
    return InlineKeyboardMarkup(keyboard)


def build_recipe_actions_keyboard(recipe_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[
        InlineKeyboardButton("👁️ Открыть", callback_data=f"{VIEW_PREFIX}{recipe_id}"),
        InlineKeyboardButton("🗑️ Удалить", callback_data=f"{DELETE_PREFIX}{recipe_id}"),
    ]])


def build_recipe_list_keyboard(recipes: List[Recipe]) -> InlineKeyboardMarkup:
    keyboard = [
        [InlineKeyboardButton(recipe.title, callback_data=f"{VIEW_PREFIX}{recipe.id}")]
        for recipe in recipes
    ]
    return InlineKeyboardMarkup(keyboard)


def build_confirmation_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[
        InlineKeyboardButton("✅ Да", callback_data=CONFIRM_YES),
        InlineKeyboardButton("❌ Нет", callback_data=CONFIRM_NO),
    ]])
