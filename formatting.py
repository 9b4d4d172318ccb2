# formatting.py
# Тексты сообщений: карточки рецептов, списки, результаты поиска.
from html import escape
from typing import List, Optional

from globals import CATEGORY_LABELS, LANGUAGE_FLAGS, LANGUAGE_NAMES
from models import Category, Ingredient, Recipe, VideoRecipe


def category_label(category: Optional[Category]) -> str:
    if category is None:
        return "не выбрана"
    return CATEGORY_LABELS.get(category.value, category.value)


def format_ingredient(ingredient: Ingredient, with_class: bool = False) -> str:
    text = str(ingredient)
    if with_class and ingredient.classification:
        text += f" ({ingredient.classification})"
    return text


def format_classified_ingredients(ingredients: List[Ingredient]) -> str:
    lines = [f"{i + 1}. {format_ingredient(ing, with_class=True)}" for i, ing in enumerate(ingredients)]
    return "🥘 Ингредиенты распознаны:\n\n" + "\n".join(lines)


def format_recipe_plain(recipe: Recipe) -> str:
    """Запасной шаблон, когда LLM не смогла оформить рецепт."""
    parts = [
        f"🍽️ {recipe.title}",
        f"📂 Категория: {category_label(recipe.category)}",
        "",
        "📝 Ингредиенты:",
        "\n".join(f"• {format_ingredient(ing)}" for ing in recipe.ingredients),
    ]
    if recipe.instructions:
        parts += ["", "👨‍🍳 Приготовление:", recipe.instructions]
    parts += ["", f"🆔 {recipe.id}"]
    return "\n".join(parts)


def format_user_recipes(recipes: List[Recipe]) -> str:
    lines = [f"📖 Твои рецепты ({len(recipes)}):", ""]
    for index, recipe in enumerate(recipes, start=1):
        lines.append(f"{index}. {recipe.title}")
        lines.append(f"   📂 {category_label(recipe.category)}")
        lines.append(f"   🆔 {recipe.id}")
        lines.append("")
    lines.append("Нажми на рецепт ниже или используй /recipe <id>.")
    return "\n".join(lines)


# --- YOUTUBE ---

def _language(recipe: VideoRecipe) -> str:
    lang = recipe.original_language
    return f"{LANGUAGE_NAMES.get(lang, lang)} {LANGUAGE_FLAGS.get(lang, '')}".strip()


def format_video_card(recipe: VideoRecipe) -> str:
    """Карточка рецепта (HTML)."""
    ingredients = "\n".join(f"• {escape(item)}" for item in recipe.ingredients)
    instructions = "\n".join(f"{i}. {escape(step)}" for i, step in enumerate(recipe.instructions, start=1))
    return (
        f"🍽️ <b>{escape(recipe.name)}</b>\n"
        f"⏱️ Время приготовления: {escape(recipe.cooking_time)}\n\n"
        f"📝 <b>Ингредиенты:</b>\n{ingredients}\n\n"
        f"👨‍🍳 <b>Приготовление:</b>\n{instructions}\n\n"
        f"📺 Источник: <a href=\"{escape(recipe.youtube_url, quote=True)}\">видео на YouTube</a>\n"
        f"🌐 Язык оригинала: {_language(recipe)}\n"
        f"🆔 ID рецепта: <code>{escape(recipe.id)}</code>"
    )


def _video_list_item(index: int, recipe: VideoRecipe, with_ingredients: bool = False) -> str:
    flag = LANGUAGE_FLAGS.get(recipe.original_language, "")
    lines = [f"{index}. <b>{escape(recipe.name)}</b> {flag}", f"   ⏱️ {escape(recipe.cooking_time)}"]
    if with_ingredients:
        lines.append(f"   📝 ингредиентов: {len(recipe.ingredients)}")
    lines.append(f"   🆔 <code>{escape(recipe.id)}</code>")
    return "\n".join(lines)


def format_video_list(recipes: List[VideoRecipe]) -> str:
    items = [_video_list_item(i, r) for i, r in enumerate(recipes, start=1)]
    return f"📚 <b>Сохраненные рецепты ({len(recipes)})</b>\n\n" + "\n\n".join(items)


def format_search_results(query: str, recipes: List[VideoRecipe]) -> str:
    items = [_video_list_item(i, r, with_ingredients=True) for i, r in enumerate(recipes, start=1)]
    return (
        f"🔍 Найдено рецептов по запросу «{escape(query)}»: {len(recipes)}\n\n"
        + "\n\n".join(items)
        + "\n\n💡 Добавить новый рецепт: /recipe &lt;ссылка на YouTube&gt;"
    )
