# conversation.py
"""
Профиль ручного ввода: пользователь присылает ингредиенты, выбирает категорию,
задает название и (по желанию) фото. Состояние каждого пользователя лежит
в SessionStore из context.bot_data.
"""
import logging
import uuid
from typing import Optional

from telegram import Update
from telegram.ext import ContextTypes

from ai import AIService
from db import RecipeStore
from formatting import category_label, format_classified_ingredients, format_user_recipes
from globals import *
from keyboards import (CallbackAction, CallbackKind, build_category_keyboard, build_confirmation_keyboard,
                       build_recipe_actions_keyboard, build_recipe_list_keyboard, parse_callback)
from models import PartialRecipe, PhotoRef, Recipe, Session, SessionState
from sessions import SessionStore

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4096
MAX_CAPTION_LENGTH = 1024

FINISH_STEP_TEXT = "Пожалуйста, заверши текущий шаг или используй /cancel, чтобы начать заново."


def _sessions(context: ContextTypes.DEFAULT_TYPE) -> SessionStore:
    return context.bot_data["sessions"]


def _store(context: ContextTypes.DEFAULT_TYPE) -> RecipeStore:
    return context.bot_data["store"]


def _ai(context: ContextTypes.DEFAULT_TYPE) -> AIService:
    return context.bot_data["ai"]


def _fit(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit - 1] + "…"


# --- КОМАНДЫ ---

async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    user = update.effective_user
    logger.info(f"Пользователь {user.first_name} ({user.id}) запустил /start")
    await update.message.reply_text(
        f"👋 Привет, {user.first_name}! Я помогу сохранить твои рецепты.\n\n"
        "• Пришли мне список ингредиентов, по одному в строке\n"
        "• Я распознаю их и предложу категорию и название\n"
        "• К рецепту можно приложить фото\n"
        "• Все рецепты доступны по команде /myrecipes\n\n"
        "Начни с ингредиентов или загляни в /help."
    )


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Отправляет справочное сообщение."""
    help_text = (
        "📚 *Команды:*\n\n"
        "/start - приветствие\n"
        "/help - эта справка\n"
        "/myrecipes - все твои рецепты\n"
        "/recipe <id> - открыть рецепт\n"
        "/cancel - отменить текущую операцию\n"
        "/skip - сохранить рецепт без фото\n\n"
        "*Как добавить рецепт:*\n"
        "1. Пришли ингредиенты текстом, по одному в строке\n"
        "2. Выбери категорию кнопкой\n"
        "3. Введи название или отправь «использовать предложение»\n"
        "4. Пришли фото или отправь /skip\n"
        "5. Готово, рецепт сохранен!"
    )
    await update.message.reply_text(help_text, parse_mode="Markdown")


async def my_recipes(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    user_id = update.effective_user.id
    recipes = await _store(context).get_user_recipes(user_id)
    if not recipes:
        await update.message.reply_text("📭 У тебя пока нет рецептов.\n\nНачни с отправки ингредиентов!")
        return
    await update.message.reply_text(
        _fit(format_user_recipes(recipes), MAX_MESSAGE_LENGTH),
        reply_markup=build_recipe_list_keyboard(recipes),
    )


async def show_recipe(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/recipe <id>"""
    if not context.args:
        await update.message.reply_text("Укажи ID рецепта: /recipe <id>")
        return

    recipe_id = context.args[0].strip()
    recipe = await _store(context).get(recipe_id)
    if recipe is None:
        await update.message.reply_text("❌ Рецепт не найден. Список рецептов: /myrecipes")
        return
    if recipe.user_id != update.effective_user.id:
        await update.message.reply_text("❌ Можно смотреть только свои рецепты.")
        return

    await send_recipe(update.message, context, recipe)


async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Отменяет текущий диалог."""
    user_id = update.effective_user.id
    sessions = _sessions(context)
    session = sessions.get(user_id)

    if session is None or session.state == SessionState.IDLE:
        await update.message.reply_text("ℹ️ Нет активной операции для отмены.")
        return

    sessions.clear(user_id)
    logger.info(f"Пользователь {user_id} отменил операцию в состоянии {session.state.value}")
    await update.message.reply_text("✅ Операция отменена. Пришли ингредиенты, чтобы начать новый рецепт!")


async def skip_photo(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = _sessions(context).get_or_create(update.effective_user.id)
    if session.state != SessionState.ADDING_PHOTO:
        await update.message.reply_text("ℹ️ Сейчас нечего пропускать.")
        return
    await finalize_recipe(update, context, session)


# --- ТЕКСТ И ФОТО ---

async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Свободный текст: что он значит, зависит от состояния сессии."""
    text = update.message.text or ""
    if text.startswith("/"):
        return

    session = _sessions(context).get_or_create(update.effective_user.id)

    if session.state == SessionState.IDLE:
        await handle_ingredients(update, context, session, text)
    elif session.state == SessionState.ADDING_TITLE:
        await handle_title(update, context, session, text)
    else:
        await update.message.reply_text(FINISH_STEP_TEXT)


async def handle_ingredients(update: Update, context: ContextTypes.DEFAULT_TYPE, session: Session, text: str) -> None:
    lines = [line.strip() for line in text.split("\n") if line.strip()]
    if not lines:
        await update.message.reply_text("Пожалуйста, укажи хотя бы один ингредиент.")
        return

    await update.message.reply_text("🔄 Анализирую ингредиенты...")
    result = await _ai(context).classify_ingredients(lines)

    session.classified_ingredients = result.ingredients
    session.current_recipe = PartialRecipe(user_id=session.user_id, ingredients=result.ingredients)
    session.state = SessionState.SELECTING_CATEGORY
    logger.info(f"Пользователь {session.user_id}: распознано ингредиентов {len(result.ingredients)}")

    await update.message.reply_text(
        format_classified_ingredients(result.ingredients) + "\n\nВыбери категорию рецепта:",
        reply_markup=build_category_keyboard(result.suggested_category),
    )


async def handle_title(update: Update, context: ContextTypes.DEFAULT_TYPE, session: Session, text: str) -> None:
    title = text.strip()
    if not title:
        await update.message.reply_text("Пожалуйста, укажи название или используй /cancel.")
        return

    if title.casefold() in ACCEPT_SUGGESTION_PHRASES:
        names = [ing.name for ing in session.classified_ingredients]
        suggestion = await _ai(context).suggest_title(names)
        # LLM не ответила: остается название, которое пользователь уже видел
        if suggestion == UNTITLED_RECIPE and session.suggested_title:
            suggestion = session.suggested_title
        title = suggestion
        session.suggested_title = title

    if len(title) > MAX_TITLE_LENGTH:
        await update.message.reply_text(f"Название слишком длинное (максимум {MAX_TITLE_LENGTH} символов). Попробуй короче.")
        return

    session.current_recipe.title = title
    session.state = SessionState.ADDING_PHOTO
    await update.message.reply_text(
        f"📸 Отлично! Название: «{title}»\n\n"
        "Теперь пришли фото блюда (необязательно) или отправь /skip, чтобы завершить."
    )


async def handle_photo(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = _sessions(context).get_or_create(update.effective_user.id)

    if session.state != SessionState.ADDING_PHOTO:
        await update.message.reply_text("ℹ️ Пожалуйста, начни с отправки ингредиентов.")
        return

    photos = update.message.photo
    if not photos:
        await update.message.reply_text("❌ Не удалось обработать фото. Попробуй еще раз.")
        return

    largest = max(photos, key=lambda p: p.width * p.height)
    session.current_recipe.photo = PhotoRef(
        file_id=largest.file_id,
        file_unique_id=largest.file_unique_id,
        width=largest.width,
        height=largest.height,
    )
    await finalize_recipe(update, context, session)


async def finalize_recipe(update: Update, context: ContextTypes.DEFAULT_TYPE, session: Session) -> None:
    """Сохраняет черновик как рецепт, сбрасывает сессию и показывает результат."""
    recipe = session.current_recipe.to_recipe(str(uuid.uuid4()))
    await _store(context).add(recipe)
    _sessions(context).clear(session.user_id)
    logger.info(f"Пользователь {session.user_id} сохранил рецепт '{recipe.title}' ({recipe.id})")

    await update.message.reply_text("✅ Рецепт успешно сохранен!")
    await send_recipe(update.message, context, recipe)
    await update.message.reply_text("Пришли мне новые ингредиенты, чтобы добавить еще один рецепт!")


async def send_recipe(message, context: ContextTypes.DEFAULT_TYPE, recipe: Recipe) -> None:
    """Оформляет рецепт и отправляет его: подписью к фото, если оно есть, иначе текстом."""
    formatted = await _ai(context).format_recipe(recipe)
    keyboard = build_recipe_actions_keyboard(recipe.id)
    if recipe.photo:
        await message.reply_photo(recipe.photo.file_id, caption=_fit(formatted, MAX_CAPTION_LENGTH), reply_markup=keyboard)
    else:
        await message.reply_text(_fit(formatted, MAX_MESSAGE_LENGTH), reply_markup=keyboard)


# --- ИНЛАЙН-КНОПКИ ---

async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Единая точка входа для всех нажатий на инлайн-кнопки."""
    query = update.callback_query
    action = parse_callback(query.data)

    if action.kind == CallbackKind.CATEGORY:
        await select_category(update, context, action)
    elif action.kind == CallbackKind.VIEW:
        await view_recipe(update, context, action.recipe_id)
    elif action.kind == CallbackKind.DELETE:
        await delete_recipe(update, context, action.recipe_id)
    elif action.kind == CallbackKind.CONFIRM_YES:
        await confirm_delete(update, context)
    elif action.kind == CallbackKind.CONFIRM_NO:
        await decline_delete(update, context)
    else:
        logger.debug(f"Неизвестный callback: {query.data}")
        await query.answer()


async def select_category(update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction) -> None:
    query = update.callback_query
    session = _sessions(context).get_or_create(query.from_user.id)

    if session.state != SessionState.SELECTING_CATEGORY or session.current_recipe is None:
        await query.answer("Сначала пришли ингредиенты или заверши текущий шаг.")
        return

    session.current_recipe.category = action.category
    session.state = SessionState.ADDING_TITLE

    names = [ing.name for ing in session.classified_ingredients]
    suggested_title = await _ai(context).suggest_title(names)
    session.suggested_title = suggested_title

    await query.answer()

    message = f"📂 Категория: {category_label(action.category)}\n\n"
    if suggested_title and suggested_title != UNTITLED_RECIPE:
        message += (
            f"💡 Предложенное название: «{suggested_title}»\n\n"
            "Ты можешь:\n"
            "• Ввести свое название\n"
            "• Отправить «использовать предложение» (или «use suggestion»), чтобы взять предложенное"
        )
    else:
        message += "Пожалуйста, укажи название рецепта:"

    await query.edit_message_text(message)


async def _get_owned_recipe(update: Update, context: ContextTypes.DEFAULT_TYPE, recipe_id: str) -> Optional[Recipe]:
    """Рецепт, если он есть и принадлежит нажавшему. Иначе отвечает всплывашкой и возвращает None."""
    query = update.callback_query
    recipe = await _store(context).get(recipe_id)
    if recipe is None:
        await query.answer("Рецепт не найден")
        return None
    if recipe.user_id != query.from_user.id:
        logger.warning(f"Пользователь {query.from_user.id} пытался получить чужой рецепт {recipe_id}")
        await query.answer("Доступ запрещен")
        return None
    return recipe


async def view_recipe(update: Update, context: ContextTypes.DEFAULT_TYPE, recipe_id: str) -> None:
    recipe = await _get_owned_recipe(update, context, recipe_id)
    if recipe is None:
        return
    await update.callback_query.answer()
    await send_recipe(update.callback_query.message, context, recipe)


async def delete_recipe(update: Update, context: ContextTypes.DEFAULT_TYPE, recipe_id: str) -> None:
    query = update.callback_query
    recipe = await _get_owned_recipe(update, context, recipe_id)
    if recipe is None:
        return

    session = _sessions(context).get_or_create(query.from_user.id)
    session.pending_delete = recipe.id

    await query.answer()
    await query.message.reply_text(
        f"⚠️ Ты уверен, что хочешь удалить «{recipe.title}»?",
        reply_markup=build_confirmation_keyboard(),
    )


async def confirm_delete(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    session = _sessions(context).get(query.from_user.id)

    if session is None or not session.pending_delete:
        await query.answer("Нет ожидающего удаления")
        return

    recipe_id = session.pending_delete
    session.pending_delete = None
    deleted = await _store(context).delete(recipe_id)

    if not deleted:
        await query.answer("Рецепт не найден")
        await query.edit_message_text("❌ Рецепт уже удален или не найден.")
        return

    logger.info(f"Пользователь {query.from_user.id} удалил рецепт {recipe_id}")
    await query.answer("Рецепт удален")
    await query.edit_message_text("✅ Рецепт успешно удален.")


async def decline_delete(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    session = _sessions(context).get(query.from_user.id)
    if session is not None:
        session.pending_delete = None

    await query.answer("Удаление отменено")
    await query.edit_message_text("✅ Удаление отменено.")
