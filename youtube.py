# youtube.py
"""
Профиль YouTube: /recipe <ссылка> достает рецепт из транскрипта видео,
остальные команды работают с уже сохраненными рецептами.
"""
import logging

from telegram import LinkPreviewOptions, Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from errors import AIResponseParseError, AIServiceError, BotError, InvalidURLError, TranscriptError, TranscriptTooShortError
from formatting import format_search_results, format_video_card, format_video_list
from models import VideoRecipe
from pipeline import extract_recipe_from_video

logger = logging.getLogger(__name__)

NO_PREVIEW = LinkPreviewOptions(is_disabled=True)

HELP_TEXT = (
    "🍳 <b>Рецепты из YouTube</b>\n\n"
    "Пришли ссылку на кулинарное видео, и я достану из него рецепт.\n\n"
    "<b>Команды:</b>\n"
    "/recipe &lt;ссылка&gt; - извлечь рецепт из видео\n"
    "/search &lt;запрос&gt; - найти рецепт по названию или ингредиенту\n"
    "/list - все сохраненные рецепты\n"
    "/help - эта справка\n\n"
    "Можно просто прислать ID рецепта или слово для поиска."
)


def describe_pipeline_error(error: BotError) -> str:
    """Текст для пользователя по исключению конвейера."""
    if isinstance(error, InvalidURLError):
        return "❌ Неверная ссылка на YouTube.\n\nПример: /recipe https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    if isinstance(error, TranscriptTooShortError):
        return "❌ Транскрипт видео слишком короткий или недоступен. Попробуй другое видео."
    if isinstance(error, TranscriptError):
        if error.status_code == 404:
            return "❌ Для этого видео нет транскрипта. Попробуй видео с субтитрами."
        return "❌ Не удалось получить транскрипт видео. Попробуй позже."
    if isinstance(error, AIResponseParseError):
        return "❌ Не удалось разобрать рецепт из видео. Возможно, в нем нет рецепта."
    if isinstance(error, AIServiceError):
        if error.status_code in (401, 429):
            return f"❌ Ошибка ИИ-сервиса: {error}"
        return "❌ ИИ-сервис временно недоступен. Попробуй позже."
    return "❌ Не удалось обработать видео. Попробуй еще раз."


async def send_recipe_card(message, recipe: VideoRecipe) -> None:
    await message.reply_text(format_video_card(recipe), parse_mode=ParseMode.HTML, link_preview_options=NO_PREVIEW)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/start и /help"""
    await update.message.reply_text(HELP_TEXT, parse_mode=ParseMode.HTML)


async def recipe_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/recipe <ссылка>: запускает конвейер, прогресс показывает в одном сообщении."""
    if not context.args:
        await update.message.reply_text(
            "Укажи ссылку на видео: /recipe <ссылка на YouTube>\n\n"
            "Пример: /recipe https://www.youtube.com/watch?v=dQw4w9WgXcQ"
        )
        return

    url = context.args[0].strip()
    user = update.effective_user
    logger.info(f"Пользователь {user.id} запросил рецепт из {url}")

    status = await update.message.reply_text("🎬 Обрабатываю видео...")
    try:
        recipe = await extract_recipe_from_video(
            url,
            context.bot_data["transcripts"],
            context.bot_data["ai"],
            context.bot_data["store"],
            on_step=status.edit_text,
        )
    except BotError as e:
        logger.warning(f"Не удалось извлечь рецепт из {url}: {type(e).__name__}: {e}")
        await status.edit_text(describe_pipeline_error(e))
        return

    await status.delete()
    await send_recipe_card(update.message, recipe)


async def search_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = " ".join(context.args or []).strip()
    if not query:
        await update.message.reply_text("Укажи запрос: /search <название или ингредиент>")
        return
    await reply_search_results(update, context, query)


async def reply_search_results(update: Update, context: ContextTypes.DEFAULT_TYPE, query: str) -> None:
    recipes = await context.bot_data["store"].search(query)
    if not recipes:
        await update.message.reply_text(f"🔍 По запросу «{query}» ничего не найдено.\n\nДобавь рецепт: /recipe <ссылка на YouTube>")
        return
    await update.message.reply_text(format_search_results(query, recipes), parse_mode=ParseMode.HTML)


async def list_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    recipes = await context.bot_data["store"].get_all()
    if not recipes:
        await update.message.reply_text("📭 Сохраненных рецептов пока нет.\n\nДобавь первый: /recipe <ссылка на YouTube>")
        return
    await update.message.reply_text(format_video_list(recipes), parse_mode=ParseMode.HTML)


async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Любой текст: сначала как ID рецепта, потом как поисковый запрос."""
    text = (update.message.text or "").strip()
    if not text or text.startswith("/"):
        return

    recipe = await context.bot_data["store"].get(text)
    if recipe is not None:
        await send_recipe_card(update.message, recipe)
        return

    await reply_search_results(update, context, text)
