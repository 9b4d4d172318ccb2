import logging

from telegram import Update
from telegram.error import TelegramError
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, ContextTypes, MessageHandler, filters

import conversation
import youtube
from ai import AIService
from config import Config, load_config
from db import create_store
from globals import *
from models import Recipe, VideoRecipe
from sessions import SessionStore
from transcripts import SupadataService

# Логгинг
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s', level=logging.INFO
)
logger = logging.getLogger(__name__)


def configure_logging(config: Config) -> None:
    if config.is_development:
        logging.getLogger().setLevel(logging.DEBUG)
    # Каждый запрос к API Telegram и Groq иначе попадает в лог
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Последний рубеж: логирует ошибку и извиняется перед пользователем."""
    logger.error("Необработанная ошибка при обработке обновления", exc_info=context.error)
    if not isinstance(update, Update) or update.effective_chat is None:
        return
    try:
        await context.bot.send_message(
            update.effective_chat.id,
            "😔 Что-то пошло не так. Попробуй еще раз или используй /help.",
        )
    except TelegramError as e:
        logger.error(f"Не удалось отправить сообщение об ошибке: {e}")


async def check_llm(application: Application) -> None:
    """Проверяет доступность LLM при старте. Бот запускается в любом случае."""
    if await application.bot_data["ai"].test_connection():
        logger.info("LLM API доступен.")
    else:
        logger.warning("LLM API недоступен: ответы будут собираться запасными шаблонами.")


async def close_clients(application: Application) -> None:
    """Закрывает соединения с хранилищем и Supadata при остановке бота."""
    await application.bot_data["store"].close()
    transcripts = application.bot_data.get("transcripts")
    if transcripts is not None:
        await transcripts.close()
    logger.info("Соединения закрыты.")


def setup_manual_profile(application: Application, config: Config) -> None:
    """Ввод рецептов вручную: ингредиенты -> категория -> название -> фото."""
    application.bot_data["sessions"] = SessionStore()
    application.bot_data["store"] = create_store(Recipe, MANUAL_NAMESPACE, config.redis_url)

    application.add_handler(CommandHandler("start", conversation.start))
    application.add_handler(CommandHandler("help", conversation.help_command))
    application.add_handler(CommandHandler("myrecipes", conversation.my_recipes))
    application.add_handler(CommandHandler("recipe", conversation.show_recipe))
    application.add_handler(CommandHandler("cancel", conversation.cancel))
    application.add_handler(CommandHandler("skip", conversation.skip_photo))

    application.add_handler(MessageHandler(filters.PHOTO, conversation.handle_photo))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, conversation.handle_text))
    application.add_handler(CallbackQueryHandler(conversation.handle_callback))


def setup_youtube_profile(application: Application, config: Config) -> None:
    """Рецепты из YouTube: ссылка -> транскрипт -> рецепт на русском."""
    application.bot_data["store"] = create_store(VideoRecipe, VIDEO_NAMESPACE, config.redis_url)
    application.bot_data["transcripts"] = SupadataService(config.supadata_api_key, config.supadata_api_endpoint)

    application.add_handler(CommandHandler("start", youtube.help_command))
    application.add_handler(CommandHandler("help", youtube.help_command))
    application.add_handler(CommandHandler("recipe", youtube.recipe_command))
    application.add_handler(CommandHandler("search", youtube.search_command))
    application.add_handler(CommandHandler("list", youtube.list_command))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, youtube.handle_text))


def build_application(config: Config) -> Application:
    application = (
        Application.builder()
        .token(config.telegram_token)
        .post_init(check_llm)
        .post_shutdown(close_clients)
        .build()
    )
    application.bot_data["ai"] = AIService(config.groq_api_key, config.groq_api_endpoint, config.groq_model)

    if config.profile == "youtube":
        setup_youtube_profile(application, config)
    else:
        setup_manual_profile(application, config)

    application.add_error_handler(error_handler)
    return application


def main() -> None:
    """Основная функция для запуска бота."""
    config = load_config()
    configure_logging(config)

    application = build_application(config)
    logger.info(f"Бот запущен: профиль {config.profile}, окружение {config.environment}")
    application.run_polling()


if __name__ == "__main__":
    main()
