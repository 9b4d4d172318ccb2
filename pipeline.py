# pipeline.py
import logging
from typing import Awaitable, Callable, Optional

from ai import AIService
from db import RecipeStore
from errors import TranscriptTooShortError
from globals import MIN_TRANSCRIPT_LENGTH
from models import VideoRecipe
from transcripts import SupadataService

logger = logging.getLogger(__name__)

StepCallback = Callable[[str], Awaitable[None]]

STEP_VALIDATING = "✅ Проверяю ссылку на YouTube..."
STEP_TRANSCRIPT = "📝 Получаю транскрипт видео..."
STEP_EXTRACTING = "🤖 Извлекаю рецепт..."


async def extract_recipe_from_video(
    youtube_url: str,
    transcripts: SupadataService,
    ai: AIService,
    store: RecipeStore,
    on_step: Optional[StepCallback] = None,
) -> VideoRecipe:
    """
    Ссылка -> транскрипт -> извлечение LLM -> перевод (если нужен) -> сохранение.
    Каждый шаг бросает собственное исключение, разбором занимается вызывающий.
    """
    async def step(text: str) -> None:
        if on_step is not None:
            await on_step(text)

    await step(STEP_VALIDATING)
    video_id = transcripts.validate_youtube_url(youtube_url)

    await step(STEP_TRANSCRIPT)
    transcript = await transcripts.get_plain_text_transcript(youtube_url)
    if not transcript or len(transcript.strip()) < MIN_TRANSCRIPT_LENGTH:
        logger.warning(f"Транскрипт видео {video_id} слишком короткий: {len(transcript or '')} символов")
        raise TranscriptTooShortError("Транскрипт слишком короткий или недоступен")

    await step(STEP_EXTRACTING)
    recipe = await ai.process_recipe(transcript, youtube_url)

    await store.add(recipe)
    logger.info(f"Рецепт '{recipe.name}' ({recipe.id}) сохранен из видео {video_id}")
    return recipe
