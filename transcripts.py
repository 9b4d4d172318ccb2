# transcripts.py
import logging
import re
from typing import Optional

import httpx

from errors import InvalidURLError, TranscriptError
from globals import DEFAULT_SUPADATA_ENDPOINT
from models import TranscriptResponse

logger = logging.getLogger(__name__)

YOUTUBE_URL_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/v/|youtube\.com/shorts/)([^&\n?#]+)"),
    re.compile(r"^([a-zA-Z0-9_-]{11})$"),
)


def extract_video_id(url: str) -> str:
    """Достает id видео из ссылки любого поддерживаемого вида или из голого id."""
    candidate = (url or "").strip()
    for pattern in YOUTUBE_URL_PATTERNS:
        match = pattern.search(candidate)
        if match and match.group(1):
            return match.group(1)
    raise InvalidURLError(f"Неподдерживаемый формат ссылки YouTube: {url}")


class SupadataService:
    """Клиент API транскриптов Supadata."""

    def __init__(self, api_key: str, base_url: str = DEFAULT_SUPADATA_ENDPOINT,
                 client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient()

    def validate_youtube_url(self, url: str) -> str:
        return extract_video_id(url)

    async def get_transcript(self, url: str, text: bool = True, lang: Optional[str] = None) -> TranscriptResponse:
        """
        Запрашивает транскрипт.
        И HTTP-ошибка, и ответ 200 с полем "error" превращаются в TranscriptError;
        во втором случае код всегда 404.
        """
        video_id = extract_video_id(url)
        params = {"url": url.strip(), "text": "true" if text else "false"}
        if lang:
            params["lang"] = lang

        endpoint = f"{self.base_url}/youtube/transcript"
        logger.info(f"Запрос транскрипта для видео {video_id}")

        try:
            response = await self.client.get(
                endpoint,
                params=params,
                headers={"x-api-key": self.api_key, "Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Не удалось получить транскрипт: {e}")
            raise TranscriptError(f"Не удалось получить транскрипт: {e}") from e

        if not response.is_success:
            logger.error(f"Ошибка Supadata API ({response.status_code}): {response.text}")
            raise TranscriptError(f"Supadata API вернул {response.status_code}", response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Supadata вернул не JSON: {response.text[:500]}")
            raise TranscriptError("Некорректный ответ Supadata API", response.status_code) from e

        if not isinstance(data, dict):
            raise TranscriptError("Некорректный ответ Supadata API", response.status_code)

        if data.get("error"):
            logger.error(f"Supadata вернул ошибку в теле ответа: {data.get('error')} - {data.get('message')} {data.get('details') or ''}")
            raise TranscriptError(f"Транскрипт недоступен: {data.get('message') or data.get('error')}", 404)

        logger.info(f"Транскрипт для видео {video_id} получен")
        return TranscriptResponse.from_api(data)

    async def get_plain_text_transcript(self, url: str, lang: Optional[str] = None) -> str:
        response = await self.get_transcript(url, text=True, lang=lang)
        if response.text is None:
            raise TranscriptError("В ответе нет текста транскрипта")
        return response.text

    async def get_structured_transcript(self, url: str, lang: Optional[str] = None) -> TranscriptResponse:
        return await self.get_transcript(url, text=False, lang=lang)

    async def is_transcript_available(self, url: str) -> bool:
        try:
            await self.get_transcript(url, text=True)
        except TranscriptError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    async def close(self) -> None:
        await self.client.aclose()
