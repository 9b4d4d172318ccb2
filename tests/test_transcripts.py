"""
Клиент Supadata и разбор ссылок YouTube.
"""
from __future__ import annotations

import asyncio

import httpx
import pytest

from errors import InvalidURLError, TranscriptError
from transcripts import SupadataService, extract_video_id

BASE_URL = "https://api.supadata.test/v1"


def _run(coro):
    """Запускает корутину синхронно (без pytest-asyncio)."""
    return asyncio.run(coro)


def _service(handler) -> SupadataService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupadataService(api_key="secret", base_url=BASE_URL, client=client)


class TestExtractVideoId:
    @pytest.mark.parametrize("url", [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42s",
        "https://youtu.be/dQw4w9WgXcQ",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "https://www.youtube.com/v/dQw4w9WgXcQ",
        "https://www.youtube.com/shorts/dQw4w9WgXcQ",
        "dQw4w9WgXcQ",
    ])
    def test_supported_forms(self, url):
        assert extract_video_id(url) == "dQw4w9WgXcQ"

    @pytest.mark.parametrize("url", ["", "https://vimeo.com/12345", "not a link", "short"])
    def test_unsupported_forms(self, url):
        with pytest.raises(InvalidURLError):
            extract_video_id(url)


class TestGetTranscript:
    def test_request_shape(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["key"] = request.headers.get("x-api-key")
            return httpx.Response(200, json={"content": "hello", "lang": "en", "availableLangs": ["en"]})

        service = _service(handler)
        text = _run(service.get_plain_text_transcript("https://youtu.be/dQw4w9WgXcQ", lang="en"))

        assert text == "hello"
        assert seen["path"] == "/v1/youtube/transcript"
        assert seen["params"] == {"url": "https://youtu.be/dQw4w9WgXcQ", "text": "true", "lang": "en"}
        assert seen["key"] == "secret"

    def test_structured_transcript_chunks(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["text"] == "false"
            return httpx.Response(200, json={
                "content": [
                    {"text": "Add salt", "offset": 0, "duration": 1000, "lang": "en"},
                    {"text": "and stir", "offset": 1000, "duration": 800, "lang": "en"},
                ],
                "lang": "en",
                "availableLangs": ["en", "es"],
            })

        response = _run(_service(handler).get_structured_transcript("dQw4w9WgXcQ"))

        assert response.text == "Add salt and stir"
        assert response.available_langs == ["en", "es"]

    def test_error_envelope_is_404(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"error": "transcript-unavailable", "message": "No transcript"})

        with pytest.raises(TranscriptError) as exc_info:
            _run(_service(handler).get_transcript("dQw4w9WgXcQ"))
        assert exc_info.value.status_code == 404

    def test_http_error_status_is_kept(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        with pytest.raises(TranscriptError) as exc_info:
            _run(_service(handler).get_transcript("dQw4w9WgXcQ"))
        assert exc_info.value.status_code == 500

    def test_network_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TranscriptError) as exc_info:
            _run(_service(handler).get_transcript("dQw4w9WgXcQ"))
        assert exc_info.value.status_code is None

    def test_invalid_url_is_rejected_before_request(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("запроса быть не должно")

        with pytest.raises(InvalidURLError):
            _run(_service(handler).get_transcript("https://vimeo.com/1"))


class TestIsTranscriptAvailable:
    def test_false_on_404(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "not-found"})

        assert _run(_service(handler).is_transcript_available("dQw4w9WgXcQ")) is False

    def test_true_on_success(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"content": "text", "lang": "en"})

        assert _run(_service(handler).is_transcript_available("dQw4w9WgXcQ")) is True

    def test_other_errors_propagate(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "unauthorized"})

        with pytest.raises(TranscriptError):
            _run(_service(handler).is_transcript_available("dQw4w9WgXcQ"))
