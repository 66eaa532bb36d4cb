"""Google Gemini engine for receipt transcription."""

from __future__ import annotations

from . import TRANSCRIPTION_PROMPT, OCREngine, OCRText, guess_media_type, strip_markdown_fences


class GeminiEngine(OCREngine):
    """Transcribe receipts using Google Gemini's vision capability."""

    name = "gemini"

    def __init__(self, api_key: str = "", model: str = "gemini-2.0-flash") -> None:
        self._api_key = api_key
        self._model = model

    async def extract_text(self, image: bytes) -> OCRText:
        if not self._api_key:
            raise ValueError(
                "Липсва Gemini API ключ. "
                "Проверете конфигурацията или променливата GEMINI_API_KEY."
            )

        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai SDK is required: pip install google-generativeai"
            ) from None

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(self._model)

        parts: list = [
            {"mime_type": guess_media_type(image), "data": image},
            TRANSCRIPTION_PROMPT,
        ]
        response = await model.generate_content_async(parts)
        return OCRText(text=strip_markdown_fences(response.text))
