"""Claude API engine for receipt transcription."""

from __future__ import annotations

import base64

from . import TRANSCRIPTION_PROMPT, OCREngine, OCRText, guess_media_type, strip_markdown_fences


class ClaudeEngine(OCREngine):
    """Transcribe receipts using Claude's vision capability."""

    name = "claude"

    def __init__(self, api_key: str = "", model: str = "claude-sonnet-4-5-20250929") -> None:
        self._api_key = api_key
        self._model = model

    async def extract_text(self, image: bytes) -> OCRText:
        if not self._api_key:
            raise ValueError(
                "Липсва Anthropic API ключ. "
                "Проверете конфигурацията или променливата ANTHROPIC_API_KEY."
            )

        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install anthropic"
            ) from None

        content: list[dict] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": guess_media_type(image),
                    "data": base64.standard_b64encode(image).decode(),
                },
            },
            {"type": "text", "text": TRANSCRIPTION_PROMPT},
        ]

        client = anthropic.AsyncAnthropic(api_key=self._api_key)
        response = await client.messages.create(
            model=self._model,
            max_tokens=4096,
            messages=[{"role": "user", "content": content}],
        )

        return OCRText(text=strip_markdown_fences(response.content[0].text))
