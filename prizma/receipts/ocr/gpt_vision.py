"""OpenAI GPT vision engine for receipt transcription."""

from __future__ import annotations

import base64

from . import TRANSCRIPTION_PROMPT, OCREngine, OCRText, guess_media_type, strip_markdown_fences


class GPTVisionEngine(OCREngine):
    """Transcribe receipts with an OpenAI vision-capable chat model."""

    name = "gpt_vision"

    def __init__(self, api_key: str = "", model: str = "gpt-4o") -> None:
        self._api_key = api_key
        self._model = model

    async def extract_text(self, image: bytes) -> OCRText:
        if not self._api_key:
            raise ValueError(
                "Липсва OpenAI API ключ. "
                "Проверете конфигурацията или променливата OPENAI_API_KEY."
            )

        try:
            import openai
        except ImportError:
            raise ImportError("openai SDK is required: pip install openai") from None

        data_url = (
            f"data:{guess_media_type(image)};base64,"
            f"{base64.standard_b64encode(image).decode()}"
        )

        client = openai.AsyncOpenAI(api_key=self._api_key)
        response = await client.chat.completions.create(
            model=self._model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": TRANSCRIPTION_PROMPT},
                        {
                            "type": "image_url",
                            "image_url": {"url": data_url, "detail": "high"},
                        },
                    ],
                }
            ],
            max_tokens=3000,
            temperature=0,
        )

        text = response.choices[0].message.content or ""
        return OCRText(text=strip_markdown_fences(text))
