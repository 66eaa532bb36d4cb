"""OCR engine base class, result type, and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import ReceiptsConfig

DEFAULT_CONFIDENCE = 0.8

ENGINE_NAMES = ("google_vision", "gpt_vision", "claude", "gemini")

# Shared by the LLM-based engines: transcription only, no interpretation
TRANSCRIPTION_PROMPT = """\
Това е снимка на българска касова бележка.
Препиши целия текст точно както е отпечатан, ред по ред, отгоре надолу.

Правила:
- Запази оригиналните редове: всеки ред от бележката на отделен ред.
- Запази числата точно (десетична запетая или точка, както е отпечатано).
- Запази буквите за ДДС група след цените (напр. "14.98 Б").
- Не превеждай, не обобщавай, не добавяй обяснения и не форматирай като таблица.
- Ако даден символ не се чете, напиши най-вероятния.

Върни само текста на бележката.
"""


@dataclass(frozen=True)
class OCRText:
    text: str
    confidence: float = DEFAULT_CONFIDENCE


class OCREngine(ABC):
    """Abstract base for raw text extraction from a receipt image.

    Engines do no business parsing: they return the transcript and
    whatever native confidence the backend exposes.
    """

    name: str = ""

    @abstractmethod
    async def extract_text(self, image: bytes) -> OCRText:
        ...


def strip_markdown_fences(text: str) -> str:
    """Remove a surrounding ```...``` block that chat models like to add."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    return cleaned.strip()


def guess_media_type(data: bytes) -> str:
    if data.startswith(b"\x89PNG"):
        return "image/png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    return "image/jpeg"


def create_engine(name: str, config: ReceiptsConfig) -> OCREngine:
    """Create an OCR engine by name from configuration."""
    ocr = config.ocr

    match name:
        case "google_vision":
            from .google_vision import GoogleVisionEngine

            return GoogleVisionEngine(
                api_key=ocr.google_vision.api_key,
                project_id=ocr.google_vision.project_id,
                credentials_path=ocr.google_vision.credentials_path,
            )
        case "gpt_vision":
            from .gpt_vision import GPTVisionEngine

            return GPTVisionEngine(
                api_key=ocr.gpt_vision.api_key,
                model=ocr.gpt_vision.model,
            )
        case "claude":
            from .claude import ClaudeEngine

            return ClaudeEngine(
                api_key=ocr.claude.api_key,
                model=ocr.claude.model,
            )
        case "gemini":
            from .gemini import GeminiEngine

            return GeminiEngine(
                api_key=ocr.gemini.api_key,
                model=ocr.gemini.model,
            )
        case _:
            raise ValueError(
                f"Непознат OCR двигател: {name!r}  "
                f"(изберете от {' / '.join(ENGINE_NAMES)})"
            )
