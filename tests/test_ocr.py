"""Tests for OCR engines (mocked vendor SDKs)."""

import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from prizma.receipts.config import load_config
from prizma.receipts.ocr import (
    DEFAULT_CONFIDENCE,
    OCREngine,
    OCRText,
    create_engine,
    guess_media_type,
    strip_markdown_fences,
)
from prizma.receipts.ocr.claude import ClaudeEngine
from prizma.receipts.ocr.gemini import GeminiEngine
from prizma.receipts.ocr.google_vision import GoogleVisionEngine
from prizma.receipts.ocr.gpt_vision import GPTVisionEngine

JPEG = b"\xff\xd8\xff\xe0fake-jpeg"
PNG = b"\x89PNG\r\n\x1a\nfake-png"


class TestCreateEngine:
    @pytest.mark.parametrize(
        "name, cls",
        [
            ("google_vision", GoogleVisionEngine),
            ("gpt_vision", GPTVisionEngine),
            ("claude", ClaudeEngine),
            ("gemini", GeminiEngine),
        ],
    )
    def test_create(self, name, cls):
        engine = create_engine(name, load_config())
        assert isinstance(engine, cls)
        assert isinstance(engine, OCREngine)
        assert engine.name == name

    def test_create_unknown(self):
        with pytest.raises(ValueError, match="Непознат OCR двигател"):
            create_engine("tesseract", load_config())

    def test_model_from_config(self):
        config = load_config()
        config.ocr.gpt_vision.model = "gpt-4o-mini"
        engine = create_engine("gpt_vision", config)
        assert engine._model == "gpt-4o-mini"


class TestHelpers:
    def test_strip_fences(self):
        assert strip_markdown_fences("```\nХЛЯБ 1,20\n```") == "ХЛЯБ 1,20"
        assert strip_markdown_fences("```text\nА\nБ\n```\n") == "А\nБ"

    def test_strip_fences_plain_text(self):
        assert strip_markdown_fences("  ХЛЯБ 1,20  ") == "ХЛЯБ 1,20"

    def test_guess_media_type(self):
        assert guess_media_type(PNG) == "image/png"
        assert guess_media_type(JPEG) == "image/jpeg"
        assert guess_media_type(b"GIF89a....") == "image/gif"
        assert guess_media_type(b"RIFF\x00\x00\x00\x00WEBPVP8 ") == "image/webp"

    def test_default_confidence(self):
        assert OCRText("текст").confidence == DEFAULT_CONFIDENCE


class TestClaudeEngine:
    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        with pytest.raises(ValueError, match="API ключ"):
            await ClaudeEngine(api_key="").extract_text(JPEG)

    @pytest.mark.asyncio
    async def test_extract_text_mocked(self):
        mock_response = MagicMock()
        mock_response.content = [MagicMock(text="```\nКАУФЛАНД\nХляб 1,20\n```")]

        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=mock_response)

        mock_anthropic = MagicMock()
        mock_anthropic.AsyncAnthropic.return_value = mock_client

        with patch.dict(sys.modules, {"anthropic": mock_anthropic}):
            result = await ClaudeEngine(api_key="test-key").extract_text(PNG)

        assert result.text == "КАУФЛАНД\nХляб 1,20"
        assert result.confidence == DEFAULT_CONFIDENCE
        mock_anthropic.AsyncAnthropic.assert_called_once_with(api_key="test-key")
        content = mock_client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert content[0]["source"]["media_type"] == "image/png"


class TestGeminiEngine:
    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        with pytest.raises(ValueError, match="API ключ"):
            await GeminiEngine(api_key="").extract_text(JPEG)

    @pytest.mark.asyncio
    async def test_extract_text_mocked(self):
        mock_model = MagicMock()
        mock_model.generate_content_async = AsyncMock(
            return_value=MagicMock(text="ЛИДЛ\nМляко 2,50")
        )

        mock_genai = MagicMock()
        mock_genai.GenerativeModel.return_value = mock_model
        mock_google = MagicMock()
        mock_google.generativeai = mock_genai

        with patch.dict(
            sys.modules, {"google": mock_google, "google.generativeai": mock_genai}
        ):
            result = await GeminiEngine(api_key="gem-key", model="gemini-test").extract_text(JPEG)

        assert result.text == "ЛИДЛ\nМляко 2,50"
        mock_genai.configure.assert_called_once_with(api_key="gem-key")
        mock_genai.GenerativeModel.assert_called_once_with("gemini-test")


class TestGPTVisionEngine:
    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        with pytest.raises(ValueError, match="API ключ"):
            await GPTVisionEngine(api_key="").extract_text(JPEG)

    @pytest.mark.asyncio
    async def test_extract_text_mocked(self):
        mock_response = MagicMock()
        mock_response.choices = [MagicMock(message=MagicMock(content="БИЛЛА\nВода 0,90"))]

        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)

        mock_openai = MagicMock()
        mock_openai.AsyncOpenAI.return_value = mock_client

        with patch.dict(sys.modules, {"openai": mock_openai}):
            result = await GPTVisionEngine(api_key="sk-test").extract_text(JPEG)

        assert result.text == "БИЛЛА\nВода 0,90"
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["temperature"] == 0
        image_part = kwargs["messages"][0]["content"][1]
        assert image_part["image_url"]["url"].startswith("data:image/jpeg;base64,")


def _mock_vision(response):
    mock_client = MagicMock()
    mock_client.text_detection.return_value = response

    mock_vision = MagicMock()
    mock_vision.ImageAnnotatorClient.return_value = mock_client
    mock_vision.ImageAnnotatorClient.from_service_account_file.return_value = mock_client

    mock_cloud = MagicMock()
    mock_cloud.vision = mock_vision
    mock_google = MagicMock()
    mock_google.cloud = mock_cloud

    modules = {
        "google": mock_google,
        "google.cloud": mock_cloud,
        "google.cloud.vision": mock_vision,
    }
    return mock_vision, mock_client, modules


def _vision_response(text: str = "", confidence: float = 0.0, error: str = ""):
    response = MagicMock()
    response.error.message = error
    response.text_annotations = [MagicMock(description=text)] if text else []
    response.full_text_annotation.pages = [MagicMock(confidence=confidence)]
    return response


class TestGoogleVisionEngine:
    @pytest.mark.asyncio
    async def test_requires_credentials(self):
        with pytest.raises(ValueError, match="GOOGLE_CLOUD_API_KEY"):
            await GoogleVisionEngine().extract_text(JPEG)

    @pytest.mark.asyncio
    async def test_extract_text_mocked(self):
        mock_vision, mock_client, modules = _mock_vision(
            _vision_response("КАУФЛАНД\nХляб 1,20", confidence=0.93)
        )

        with patch.dict(sys.modules, modules):
            engine = GoogleVisionEngine(api_key="g-key", project_id="prizma")
            result = await engine.extract_text(JPEG)

        assert result.text == "КАУФЛАНД\nХляб 1,20"
        assert result.confidence == pytest.approx(0.93)
        mock_vision.ImageAnnotatorClient.assert_called_once_with(
            client_options={"api_key": "g-key", "quota_project_id": "prizma"}
        )
        mock_vision.Image.assert_called_once_with(content=JPEG)
        mock_client.text_detection.assert_called_once()

    @pytest.mark.asyncio
    async def test_service_account_file(self):
        mock_vision, _, modules = _mock_vision(_vision_response("ТЕКСТ"))

        with patch.dict(sys.modules, modules):
            engine = GoogleVisionEngine(credentials_path="/secrets/sa.json")
            result = await engine.extract_text(JPEG)

        mock_vision.ImageAnnotatorClient.from_service_account_file.assert_called_once_with(
            "/secrets/sa.json"
        )
        # No page confidence reported
        assert result.confidence == DEFAULT_CONFIDENCE

    @pytest.mark.asyncio
    async def test_api_error(self):
        _, _, modules = _mock_vision(_vision_response(error="quota exceeded"))

        with patch.dict(sys.modules, modules):
            with pytest.raises(RuntimeError, match="quota exceeded"):
                await GoogleVisionEngine(api_key="g-key").extract_text(JPEG)

    @pytest.mark.asyncio
    async def test_no_text(self):
        _, _, modules = _mock_vision(_vision_response())

        with patch.dict(sys.modules, modules):
            with pytest.raises(RuntimeError, match="не откри текст"):
                await GoogleVisionEngine(api_key="g-key").extract_text(JPEG)
