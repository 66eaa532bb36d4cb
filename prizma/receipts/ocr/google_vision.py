"""Google Cloud Vision text detection engine."""

from __future__ import annotations

import asyncio
import logging

from . import DEFAULT_CONFIDENCE, OCREngine, OCRText

logger = logging.getLogger(__name__)


class GoogleVisionEngine(OCREngine):
    """Dense text detection via Google Cloud Vision.

    Any of an API key, a project id or a service-account file is enough;
    with only a project id the client falls back to application default
    credentials.
    """

    name = "google_vision"

    def __init__(
        self, api_key: str = "", project_id: str = "", credentials_path: str = ""
    ) -> None:
        self._api_key = api_key
        self._project_id = project_id
        self._credentials_path = credentials_path
        self._client = None

    def _get_client(self):
        if self._client is not None:
            return self._client

        if not (self._api_key or self._project_id or self._credentials_path):
            raise ValueError(
                "Google Cloud Vision не е конфигуриран. Задайте "
                "GOOGLE_CLOUD_API_KEY, GOOGLE_CLOUD_PROJECT_ID или "
                "GOOGLE_APPLICATION_CREDENTIALS."
            )

        try:
            from google.cloud import vision
        except ImportError:
            raise ImportError(
                "google-cloud-vision is required: pip install google-cloud-vision"
            ) from None

        if self._credentials_path:
            self._client = vision.ImageAnnotatorClient.from_service_account_file(
                self._credentials_path
            )
        else:
            client_options: dict[str, str] = {}
            if self._api_key:
                client_options["api_key"] = self._api_key
            if self._project_id:
                client_options["quota_project_id"] = self._project_id
            self._client = vision.ImageAnnotatorClient(client_options=client_options)
        return self._client

    async def extract_text(self, image: bytes) -> OCRText:
        client = self._get_client()

        from google.cloud import vision

        # The client is synchronous; keep it off the event loop
        response = await asyncio.to_thread(
            client.text_detection, image=vision.Image(content=image)
        )

        if response.error.message:
            raise RuntimeError(f"Google Vision error: {response.error.message}")

        annotations = response.text_annotations
        if not annotations:
            raise RuntimeError("Google Vision не откри текст в изображението")

        confidence = DEFAULT_CONFIDENCE
        pages = response.full_text_annotation.pages
        if pages and pages[0].confidence:
            confidence = float(pages[0].confidence)

        text = annotations[0].description
        logger.debug("Google Vision: %d chars, confidence %.2f", len(text), confidence)
        return OCRText(text=text, confidence=confidence)
