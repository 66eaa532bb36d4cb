"""Receipt pipeline: image in, reconciled extraction out.

Stages: quality analysis, variant generation, OCR + parse for every
variant on every engine, candidate scoring, then reconciliation of the
two best engine results (or a single-engine result when only one engine
produced anything).
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field

from .config import ReceiptsConfig, load_config
from .imaging import ImagePreprocessor, ImageVariant
from .models import (
    SOURCE_A,
    SOURCE_B,
    PipelineResult,
    QualityReport,
    ReceiptExtraction,
)
from .ocr import OCREngine, create_engine
from .parser import ReceiptParser
from .reconciliation import reconcile, single_source

logger = logging.getLogger(__name__)


class PipelineError(RuntimeError):
    """Raised when no engine produced a usable extraction."""

    def __init__(self, failures: dict[str, str]) -> None:
        self.failures = dict(failures)
        details = "; ".join(f"{name}: {err}" for name, err in self.failures.items())
        super().__init__(f"Всички OCR двигатели се провалиха ({details or 'няма двигатели'})")


@dataclass
class _EngineOutcome:
    engine: str
    best: ReceiptExtraction | None = None
    best_variant: str = ""
    attempts: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def last_error(self) -> str:
        return self.errors[-1] if self.errors else "няма резултат"


def score_candidate(extraction: ReceiptExtraction) -> float:
    """Rank one variant's extraction against the others from the same engine."""
    score = extraction.confidence
    validation = extraction.metadata.total_validation
    if validation.valid:
        score += 0.2
        if validation.difference <= 0.01:
            score += 0.1
    score += min(len(extraction.items) * 0.02, 0.1)
    return score


class ReceiptPipeline:
    """Runs every configured engine over every image variant.

    Engines run concurrently; each engine's variants share a small
    semaphore so a single backend never sees more than ``max_workers``
    requests at once.
    """

    def __init__(
        self,
        engines: list[OCREngine],
        parser: ReceiptParser | None = None,
        preprocessor: ImagePreprocessor | None = None,
        config: ReceiptsConfig | None = None,
    ) -> None:
        self._config = config or ReceiptsConfig()
        self._engines = list(engines)
        self._parser = parser or ReceiptParser(thresholds=self._config.thresholds)
        img = self._config.image
        self._preprocessor = preprocessor or ImagePreprocessor(
            min_width=img.min_width,
            min_brightness=img.min_brightness,
            target_width=img.target_width,
            max_variants=img.max_variants,
        )

    @classmethod
    def from_config(cls, config: ReceiptsConfig | None = None) -> ReceiptPipeline:
        config = config or load_config()
        engines = [create_engine(name, config) for name in config.ocr.engines]
        return cls(engines, config=config)

    @property
    def engines(self) -> list[str]:
        return [e.name for e in self._engines]

    async def process_receipt_image(self, image_bytes: bytes) -> PipelineResult:
        started = time.perf_counter()

        analysis = await asyncio.to_thread(self._preprocessor.analyze, image_bytes)
        variants = await asyncio.to_thread(
            self._preprocessor.preprocess, image_bytes, analysis.suggested_options
        )
        logger.info(
            "Processing receipt: %d variants x %d engines", len(variants), len(self._engines)
        )

        outcomes = await asyncio.gather(
            *(self._run_engine(engine, variants) for engine in self._engines)
        )

        succeeded = [o for o in outcomes if o.best is not None]
        failures = {o.engine: o.last_error for o in outcomes if o.best is None}
        if not succeeded:
            raise PipelineError(failures)

        if len(succeeded) >= 2:
            a, b = succeeded[0], succeeded[1]
            reconciliation = reconcile(a.best, b.best, self._config.thresholds)
            chosen = a if a.best.confidence >= b.best.confidence else b
            confidence = reconciliation.reconciliation_confidence
        else:
            chosen = succeeded[0]
            # Provenance follows engine order: the second engine is source B
            source = SOURCE_B if len(outcomes) > 1 and outcomes[1] is chosen else SOURCE_A
            reconciliation = single_source(chosen.best, source)
            confidence = chosen.best.confidence

        receipt = chosen.best
        report = QualityReport(
            image_issues=list(analysis.issues),
            issues=len(receipt.quality_issues),
            suggestions=list(receipt.suggestions),
            processing_time_ms=round((time.perf_counter() - started) * 1000, 2),
            attempts=sum(o.attempts for o in outcomes),
            best_variant=chosen.best_variant,
            failures=failures,
        )

        logger.info(
            "Receipt done: %d items, confidence %.2f, engines %s",
            len(reconciliation.final_items),
            confidence,
            [o.engine for o in succeeded],
        )
        return PipelineResult(
            success=receipt.success,
            confidence=confidence,
            quality_report=report,
            receipt=receipt,
            reconciliation=reconciliation,
            engines=[o.engine for o in succeeded],
        )

    async def _run_engine(
        self, engine: OCREngine, variants: list[ImageVariant]
    ) -> _EngineOutcome:
        outcome = _EngineOutcome(engine=engine.name)
        semaphore = asyncio.Semaphore(max(1, self._config.ocr.max_workers))

        async def attempt(variant: ImageVariant) -> ReceiptExtraction | None:
            async with semaphore:
                outcome.attempts += 1
                return await self._extract(engine, variant, outcome)

        results = await asyncio.gather(*(attempt(v) for v in variants))

        best_score = float("-inf")
        for variant, extraction in zip(variants, results):
            if extraction is None:
                continue
            score = score_candidate(extraction)
            logger.debug("%s [%s] score %.2f", engine.name, variant.label, score)
            if score > best_score:
                best_score = score
                outcome.best = extraction
                outcome.best_variant = variant.label

        if outcome.best is None:
            logger.warning("%s: no usable result (%s)", engine.name, outcome.last_error)
        else:
            logger.info(
                "%s: best variant %s, confidence %.2f",
                engine.name,
                outcome.best_variant,
                outcome.best.confidence,
            )
        return outcome

    async def _extract(
        self, engine: OCREngine, variant: ImageVariant, outcome: _EngineOutcome
    ) -> ReceiptExtraction | None:
        timeout = self._config.ocr.timeout
        try:
            ocr = await asyncio.wait_for(engine.extract_text(variant.data), timeout)
            if not ocr.text.strip():
                raise RuntimeError("празен текст")
            return self._parser.parse(
                ocr.text,
                engine=engine.name,
                variant=variant.operations,
                engine_confidence=ocr.confidence,
            )
        except asyncio.TimeoutError:
            message = f"изтекло време ({timeout:g}s)"
            logger.warning("%s [%s]: %s", engine.name, variant.label, message)
            outcome.errors.append(message)
        except Exception as e:
            logger.warning("%s [%s] failed: %s", engine.name, variant.label, e)
            outcome.errors.append(str(e) or type(e).__name__)
        return None


async def process_receipt_image(
    image_bytes: bytes, config: ReceiptsConfig | None = None
) -> PipelineResult:
    """Run the full pipeline with engines built from ``config``."""
    pipeline = ReceiptPipeline.from_config(config)
    return await pipeline.process_receipt_image(image_bytes)
