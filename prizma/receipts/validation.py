"""Total validation and receipt quality summaries."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from .models import ExtractedItem, ReceiptExtraction, TotalValidationResult
from .products import OTHER_CATEGORY

TOTAL_TOLERANCE_PCT = 5.0


def validate_total(
    items: Iterable[ExtractedItem],
    ocr_total: float,
    tolerance_pct: float = TOTAL_TOLERANCE_PCT,
) -> TotalValidationResult:
    """Compare the sum of item lines against the printed total.

    Valid iff the difference is within ``tolerance_pct`` percent of the
    printed total. A zero printed total counts as a 100% difference.
    """
    calculated = sum(item.price * item.quantity for item in items)
    difference = abs(calculated - ocr_total)
    percentage_diff = difference / ocr_total * 100 if ocr_total > 0 else 100.0
    valid = ocr_total > 0 and percentage_diff <= tolerance_pct

    if valid:
        explanation = "Общата сума се валидира правилно"
    elif ocr_total <= 0:
        explanation = "Липсва обща сума за сравнение"
    elif percentage_diff <= 15:
        explanation = "Малка разлика в общата сума - възможни грешки при OCR"
    else:
        explanation = "Значителна разлика в общата сума - необходима проверка"

    return TotalValidationResult(
        calculated_total=round(calculated, 2),
        ocr_total=ocr_total,
        difference=round(difference, 2),
        percentage_diff=round(percentage_diff, 2),
        valid=valid,
        explanation=explanation,
    )


@dataclass(frozen=True)
class QualityAssessment:
    quality: str  # excellent | good | fair | poor
    score: float
    issues: dict[str, int] = field(default_factory=dict)
    recommendations: tuple[str, ...] = ()


def assess_quality(extraction: ReceiptExtraction) -> QualityAssessment:
    """Grade an extraction by the severity of its quality issues."""
    counts = Counter(issue.severity for issue in extraction.quality_issues)
    critical, high, medium = counts["critical"], counts["high"], counts["medium"]

    if critical > 0:
        quality = "poor"
    elif high > 1 or medium > 3:
        quality = "fair"
    elif high > 0 or medium > 1:
        quality = "good"
    else:
        quality = "excellent"

    return QualityAssessment(
        quality=quality,
        score=extraction.confidence,
        issues={
            "critical": critical,
            "high": high,
            "medium": medium,
            "low": counts["low"],
        },
        recommendations=extraction.suggestions,
    )


@dataclass(frozen=True)
class ProcessingStats:
    processing_time_ms: float
    total_items: int
    categorized_items: int
    high_confidence_items: int
    avg_item_confidence: float
    store_detected: bool
    total_validated: bool
    text_quality: str
    layout_complexity: str


def processing_stats(extraction: ReceiptExtraction) -> ProcessingStats:
    items = extraction.items
    avg = sum(i.confidence for i in items) / len(items) if items else 0.0
    meta = extraction.metadata
    return ProcessingStats(
        processing_time_ms=meta.processing_time_ms,
        total_items=len(items),
        categorized_items=sum(
            1 for i in items if i.category and i.category != OTHER_CATEGORY
        ),
        high_confidence_items=sum(1 for i in items if i.confidence >= 0.8),
        avg_item_confidence=round(avg, 2),
        store_detected=meta.detected_store is not None,
        total_validated=meta.total_validation.valid,
        text_quality=meta.text_quality,
        layout_complexity=meta.layout_complexity,
    )
