"""Tests for merging two engines' extractions."""

import pytest

from prizma.receipts.config import ThresholdConfig
from prizma.receipts.models import (
    RECONCILED,
    SOURCE_A,
    SOURCE_B,
    ConfidenceScore,
    ExtractedItem,
    ExtractionMetadata,
    QualityIssue,
    ReceiptExtraction,
)
from prizma.receipts.products import normalize_name
from prizma.receipts.reconciliation import reconcile, single_source
from prizma.receipts.validation import validate_total


def _item(
    name: str, price: float, quantity: float = 1.0, confidence: float = 0.8
) -> ExtractedItem:
    return ExtractedItem(
        name=name,
        normalized_name=normalize_name(name),
        original_text=f"{name} {price:.2f}",
        price=price,
        quantity=quantity,
        confidence=confidence,
    )


def _extraction(
    items: list[ExtractedItem],
    total: float,
    confidence: float = 0.8,
    engine: str = "mock",
    issues: tuple[QualityIssue, ...] = (),
) -> ReceiptExtraction:
    return ReceiptExtraction(
        success=True,
        confidence=confidence,
        retailer="Кауфланд",
        total=total,
        date="2025-02-12",
        items=tuple(items),
        raw_text="",
        metadata=ExtractionMetadata(
            processing_engine=engine,
            processing_time_ms=1.0,
            detected_store="kaufland",
            language="bg",
            text_quality="high",
            layout_complexity="simple",
            total_validation=validate_total(items, total),
        ),
        confidence_breakdown=ConfidenceScore(
            overall=confidence, text=0.9, structure=1.0, validation=1.0
        ),
        quality_issues=issues,
    )


class TestReconcile:
    def test_item_seen_by_one_engine(self):
        a = _extraction([_item("БАНАНИ", 2.50)], total=2.50)
        b = _extraction([_item("БАНАНИ", 2.50), _item("ХЛЯБ", 1.20)], total=3.70)

        result = reconcile(a, b)

        names = {r.item.name for r in result.final_items}
        assert names == {"БАНАНИ", "ХЛЯБ"}
        missing = [d for d in result.discrepancies if d.type == "missing_item"]
        assert len(missing) == 1
        assert missing[0].item_name == "ХЛЯБ"
        assert result.final_total == 3.70
        assert result.needs_manual_review

    def test_sources_are_tagged(self):
        a = _extraction([_item("БАНАНИ", 2.50), _item("МЛЯКО", 2.20)], total=4.70)
        b = _extraction([_item("БАНАНИ", 2.50), _item("ХЛЯБ", 1.20)], total=3.70)

        result = reconcile(a, b)

        sources = {r.item.name: r.source for r in result.final_items}
        assert sources == {"БАНАНИ": RECONCILED, "ХЛЯБ": SOURCE_B, "МЛЯКО": SOURCE_A}

    def test_identical_inputs_need_no_review(self):
        items = [_item("Хляб бял", 1.20), _item("Мляко прясно", 2.50)]
        a = _extraction(items, total=3.70, confidence=0.9)
        b = _extraction(items, total=3.70, confidence=0.8)

        result = reconcile(a, b)

        assert result.discrepancies == ()
        assert not result.needs_manual_review
        assert result.final_total == 3.70
        # average 0.85 plus the low-discrepancy bonus
        assert result.reconciliation_confidence == pytest.approx(0.95)

    def test_names_match_after_normalization(self):
        a = _extraction([_item("Хляб бял!", 1.20)], total=1.20)
        b = _extraction([_item("  хляб   бял", 1.20)], total=1.20)

        result = reconcile(a, b)

        assert len(result.final_items) == 1
        assert result.final_items[0].source == RECONCILED

    def test_price_mismatch_keeps_confident_item(self):
        a = _extraction([_item("Сирене", 9.80, confidence=0.7)], total=9.80)
        b = _extraction([_item("Сирене", 9.30, confidence=0.9)], total=9.30)

        result = reconcile(a, b)

        mismatch = [d for d in result.discrepancies if d.type == "price_mismatch"]
        assert len(mismatch) == 1
        assert mismatch[0].delta == pytest.approx(0.50)
        assert result.final_items[0].item.price == 9.30
        assert result.final_total == 9.30
        # 0.50 is below the review threshold and both totals agree within 0.50
        assert not result.needs_manual_review

    def test_large_price_mismatch_needs_review(self):
        a = _extraction([_item("Сирене", 9.80)], total=0.0)
        b = _extraction([_item("Сирене", 7.80, confidence=0.6)], total=0.0)

        result = reconcile(a, b)

        assert result.final_items[0].item.price == 9.80
        assert result.needs_manual_review

    def test_tie_goes_to_first_source(self):
        a = _extraction([_item("Кафе", 5.00)], total=5.00)
        b = _extraction([_item("Кафе", 5.05)], total=5.05)

        result = reconcile(a, b)

        assert result.final_items[0].item.price == 5.00
        assert result.discrepancies == ()

    def test_quantity_difference(self):
        a = _extraction([_item("Банани", 3.49, quantity=1.02)], total=3.56)
        b = _extraction([_item("Банани", 3.49, quantity=1.52)], total=5.30)

        result = reconcile(a, b)

        assert [d.type for d in result.discrepancies if d.type == "quantity_diff"] == [
            "quantity_diff"
        ]

    def test_low_confidence_single_source_item_dropped(self):
        a = _extraction([_item("Хляб", 1.20)], total=1.20)
        b = _extraction([_item("Хляб", 1.20), _item("Х0ляб", 1.25, confidence=0.5)], total=1.20)

        result = reconcile(a, b)

        assert [r.item.name for r in result.final_items] == ["Хляб"]
        assert result.discrepancies == ()

    def test_zero_totals_are_not_compared(self):
        a = _extraction([_item("Хляб", 1.20)], total=0.0)
        b = _extraction([_item("Хляб", 1.20)], total=0.0)

        result = reconcile(a, b)

        assert not any(d.type == "total_mismatch" for d in result.discrepancies)

    def test_total_mismatch(self):
        a = _extraction([_item("Хляб", 1.20)], total=11.20)
        b = _extraction([_item("Хляб", 1.20)], total=1.20)

        result = reconcile(a, b)

        mismatches = [d for d in result.discrepancies if d.type == "total_mismatch"]
        assert len(mismatches) == 1
        assert mismatches[0].value_b == 11.20
        assert result.needs_manual_review

    def test_confidence_is_clamped(self):
        items_a = [_item(f"Продукт {n}", 1.00 + n) for n in range(6)]
        items_b = [_item(f"Продукт {n}", 5.00 + n) for n in range(6)]
        a = _extraction(items_a, total=100.0, confidence=0.3)
        b = _extraction(items_b, total=100.0, confidence=0.3)

        result = reconcile(a, b)

        assert result.reconciliation_confidence == 0.0

    def test_thresholds_are_configurable(self):
        a = _extraction([_item("Сирене", 9.80)], total=9.80)
        b = _extraction([_item("Сирене", 9.30)], total=9.30)

        result = reconcile(a, b, ThresholdConfig(price_mismatch=1.0))

        assert not any(d.type == "price_mismatch" for d in result.discrepancies)

    def test_deterministic(self):
        a = _extraction([_item("БАНАНИ", 2.50), _item("МЛЯКО", 2.20)], total=4.70)
        b = _extraction(
            [_item("БАНАНИ", 2.60, confidence=0.9), _item("ХЛЯБ", 1.20)], total=3.80
        )

        assert reconcile(a, b) == reconcile(a, b)


class TestSingleSource:
    def test_passthrough(self):
        extraction = _extraction(
            [_item("Хляб", 1.20), _item("Мляко", 2.50)], total=3.70, confidence=0.87
        )

        result = single_source(extraction)

        assert [r.source for r in result.final_items] == [SOURCE_A, SOURCE_A]
        assert result.discrepancies == ()
        assert result.final_total == 3.70
        assert result.reconciliation_confidence == 0.87
        assert not result.needs_manual_review

    def test_severe_issue_needs_review(self):
        issue = QualityIssue("missing_total", "high", "описание", "действие")
        extraction = _extraction([_item("Хляб", 1.20)], total=0.0, issues=(issue,))

        result = single_source(extraction, SOURCE_B)

        assert result.final_items[0].source == SOURCE_B
        assert result.needs_manual_review
