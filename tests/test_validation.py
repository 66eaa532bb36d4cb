"""Tests for total validation and quality summaries."""

from dataclasses import replace
from datetime import datetime

import pytest

from prizma.receipts.models import ExtractedItem, QualityIssue
from prizma.receipts.parser import ReceiptParser
from prizma.receipts.validation import assess_quality, processing_stats, validate_total


def _item(name: str, price: float, quantity: float = 1.0) -> ExtractedItem:
    return ExtractedItem(
        name=name,
        normalized_name=name.lower(),
        original_text=name,
        price=price,
        quantity=quantity,
    )


class TestValidateTotal:
    def test_exact_match(self):
        result = validate_total([_item("Хляб", 1.20), _item("Мляко", 2.50)], 3.70)
        assert result.valid
        assert result.calculated_total == 3.70
        assert result.difference == 0.0
        assert result.percentage_diff == 0.0

    def test_uses_quantity(self):
        result = validate_total([_item("Сладолед", 7.49, quantity=2)], 14.98)
        assert result.valid
        assert result.calculated_total == 14.98

    def test_within_tolerance(self):
        # 4% off
        result = validate_total([_item("Кафе", 9.60)], 10.00)
        assert result.valid

    def test_small_difference(self):
        result = validate_total([_item("Кафе", 9.00)], 10.00)
        assert not result.valid
        assert result.percentage_diff == 10.0
        assert "Малка разлика" in result.explanation

    def test_significant_difference(self):
        result = validate_total([_item("Кафе", 5.00)], 10.00)
        assert not result.valid
        assert "Значителна разлика" in result.explanation

    def test_zero_total_is_always_invalid(self):
        result = validate_total([], 0.0)
        assert not result.valid
        assert result.percentage_diff == 100.0
        assert result.calculated_total == 0.0

    def test_custom_tolerance(self):
        assert not validate_total([_item("Кафе", 9.60)], 10.00, tolerance_pct=2.0).valid


class TestExtractedItem:
    def test_negative_price_rejected(self):
        with pytest.raises(ValueError):
            _item("Хляб", -1.0)

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValueError):
            _item("Хляб", 1.0, quantity=0)

    def test_line_total(self):
        assert _item("Сладолед", 7.49, quantity=2).line_total == 14.98


def _parser() -> ReceiptParser:
    return ReceiptParser(clock=lambda: datetime(2025, 3, 1, 12, 0))


def _issue(severity: str) -> QualityIssue:
    return QualityIssue("unclear_text", severity, "описание", "действие")


class TestAssessQuality:
    @pytest.mark.parametrize(
        "severities, expected",
        [
            ((), "excellent"),
            (("low", "low", "medium"), "excellent"),
            (("high",), "good"),
            (("medium", "medium"), "good"),
            (("high", "high"), "fair"),
            (("medium",) * 4, "fair"),
            (("critical",), "poor"),
        ],
    )
    def test_grades(self, severities, expected):
        receipt = _parser().parse("КАУФЛАНД\nПРОДАЖБА\nХляб бял 1,20\nОБЩО СУМА 1,20")
        receipt = replace(receipt, quality_issues=tuple(_issue(s) for s in severities))
        assert assess_quality(receipt).quality == expected

    def test_clean_receipt_is_excellent(self):
        text = "\n".join(
            [
                "КАУФЛАНД БЪЛГАРИЯ",
                "гр. София",
                "12.02.2025 18:30",
                "ПРОДАЖБА",
                "Хляб бял 1,20",
                "Мляко прясно 2,50",
                "ОБЩО СУМА 3,70",
            ]
        )
        receipt = _parser().parse(text)
        assert assess_quality(receipt).quality == "excellent"

    def test_inconsistent_total_is_poor(self):
        receipt = _parser().parse("КАУФЛАНД\nПРОДАЖБА\nХляб бял 1,20\nОБЩО СУМА 30,00")
        assert assess_quality(receipt).quality == "poor"


def test_processing_stats():
    text = "\n".join(
        [
            "КАУФЛАНД БЪЛГАРИЯ",
            "12.02.2025",
            "ПРОДАЖБА",
            "Хляб бял 1,20",
            "Мляко прясно 2,50",
            "ОБЩО СУМА 3,70",
        ]
    )
    stats = processing_stats(_parser().parse(text))
    assert stats.total_items == 2
    assert stats.categorized_items == 2
    assert stats.store_detected
    assert stats.total_validated
    assert 0 < stats.avg_item_confidence <= 1
