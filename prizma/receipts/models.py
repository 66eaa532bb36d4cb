"""Data types shared across the receipt extraction pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field

# Reconciliation provenance tags
SOURCE_A = "source-A"
SOURCE_B = "source-B"
RECONCILED = "reconciled"


@dataclass(frozen=True)
class ItemQualityFlag:
    type: str  # ocr_uncertain | price_suspicious | name_incomplete | quantity_unclear | category_uncertain
    confidence: float
    description: str


@dataclass(frozen=True)
class ExtractedItem:
    name: str
    normalized_name: str
    original_text: str
    price: float  # unit price
    quantity: float = 1.0
    unit: str | None = None
    barcode: str | None = None
    category: str | None = None
    confidence: float = 0.8
    quality_flags: tuple[ItemQualityFlag, ...] = ()
    line_number: int = 0

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError(f"Отрицателна цена за {self.name!r}: {self.price}")
        if self.quantity <= 0:
            raise ValueError(f"Невалидно количество за {self.name!r}: {self.quantity}")

    @property
    def line_total(self) -> float:
        return round(self.price * self.quantity, 2)


@dataclass(frozen=True)
class QualityIssue:
    type: str  # missing_total | price_inconsistency | item_mismatch | unclear_text | store_unclear | date_unclear
    severity: str  # low | medium | high | critical
    description: str
    suggested_action: str
    affected_items: tuple[int, ...] = ()


@dataclass(frozen=True)
class TotalValidationResult:
    calculated_total: float
    ocr_total: float
    difference: float
    percentage_diff: float
    valid: bool
    explanation: str = ""


@dataclass(frozen=True)
class ConfidenceFactor:
    name: str
    weight: float
    score: float
    description: str


@dataclass(frozen=True)
class ConfidenceScore:
    overall: float
    text: float
    structure: float
    validation: float
    factors: tuple[ConfidenceFactor, ...] = ()


@dataclass(frozen=True)
class ExtractionMetadata:
    processing_engine: str
    processing_time_ms: float
    detected_store: str | None
    language: str  # bg | en | mixed
    text_quality: str  # high | medium | low
    layout_complexity: str  # simple | medium | complex
    total_validation: TotalValidationResult
    variant: tuple[str, ...] = ()
    engine_confidence: float | None = None


@dataclass(frozen=True)
class ReceiptExtraction:
    success: bool
    confidence: float
    retailer: str
    total: float
    date: str  # ISO-8601
    items: tuple[ExtractedItem, ...]
    raw_text: str
    metadata: ExtractionMetadata
    confidence_breakdown: ConfidenceScore
    quality_issues: tuple[QualityIssue, ...] = ()
    suggestions: tuple[str, ...] = ()


@dataclass(frozen=True)
class ReconciledItem:
    item: ExtractedItem
    source: str  # source-A | source-B | reconciled


@dataclass(frozen=True)
class Discrepancy:
    type: str  # price_mismatch | quantity_diff | missing_item | total_mismatch
    description: str
    item_name: str | None = None
    value_a: float | None = None
    value_b: float | None = None
    delta: float = 0.0


@dataclass(frozen=True)
class ReconciliationResult:
    final_items: tuple[ReconciledItem, ...]
    discrepancies: tuple[Discrepancy, ...]
    final_total: float
    needs_manual_review: bool
    reconciliation_confidence: float


@dataclass
class QualityReport:
    image_issues: list[str] = field(default_factory=list)
    issues: int = 0
    suggestions: list[str] = field(default_factory=list)
    processing_time_ms: float = 0.0
    attempts: int = 0
    best_variant: str = ""
    failures: dict[str, str] = field(default_factory=dict)


@dataclass
class PipelineResult:
    success: bool
    confidence: float
    quality_report: QualityReport
    receipt: ReceiptExtraction | None = None
    reconciliation: ReconciliationResult | None = None
    engines: list[str] = field(default_factory=list)

    @property
    def items(self) -> list[ExtractedItem]:
        """Final items: reconciled when available, else the receipt's own."""
        if self.reconciliation is not None:
            return [r.item for r in self.reconciliation.final_items]
        if self.receipt is not None:
            return list(self.receipt.items)
        return []

    def display(self) -> str:
        """Format the extraction result for terminal display."""
        lines: list[str] = []
        if self.receipt is None:
            lines.append("❌ Касовата бележка не беше разчетена")
            return "\n".join(lines)

        r = self.receipt
        lines.append(f"🏪 {r.retailer}  📅 {r.date}")
        lines.append(f"🔍 Двигатели: {', '.join(self.engines)}")
        lines.append(f"{'─' * 50}")
        lines.append(f"  {'Продукт':<28} {'Кол.':>6} {'Цена':>8}")
        lines.append(f"  {'─' * 44}")
        for item in self.items:
            qty = f"{item.quantity:g}"
            lines.append(f"  {item.name[:28]:<28} {qty:>6} {item.price:>8.2f}")
        lines.append(f"{'─' * 50}")

        total = r.total
        if self.reconciliation is not None:
            total = self.reconciliation.final_total
        lines.append(f"  Общо: {total:.2f} лв   (увереност {self.confidence:.0%})")

        if self.reconciliation is not None and self.reconciliation.needs_manual_review:
            lines.append("  ⚠ Необходима е ръчна проверка")
            for d in self.reconciliation.discrepancies:
                lines.append(f"    - {d.description}")

        for issue in r.quality_issues:
            lines.append(f"  ⚠ [{issue.severity}] {issue.description}")
        for suggestion in self.quality_report.suggestions:
            lines.append(f"  💡 {suggestion}")

        for engine, error in self.quality_report.failures.items():
            lines.append(f"  ✗ {engine}: {error}")

        return "\n".join(lines)
