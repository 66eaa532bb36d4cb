"""Merge two engines' extractions of the same receipt into one result."""

from __future__ import annotations

import logging

from .config import ThresholdConfig
from .models import (
    RECONCILED,
    SOURCE_A,
    SOURCE_B,
    Discrepancy,
    ExtractedItem,
    ReceiptExtraction,
    ReconciledItem,
    ReconciliationResult,
)
from .products import normalize_name

logger = logging.getLogger(__name__)

_REVIEW_SEVERITIES = ("high", "critical")


def reconcile(
    a: ReceiptExtraction,
    b: ReceiptExtraction,
    thresholds: ThresholdConfig | None = None,
) -> ReconciliationResult:
    """Reconcile extraction ``a`` with extraction ``b``.

    Items are matched on their normalized name. On a match the item with
    the higher confidence wins (``a`` on a tie). Items only ``b`` saw are
    kept when ``b`` was confident about them; items only ``a`` saw are
    always kept.
    """
    thr = thresholds or ThresholdConfig()

    lookup: dict[str, list[ExtractedItem]] = {}
    for item in a.items:
        lookup.setdefault(normalize_name(item.name), []).append(item)

    final: list[ReconciledItem] = []
    discrepancies: list[Discrepancy] = []

    for b_item in b.items:
        candidates = lookup.get(normalize_name(b_item.name))
        if candidates:
            a_item = candidates.pop(0)
            discrepancies.extend(_compare(a_item, b_item, thr))
            winner = b_item if b_item.confidence > a_item.confidence else a_item
            final.append(ReconciledItem(item=winner, source=RECONCILED))
        elif b_item.confidence > thr.missing_item_confidence:
            discrepancies.append(
                Discrepancy(
                    type="missing_item",
                    description=f"{b_item.name} е разчетен само от един двигател",
                    item_name=b_item.name,
                    value_b=b_item.price,
                )
            )
            final.append(ReconciledItem(item=b_item, source=SOURCE_B))
        else:
            logger.debug("Dropping low-confidence item %r from source B", b_item.name)

    # Whatever is left in the lookup was seen by A only
    for item in a.items:
        remaining = lookup.get(normalize_name(item.name), [])
        if any(r is item for r in remaining):
            final.append(ReconciledItem(item=item, source=SOURCE_A))

    final = _dedupe(final)
    final_total = round(sum(r.item.price * r.item.quantity for r in final), 2)

    for label, source_total in (("A", a.total), ("B", b.total)):
        if source_total <= 0:
            continue
        delta = round(abs(final_total - source_total), 2)
        if delta > thr.total_mismatch:
            discrepancies.append(
                Discrepancy(
                    type="total_mismatch",
                    description=(
                        f"Общата сума {final_total:.2f} се различава от "
                        f"{source_total:.2f} (източник {label})"
                    ),
                    value_a=final_total,
                    value_b=source_total,
                    delta=delta,
                )
            )

    needs_review = any(
        d.type in ("missing_item", "total_mismatch")
        or (d.type == "price_mismatch" and d.delta > thr.review_price_delta)
        for d in discrepancies
    )

    confidence = _confidence(a, b, len(discrepancies), len(final))

    logger.info(
        "Reconciled %d items, %d discrepancies, review=%s",
        len(final),
        len(discrepancies),
        needs_review,
    )
    return ReconciliationResult(
        final_items=tuple(final),
        discrepancies=tuple(discrepancies),
        final_total=final_total,
        needs_manual_review=needs_review,
        reconciliation_confidence=confidence,
    )


def single_source(extraction: ReceiptExtraction, source: str = SOURCE_A) -> ReconciliationResult:
    """Wrap one engine's extraction when there is nothing to reconcile with."""
    return ReconciliationResult(
        final_items=tuple(ReconciledItem(item=i, source=source) for i in extraction.items),
        discrepancies=(),
        final_total=extraction.total,
        needs_manual_review=any(
            issue.severity in _REVIEW_SEVERITIES for issue in extraction.quality_issues
        ),
        reconciliation_confidence=extraction.confidence,
    )


def _compare(
    a_item: ExtractedItem, b_item: ExtractedItem, thr: ThresholdConfig
) -> list[Discrepancy]:
    found: list[Discrepancy] = []

    price_delta = round(abs(a_item.price - b_item.price), 2)
    if price_delta > thr.price_mismatch:
        found.append(
            Discrepancy(
                type="price_mismatch",
                description=(
                    f"Различна цена за {a_item.name}: "
                    f"{a_item.price:.2f} / {b_item.price:.2f}"
                ),
                item_name=a_item.name,
                value_a=a_item.price,
                value_b=b_item.price,
                delta=price_delta,
            )
        )

    qty_delta = round(abs(a_item.quantity - b_item.quantity), 3)
    if qty_delta > thr.quantity_diff:
        found.append(
            Discrepancy(
                type="quantity_diff",
                description=(
                    f"Различно количество за {a_item.name}: "
                    f"{a_item.quantity:g} / {b_item.quantity:g}"
                ),
                item_name=a_item.name,
                value_a=a_item.quantity,
                value_b=b_item.quantity,
                delta=qty_delta,
            )
        )
    return found


def _confidence(
    a: ReceiptExtraction, b: ReceiptExtraction, n_discrepancies: int, n_items: int
) -> float:
    score = (a.confidence + b.confidence) / 2
    score -= min(0.1 * n_discrepancies, 0.5)
    if n_discrepancies < 0.1 * n_items:
        score += 0.1
    return round(max(0.0, min(1.0, score)), 2)


def _dedupe(items: list[ReconciledItem]) -> list[ReconciledItem]:
    seen: set[tuple[str, float]] = set()
    unique: list[ReconciledItem] = []
    for r in items:
        key = (normalize_name(r.item.name), round(r.item.price, 2))
        if key in seen:
            continue
        seen.add(key)
        unique.append(r)
    return unique
