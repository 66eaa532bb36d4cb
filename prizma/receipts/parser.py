"""Receipt text parser: raw OCR text in, :class:`ReceiptExtraction` out.

The parser makes three passes over the text:

1. retailer and purchase date,
2. the item section, line by line, trying the 3-line
   ``name / qty x unit / line total`` shape first, then the detected
   store's own patterns, then the generic ones (first match wins),
3. the printed total, full-text first because OCR often splits a label
   and its value across two lines.

It never raises on bad input: anything it cannot make sense of ends up as
a :class:`QualityIssue` on the result.
"""

from __future__ import annotations

import logging
import re
import statistics
import time
from collections.abc import Callable
from datetime import datetime

from .config import ThresholdConfig
from .formatting import BGN_FORMAT, NumberFormat, parse_number, parse_quantity
from .models import (
    ConfidenceFactor,
    ConfidenceScore,
    ExtractedItem,
    ExtractionMetadata,
    ItemQualityFlag,
    QualityIssue,
    ReceiptExtraction,
    TotalValidationResult,
)
from .products import DEFAULT_KNOWLEDGE_BASE, ProductKnowledgeBase, normalize_name
from .stores import (
    DEFAULT_REGISTRY,
    NAME_ONLY,
    PRICE_ONLY,
    QUANTITY_PRICE,
    STANDARD_LAYOUT,
    ItemPattern,
    StoreFormat,
    StoreRegistry,
)
from .validation import validate_total

logger = logging.getLogger(__name__)

_I = re.IGNORECASE

# Lines that are never items
_SKIP_PATTERNS = tuple(
    re.compile(p, _I)
    for p in (
        r"^[=\-_*~.]{2,}$",
        r"КАСОВА\s*БЕЛЕЖКА",
        r"БЛАГОДАРИМ",
        r"VISIT|WWW",
        r"ДАТА|DATE|ВРЕМЕ|TIME",
        r"КАСИЕР|№|НОМЕР|ЕИК|ЗДДС|УНП",
        r"^ул\.|^гр\.|ЕООД|ООД",
        r"^\s*\d{1,2}:\d{2}(?::\d{2})?\s*$",
        r"^\s*\d{1,2}[./-]\d{1,2}[./-]\d{2,4}(?:\s+\d{1,2}:\d{2}(?::\d{2})?)?\s*$",
        # totals
        r"ОБЩО|ОБЩА\s*СУМА|МЕЖДИННА|\bСУМА\b|TOTAL|К\s*ПЛАЩАНЕ|ЗА\s*ПЛАЩАНЕ|ВСИЧКО|ИТОГО",
        # payment
        r"В\s*БРОЙ|ПЛАТЕНО|ПОЛУЧЕН|РЕСТО|КАРТА|ДЕБИТНА|КРЕДИТНА|VISA|MASTERCARD|MAESTRO|\bCASH\b|\bCARD\b",
        # VAT
        r"ДДС|ДАНЪЧН|\bVAT\b|^[АБВГA-D]\s*[=:]?\s*\d+(?:[.,]\d+)?\s*%",
        # discounts
        r"ОТСТЪПКА|ПРОМОЦИЯ|DISCOUNT",
    )
)

_LETTER = re.compile(r"[A-Za-z\u0400-\u04FF]")
_QTY_MARKER = re.compile(r"(?<!\w)[x×хXХ*](?!\w)")

# Tokens that look like text to a regex but are not product names
_NOT_A_NAME = tuple(
    re.compile(p, _I)
    for p in (
        r"^\d+(?:[.,]\d+)?\s*(?:лв\.?|BGN|Б|[A-ZА-Я])?\s*$",
        r"^\d+(?:[.,]\d+)?\s*[x×х*](?:\s*\d+(?:[.,]\d+)?)?",
        r"^[\d\s\-/.:#]+$",
        r"^(?:В\s*БРОЙ|БРОЙ|КАРТА|CASH|CARD|РЕСТО|ПЛАТЕНО)\b",
        r"^(?:лв\.?|BGN|EUR)$",
    )
)

_PRICE_LINE = re.compile(r"^\s*(\d+[,.]\d{1,2})\s*(?:лв\.?|BGN|Б|[A-ZА-Я])?\s*$", _I)
_QTY_LINE = re.compile(
    r"^\s*(\d+(?:[.,]\d{1,3})?)\s*[x×х*]\s*(\d+[,.]\d{2})\s*(?:лв\.?)?\s*$", _I
)
_TRAILING_PRICE = re.compile(r"\d+[,.]\d{1,2}\s*(?:лв\.?|BGN|Б|[A-ZА-Я])?\s*$", _I)

# OCR character-confusion heuristics
_NUMERIC_WORD = re.compile(r"^\d+(?:[.,]\d+)?(?:%|[a-zа-я]{1,3}\.?)?$", _I)
_CONFUSIONS = (
    re.compile(r"[Il1][0O][Il1]"),
    re.compile(r"[0O]{2,}"),
    re.compile(r"[Il1]{2,}"),
    re.compile(r"[\u0400-\u04FF][0-9]|[0-9][\u0400-\u04FF]"),
)
_UNUSUAL_CHARS = re.compile(r"[^a-zA-Z\u0400-\u04FF0-9\s.,;:()%/\-]")

_AMOUNT = r"(\d{1,3}(?:[ \u00a0]\d{3})+[,.]\d{2}|\d+[,.]\d{1,2})"
_TOTAL_LABEL = r"(?<!МЕЖДИННА\s)(?<!SUB)(?<!SUB\s)(?:ОБЩО|ОБЩА|TOTAL|СУМА|К\s*ПЛАЩАНЕ|ЗА\s*ПЛАЩАНЕ|ВСИЧКО|ИТОГО)"

# Label and value may sit on separate lines
_FULL_TEXT_TOTALS = (
    re.compile(_TOTAL_LABEL + r"\s*(?:СУМА)?\s*:?\s*" + _AMOUNT, _I),
    re.compile(r"(?:ПОЛУЧЕНИ|SUMA)\s*:?\s*" + _AMOUNT, _I),
)
_LINE_TOTALS = (
    re.compile(_TOTAL_LABEL + r"[ \t]*(?:СУМА)?[ \t]*:?[ \t]*" + _AMOUNT, _I),
    re.compile(r"(?:ПОЛУЧЕНИ|SUMA)[ \t]*:?[ \t]*" + _AMOUNT, _I),
)
_TOTAL_LABEL_ONLY = re.compile(r"(?:ОБЩО|ОБЩА)\s*СУМА", _I)
_LEADING_AMOUNT = re.compile(r"^" + _AMOUNT)
_LINE_END_AMOUNT = re.compile(_AMOUNT + r"\s*(?:лв\.?|BGN)?\s*$", _I)

_DATE_PATTERNS = (
    (re.compile(r"\b(\d{1,2})[./-](\d{1,2})[./-](\d{4})\s+(\d{1,2}):(\d{2})"), "dmy"),
    (re.compile(r"\b(\d{1,2})[./-](\d{1,2})[./-](\d{4})\b"), "dmy"),
    (re.compile(r"\b(\d{4})[./-](\d{1,2})[./-](\d{1,2})\b"), "ymd"),
    (re.compile(r"\b(\d{1,2})[./-](\d{1,2})[./-](\d{2})\b"), "dmy"),
)
_MIN_YEAR = 2020


def clean_product_name(name: str) -> str:
    text = re.sub(r"[#<>\"']", "", name)
    text = re.sub(r"\s{2,}", " ", text)
    text = re.sub(r"^\d+\s*[x×х]\s*", "", text, flags=_I)
    text = re.sub(r"\s*\d+,\d{3}\s*кг.*$", "", text, flags=_I)
    return text.strip(" ,")


def is_valid_product_name(name: str) -> bool:
    """A product name has a real letter and is not a price, code or payment term."""
    text = name.strip()
    if not _LETTER.search(_QTY_MARKER.sub("", text)):
        return False
    return not any(p.search(text) for p in _NOT_A_NAME)


def has_ocr_artifacts(text: str) -> bool:
    if _UNUSUAL_CHARS.search(text):
        return True
    for word in text.split():
        if _NUMERIC_WORD.match(word):
            continue
        if any(p.search(word) for p in _CONFUSIONS):
            return True
    return False


def detect_language(text: str) -> str:
    cyrillic = len(re.findall(r"[\u0400-\u04FF]", text))
    latin = len(re.findall(r"[a-zA-Z]", text))
    letters = cyrillic + latin
    if letters == 0:
        return "en"
    if cyrillic / letters > 0.7:
        return "bg"
    if latin / letters > 0.7:
        return "en"
    return "mixed"


def assess_text_quality(text: str) -> str:
    if not text:
        return "low"
    special = len(re.findall(r"[^a-zA-Z\u0400-\u04FF0-9\s.,;:()\-]", text))
    ratio = special / len(text)
    if ratio < 0.05:
        return "high"
    if ratio < 0.15:
        return "medium"
    return "low"


def assess_layout_complexity(text: str) -> str:
    lengths = [len(line) for line in text.split("\n")]
    avg = statistics.fmean(lengths) if lengths else 0.0
    if avg == 0:
        return "simple"
    variability = statistics.pstdev(lengths) / avg
    if variability < 0.3 and avg < 50:
        return "simple"
    if variability < 0.6 and avg < 80:
        return "medium"
    return "complex"


class ReceiptParser:
    """Turns one engine's OCR transcript into a structured extraction.

    The store registry and product knowledge base are read-only, so one
    parser can be shared by concurrent extraction attempts.
    """

    def __init__(
        self,
        registry: StoreRegistry = DEFAULT_REGISTRY,
        knowledge_base: ProductKnowledgeBase = DEFAULT_KNOWLEDGE_BASE,
        thresholds: ThresholdConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._registry = registry
        self._kb = knowledge_base
        self._thresholds = thresholds or ThresholdConfig()
        self._clock = clock

    def parse(
        self,
        raw_text: str,
        engine: str = "mock",
        variant: tuple[str, ...] = (),
        engine_confidence: float | None = None,
    ) -> ReceiptExtraction:
        started = time.perf_counter()

        store = self._registry.detect(raw_text)
        retailer = self._registry.retailer_name(raw_text, store)
        date, date_found = self.extract_date(raw_text)
        items = self.extract_items(raw_text, store)
        total = self.extract_total(raw_text, store)

        validation = validate_total(
            items, total, self._thresholds.total_tolerance_pct
        )
        text_quality = assess_text_quality(raw_text)
        breakdown = self._score(raw_text, items, total, validation, store)
        issues = self._quality_issues(
            items, total, validation, text_quality, store, date_found
        )
        suggestions = _suggestions(issues, validation)

        metadata = ExtractionMetadata(
            processing_engine=engine,
            processing_time_ms=round((time.perf_counter() - started) * 1000, 2),
            detected_store=store.type if store else None,
            language=detect_language(raw_text),
            text_quality=text_quality,
            layout_complexity=assess_layout_complexity(raw_text),
            total_validation=validation,
            variant=tuple(variant),
            engine_confidence=engine_confidence,
        )

        logger.debug(
            "Parsed %d items, total %.2f, store %s (engine %s)",
            len(items),
            total,
            metadata.detected_store,
            engine,
        )

        return ReceiptExtraction(
            success=bool(items) or total > 0,
            confidence=breakdown.overall,
            retailer=retailer,
            total=total,
            date=date,
            items=tuple(items),
            raw_text=raw_text,
            metadata=metadata,
            confidence_breakdown=breakdown,
            quality_issues=tuple(issues),
            suggestions=tuple(suggestions),
        )

    # -- retailer/date pass --------------------------------------------

    def extract_date(self, text: str) -> tuple[str, bool]:
        """Return ``(iso_date, found)``; falls back to today when nothing parses."""
        for pattern, order in _DATE_PATTERNS:
            for m in pattern.finditer(text):
                groups = m.groups()
                if order == "ymd":
                    year, month, day = groups[0], groups[1], groups[2]
                else:
                    day, month, year = groups[0], groups[1], groups[2]
                if len(year) == 2:
                    year = f"20{year}"
                hour, minute = (groups[3], groups[4]) if len(groups) > 3 else (None, None)
                try:
                    if hour is not None:
                        parsed = datetime(
                            int(year), int(month), int(day), int(hour), int(minute)
                        )
                    else:
                        parsed = datetime(int(year), int(month), int(day))
                except ValueError:
                    continue
                if parsed.year < _MIN_YEAR:
                    continue
                if hour is None:
                    return parsed.date().isoformat(), True
                return parsed.isoformat(), True

        logger.debug("No purchase date found, using today")
        return self._clock().date().isoformat(), False

    # -- item-section pass ---------------------------------------------

    def extract_items(
        self, text: str, store: StoreFormat | None = None
    ) -> list[ExtractedItem]:
        lines = [line.strip() for line in text.split("\n") if line.strip()]
        start, end = self._item_section(lines, store)
        patterns = (store.item_patterns if store else ()) + self._registry.generic_patterns
        discounts = store.discount_patterns if store else ()
        fmt = store.number_format if store else BGN_FORMAT

        logger.debug("Scanning item lines %d-%d of %d", start, end, len(lines))

        items: list[ExtractedItem] = []
        used: set[int] = set()
        i = start
        while i < end:
            line = lines[i]
            if self._should_skip(line, discounts):
                i += 1
                continue

            shaped, item = self._match_multiline(lines, i, end, fmt)
            if shaped:
                if item is not None:
                    items.append(item)
                used.update((i, i + 1, i + 2))
                i += 3
                continue

            for pattern in patterns:
                m = pattern.pattern.search(line)
                if not m:
                    continue
                item, extra = self._apply_pattern(
                    pattern, m, lines, i, start, end, used, fmt
                )
                if item is not None:
                    items.append(item)
                    used.add(i)
                    if extra:
                        used.add(i + extra)
                    i += max(extra, 0)
                    break
            i += 1

        return _dedupe(items)

    def _item_section(
        self, lines: list[str], store: StoreFormat | None
    ) -> tuple[int, int]:
        layout = store.layout if store else STANDARD_LAYOUT

        start: int | None = None
        if layout.item_section_start:
            for idx, line in enumerate(lines):
                upper = line.upper()
                if any(marker in upper for marker in layout.item_section_start):
                    start = idx + 1
                    break
        if start is None:
            start = min(layout.header_lines, max(len(lines) - 1, 0))

        end: int | None = None
        if layout.item_section_end:
            for idx in range(len(lines) - 1, -1, -1):
                upper = lines[idx].upper()
                if any(marker in upper for marker in layout.item_section_end):
                    end = idx
                    break
        if end is None:
            end = len(lines) - layout.footer_lines

        if start >= end:
            # Text too short for the header/footer budget
            return 0, len(lines)
        return start, end

    @staticmethod
    def _should_skip(line: str, discounts: tuple[re.Pattern[str], ...] = ()) -> bool:
        if len(line) < 3:
            return True
        if any(p.search(line) for p in _SKIP_PATTERNS):
            return True
        return any(p.search(line) for p in discounts)

    def _match_multiline(
        self, lines: list[str], i: int, end: int, fmt: NumberFormat
    ) -> tuple[bool, ExtractedItem | None]:
        """Try ``name / qty x unit / total`` starting at line ``i``.

        Returns ``(shaped, item)``. When the lines have the right shape but
        quantity x unit price misses the printed line total, ``item`` is
        None and the three lines are dropped rather than re-parsed.
        """
        if i + 2 >= end:
            return False, None
        name, qty_line, total_line = lines[i], lines[i + 1], lines[i + 2]
        if _TRAILING_PRICE.search(name) or not is_valid_product_name(name):
            return False, None
        qm = _QTY_LINE.match(qty_line)
        tm = _PRICE_LINE.match(total_line)
        if not qm or not tm:
            return False, None

        quantity = parse_quantity(qm.group(1))
        unit_price = parse_number(qm.group(2), fmt)
        line_total = parse_number(tm.group(1), fmt)
        expected = quantity * unit_price
        tolerance = self._thresholds.multiline_tolerance

        if line_total <= 0 or abs(expected - line_total) > tolerance * line_total:
            logger.debug(
                "Rejected multi-line item %r: %.3f x %.2f != %.2f",
                name,
                quantity,
                unit_price,
                line_total,
            )
            return True, None

        item = self._build_item(
            name,
            "\n".join((name, qty_line, total_line)),
            unit_price,
            quantity,
            i,
        )
        return True, item

    def _apply_pattern(
        self,
        pattern: ItemPattern,
        m: re.Match[str],
        lines: list[str],
        i: int,
        start: int,
        end: int,
        used: set[int],
        fmt: NumberFormat,
    ) -> tuple[ExtractedItem | None, int]:
        """Build an item from a pattern match.

        Returns the item (or None) and how many lines past ``i`` it used.
        """
        line = lines[i]
        name = m.group(pattern.name_group) if pattern.name_group else ""
        price_raw = m.group(pattern.price_group) if pattern.price_group else ""
        quantity = (
            parse_quantity(m.group(pattern.quantity_group))
            if pattern.quantity_group
            else 1.0
        )
        barcode = m.group(pattern.barcode_group) if pattern.barcode_group else None
        original = line
        extra = 0

        if pattern.kind in (QUANTITY_PRICE, PRICE_ONLY):
            prev = i - 1
            if prev < start or prev in used:
                return None, 0
            previous = lines[prev]
            if self._should_skip(previous) or _TRAILING_PRICE.search(previous):
                return None, 0
            name = previous
            original = f"{previous}\n{line}"
        elif pattern.kind == NAME_ONLY:
            if i + 1 >= end:
                return None, 0
            pm = _PRICE_LINE.match(lines[i + 1])
            if not pm:
                return None, 0
            price_raw = pm.group(1)
            original = f"{line}\n{lines[i + 1]}"
            extra = 1

        price = parse_number(price_raw, fmt)
        unit = "кг" if pattern.quantity_group and "кг" in line.lower() else None
        item = self._build_item(
            name, original, price, quantity, i, barcode=barcode, unit=unit
        )
        if item is None:
            return None, 0
        logger.debug("Line %d matched %r: %s", i, pattern.description, item.name)
        return item, extra

    def _build_item(
        self,
        name: str,
        original_text: str,
        price: float,
        quantity: float,
        line_number: int,
        barcode: str | None = None,
        unit: str | None = None,
    ) -> ExtractedItem | None:
        raw_name = name.strip()
        if len(raw_name) < 3 or price <= 0 or not is_valid_product_name(raw_name):
            return None
        clean = clean_product_name(raw_name)
        if not clean or not is_valid_product_name(clean):
            return None

        recognition = self._kb.recognize(clean)
        category = (
            recognition.product.category
            if recognition.product
            else self._kb.categorize(clean)
        )
        price_check = self._kb.validate_price(clean, price)

        flags: list[ItemQualityFlag] = []
        confidence = 0.8

        if len(clean) < 3:
            flags.append(
                ItemQualityFlag(
                    "name_incomplete", 0.3, "Името на продукта е твърде кратко"
                )
            )
            confidence -= 0.3

        if not price_check.valid:
            flags.append(
                ItemQualityFlag(
                    "price_suspicious", price_check.confidence, price_check.explanation
                )
            )
            confidence -= 0.2

        if recognition.confidence > 0:
            confidence += recognition.confidence * 0.2

        if has_ocr_artifacts(raw_name):
            flags.append(
                ItemQualityFlag(
                    "ocr_uncertain", 0.6, "Възможни грешки при разпознаване на текста"
                )
            )
            confidence -= 0.1

        return ExtractedItem(
            name=clean,
            normalized_name=normalize_name(clean),
            original_text=original_text,
            price=price,
            quantity=quantity,
            unit=unit,
            barcode=barcode,
            category=category,
            confidence=round(max(0.1, min(1.0, confidence)), 4),
            quality_flags=tuple(flags),
            line_number=line_number,
        )

    # -- total pass ----------------------------------------------------

    def extract_total(self, text: str, store: StoreFormat | None = None) -> float:
        fmt = store.number_format if store else BGN_FORMAT

        for pattern in _FULL_TEXT_TOTALS:
            m = pattern.search(text)
            if m:
                total = parse_number(m.group(1), fmt)
                if total > 0:
                    logger.debug("Total %.2f from %r", total, m.group(0))
                    return total

        lines = text.split("\n")
        line_patterns = store.total_patterns if store and store.total_patterns else _LINE_TOTALS
        for pattern in line_patterns:
            for line in lines:
                m = pattern.search(line)
                if m:
                    total = parse_number(m.group(1), fmt)
                    if total > 0:
                        logger.debug("Total %.2f from line %r", total, line)
                        return total

        for idx in range(len(lines) - 1):
            if _TOTAL_LABEL_ONLY.search(lines[idx]):
                m = _LEADING_AMOUNT.match(lines[idx + 1].strip())
                if m:
                    total = parse_number(m.group(1), fmt)
                    if total > 0:
                        return total

        # Largest price-like number anywhere
        prices = [
            parse_number(m.group(1), fmt)
            for line in lines
            if (m := _LINE_END_AMOUNT.search(line))
        ]
        prices = [p for p in prices if p > 0]
        return max(prices) if prices else 0.0

    # -- scoring -------------------------------------------------------

    @staticmethod
    def _score(
        raw_text: str,
        items: list[ExtractedItem],
        total: float,
        validation: TotalValidationResult,
        store: StoreFormat | None,
    ) -> ConfidenceScore:
        text_score = 0.7
        cyrillic = len(re.findall(r"[\u0400-\u04FF]", raw_text))
        if raw_text and cyrillic / len(raw_text) > 0.3:
            text_score += 0.2

        structure = 0.5
        if store is not None:
            structure += 0.3
        if items:
            structure += 0.2
        if total > 0:
            structure += 0.2

        validation_score = 0.5
        if validation.valid:
            validation_score += 0.4
        if validation.percentage_diff < 10:
            validation_score += 0.2

        text_score = min(text_score, 1.0)
        structure = min(structure, 1.0)
        validation_score = min(validation_score, 1.0)
        overall = text_score * 0.3 + structure * 0.4 + validation_score * 0.3

        return ConfidenceScore(
            overall=round(overall, 2),
            text=round(text_score, 2),
            structure=round(structure, 2),
            validation=round(validation_score, 2),
            factors=(
                ConfidenceFactor(
                    "Качество на текста", 0.3, text_score, "OCR точност и четимост"
                ),
                ConfidenceFactor(
                    "Структура на касовата бележка",
                    0.4,
                    structure,
                    "Разпознаване на формат и елементи",
                ),
                ConfidenceFactor(
                    "Валидация на данните",
                    0.3,
                    validation_score,
                    "Съответствие между суми и продукти",
                ),
            ),
        )

    @staticmethod
    def _quality_issues(
        items: list[ExtractedItem],
        total: float,
        validation: TotalValidationResult,
        text_quality: str,
        store: StoreFormat | None,
        date_found: bool,
    ) -> list[QualityIssue]:
        issues: list[QualityIssue] = []

        if total == 0:
            issues.append(
                QualityIssue(
                    "missing_total",
                    "high",
                    "Не е намерена обща сума в касовата бележка",
                    "Проверете ръчно общата сума",
                )
            )
        elif not validation.valid:
            issues.append(
                QualityIssue(
                    "price_inconsistency",
                    "critical" if validation.percentage_diff > 20 else "medium",
                    f"Разлика между изчислената ({validation.calculated_total} лв) "
                    f"и OCR сумата ({validation.ocr_total} лв)",
                    "Проверете цените на продуктите",
                )
            )

        low = [item for item in items if item.confidence < 0.6]
        if low:
            issues.append(
                QualityIssue(
                    "item_mismatch",
                    "medium",
                    f"{len(low)} продукта с ниска увереност при разпознаване",
                    "Проверете и поправете неясните продукти",
                    affected_items=tuple(item.line_number for item in low),
                )
            )

        if text_quality == "low":
            issues.append(
                QualityIssue(
                    "unclear_text",
                    "medium",
                    "Ниско качество на разпознатия текст",
                    "Опитайте с по-качествено изображение",
                )
            )

        if store is None:
            issues.append(
                QualityIssue(
                    "store_unclear",
                    "low",
                    "Магазинът не е разпознат",
                    "Проверете името на магазина",
                )
            )

        if not date_found:
            issues.append(
                QualityIssue(
                    "date_unclear",
                    "low",
                    "Не е намерена дата - използвана е днешната",
                    "Проверете датата на покупката",
                )
            )

        return issues


def _suggestions(
    issues: list[QualityIssue], validation: TotalValidationResult
) -> list[str]:
    kinds = {issue.type for issue in issues}
    suggestions: list[str] = []

    if "unclear_text" in kinds:
        suggestions.append(
            "💡 За по-добри резултати използвайте ясни снимки при добро осветление"
        )
    if "missing_total" in kinds:
        suggestions.append("🧾 Уверете се, че общата сума се вижда на снимката")
    if "price_inconsistency" in kinds:
        suggestions.append("⚠️ Проверете дали всички цени са правилно разпознати")
    if "item_mismatch" in kinds:
        suggestions.append(
            "📝 Прегледайте продуктите с ниска увереност и ги коригирайте при нужда"
        )
    if validation.valid and not any(i.severity != "low" for i in issues):
        suggestions.append("✅ Касовата бележка е обработена успешно")

    return suggestions


def _dedupe(items: list[ExtractedItem]) -> list[ExtractedItem]:
    """Drop repeated (normalized name, price) pairs, highest confidence first."""
    seen: set[tuple[str, float]] = set()
    unique: list[ExtractedItem] = []
    for item in sorted(items, key=lambda item: -item.confidence):
        key = (item.normalized_name, item.price)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique
