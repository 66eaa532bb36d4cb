"""Store-specific receipt layouts for Bulgarian retailers.

Each retailer prints receipts differently: where the item section starts
and ends, whether the price sits on the item line or the next one, how
weighted goods are written. A :class:`StoreFormat` captures those
differences so the parser can try the retailer's own patterns before the
generic ones.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .formatting import BGN_FORMAT, NumberFormat

# Item pattern kinds
SAME_LINE = "same_line"  # name and price on one line
NAME_ONLY = "name_only"  # name here, price on the next line
QUANTITY_PRICE = "quantity_price"  # "qty x unit" here, name on the previous line
PRICE_ONLY = "price_only"  # price here, name on the previous line

UNKNOWN_RETAILER = "Неизвестен магазин"


@dataclass(frozen=True)
class ItemPattern:
    pattern: re.Pattern[str]
    kind: str
    confidence: float
    description: str
    name_group: int | None = None
    price_group: int | None = None
    quantity_group: int | None = None
    barcode_group: int | None = None


@dataclass(frozen=True)
class ReceiptLayout:
    header_lines: int = 5
    footer_lines: int = 3
    item_section_start: tuple[str, ...] = ()
    item_section_end: tuple[str, ...] = ()
    price_position: str = "right"  # right | nextline
    quantity_position: str = "prefix"  # prefix | suffix | separate


@dataclass(frozen=True)
class StoreFormat:
    name: str
    type: str
    pattern: re.Pattern[str]
    layout: ReceiptLayout = field(default_factory=ReceiptLayout)
    number_format: NumberFormat = BGN_FORMAT
    date_formats: tuple[str, ...] = ()
    item_patterns: tuple[ItemPattern, ...] = ()
    total_patterns: tuple[re.Pattern[str], ...] = ()
    discount_patterns: tuple[re.Pattern[str], ...] = ()


def _p(regex: str) -> re.Pattern[str]:
    return re.compile(regex, re.IGNORECASE)


STANDARD_LAYOUT = ReceiptLayout()

_KAUFLAND_PATTERNS = (
    ItemPattern(
        _p(r"^(.{1,40}?)\s+(\d+[,.]\d{2})\s*[БA-Z]*\s*$"),
        SAME_LINE, 0.9, "Standard item with price (same line)",
        name_group=1, price_group=2,
    ),
    ItemPattern(
        _p(r"^(.{3,40}?),?\s*$"),
        NAME_ONLY, 0.75, "Product name only (price on next line)",
        name_group=1,
    ),
    ItemPattern(
        _p(r"^(\d+[,.]\d{3,5})\s*[x×х]\s*(\d+[,.]\d{2})\s*$"),
        QUANTITY_PRICE, 0.95, "Weight x unit price",
        price_group=2, quantity_group=1,
    ),
    ItemPattern(
        _p(r"^(\d+[,.]\d{2})\s*[БA-Z]*\s*$"),
        PRICE_ONLY, 0.8, "Price only (name on previous line)",
        price_group=1,
    ),
    ItemPattern(
        _p(r"^(.{1,40}?)\s+(\d{13})\s*$"),
        NAME_ONLY, 0.8, "Item with barcode",
        name_group=1, barcode_group=2,
    ),
)

_BILLA_PATTERNS = (
    ItemPattern(
        _p(r"^(.{1,40}?)\s{2,}(\d+,\d{2})$"),
        SAME_LINE, 0.85, "Standard BILLA format",
        name_group=1, price_group=2,
    ),
    ItemPattern(
        _p(r"^(\d+)\s*[x×х]\s*(.{1,40}?)\s+(\d+,\d{2})$"),
        SAME_LINE, 0.9, "Quantity prefix",
        name_group=2, price_group=3, quantity_group=1,
    ),
)

_LIDL_PATTERNS = (
    ItemPattern(
        _p(r"^(.{1,40}?)\s+(\d+,\d{2})\s*[лвA-Z]*$"),
        SAME_LINE, 0.85, "Same line format",
        name_group=1, price_group=2,
    ),
    ItemPattern(
        _p(r"^\s*(\d+,\d{2})\s*[лвA-Z]*\s*$"),
        PRICE_ONLY, 0.8, "Price line",
        price_group=1,
    ),
    ItemPattern(
        _p(r"^(.{1,40}?)\s*$"),
        NAME_ONLY, 0.7, "Item name (price on next line)",
        name_group=1,
    ),
)

_FANTASTICO_PATTERNS = (
    ItemPattern(
        _p(r"^(.{1,40}?)\s+(\d+,\d{2})\s*лв\s*$"),
        SAME_LINE, 0.9, "Standard with лв",
        name_group=1, price_group=2,
    ),
    ItemPattern(
        _p(r"^(\d+,\d+)\s*кг\s*[x×х]\s*(\d+,\d{2})\s*(.{1,40})$"),
        SAME_LINE, 0.95, "Weight-based pricing",
        name_group=3, price_group=2, quantity_group=1,
    ),
)

_TMARKET_PATTERNS = (
    ItemPattern(
        _p(r"^(.{1,40}?)\s+(\d+,\d{2})$"),
        SAME_LINE, 0.8, "Simple format",
        name_group=1, price_group=2,
    ),
)

STORE_FORMATS: tuple[StoreFormat, ...] = (
    StoreFormat(
        name="Кауфланд",
        type="kaufland",
        pattern=_p(r"KAUFLAND|КАУФЛАНД"),
        layout=ReceiptLayout(
            item_section_start=("ПРОДАЖБА", "НАЧАЛО", "СТОКИ"),
            item_section_end=("ОБЩО", "СУМА", "TOTAL"),
        ),
        date_formats=("DD.MM.YYYY", "DD/MM/YYYY", "DD-MM-YYYY"),
        item_patterns=_KAUFLAND_PATTERNS,
        total_patterns=(
            _p(r"ОБЩО\s*СУМА\s*(\d+[,.]\d{2})"),
            _p(r"ОБЩА\s*СУМА\s*(\d+[,.]\d{2})"),
            _p(r"TOTAL\s*(\d+[,.]\d{2})"),
            _p(r"К\s*ПЛАЩАНЕ\s*(\d+[,.]\d{2})"),
        ),
        discount_patterns=(
            _p(r"ОТСТЪПКА\s*(\d+,\d{2})"),
            _p(r"ПРОМОЦИЯ\s*(\d+,\d{2})"),
        ),
    ),
    StoreFormat(
        name="Билла",
        type="billa",
        pattern=_p(r"BILLA|БИЛЛА"),
        layout=ReceiptLayout(header_lines=4, footer_lines=4),
        date_formats=("DD.MM.YY", "DD.MM.YYYY"),
        item_patterns=_BILLA_PATTERNS,
        total_patterns=(
            _p(r"ОБЩО\s*(\d+,\d{2})"),
            _p(r"СУМА\s*(\d+,\d{2})"),
        ),
    ),
    StoreFormat(
        name="Лидл",
        type="lidl",
        pattern=_p(r"LIDL|ЛИДЛ"),
        layout=ReceiptLayout(price_position="nextline", quantity_position="separate"),
        date_formats=("DD.MM.YYYY", "DD/MM/YY"),
        item_patterns=_LIDL_PATTERNS,
        total_patterns=(
            _p(r"СУМА\s*(\d+,\d{2})"),
            _p(r"ОБЩО\s*(\d+,\d{2})"),
            _p(r"ВСИЧКО\s*(\d+,\d{2})"),
        ),
    ),
    StoreFormat(
        name="Фантастико",
        type="fantastico",
        pattern=_p(r"FANTASTICO|ФАНТАСТИКО"),
        layout=ReceiptLayout(header_lines=6, item_section_start=("ПРОДАЖБА",)),
        date_formats=("DD.MM.YYYY HH:mm", "DD/MM/YYYY"),
        item_patterns=_FANTASTICO_PATTERNS,
        total_patterns=(
            _p(r"ОБЩО\s*(\d+,\d{2})\s*лв"),
            _p(r"ВСИЧКО\s*(\d+,\d{2})"),
        ),
    ),
    StoreFormat(
        name="Т Маркет",
        type="tmarket",
        pattern=_p(r"T[\s\-]*MARKET|Т[\s\-]*МАРКЕТ"),
        date_formats=("DD.MM.YYYY", "DD-MM-YYYY"),
        item_patterns=_TMARKET_PATTERNS,
        total_patterns=(
            _p(r"ОБЩО\s*(\d+,\d{2})"),
            _p(r"TOTAL\s*(\d+,\d{2})"),
        ),
    ),
)

# Applied when no store is detected, or after the store's own patterns
GENERIC_PATTERNS: tuple[ItemPattern, ...] = (
    ItemPattern(
        _p(r"^(.{3,50}?)\s{2,}(\d+[,.]\d{1,2})\s*(?:лв\.?|BGN|Б)?\s*[A-ZА-Я]?\s*$"),
        SAME_LINE, 0.85, "Name and price separated by a wide gap",
        name_group=1, price_group=2,
    ),
    ItemPattern(
        _p(r"^(.{3,50}?)\s+(\d+[,.]\d{1,2})\s*(?:лв\.?|BGN|Б)?\s*[A-ZА-Я]?\s*$"),
        SAME_LINE, 0.8, "Name and price on one line",
        name_group=1, price_group=2,
    ),
    ItemPattern(
        _p(r"^(.{3,50})$"),
        NAME_ONLY, 0.7, "Name with price on the next line",
        name_group=1,
    ),
)

# Retailers recognised by name only, without a dedicated layout
_RETAILER_NAMES: tuple[re.Pattern[str], ...] = (
    _p(r"ЛИДЛ|LIDL"),
    _p(r"ФАНТАСТИКО|FANTASTICO"),
    _p(r"БИЛЛА|BILLA"),
    _p(r"КАУФЛАНД|KAUFLAND"),
    _p(r"Т[\s\-]*МАРКЕТ|T[\s\-]*MARKET"),
    _p(r"МЕТРО|METRO"),
    _p(r"ОМВ|OMV"),
    _p(r"SHELL|ШЕЛ"),
    _p(r"ПИКАДИЛИ|PICCADILLY"),
)


class StoreRegistry:
    """Lookup of retailer formats by receipt text or store type."""

    def __init__(
        self,
        formats: tuple[StoreFormat, ...] = STORE_FORMATS,
        generic_patterns: tuple[ItemPattern, ...] = GENERIC_PATTERNS,
    ) -> None:
        self._formats = tuple(formats)
        self._generic = tuple(generic_patterns)

    def __iter__(self):
        return iter(self._formats)

    def __len__(self) -> int:
        return len(self._formats)

    @property
    def generic_patterns(self) -> tuple[ItemPattern, ...]:
        return self._generic

    def detect(self, text: str) -> StoreFormat | None:
        """Return the first format whose pattern occurs anywhere in ``text``."""
        for fmt in self._formats:
            if fmt.pattern.search(text):
                return fmt
        return None

    def get(self, store_type: str) -> StoreFormat | None:
        for fmt in self._formats:
            if fmt.type == store_type:
                return fmt
        return None

    def get_patterns(self, store_type: str) -> tuple[ItemPattern, ...]:
        """Item patterns for ``store_type``; empty for unknown stores."""
        fmt = self.get(store_type)
        return fmt.item_patterns if fmt else ()

    def retailer_name(self, text: str, store: StoreFormat | None = None) -> str:
        """Human-readable retailer name for a receipt.

        Uses the detected format's name when there is one, otherwise the
        first of the top 10 lines that mentions a known retailer.
        """
        if store is not None:
            return store.name
        for line in text.splitlines()[:10]:
            for pattern in _RETAILER_NAMES:
                if pattern.search(line):
                    return line.strip()
        return UNKNOWN_RETAILER


DEFAULT_REGISTRY = StoreRegistry()
