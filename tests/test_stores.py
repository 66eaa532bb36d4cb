"""Tests for the store format registry."""

from prizma.receipts.stores import (
    DEFAULT_REGISTRY,
    GENERIC_PATTERNS,
    NAME_ONLY,
    QUANTITY_PRICE,
    SAME_LINE,
    UNKNOWN_RETAILER,
    StoreRegistry,
)


class TestDetect:
    def test_detect_latin_and_cyrillic(self):
        assert DEFAULT_REGISTRY.detect("KAUFLAND БЪЛГАРИЯ ЕООД").type == "kaufland"
        assert DEFAULT_REGISTRY.detect("Лидл България").type == "lidl"
        assert DEFAULT_REGISTRY.detect("billa").type == "billa"
        assert DEFAULT_REGISTRY.detect("ФАНТАСТИКО").type == "fantastico"
        assert DEFAULT_REGISTRY.detect("T-MARKET").type == "tmarket"

    def test_detect_unknown(self):
        assert DEFAULT_REGISTRY.detect("Квартален магазин") is None

    def test_registry_size(self):
        assert len(DEFAULT_REGISTRY) == 5
        assert {f.type for f in DEFAULT_REGISTRY} == {
            "kaufland",
            "billa",
            "lidl",
            "fantastico",
            "tmarket",
        }


class TestPatterns:
    def test_get_patterns(self):
        patterns = DEFAULT_REGISTRY.get_patterns("kaufland")
        assert patterns[0].kind == SAME_LINE
        assert any(p.kind == QUANTITY_PRICE for p in patterns)

    def test_get_patterns_unknown(self):
        assert DEFAULT_REGISTRY.get_patterns("nope") == ()
        assert DEFAULT_REGISTRY.get("nope") is None

    def test_kaufland_weight_pattern(self):
        pattern = next(
            p for p in DEFAULT_REGISTRY.get_patterns("kaufland") if p.kind == QUANTITY_PRICE
        )
        m = pattern.pattern.search("1,020 x 3,49")
        assert m is not None
        assert m.group(pattern.quantity_group) == "1,020"
        assert m.group(pattern.price_group) == "3,49"

    def test_generic_patterns_order(self):
        assert [p.kind for p in GENERIC_PATTERNS] == [SAME_LINE, SAME_LINE, NAME_ONLY]
        assert GENERIC_PATTERNS[0].confidence > GENERIC_PATTERNS[1].confidence

    def test_kaufland_discounts(self):
        kaufland = DEFAULT_REGISTRY.get("kaufland")
        assert any(p.search("ОТСТЪПКА 1,20") for p in kaufland.discount_patterns)


class TestRetailerName:
    def test_from_detected_store(self):
        text = "КАУФЛАНД БЪЛГАРИЯ\nХляб 1,20"
        store = DEFAULT_REGISTRY.detect(text)
        assert DEFAULT_REGISTRY.retailer_name(text, store) == "Кауфланд"

    def test_known_chain_without_layout(self):
        text = "\n".join(["", "  SHELL Бензиностанция  ", "Кафе 2,00"])
        assert DEFAULT_REGISTRY.retailer_name(text) == "SHELL Бензиностанция"

    def test_chain_beyond_first_ten_lines(self):
        text = "\n".join(["ред"] * 10 + ["METRO"])
        assert DEFAULT_REGISTRY.retailer_name(text) == UNKNOWN_RETAILER

    def test_custom_registry(self):
        registry = StoreRegistry(formats=())
        assert registry.detect("KAUFLAND") is None
        assert len(registry.generic_patterns) == len(GENERIC_PATTERNS)
