"""Bulgarian product recognition, categorization and price sanity checks."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from rapidfuzz.distance import Levenshtein

logger = logging.getLogger(__name__)

OTHER_CATEGORY = "Други"


@dataclass(frozen=True)
class PriceRange:
    min: float
    max: float
    unit: str


@dataclass(frozen=True)
class Product:
    name: str
    alternatives: tuple[str, ...]
    category: str
    misspellings: tuple[str, ...]
    price_range: PriceRange | None
    keywords: tuple[str, ...]
    brands: tuple[str, ...] = ()


@dataclass(frozen=True)
class Recognition:
    product: Product | None
    confidence: float
    match_type: str  # exact | alternative | keyword | misspelling | none


@dataclass(frozen=True)
class PriceCheck:
    valid: bool
    confidence: float
    explanation: str


PRODUCTS: tuple[Product, ...] = (
    # Млечни продукти
    Product(
        "Мляко",
        ("Мляко прясно", "Мляко краве", "Мляко 3.6%", "Мляко 2.8%"),
        "Млечни продукти",
        ("Мпяко", "Мляк0", "Млsко", "Млаko"),
        PriceRange(2.0, 3.5, "лв/л"),
        ("мляко", "млако", "milk"),
        ("Верея", "БДС", "Боби", "Оргин"),
    ),
    Product(
        "Кисело мляко",
        ("Кисело мляко 2%", "Кисело мляко 3.6%", "Йогурт"),
        "Млечни продукти",
        ("Кисе9о мляко", "Киселo млакo", "Кисел0 мляко"),
        PriceRange(1.5, 2.8, "лв/400г"),
        ("кисело", "йогурт", "yogurt"),
        ("БДС", "Данон", "Биволско"),
    ),
    Product(
        "Сирене бяло",
        ("Сирене краве", "Бяло сирене", "Сирене салатно"),
        "Млечни продукти",
        ("Сире8е", "Сиpене", "Сирене6яло"),
        PriceRange(8.0, 18.0, "лв/кг"),
        ("сирене", "бяло", "краве"),
    ),
    Product(
        "Кашкавал",
        ("Кашкавал жълт", "Кашкавал краве", "Кашкавал овче"),
        "Млечни продукти",
        ("Кашкава9", "Кащкавал", "Кашкsвал"),
        PriceRange(12.0, 25.0, "лв/кг"),
        ("кашкавал", "жълт"),
    ),
    # Хлебни изделия
    Product(
        "Хляб",
        ("Хляб бял", "Хляб черен", "Хляб пълнозърнест", "Хлеб"),
        "Хлебни изделия",
        ("Хля6", "Х9яб", "Хлsб", "Хле6"),
        PriceRange(0.8, 2.0, "лв/бр"),
        ("хляб", "хлеб", "bread", "бял", "черен"),
    ),
    Product(
        "Питка",
        ("Питка бяла", "Питка с мак", "Питка с чубрица"),
        "Хлебни изделия",
        ("Питkа", "Пи7ка"),
        PriceRange(1.0, 2.5, "лв/бр"),
        ("питка",),
    ),
    # Плодове
    Product(
        "Банани",
        ("Банани Еквадор", "Банани Колумбия"),
        "Плодове",
        ("6анани", "Банан1", "Бананu"),
        PriceRange(2.5, 4.0, "лв/кг"),
        ("банани", "банан", "banana"),
    ),
    Product(
        "Ябълки",
        ("Ябълки червени", "Ябълки зелени", "Ябълки Гала"),
        "Плодове",
        ("Я6ълки", "Ябъ9ки", "Ябълkи", "Я6ълku"),
        PriceRange(2.0, 5.0, "лв/кг"),
        ("ябълки", "ябълка", "apple", "червени", "зелени"),
    ),
    Product(
        "Портокали",
        ("Портокали Валенсия", "Портокали сладки"),
        "Плодове",
        ("Портока9и", "Портокаlu", "Пор7окали"),
        PriceRange(2.5, 4.5, "лв/кг"),
        ("портокали", "портокал", "orange"),
    ),
    # Зеленчуци
    Product(
        "Домати",
        ("Домати розови", "Домати червени", "Домати чери"),
        "Зеленчуци",
        ("Д0мати", "Доматu", "Дoмати"),
        PriceRange(3.0, 6.0, "лв/кг"),
        ("домати", "домат", "tomato", "розови", "червени"),
    ),
    Product(
        "Краставици",
        ("Краставици салатни", "Краставици оранжерийни"),
        "Зеленчуци",
        ("Крас7авици", "Краставицu", "Краstaвици"),
        PriceRange(2.0, 4.0, "лв/кг"),
        ("краставици", "краставица", "cucumber"),
    ),
    Product(
        "Лук",
        ("Лук бял", "Лук червен", "Лук жълт"),
        "Зеленчуци",
        ("9ук", "Лyk"),
        PriceRange(1.5, 3.0, "лв/кг"),
        ("лук", "onion", "бял", "червен"),
    ),
    # Месни продукти
    Product(
        "Салам",
        ("Салам варен", "Салам сух", "Салам телешки"),
        "Месни продукти",
        ("Са9ам", "Салaм", "Салsм"),
        PriceRange(8.0, 20.0, "лв/кг"),
        ("салам", "салами", "salami"),
    ),
    Product(
        "Шунка",
        ("Шунка варена", "Шунка пушена", "Шунка пилешка"),
        "Месни продукти",
        ("Шуnка", "Шунkа", "0унка"),
        PriceRange(10.0, 25.0, "лв/кг"),
        ("шунка", "ham", "варена", "пушена"),
    ),
    # Напитки
    Product(
        "Вода",
        ("Вода минерална", "Вода изворна", "Вода газирана"),
        "Напитки",
        ("В0да", "Водa", "Boда"),
        PriceRange(0.5, 2.0, "лв/л"),
        ("вода", "water", "минерална", "изворна"),
        ("Девин", "Банкя", "Горна Баня"),
    ),
    Product(
        "Кока Кола",
        ("Coca Cola", "Кола", "Кока-Кола"),
        "Напитки",
        ("К0ка Кола", "Кока К09а", "Коkа Кола"),
        PriceRange(1.5, 3.0, "лв/л"),
        ("кока", "кола", "coca", "cola"),
    ),
    # Битова химия
    Product(
        "Препарат за съдове",
        ("Фейри", "Детергент за съдове", "Течност за съдове"),
        "Битова химия",
        ("Препарат 3а съдове", "Препаpaт", "Фейpu"),
        PriceRange(2.0, 8.0, "лв/бр"),
        ("препарат", "съдове", "фейри", "fairy", "детергент"),
    ),
    Product(
        "Прах за пране",
        ("Ариел", "Детергент за пране", "Прах пералня"),
        "Битова химия",
        ("Прах 3а пране", "Apиел", "Праx"),
        PriceRange(5.0, 15.0, "лв/бр"),
        ("прах", "пране", "ариел", "ariel", "детергент"),
    ),
)

# Keyword → category mapping for products outside the catalogue
PRODUCT_CATEGORIES: dict[str, tuple[str, ...]] = {
    "Млечни продукти": (
        "мляко", "сирене", "кашкавал", "йогурт", "краве сирене", "овче сирене",
    ),
    "Хлебни изделия": ("хляб", "питка", "кифла", "багета", "тост"),
    "Плодове": ("ябълки", "банани", "портокали", "круши", "грозде", "праскови"),
    "Зеленчуци": ("домати", "краставици", "лук", "картофи", "моркови", "чушки"),
    "Месни продукти": ("салам", "шунка", "наденица", "суджук", "месо", "пилешко"),
    "Напитки": ("вода", "сок", "кола", "бира", "кафе", "чай"),
    "Битова химия": ("препарат", "прах", "омекотител", "белина", "сапун"),
    "Козметика": ("шампоан", "сапун", "крем", "паста за зъби", "дезодорант"),
}

_NO_MATCH = Recognition(product=None, confidence=0.0, match_type="none")

_NON_NAME_CHARS = re.compile(r"[^\u0400-\u04ffa-z0-9\s]")


def normalize_name(name: str) -> str:
    """Lowercase, keep Cyrillic/Latin letters and digits, collapse spaces."""
    text = _NON_NAME_CHARS.sub("", name.lower())
    return " ".join(text.split())


class ProductKnowledgeBase:
    """Static catalogue of common Bulgarian grocery products."""

    def __init__(
        self,
        products: tuple[Product, ...] = PRODUCTS,
        categories: dict[str, tuple[str, ...]] | None = None,
    ) -> None:
        self._products = tuple(products)
        self._categories = categories if categories is not None else PRODUCT_CATEGORIES

    def __len__(self) -> int:
        return len(self._products)

    def recognize(self, name: str) -> Recognition:
        """Match ``name`` against the catalogue.

        Tries exact name (0.95), alternative-name substring (0.85),
        keyword substring (0.75), then Levenshtein distance <= 1 to a
        known misspelling (0.65).
        """
        text = name.lower().strip()
        if not text:
            return _NO_MATCH

        for product in self._products:
            if text == product.name.lower():
                return Recognition(product, 0.95, "exact")

        for product in self._products:
            for alt in product.alternatives:
                alt_l = alt.lower()
                if alt_l in text or text in alt_l:
                    return Recognition(product, 0.85, "alternative")

        for product in self._products:
            for keyword in product.keywords:
                if keyword in text:
                    return Recognition(product, 0.75, "keyword")

        for product in self._products:
            for misspelling in product.misspellings:
                if Levenshtein.distance(text, misspelling.lower(), score_cutoff=1) <= 1:
                    return Recognition(product, 0.65, "misspelling")

        return _NO_MATCH

    def categorize(self, name: str) -> str:
        """Category for ``name``: keyword table, then recognition, then "Други"."""
        text = name.lower()
        for category, keywords in self._categories.items():
            for keyword in keywords:
                if keyword in text:
                    return category

        recognition = self.recognize(name)
        if recognition.product and recognition.confidence > 0.6:
            return recognition.product.category

        return OTHER_CATEGORY

    def validate_price(self, name: str, price: float) -> PriceCheck:
        """Sanity-check ``price`` against the product's expected range.

        Unknown products, or products without a registered range, are
        never reported invalid.
        """
        recognition = self.recognize(name)
        product = recognition.product
        if product is None or product.price_range is None:
            return PriceCheck(
                valid=True,
                confidence=0.5,
                explanation="Продуктът не е разпознат - не може да се валидира цената",
            )

        lo, hi = product.price_range.min, product.price_range.max
        if lo <= price <= hi:
            return PriceCheck(
                valid=True,
                confidence=0.9,
                explanation=f"Цената {price:.2f} лв е в очаквания диапазон {lo:g}-{hi:g} лв",
            )

        deviation = (lo - price) / lo if price < lo else (price - hi) / hi
        if deviation <= 0.5:
            return PriceCheck(
                valid=True,
                confidence=0.7,
                explanation="Цената е извън очаквания диапазон, но в разумни граници",
            )

        logger.debug("Price %.2f for %r outside %s-%s", price, name, lo, hi)
        return PriceCheck(
            valid=False,
            confidence=0.3,
            explanation=(
                f"Цената {price:.2f} лв е значително извън очаквания "
                f"диапазон {lo:g}-{hi:g} лв"
            ),
        )


DEFAULT_KNOWLEDGE_BASE = ProductKnowledgeBase()
