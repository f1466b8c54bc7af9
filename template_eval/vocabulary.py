"""Rule-name vocabularies.

Each template declares a type, and the type decides which rule names the
template may use. The sets are closed and hand-maintained; downstream
consumers key on these exact names, so entries are never renamed.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache


class TemplateType(Enum):
    """Kinds of page a template can describe."""

    GENERAL = "general"
    PRODUCT = "product"


GENERAL_NAMES: frozenset[str] = frozenset({"publish_datetime"})

PRODUCT_NAMES: frozenset[str] = frozenset(
    {
        "title",
        "description",
        "price",
        "low_price",
        "currency",
        "availability",
        "brand",
        "image_urls",
        "color",
        "size",
        "material",
        "fit",
        "gender",
        "category",
        "manufacturer",
        "additional_image_links",
        "itemCondition",
        "list_price",
        "free_shipping_limit",
        "min_shipping_length",
        "shipping_earliest_arrival_date",
        "shipping_latest_arrival_date",
        "shipping_geo",
        "shipping_method",
        "shipping_policy",
        "return_length",
        "return_policy",
        "dimension",
        "size_type",
        "size_system",
        "sale_label",
        "scarcity_label",
        "free_shipping_label",
        "free_return_label",
        "best_seller_label",
        "new_arrival_label",
        "avg_review_rating",
        "num_ratings",
        "review_link",
        "review_low_rating",
        "review_high_rating",
        "item_id",
        "item_set_id",
        "gtin",
        "upc",
        "mpn",
        "has_variants",
        "variant_skus",
        "promo_code",
        "image_link",
        "sale_price",
        "low_list_price",
        "high_list_price",
        "low_sale_price",
        "high_sale_price",
        "is_item",
        "is_item_set",
        "variant_availability",
    }
)

VOCABULARIES: dict[TemplateType, frozenset[str]] = {
    TemplateType.GENERAL: GENERAL_NAMES,
    TemplateType.PRODUCT: PRODUCT_NAMES,
}


def parse_template_type(value: str) -> TemplateType | None:
    """Look up a template type by name, ignoring case.

    Returns:
        The matching TemplateType, or None if the name is unknown.
    """
    try:
        return TemplateType(value.strip().lower())
    except ValueError:
        return None


@lru_cache(maxsize=None)
def _fold(vocabulary: frozenset[str]) -> frozenset[str]:
    return frozenset(entry.lower() for entry in vocabulary)


def is_permitted(name: str, vocabulary: frozenset[str]) -> bool:
    """Check a rule name against a vocabulary, ignoring case.

    ``itemCondition`` is the one mixed-case entry, so both sides are folded.
    """
    return name.lower() in _fold(vocabulary)
