"""Restricts derived from an exported metadata record.

Each recognised metadata field has exactly one pure mapping to a restrict
variant; fields not listed in RestrictField never become restricts.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable

from catalog_index.vectorstore.models import CategoricalRestrict, NumericRestrict


class RestrictField(str, Enum):
    """Metadata keys (as exported) that become restricts, in output order."""

    CATEGORY_ID = "categoryId"
    BRAND = "brand"
    PRICE = "price"
    RATING = "rating"


def _category_restrict(value: Any) -> CategoricalRestrict:
    return CategoricalRestrict(namespace="category_id", allow=[str(value)])


def _brand_restrict(value: Any) -> CategoricalRestrict:
    return CategoricalRestrict(namespace="brand", allow=[str(value)])


def _price_restrict(value: Any) -> NumericRestrict:
    return NumericRestrict(namespace="price", value_double=_as_float(value))


def _rating_restrict(value: Any) -> NumericRestrict:
    return NumericRestrict(namespace="rating", value_double=_as_float(value))


def _as_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("boolean is not a numeric restrict value")
    return float(value)


_MAPPERS: dict[RestrictField, Callable[[Any], CategoricalRestrict | NumericRestrict]] = {
    RestrictField.CATEGORY_ID: _category_restrict,
    RestrictField.BRAND: _brand_restrict,
    RestrictField.PRICE: _price_restrict,
    RestrictField.RATING: _rating_restrict,
}


def derive_restricts(metadata: dict[str, Any]) -> list[CategoricalRestrict | NumericRestrict]:
    """Restricts for whichever fields are present and non-null.

    Raises TypeError/ValueError when a numeric field is not a number.
    """
    out: list[CategoricalRestrict | NumericRestrict] = []
    for field in RestrictField:
        value = metadata.get(field.value)
        if value is None:
            continue
        out.append(_MAPPERS[field](value))
    return out
