from __future__ import annotations

from typing import Optional, Sequence

from ..domain.models import CatalogProduct, DraftItem
from .constants import CATEGORY_DISCOUNT, CATEGORY_ZONE, FEE_ZONE_TOKENS


def has_fee_token(text: str) -> bool:
    lowered = (text or "").casefold()
    return any(token in lowered for token in FEE_ZONE_TOKENS)


def is_fee_or_zone(product: Optional[CatalogProduct], raw_text: str) -> bool:
    """Delivery charge or zone entry rather than a real item.

    A catalog match decides by its category or its name; without a match the
    raw line text is checked for fee/zone tokens.
    """
    if product is not None:
        if (product.category or "").upper() == CATEGORY_ZONE:
            return True
        return has_fee_token(product.name)
    return has_fee_token(raw_text)


def is_discount(product: Optional[CatalogProduct]) -> bool:
    return product is not None and (product.category or "").upper() == CATEGORY_DISCOUNT


def resolve_delivery_fee(zone_product: Optional[CatalogProduct], items: Sequence[DraftItem]) -> int:
    """Zone field's catalog price wins over any inline fee line."""
    if zone_product is not None:
        return zone_product.price
    for item in items:
        if item.is_fee_or_zone:
            return item.unit_price
    return 0
