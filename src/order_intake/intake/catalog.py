from __future__ import annotations

import json
from typing import Any, Iterable, List, Optional, Sequence

from ..domain.models import CatalogProduct
from ..domain.normalize import compact
from ..errors import CatalogError
from ..logging import get_logger

LOG = get_logger("intake-catalog")


def _price(value: Any, idx: int) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        raise CatalogError(f"catalog[{idx}].price must be a number")
    if isinstance(value, (int, float)):
        return int(round(value))
    if isinstance(value, str) and value.strip():
        try:
            return int(value.replace(",", "").strip())
        except ValueError as exc:
            raise CatalogError(f"catalog[{idx}].price invalid: {value!r}") from exc
    return 0


def catalog_from_records(records: Iterable[Any]) -> List[CatalogProduct]:
    """Build catalog entries, keeping the given order.

    Accepts `price` or `basePrice`, and `category` or `type`.
    """
    products: List[CatalogProduct] = []
    for idx, rec in enumerate(records):
        if not isinstance(rec, dict):
            raise CatalogError(f"catalog[{idx}] must be an object")
        name = str(rec.get("name") or "").strip()
        if not name:
            raise CatalogError(f"catalog[{idx}].name required")
        price = _price(rec.get("price", rec.get("basePrice")), idx)
        category = rec.get("category", rec.get("type"))
        products.append(
            CatalogProduct(
                id=str(rec.get("id") if rec.get("id") is not None else name),
                name=name,
                price=price,
                category=str(category) if category else None,
            )
        )
    return products


def load_catalog(path: str) -> List[CatalogProduct]:
    """Read a JSON catalog: a list of products or {"products": [...]}."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise CatalogError(f"could not read catalog {path}: {e}") from e
    if isinstance(data, dict):
        data = data.get("products")
    if not isinstance(data, list):
        raise CatalogError("catalog must be a list of products")
    products = catalog_from_records(data)
    LOG.info("Loaded %d catalog product(s) from %s", len(products), path)
    return products


def match_product(text: str, catalog: Sequence[CatalogProduct]) -> Optional[CatalogProduct]:
    """First product, in catalog order, whose name occurs in the text.

    Comparison ignores case and whitespace.
    """
    haystack = compact(text)
    if not haystack:
        return None
    for product in catalog:
        name = compact(product.name)
        if name and name in haystack:
            return product
    return None
