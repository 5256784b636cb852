from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..domain.models import CatalogProduct, DraftItem, DraftOrder, FinalOrder, Line, OrderLine
from ..domain.normalize import (
    digits_to_int,
    find_mobile_number,
    last_amount,
    parse_won_amount,
    strip_label,
    trailing_won_amount,
)
from ..logging import get_logger
from .catalog import match_product
from .classifier import is_discount, is_fee_or_zone, resolve_delivery_fee
from .constants import (
    DELIVERY_LINES,
    FIELD_ADDRESS,
    FIELD_CUSTOMER_NAME,
    FIELD_CUSTOMER_PHONE,
    FIELD_DELIVERY_ZONE,
    FIELD_DISCOUNT_VALUE,
    FIELD_PAYMENT_STATUS,
    FIELD_REQUEST_NOTE,
    FIELD_UTILIZATION_DATE,
    FIELD_VISITOR,
    NUMERIC_FIELDS,
    PICKUP_LINES,
    PICKUP_TYPE_DELIVERY,
    PICKUP_TYPE_PICKUP,
    QUANTITY_LIMIT,
    QUANTITY_UNITS,
    SINGULAR_FIELDS,
)
from .mapping import FieldMapping
from .tokenizer import line_at


LOG = get_logger("intake-extractor")

_QUANTITY_RE = re.compile(
    r"(?:^|\s)[x×]?(\d+)\s*(?:" + "|".join(re.escape(u) for u in QUANTITY_UNITS) + r")?\s*$",
    re.IGNORECASE,
)

OVERRIDE_DELIVERY_FEE = "deliveryFee"


def field_value(field_id: str, text: str) -> str:
    """Value of a singular field found on a line of text."""
    value = strip_label(text)
    if field_id in NUMERIC_FIELDS:
        return str(digits_to_int(value))
    if field_id == FIELD_CUSTOMER_PHONE:
        return find_mobile_number(value) or value
    return value


def extract_values(lines: Sequence[Line], mapping: FieldMapping) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for field_id in SINGULAR_FIELDS:
        idx = mapping.line_for(field_id)
        if idx is None:
            continue
        line = line_at(list(lines), idx)
        if line is None or line.is_blank:
            LOG.debug("%s mapped to unusable line %s; leaving empty", field_id, idx)
            continue
        values[field_id] = field_value(field_id, line.text)
    return values


def parse_quantity(text: str) -> int:
    """Trailing count with an optional unit marker; 1 when absent."""
    m = _QUANTITY_RE.search(text or "")
    if not m:
        return 1
    qty = int(m.group(1))
    if qty >= QUANTITY_LIMIT:
        return 1
    return max(qty, 1)


def _text_after_name(text: str, name: str) -> str:
    pos = text.lower().find(name.lower())
    if pos < 0:
        return text
    return text[pos + len(name):]


def parse_item_line(line: Line, catalog: Sequence[CatalogProduct]) -> DraftItem:
    product = match_product(line.text, catalog)
    if product is not None:
        item = DraftItem(
            display_name=product.name,
            quantity=parse_quantity(_text_after_name(line.text, product.name)),
            unit_price=product.price,
            catalog_ref=product.id,
            category=product.category,
            line_index=line.index,
        )
    else:
        item = DraftItem(display_name=line.text, quantity=parse_quantity(line.text), line_index=line.index)
    item.is_fee_or_zone = is_fee_or_zone(product, line.text)
    item.is_discount = not item.is_fee_or_zone and is_discount(product)
    if product is None and item.is_fee_or_zone:
        # "배달팁 3,000원" is a charge; "Zone 2" or "3구역" is only a label.
        item.quantity = 1
        item.unit_price = inline_fee_amount(line.text)
    return item


def inline_fee_amount(text: str) -> int:
    """Charge written on an unmatched fee line, 0 when it has none."""
    won = trailing_won_amount(text)
    if won is not None:
        return won
    amount = last_amount(text)
    return amount if amount >= QUANTITY_LIMIT else 0


def extract_items(lines: Sequence[Line], mapping: FieldMapping, catalog: Sequence[CatalogProduct]) -> List[DraftItem]:
    items: List[DraftItem] = []
    all_lines = list(lines)
    for idx in mapping.items:
        line = line_at(all_lines, idx)
        if line is None or line.is_blank:
            continue
        if match_product(line.text, catalog) is None:
            amount = parse_won_amount(line.text)
            if amount is not None:
                # Price-only lines are never items of their own.
                if items and items[-1].unit_price == 0:
                    items[-1].unit_price = amount
                    LOG.debug("Line %d priced previous item %r at %d", idx, items[-1].display_name, amount)
                else:
                    LOG.debug("Line %d is a price line with nothing to price; skipped", idx)
                continue
        items.append(parse_item_line(line, catalog))
    return items


def detect_pickup_type(lines: Sequence[Line], values: Mapping[str, str], delivery_fee: int) -> str:
    for line in lines:
        lowered = line.text.casefold()
        if lowered in DELIVERY_LINES:
            return PICKUP_TYPE_DELIVERY
        if lowered in PICKUP_LINES:
            return PICKUP_TYPE_PICKUP
    if values.get(FIELD_ADDRESS) or delivery_fee > 0:
        return PICKUP_TYPE_DELIVERY
    return PICKUP_TYPE_PICKUP


def build_draft(lines: Sequence[Line], mapping: FieldMapping, catalog: Sequence[CatalogProduct]) -> DraftOrder:
    """Turn a mapping into reviewable values, items and money totals."""
    values = extract_values(lines, mapping)
    items = extract_items(lines, mapping, catalog)

    zone_value = values.get(FIELD_DELIVERY_ZONE, "")
    zone_product = match_product(zone_value, catalog) if zone_value else None
    delivery_fee = resolve_delivery_fee(zone_product, items)

    discount = digits_to_int(values.get(FIELD_DISCOUNT_VALUE, ""))
    discount += sum(it.line_total for it in items if it.is_discount)

    draft = DraftOrder(
        values=values,
        items=items,
        delivery_fee=delivery_fee,
        discount_value=discount,
        delivery_zone_ref=zone_product.id if zone_product else None,
        pickup_type=detect_pickup_type(lines, values, delivery_fee),
        memo="\n".join(line.text for line in lines if not line.is_blank),
    )
    LOG.debug(
        "Draft: %d value(s), %d item(s), fee=%d, discount=%d, total=%d",
        len(values),
        len(items),
        draft.delivery_fee,
        draft.discount_value,
        draft.total_amount,
    )
    return draft


def build_final_order(
    draft: DraftOrder,
    overrides: Optional[Mapping[str, Any]] = None,
    catalog: Sequence[CatalogProduct] = (),
) -> FinalOrder:
    """Apply operator overrides and produce the record handed downstream.

    Fee/zone and discount entries never appear in `items`; they are carried
    by `delivery_fee` and `discount_value`.
    """
    values = dict(draft.values)
    delivery_fee = draft.delivery_fee
    discount = draft.discount_value
    overrides = dict(overrides or {})

    for field_id in SINGULAR_FIELDS:
        if field_id in overrides and overrides[field_id] is not None:
            values[field_id] = str(overrides[field_id]).strip()

    if FIELD_DISCOUNT_VALUE in overrides and overrides[FIELD_DISCOUNT_VALUE] is not None:
        discount = digits_to_int(str(overrides[FIELD_DISCOUNT_VALUE]))
    if overrides.get(OVERRIDE_DELIVERY_FEE) is not None:
        delivery_fee = digits_to_int(str(overrides[OVERRIDE_DELIVERY_FEE]))
    elif FIELD_DELIVERY_ZONE in overrides and catalog:
        zone_product = match_product(values.get(FIELD_DELIVERY_ZONE, ""), catalog)
        if zone_product is not None:
            delivery_fee = zone_product.price

    order_lines = [
        OrderLine(name=it.display_name, quantity=it.quantity, unit_price=it.unit_price, product_id=it.catalog_ref)
        for it in draft.order_items
    ]
    items_total = sum(ol.unit_price * ol.quantity for ol in order_lines)
    return FinalOrder(
        customer_name=values.get(FIELD_CUSTOMER_NAME, ""),
        customer_phone=values.get(FIELD_CUSTOMER_PHONE, ""),
        utilization_date=values.get(FIELD_UTILIZATION_DATE, ""),
        delivery_zone=values.get(FIELD_DELIVERY_ZONE, ""),
        address=values.get(FIELD_ADDRESS, ""),
        request_note=values.get(FIELD_REQUEST_NOTE, ""),
        visitor=values.get(FIELD_VISITOR, ""),
        payment_status=values.get(FIELD_PAYMENT_STATUS, ""),
        pickup_type=draft.pickup_type,
        memo=draft.memo,
        items=order_lines,
        delivery_fee=delivery_fee,
        discount_value=discount,
        total_amount=items_total + delivery_fee - discount,
    )
