from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Line:
    index: int  # 1-based
    text: str

    @property
    def is_blank(self) -> bool:
        return not self.text


@dataclass(frozen=True)
class ContextSignature:
    label: str
    above: str
    below: str

    def to_dict(self) -> Dict[str, str]:
        return {"label": self.label, "above": self.above, "below": self.below}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContextSignature":
        return cls(
            label=str(data.get("label") or ""),
            above=str(data.get("above") or ""),
            below=str(data.get("below") or ""),
        )


@dataclass(frozen=True)
class CatalogProduct:
    id: str
    name: str
    price: int
    category: Optional[str] = None


@dataclass
class DraftItem:
    display_name: str
    quantity: int = 1
    unit_price: int = 0
    catalog_ref: Optional[str] = None
    category: Optional[str] = None
    line_index: Optional[int] = None
    is_fee_or_zone: bool = False
    is_discount: bool = False

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


@dataclass
class OrderLine:
    name: str
    quantity: int
    unit_price: int
    product_id: Optional[str] = None


@dataclass
class FinalOrder:
    customer_name: str = ""
    customer_phone: str = ""
    utilization_date: str = ""
    delivery_zone: str = ""
    address: str = ""
    request_note: str = ""
    visitor: str = ""
    payment_status: str = ""
    pickup_type: str = "PICKUP"
    memo: str = ""
    items: List[OrderLine] = field(default_factory=list)
    delivery_fee: int = 0
    discount_value: int = 0
    total_amount: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DraftOrder:
    """Extractor output awaiting operator review.

    `values` holds the singular field strings keyed by field id. `items` keeps
    every harvested line, fee/zone and discount entries included, so the
    operator can see what was folded into the delivery fee or discount.
    """

    values: Dict[str, str] = field(default_factory=dict)
    items: List[DraftItem] = field(default_factory=list)
    delivery_fee: int = 0
    discount_value: int = 0
    delivery_zone_ref: Optional[str] = None
    pickup_type: str = "PICKUP"
    memo: str = ""

    @property
    def order_items(self) -> List[DraftItem]:
        return [it for it in self.items if not it.is_fee_or_zone and not it.is_discount]

    @property
    def total_amount(self) -> int:
        items_total = sum(it.line_total for it in self.order_items)
        return items_total + self.delivery_fee - self.discount_value

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["total_amount"] = self.total_amount
        return out
