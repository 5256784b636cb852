from __future__ import annotations

from typing import Dict, Tuple

# Field ids, in the order the mapper visits them.
FIELD_CUSTOMER_NAME = "customerName"
FIELD_CUSTOMER_PHONE = "customerPhone"
FIELD_UTILIZATION_DATE = "utilizationDate"
FIELD_DELIVERY_ZONE = "deliveryZone"
FIELD_ADDRESS = "address"
FIELD_DISCOUNT_VALUE = "discountValue"
FIELD_REQUEST_NOTE = "requestNote"
FIELD_VISITOR = "visitor"
FIELD_PAYMENT_STATUS = "paymentStatus"
FIELD_ITEMS = "items"

SINGULAR_FIELDS: Tuple[str, ...] = (
    FIELD_CUSTOMER_NAME,
    FIELD_CUSTOMER_PHONE,
    FIELD_UTILIZATION_DATE,
    FIELD_DELIVERY_ZONE,
    FIELD_ADDRESS,
    FIELD_DISCOUNT_VALUE,
    FIELD_REQUEST_NOTE,
    FIELD_VISITOR,
    FIELD_PAYMENT_STATUS,
)

FIELD_CHOICES: Tuple[str, ...] = SINGULAR_FIELDS + (FIELD_ITEMS,)

NUMERIC_FIELDS = frozenset({FIELD_DISCOUNT_VALUE})

# Context sentinels for the first and last line.
SIGNATURE_START = "START"
SIGNATURE_END = "END"

# Scoring weights and thresholds for learned signatures.
SCORE_ABOVE = 2
SCORE_BELOW = 2
SCORE_LABEL = 1
SCORE_THRESHOLD = 3
SCORE_THRESHOLD_AT_START = 2

# Item section states. CLOSED is terminal.
SECTION_BEFORE = "BEFORE"
SECTION_IN = "IN_SECTION"
SECTION_CLOSED = "CLOSED"

ITEM_SECTION_START_CUES: Tuple[str, ...] = ("메뉴", "예약내역", "주문내역", "menu", "ordered items", "order items")
ITEM_SECTION_END_CUES: Tuple[str, ...] = (
    "요청사항",
    "쿠폰",
    "유입경로",
    "결제정보",
    "결제금액",
    "requests",
    "payment total",
    "coupon",
)

ADDRESS_GUIDANCE_PHRASES: Tuple[str, ...] = ("배달 받으실 주소를 기입해주세요", "please enter delivery address")

# Lines that are form prompts rather than values.
GUIDANCE_CUES: Tuple[str, ...] = ("입력정보", "입력해주세요", "please enter")

# Keyword fallback cues per field. Phone numbers are also found by pattern
# and the address has the guidance-phrase rule on top of these.
KEYWORD_CUES: Dict[str, Tuple[str, ...]] = {
    FIELD_CUSTOMER_NAME: ("예약자", "주문자", "성함", "이름", "orderer", "reservation name", "customer", "name"),
    FIELD_CUSTOMER_PHONE: ("연락처", "전화번호", "contact", "phone"),
    FIELD_ADDRESS: ("주소", "배송지", "address", "delivery destination"),
    FIELD_UTILIZATION_DATE: ("이용일시", "일시", "날짜", "date", "time"),
    FIELD_VISITOR: ("방문자", "수령인", "visitor", "recipient"),
    FIELD_REQUEST_NOTE: ("요청사항", "요청", "메모", "request", "note"),
    FIELD_PAYMENT_STATUS: ("결제상태", "입금상태", "payment status"),
    FIELD_DISCOUNT_VALUE: ("할인", "discount"),
    FIELD_DELIVERY_ZONE: ("zone", "구역"),
}

# Catalog categories with special handling.
CATEGORY_ZONE = "ZONE"
CATEGORY_DISCOUNT = "DISCOUNT"

FEE_ZONE_TOKENS: Tuple[str, ...] = (
    "zone",
    "구역",
    "배달비",
    "배달료",
    "배달팁",
    "배송비",
    "delivery fee",
    "shipping",
)

# Trailing quantity unit markers ("김밥 2개", "Rice 3 ea").
QUANTITY_UNITS: Tuple[str, ...] = ("개", "ea", "pcs", "box", "박스", "인분")
# Trailing numbers at or above this are amounts, not quantities.
QUANTITY_LIMIT = 1000

PICKUP_TYPE_DELIVERY = "DELIVERY"
PICKUP_TYPE_PICKUP = "PICKUP"
DELIVERY_LINES = frozenset({"배달", "delivery"})
PICKUP_LINES = frozenset({"픽업", "pickup"})
