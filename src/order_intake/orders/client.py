import json
import os
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests

from ..domain.models import FinalOrder
from ..errors import OrderSubmissionError
from ..logging import get_logger


class OrderSink(ABC):
    """Order-creation operation of the persistence collaborator."""

    @abstractmethod
    def create_order(self, order: FinalOrder) -> Dict[str, Any]:
        """Hand over a finished order; returns the collaborator's receipt.

        Raises OrderSubmissionError when the order was not accepted.
        """


class HttpOrderSink(OrderSink):
    """POSTs orders as JSON to `<base>/api/orders` with session and timeouts."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        timeout: int = 30,
        verify_tls: bool = True,
    ) -> None:
        self.base = base_url.rstrip("/")
        self.timeout = int(timeout)
        self.verify = bool(verify_tls)
        self.log = get_logger("order-sink")
        self.s = requests.Session()
        self.s.headers.update({"Accept": "application/json"})
        if token:
            self.s.headers.update({"Authorization": f"Token {token}"})

    def _url(self, path: str) -> str:
        return f"{self.base}{path}"

    def create_order(self, order: FinalOrder) -> Dict[str, Any]:
        url = self._url("/api/orders")
        self.log.info(f"POST order: customer={order.customer_name!r}, items={len(order.items)}, total={order.total_amount}")
        try:
            r = self.s.post(url, json=order.to_dict(), timeout=self.timeout, verify=self.verify)
            r.raise_for_status()
        except requests.RequestException as e:
            self.log.error(f"POST order failed: {e}")
            raise OrderSubmissionError(f"order sink rejected the order: {e}") from e
        try:
            body = r.json()
        except ValueError:
            body = None
        return {"status_code": r.status_code, "json": body}


class JsonlOrderSink(OrderSink):
    """Appends each order as one JSON line to a local file."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.log = get_logger("order-sink")

    def create_order(self, order: FinalOrder) -> Dict[str, Any]:
        order_id = uuid.uuid4().hex
        record = {"order_id": order_id, **order.to_dict()}
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record, ensure_ascii=False) + "\n")
        except OSError as e:
            self.log.error(f"Writing order to {self.path} failed: {e}")
            raise OrderSubmissionError(f"could not write order log {self.path}: {e}") from e
        self.log.info(f"Appended order {order_id} to {self.path}")
        return {"order_id": order_id, "path": self.path}


class MemoryOrderSink(OrderSink):
    def __init__(self) -> None:
        self.orders: List[FinalOrder] = []

    def create_order(self, order: FinalOrder) -> Dict[str, Any]:
        self.orders.append(order)
        return {"order_id": len(self.orders)}
