import pytest

from order_intake.domain.models import CatalogProduct
from order_intake.errors import OrderSubmissionError, PatternStoreError
from order_intake.intake.patterns import MemoryPatternRepository
from order_intake.intake.service import OrderExtractionService
from order_intake.orders.client import MemoryOrderSink, OrderSink


TEXT = "Greetings\nPark Jisoo\nThanks\nMenu\nKimbap 2\nRequests: none"
CATALOG = [CatalogProduct("p1", "Kimbap", 1500)]


class _FailingRepository(MemoryPatternRepository):
    def save(self, store):
        raise PatternStoreError("disk full")


class _RejectingSink(OrderSink):
    def create_order(self, order):
        raise OrderSubmissionError("backend down")


def test_analyze_has_no_side_effects():
    repo = MemoryPatternRepository()
    sink = MemoryOrderSink()
    service = OrderExtractionService(repo, CATALOG, sink)
    analysis = service.analyze(TEXT)
    assert analysis.mapping.items == [5]
    assert analysis.draft.total_amount == 3000
    assert repo.save_count == 0
    assert sink.orders == []
    assert analysis.to_dict()["lines"][0] == {"index": 1, "text": "Greetings", "blank": False}


def test_confirm_learns_saves_and_submits():
    repo = MemoryPatternRepository()
    sink = MemoryOrderSink()
    service = OrderExtractionService(repo, CATALOG, sink)
    result = service.confirm(TEXT, {"customerName": "2", "items": "5"})
    assert result.learned == ["customerName"]
    assert result.save_error is None
    assert repo.save_count == 1
    assert sink.orders[0].customer_name == "Park Jisoo"
    assert result.order.total_amount == 3000

    fresh = OrderExtractionService(repo, CATALOG, MemoryOrderSink())
    assert fresh.analyze(TEXT).mapping.line_for("customerName") == 2


def test_save_failure_does_not_block_the_order():
    sink = MemoryOrderSink()
    service = OrderExtractionService(_FailingRepository(), CATALOG, sink)
    result = service.confirm(TEXT, {"customerName": "2", "items": "5"})
    assert result.save_error == "disk full"
    assert len(sink.orders) == 1
    assert result.to_dict()["order"]["customer_name"] == "Park Jisoo"


def test_rejected_order_raises():
    service = OrderExtractionService(MemoryPatternRepository(), CATALOG, _RejectingSink())
    with pytest.raises(OrderSubmissionError):
        service.confirm(TEXT)


def test_confirm_without_mapping_uses_auto_mapping():
    sink = MemoryOrderSink()
    service = OrderExtractionService(MemoryPatternRepository(), CATALOG, sink)
    result = service.confirm(TEXT, overrides={"customerName": "Walk-in"})
    assert result.order.customer_name == "Walk-in"
    assert result.order.request_note == "none"
    assert result.learned == ["requestNote"]


def test_confirm_does_not_map_one_line_to_two_fields():
    sink = MemoryOrderSink()
    service = OrderExtractionService(MemoryPatternRepository(), CATALOG, sink)
    result = service.confirm(TEXT, {"customerName": "2", "visitor": "2", "items": "5"})
    assert result.learned == ["customerName"]
    assert result.order.customer_name == "Park Jisoo"
    assert result.order.visitor == ""
    assert len(service.store) == 1
