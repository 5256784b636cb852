from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..config import IntakeConfig
from ..domain.models import CatalogProduct, DraftOrder, FinalOrder, Line
from ..errors import PatternStoreError
from ..logging import get_logger
from ..orders.client import HttpOrderSink, JsonlOrderSink, MemoryOrderSink, OrderSink
from .catalog import load_catalog
from .extractor import build_draft, build_final_order
from .learner import learn
from .mapper import auto_map
from .mapping import FieldMapping
from .patterns import MemoryPatternRepository, PatternRepository, open_repository
from .tokenizer import tokenize


LOG = get_logger("intake-service")


@dataclass
class Analysis:
    lines: List[Line]
    mapping: FieldMapping
    draft: DraftOrder

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lines": [{"index": ln.index, "text": ln.text, "blank": ln.is_blank} for ln in self.lines],
            "mapping": self.mapping.to_dict(),
            "draft": self.draft.to_dict(),
        }


@dataclass
class ConfirmResult:
    order: FinalOrder
    learned: List[str] = field(default_factory=list)
    save_error: Optional[str] = None
    submission: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order": self.order.to_dict(),
            "learned": list(self.learned),
            "save_error": self.save_error,
            "submission": self.submission,
        }


class OrderExtractionService:
    """Session-level coordinator: analyze pasted text, confirm, learn, submit.

    The pattern store is loaded once when the service is created. Nothing is
    written until `confirm` is called.
    """

    def __init__(
        self,
        repository: Optional[PatternRepository] = None,
        catalog: Optional[Sequence[CatalogProduct]] = None,
        sink: Optional[OrderSink] = None,
    ) -> None:
        self.repository = repository or MemoryPatternRepository()
        self.catalog: List[CatalogProduct] = list(catalog or [])
        self.sink = sink or MemoryOrderSink()
        self.store = self.repository.load()
        LOG.info(
            "Order intake ready: %d learned pattern(s), %d catalog product(s)",
            len(self.store),
            len(self.catalog),
        )

    def analyze(self, text: str) -> Analysis:
        """Tokenize, auto-map and extract. No side effects."""
        lines = tokenize(text)
        mapping = auto_map(lines, self.store)
        draft = build_draft(lines, mapping, self.catalog)
        return Analysis(lines=lines, mapping=mapping, draft=draft)

    def confirm(
        self,
        text: str,
        mapping: Union[FieldMapping, Mapping[str, Any], None] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> ConfirmResult:
        """Finalize an operator-reviewed order.

        `mapping` is the confirmed (possibly corrected) mapping; when omitted the
        auto-mapping is taken as confirmed. Learning and order submission are
        separate failure domains: a pattern save failure is reported in
        `save_error`, while a rejected order raises OrderSubmissionError.
        """
        lines = tokenize(text)
        if mapping is None:
            confirmed = auto_map(lines, self.store)
        elif isinstance(mapping, FieldMapping):
            confirmed = mapping
        else:
            confirmed = FieldMapping.from_dict(dict(mapping))

        draft = build_draft(lines, confirmed, self.catalog)
        order = build_final_order(draft, overrides, self.catalog)

        learned = learn(lines, confirmed, self.store)
        save_error: Optional[str] = None
        try:
            self.repository.save(self.store)
            LOG.info(
                "Stored %d new signature(s); %d total at %s",
                len(learned),
                len(self.store),
                self.repository.location,
            )
        except PatternStoreError as e:
            save_error = str(e)
            LOG.error("Learned patterns not saved: %s", e)

        submission = self.sink.create_order(order)
        LOG.info("Order submitted: total=%d items=%d", order.total_amount, len(order.items))
        return ConfirmResult(order=order, learned=learned, save_error=save_error, submission=submission)


def build_service(config: IntakeConfig) -> OrderExtractionService:
    """Wire repository, catalog and sink from resolved configuration."""
    repository = open_repository(config.pattern_backend, config.pattern_path)
    catalog = load_catalog(config.catalog_path) if config.catalog_path else []
    if config.sink_url:
        sink: OrderSink = HttpOrderSink(config.sink_url, config.sink_token, timeout=config.sink_timeout)
    else:
        sink = JsonlOrderSink(config.order_log_path)
    return OrderExtractionService(repository=repository, catalog=catalog, sink=sink)
