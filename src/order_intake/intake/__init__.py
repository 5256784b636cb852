"""Adaptive free-text order extraction.

Modules:
- tokenizer: pasted text -> addressable lines
- patterns: learned context signatures and their repositories
- mapper: learned-signature scoring, keyword fallback, item block harvesting
- extractor / classifier: field values, catalog items, fee and zone handling
- learner: signatures from confirmed mappings
- service: session orchestration (analyze, confirm)
"""

from .mapping import FieldMapping
from .patterns import (
    JsonPatternRepository,
    MemoryPatternRepository,
    PatternRepository,
    PatternStore,
    SqlitePatternRepository,
)
from .service import Analysis, ConfirmResult, OrderExtractionService, build_service
from .frontend.app import create_app

__all__ = [
    "FieldMapping",
    "PatternStore",
    "PatternRepository",
    "JsonPatternRepository",
    "SqlitePatternRepository",
    "MemoryPatternRepository",
    "Analysis",
    "ConfirmResult",
    "OrderExtractionService",
    "build_service",
    "create_app",
]
