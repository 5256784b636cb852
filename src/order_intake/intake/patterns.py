"""Learned context signatures and the repositories that persist them.

`PatternStore` is the in-memory value: field id -> ordered, unique
signatures. Repositories only load and save whole stores; callers decide when
to save, the mapper never does.
"""

from __future__ import annotations

import json
import os
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from ..errors import PatternStoreError
from ..logging import get_logger
from .constants import SINGULAR_FIELDS
from ..domain.models import ContextSignature


LOG = get_logger("intake-patterns")


class PatternStore:
    """Append-only, de-duplicating signature lists keyed by field id."""

    def __init__(self, data: Optional[Dict[str, List[ContextSignature]]] = None) -> None:
        self._data: Dict[str, List[ContextSignature]] = {}
        for field_id, signatures in (data or {}).items():
            for sig in signatures:
                self.add(field_id, sig)

    def signatures(self, field_id: str) -> List[ContextSignature]:
        return list(self._data.get(field_id, ()))

    def fields(self) -> List[str]:
        return list(self._data.keys())

    def add(self, field_id: str, signature: ContextSignature) -> bool:
        """Append a signature; returns False when an equal one is stored."""
        bucket = self._data.setdefault(field_id, [])
        if signature in bucket:
            return False
        bucket.append(signature)
        return True

    def __len__(self) -> int:
        return sum(len(v) for v in self._data.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PatternStore):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def to_dict(self) -> Dict[str, List[Dict[str, str]]]:
        return {k: [s.to_dict() for s in v] for k, v in self._data.items() if v}

    @classmethod
    def from_dict(cls, payload: Any) -> "PatternStore":
        """Build a store from its serialized form, skipping malformed entries."""
        store = cls()
        if not isinstance(payload, dict):
            raise ValueError("pattern store payload must be an object")
        for field_id, entries in payload.items():
            if field_id not in SINGULAR_FIELDS:
                LOG.debug("Ignoring patterns for unknown field %r", field_id)
                continue
            if not isinstance(entries, list):
                continue
            for entry in entries:
                if isinstance(entry, dict):
                    store.add(field_id, ContextSignature.from_dict(entry))
        return store


class PatternRepository(ABC):
    """Persistence medium for a PatternStore."""

    @property
    @abstractmethod
    def location(self) -> str:
        pass

    @abstractmethod
    def load(self) -> PatternStore:
        """Return the persisted store, or an empty one if absent or unreadable."""

    @abstractmethod
    def save(self, store: PatternStore) -> None:
        """Persist the full store, replacing what was there.

        Raises PatternStoreError on failure.
        """


class MemoryPatternRepository(PatternRepository):
    def __init__(self, initial: Optional[PatternStore] = None) -> None:
        self._payload: Dict[str, List[Dict[str, str]]] = initial.to_dict() if initial else {}
        self.save_count = 0

    @property
    def location(self) -> str:
        return ":memory:"

    def load(self) -> PatternStore:
        return PatternStore.from_dict(self._payload)

    def save(self, store: PatternStore) -> None:
        self._payload = store.to_dict()
        self.save_count += 1


class JsonPatternRepository(PatternRepository):
    """Stores the whole PatternStore as one JSON document."""

    def __init__(self, path: str) -> None:
        self.path = path

    @property
    def location(self) -> str:
        return self.path

    def load(self) -> PatternStore:
        if not os.path.isfile(self.path):
            LOG.info("No pattern store at %s; starting empty", self.path)
            return PatternStore()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                store = PatternStore.from_dict(json.load(f))
        except (OSError, ValueError) as e:
            LOG.warning("Pattern store at %s unreadable (%s); starting empty", self.path, e)
            return PatternStore()
        LOG.info("Loaded %d learned pattern(s) from %s", len(store), self.path)
        return store

    def save(self, store: PatternStore) -> None:
        tmp_path = f"{self.path}.tmp"
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(store.to_dict(), f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PatternStoreError(f"could not write pattern store {self.path}: {e}") from e
        LOG.debug("Saved %d pattern(s) to %s", len(store), self.path)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS learned_patterns (
  pattern_id  INTEGER PRIMARY KEY,
  field_id    TEXT NOT NULL,
  position    INTEGER NOT NULL,
  label       TEXT NOT NULL,
  above       TEXT NOT NULL,
  below       TEXT NOT NULL,
  UNIQUE(field_id, label, above, below)
);
CREATE INDEX IF NOT EXISTS idx_patterns_field_pos ON learned_patterns(field_id, position);
"""


class SqlitePatternRepository(PatternRepository):
    """Keeps signatures as rows; save rewrites the table in one transaction."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path

    @property
    def location(self) -> str:
        return self.db_path

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def load(self) -> PatternStore:
        if not os.path.isfile(self.db_path):
            LOG.info("No pattern database at %s; starting empty", self.db_path)
            return PatternStore()
        store = PatternStore()
        try:
            with self.connect() as conn:
                conn.executescript(SCHEMA_SQL)
                rows = conn.execute(
                    "SELECT field_id, label, above, below FROM learned_patterns ORDER BY field_id, position;"
                ).fetchall()
        except sqlite3.Error as e:
            LOG.warning("Pattern database at %s unreadable (%s); starting empty", self.db_path, e)
            return PatternStore()
        for row in rows:
            if row["field_id"] in SINGULAR_FIELDS:
                store.add(row["field_id"], ContextSignature(row["label"], row["above"], row["below"]))
        LOG.info("Loaded %d learned pattern(s) from %s", len(store), self.db_path)
        return store

    def save(self, store: PatternStore) -> None:
        rows = []
        for field_id in store.fields():
            for position, sig in enumerate(store.signatures(field_id)):
                rows.append((field_id, position, sig.label, sig.above, sig.below))
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
            with self.connect() as conn:
                conn.executescript(SCHEMA_SQL)
                with conn:
                    conn.execute("DELETE FROM learned_patterns;")
                    conn.executemany(
                        "INSERT INTO learned_patterns (field_id, position, label, above, below) VALUES (?, ?, ?, ?, ?);",
                        rows,
                    )
        except (OSError, sqlite3.Error) as e:
            raise PatternStoreError(f"could not write pattern database {self.db_path}: {e}") from e
        LOG.debug("Saved %d pattern(s) to %s", len(rows), self.db_path)


def open_repository(backend: str, path: str) -> PatternRepository:
    if backend == "sqlite":
        return SqlitePatternRepository(path)
    return JsonPatternRepository(path)
