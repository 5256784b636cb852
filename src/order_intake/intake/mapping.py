from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..logging import get_logger
from .constants import FIELD_CHOICES, FIELD_ITEMS, SINGULAR_FIELDS

LOG = get_logger("intake-mapping")


@dataclass
class FieldMapping:
    """Which line(s) each field was found on.

    Singular fields map to one 1-based line index; `items` is the ordered list
    of item lines. The wire form is {field: "3", "items": "5,6,7"}.
    """

    singular: Dict[str, int] = field(default_factory=dict)
    items: List[int] = field(default_factory=list)

    def line_for(self, field_id: str) -> Optional[int]:
        return self.singular.get(field_id)

    def claimed_lines(self) -> set:
        return set(self.singular.values())

    def to_dict(self) -> Dict[str, str]:
        out = {f: str(self.singular[f]) for f in SINGULAR_FIELDS if f in self.singular}
        if self.items:
            out[FIELD_ITEMS] = ",".join(str(i) for i in self.items)
        return out

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "FieldMapping":
        """Parse the wire form; unknown fields and bad numbers are dropped.

        Singular fields are read in field order and a line already claimed by
        an earlier field is not handed to a later one.
        """
        payload = payload or {}
        mapping = cls()
        for key in payload:
            if key not in FIELD_CHOICES:
                LOG.debug("Ignoring mapping for unknown field %r", key)

        for part in str(payload.get(FIELD_ITEMS) or "").split(","):
            idx = _parse_index(part)
            if idx is not None and idx not in mapping.items:
                mapping.items.append(idx)

        for field_id in SINGULAR_FIELDS:
            if field_id not in payload:
                continue
            raw = payload[field_id]
            idx = _parse_index(raw)
            if idx is None:
                if str(raw or "").strip():
                    LOG.debug("Ignoring unparseable line number %r for %s", raw, field_id)
                continue
            if idx in mapping.claimed_lines():
                LOG.debug("Ignoring %s: line %d already mapped to another field", field_id, idx)
                continue
            mapping.singular[field_id] = idx
        return mapping


def _parse_index(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw >= 1 else None
    s = str(raw or "").strip()
    if not s.isdigit():
        return None
    value = int(s)
    return value if value >= 1 else None
