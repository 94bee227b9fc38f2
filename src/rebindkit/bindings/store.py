from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional

from ..exceptions import InvariantViolation
from .models import BindingSlot, KeybindCollection, KeybindRecord
from .paths import normalize

logger = logging.getLogger(__name__)


class KeybindStore:
    """In-memory "current settings" keybinds.

    Holds one record per slot in insertion order. Every mutation bumps
    ``revision``; ``dirty`` compares it against the revision last marked as
    saved.
    """

    def __init__(self, collection: Optional[KeybindCollection] = None) -> None:
        self._records: List[KeybindRecord] = []
        self._revision = 0
        self._saved_revision = 0
        if collection is not None:
            self._records = list(collection)
            self._check_invariant()

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def dirty(self) -> bool:
        return self._revision != self._saved_revision

    def mark_saved(self) -> None:
        self._saved_revision = self._revision

    def find(self, slot: BindingSlot) -> Optional[KeybindRecord]:
        for record in self._records:
            if record.slot == slot:
                return record
        return None

    def upsert(self, record: KeybindRecord) -> None:
        """Replace the record for ``record.slot`` or append it."""
        for i, existing in enumerate(self._records):
            if existing.slot == record.slot:
                self._records[i] = record
                break
        else:
            self._records.append(record)
        self._check_invariant()
        self._revision += 1
        logger.debug("Keybind %s -> %s", record.slot, record.path)

    def replace_all(self, collection: KeybindCollection) -> None:
        """Swap in a whole collection (reset, load-from-file)."""
        records = list(collection)
        self._check_invariant(records)
        self._records = records
        self._revision += 1
        logger.debug("Replaced keybind store with %d records", len(records))

    def to_collection(self) -> KeybindCollection:
        return KeybindCollection(self._records)

    def diff(self, defaults: KeybindCollection) -> List[KeybindRecord]:
        """Records whose path differs from ``defaults`` or that defaults lack."""
        changed: List[KeybindRecord] = []
        for record in self._records:
            default = defaults.find(record.slot)
            if default is None or normalize(default.path) != normalize(record.path):
                changed.append(record)
        return changed

    def _check_invariant(self, records: Optional[List[KeybindRecord]] = None) -> None:
        seen: Dict[BindingSlot, KeybindRecord] = {}
        for record in self._records if records is None else records:
            if record.slot in seen:
                raise InvariantViolation(f"Duplicate keybind for slot {record.slot} in store")
            seen[record.slot] = record

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[KeybindRecord]:
        return iter(list(self._records))

    def __contains__(self, slot: object) -> bool:
        return any(r.slot == slot for r in self._records)


__all__ = ["KeybindStore"]
