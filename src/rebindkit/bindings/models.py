from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from ..exceptions import InvariantViolation


@dataclass(frozen=True)
class BindingSlot:
    """Address of one rebindable binding.

    Attributes:
        action_map: Name of the action map (e.g. "Gameplay").
        action: Name of the action inside the map (e.g. "Jump").
        sub_part: Composite part name (e.g. "up") or None for simple actions.
    """

    action_map: str
    action: str
    sub_part: Optional[str] = None

    @property
    def is_composite_part(self) -> bool:
        return self.sub_part is not None

    @classmethod
    def parse(cls, text: str) -> "BindingSlot":
        """Parse ``Map/Action`` or ``Map/Action/part``."""
        parts = [p.strip() for p in text.split("/")]
        if len(parts) not in (2, 3) or not all(parts):
            raise ValueError(f"Invalid slot '{text}'; expected Map/Action[/part]")
        return cls(*parts)

    def __str__(self) -> str:
        if self.sub_part is None:
            return f"{self.action_map}/{self.action}"
        return f"{self.action_map}/{self.action}/{self.sub_part}"


@dataclass(frozen=True)
class KeybindRecord:
    slot: BindingSlot
    path: str

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "actionMap": self.slot.action_map,
            "actionName": self.slot.action,
            "bindingPath": self.path,
        }
        if self.slot.sub_part is not None:
            data["subPart"] = self.slot.sub_part
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "KeybindRecord":
        try:
            action_map = data["actionMap"]
            action = data["actionName"]
            path = data["bindingPath"]
        except KeyError as exc:
            raise ValueError(f"Keybind record missing field {exc}") from exc
        sub_part = data.get("subPart")
        for name, value in (("actionMap", action_map), ("actionName", action), ("bindingPath", path)):
            if not isinstance(value, str):
                raise ValueError(f"Keybind record field '{name}' must be a string")
        if sub_part is not None and not isinstance(sub_part, str):
            raise ValueError("Keybind record field 'subPart' must be a string")
        return cls(BindingSlot(action_map, action, sub_part), path)


class KeybindCollection:
    """Immutable ordered list of keybind records, at most one per slot.

    Order carries no meaning but is preserved so that serialization is
    deterministic.
    """

    __slots__ = ("_records", "_index")

    def __init__(self, records: Iterable[KeybindRecord] = ()) -> None:
        ordered: List[KeybindRecord] = []
        index: Dict[BindingSlot, KeybindRecord] = {}
        for record in records:
            if record.slot in index:
                raise InvariantViolation(f"Duplicate keybind for slot {record.slot}")
            index[record.slot] = record
            ordered.append(record)
        self._records: Tuple[KeybindRecord, ...] = tuple(ordered)
        self._index = index

    def find(self, slot: BindingSlot) -> Optional[KeybindRecord]:
        return self._index.get(slot)

    @property
    def records(self) -> Tuple[KeybindRecord, ...]:
        return self._records

    def slots(self) -> List[BindingSlot]:
        return [r.slot for r in self._records]

    def pairs(self) -> Set[Tuple[BindingSlot, str]]:
        return {(r.slot, r.path) for r in self._records}

    def __iter__(self) -> Iterator[KeybindRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, slot: object) -> bool:
        return slot in self._index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeybindCollection):
            return NotImplemented
        return self._records == other._records

    def __hash__(self) -> int:
        return hash(self._records)

    def __repr__(self) -> str:
        return f"KeybindCollection({list(self._records)!r})"

    def to_list(self) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self._records]

    @classmethod
    def from_list(cls, items: Iterable[Mapping[str, Any]]) -> "KeybindCollection":
        return cls(KeybindRecord.from_dict(item) for item in items)


__all__ = ["BindingSlot", "KeybindRecord", "KeybindCollection"]
