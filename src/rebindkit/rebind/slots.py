from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..actions.provider import ActionMapProvider, first_plain_index
from ..bindings.models import BindingSlot

logger = logging.getLogger(__name__)

DIRECTION_LABELS = {
    "up": "Forward",
    "down": "Backward",
    "left": "Left",
    "right": "Right",
}


def friendly_part_name(part: str) -> str:
    """Display name for a composite part; unknown parts are returned unchanged."""
    return DIRECTION_LABELS.get(part.lower(), part)


@dataclass(frozen=True)
class SlotEntry:
    slot: BindingSlot
    label: str


@dataclass(frozen=True)
class ActionMapSlots:
    """Bindable slots of one action map, split the way the menu shows them."""

    action_map: str
    composite_parts: Tuple[SlotEntry, ...]
    actions: Tuple[SlotEntry, ...]

    @property
    def entries(self) -> Tuple[SlotEntry, ...]:
        return self.composite_parts + self.actions

    @property
    def slots(self) -> List[BindingSlot]:
        return [e.slot for e in self.entries]


class SlotCatalog:
    """Builds and caches the bindable slots per action map."""

    def __init__(
        self,
        actions: ActionMapProvider,
        *,
        composite_actions: Iterable[Tuple[str, str]] = (),
        excluded_actions: Iterable[Tuple[str, str]] = (),
    ) -> None:
        self._actions = actions
        self._composite: Set[Tuple[str, str]] = set(composite_actions)
        self._excluded: Set[Tuple[str, str]] = set(excluded_actions)
        self._cache: Dict[str, ActionMapSlots] = {}

    @property
    def action_maps(self) -> List[str]:
        return self._actions.action_maps()

    def for_map(self, action_map: str) -> ActionMapSlots:
        cached = self._cache.get(action_map)
        if cached is None:
            cached = self._build(action_map)
            self._cache[action_map] = cached
        return cached

    def entries(self) -> List[SlotEntry]:
        out: List[SlotEntry] = []
        for action_map in self.action_maps:
            out.extend(self.for_map(action_map).entries)
        return out

    def find(self, slot: BindingSlot) -> Optional[SlotEntry]:
        try:
            entries = self.for_map(slot.action_map).entries
        except KeyError:
            return None
        for entry in entries:
            if entry.slot == slot:
                return entry
        return None

    def _build(self, action_map: str) -> ActionMapSlots:
        parts: List[SlotEntry] = []
        simple: List[SlotEntry] = []
        for action in self._actions.actions(action_map):
            key = (action_map, action)
            if key in self._excluded:
                continue
            bindings = self._actions.bindings(action_map, action)
            if key in self._composite:
                for binding in bindings:
                    if binding.is_part_of_composite:
                        parts.append(SlotEntry(BindingSlot(action_map, action, binding.name), friendly_part_name(binding.name)))
                continue
            if first_plain_index(bindings) is None:
                logger.debug("Action %s/%s has no plain binding; not rebindable", action_map, action)
                continue
            simple.append(SlotEntry(BindingSlot(action_map, action), action))
        logger.debug("Built %d composite and %d simple slots for '%s'", len(parts), len(simple), action_map)
        return ActionMapSlots(action_map, tuple(parts), tuple(simple))
