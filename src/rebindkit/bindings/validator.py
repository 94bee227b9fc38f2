"""Conflict detection for candidate bindings."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, FrozenSet, Iterable, Optional, Tuple, Union

from ..exceptions import ValidationRejected
from .models import BindingSlot, KeybindCollection
from .paths import normalize

if TYPE_CHECKING:  # pragma: no cover
    from ..actions.provider import ActionMapProvider

logger = logging.getLogger(__name__)

REASON_RESERVED = "reserved"

ReservedSet = FrozenSet[str]


@dataclass(frozen=True)
class Allowed:
    path: str
    allowed: bool = True


@dataclass(frozen=True)
class Rejected:
    reason: str
    path: str
    conflict: Optional[BindingSlot] = None
    allowed: bool = False

    def to_exception(self, slot: Optional[BindingSlot] = None) -> ValidationRejected:
        return ValidationRejected(self.reason, slot=slot, conflict=self.conflict)


Verdict = Union[Allowed, Rejected]


def can_assign(
    candidate: str,
    target: BindingSlot,
    reserved: Iterable[str],
    current: KeybindCollection,
) -> Verdict:
    """Decide whether ``candidate`` may be bound to ``target``.

    Reserved paths are rejected outright. Otherwise the first record (in
    stored order) on another slot holding the same normalized path wins as
    the reported conflict. The target's own record never conflicts, so
    re-assigning a slot its current key always succeeds.
    """
    path = normalize(candidate)
    reserved_set = {normalize(p) for p in reserved}
    if path in reserved_set:
        logger.warning("'%s' is reserved and cannot be bound to %s", candidate, target)
        return Rejected(REASON_RESERVED, path)

    for record in current:
        if record.slot == target:
            continue
        if normalize(record.path) == path:
            logger.warning("'%s' already in use by %s", candidate, record.slot)
            return Rejected(f"in use by {record.slot}", path, conflict=record.slot)

    return Allowed(path)


def collect_reserved(
    actions: "ActionMapProvider",
    reserved_actions: Iterable[Tuple[str, str]],
    *,
    skip: Optional[BindingSlot] = None,
) -> ReservedSet:
    """Normalized composite-part paths of the reserved actions.

    ``skip`` leaves out the binding held by the slot being rebound, so a slot
    that owns a reserved key can always take it back.
    """
    from ..actions.provider import resolve_binding_index

    skip_index: Optional[int] = None
    if skip is not None:
        try:
            skip_index = resolve_binding_index(actions, skip)
        except KeyError:
            skip_index = None

    reserved = set()
    for map_name, action in reserved_actions:
        try:
            bindings = actions.bindings(map_name, action)
        except KeyError:
            logger.warning("Reserved action %s/%s not found in action maps", map_name, action)
            continue
        for i, binding in enumerate(bindings):
            if not binding.is_part_of_composite:
                continue
            if skip is not None and (skip.action_map, skip.action) == (map_name, action) and i == skip_index:
                continue
            reserved.add(normalize(binding.effective_path))
    return frozenset(reserved)


__all__ = [
    "Allowed",
    "REASON_RESERVED",
    "Rejected",
    "ReservedSet",
    "Verdict",
    "can_assign",
    "collect_reserved",
]
