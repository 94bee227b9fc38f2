"""Interface to the host's action-map system.

rebindkit never polls devices itself. The host exposes its action maps
through :class:`ActionMapProvider`; :class:`InMemoryActionMaps` is a complete
implementation driven by a plain definition (or a YAML file) that headless
tools and tests use.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Set, Tuple, Union

import yaml

from ..bindings.models import BindingSlot, KeybindCollection, KeybindRecord

logger = logging.getLogger(__name__)

COMPOSITE_KEY = "composite"
DEFAULT_COMPOSITE_NAME = "2DVector"


@dataclass(frozen=True)
class BindingInfo:
    """One entry of an action's binding list.

    Attributes:
        name: Composite part name ("up", "left", ...) or composite name; empty for plain bindings.
        path: Path from the action-map definition.
        override_path: Runtime override applied on top of ``path``, if any.
        is_composite: True for the composite root entry (it has no control of its own).
        is_part_of_composite: True for each part of a composite.
    """

    name: str
    path: str
    override_path: Optional[str] = None
    is_composite: bool = False
    is_part_of_composite: bool = False

    @property
    def effective_path(self) -> str:
        return self.override_path if self.override_path is not None else self.path

    @property
    def is_plain(self) -> bool:
        return not self.is_composite and not self.is_part_of_composite


class ActionMapProvider(Protocol):
    """Consumed interface of the host action-map collaborator."""

    def action_maps(self) -> List[str]: ...

    def actions(self, action_map: str) -> List[str]: ...

    def bindings(self, action_map: str, action: str) -> Sequence[BindingInfo]: ...

    def apply_override(self, action_map: str, action: str, index: int, path: str) -> None: ...

    def enable(self, action_map: str, action: str) -> None: ...

    def disable(self, action_map: str, action: str) -> None: ...

    def is_enabled(self, action_map: str, action: str) -> bool: ...

    @property
    def current_map(self) -> Optional[str]: ...

    def switch_map(self, action_map: str) -> None: ...


def first_plain_index(bindings: Sequence[BindingInfo]) -> Optional[int]:
    for i, binding in enumerate(bindings):
        if binding.is_plain:
            return i
    return None


def resolve_binding_index(actions: ActionMapProvider, slot: BindingSlot) -> Optional[int]:
    """Map a slot to an index in the action's binding list.

    Simple slots use the first plain binding; sub-part slots use the composite
    part with a matching name (case-insensitive).
    """
    bindings = actions.bindings(slot.action_map, slot.action)
    if slot.sub_part is None:
        return first_plain_index(bindings)
    wanted = slot.sub_part.lower()
    for i, binding in enumerate(bindings):
        if binding.is_part_of_composite and binding.name.lower() == wanted:
            return i
    return None


def current_path(actions: ActionMapProvider, slot: BindingSlot) -> Optional[str]:
    index = resolve_binding_index(actions, slot)
    if index is None:
        return None
    return actions.bindings(slot.action_map, slot.action)[index].effective_path


def capture_collection(actions: ActionMapProvider) -> KeybindCollection:
    """Snapshot the provider's currently configured bindings.

    One record per simple action (its first plain binding) and one per
    composite part.
    """
    records: List[KeybindRecord] = []
    for map_name in actions.action_maps():
        for action in actions.actions(map_name):
            bindings = actions.bindings(map_name, action)
            plain = first_plain_index(bindings)
            if plain is not None:
                records.append(KeybindRecord(BindingSlot(map_name, action), bindings[plain].effective_path))
            seen: Set[str] = set()
            for binding in bindings:
                if binding.is_part_of_composite and binding.name.lower() not in seen:
                    seen.add(binding.name.lower())
                    records.append(
                        KeybindRecord(BindingSlot(map_name, action, binding.name), binding.effective_path)
                    )
    return KeybindCollection(records)


def apply_collection(actions: ActionMapProvider, collection: KeybindCollection) -> int:
    """Apply every record as an override. Returns how many were applied.

    Records naming maps/actions the provider does not know are skipped.
    """
    applied = 0
    for record in collection:
        slot = record.slot
        try:
            index = resolve_binding_index(actions, slot)
        except KeyError:
            logger.debug("Skipping keybind for unknown action %s", slot)
            continue
        if index is None:
            logger.debug("No bindable entry for %s; skipping", slot)
            continue
        actions.apply_override(slot.action_map, slot.action, index, record.path)
        applied += 1
    return applied


class InMemoryActionMaps:
    """Dictionary-backed :class:`ActionMapProvider`.

    Definition format::

        {
            "Gameplay": {
                "Move": {"composite": {"up": "<Keyboard>/w", "down": "<Keyboard>/s"}},
                "Jump": "<Keyboard>/space",
                "Fire": ["<Mouse>/leftButton", "<Gamepad>/rightTrigger"],
            },
        }
    """

    def __init__(self, definition: Mapping[str, Mapping[str, Any]]) -> None:
        self._maps: Dict[str, Dict[str, List[BindingInfo]]] = {}
        for map_name, actions in definition.items():
            if not isinstance(actions, Mapping):
                raise ValueError(f"Action map '{map_name}' must be a mapping of actions")
            self._maps[str(map_name)] = {
                str(action): self._parse_bindings(map_name, action, spec) for action, spec in actions.items()
            }
        self._disabled: Set[Tuple[str, str]] = set()
        self._current: Optional[str] = next(iter(self._maps), None)

    @staticmethod
    def _parse_bindings(map_name: str, action: str, spec: Any) -> List[BindingInfo]:
        if isinstance(spec, str):
            return [BindingInfo(name="", path=spec)]
        if isinstance(spec, list):
            return [BindingInfo(name="", path=str(p)) for p in spec]
        if isinstance(spec, Mapping) and isinstance(spec.get(COMPOSITE_KEY), Mapping):
            name = str(spec.get("name", DEFAULT_COMPOSITE_NAME))
            entries = [BindingInfo(name=name, path=name, is_composite=True)]
            for part, path in spec[COMPOSITE_KEY].items():
                entries.append(BindingInfo(name=str(part), path=str(path), is_part_of_composite=True))
            extra = spec.get("bindings", [])
            if isinstance(extra, str):
                extra = [extra]
            entries.extend(BindingInfo(name="", path=str(p)) for p in extra)
            return entries
        raise ValueError(f"Unsupported binding definition for {map_name}/{action}: {spec!r}")

    def _action(self, action_map: str, action: str) -> List[BindingInfo]:
        try:
            return self._maps[action_map][action]
        except KeyError as exc:
            raise KeyError(f"Unknown action '{action_map}/{action}'") from exc

    def action_maps(self) -> List[str]:
        return list(self._maps)

    def actions(self, action_map: str) -> List[str]:
        try:
            return list(self._maps[action_map])
        except KeyError as exc:
            raise KeyError(f"Unknown action map '{action_map}'") from exc

    def bindings(self, action_map: str, action: str) -> Sequence[BindingInfo]:
        return tuple(self._action(action_map, action))

    def apply_override(self, action_map: str, action: str, index: int, path: str) -> None:
        entries = self._action(action_map, action)
        if not 0 <= index < len(entries):
            raise IndexError(f"Binding index {index} out of range for {action_map}/{action}")
        entries[index] = replace(entries[index], override_path=path)
        logger.debug("Override %s/%s[%d] -> %s", action_map, action, index, path)

    def enable(self, action_map: str, action: str) -> None:
        self._action(action_map, action)
        self._disabled.discard((action_map, action))

    def disable(self, action_map: str, action: str) -> None:
        self._action(action_map, action)
        self._disabled.add((action_map, action))

    def is_enabled(self, action_map: str, action: str) -> bool:
        self._action(action_map, action)
        return (action_map, action) not in self._disabled

    @property
    def current_map(self) -> Optional[str]:
        return self._current

    def switch_map(self, action_map: str) -> None:
        if action_map not in self._maps:
            raise KeyError(f"Unknown action map '{action_map}'")
        self._current = action_map

    def to_definition(self) -> Dict[str, Dict[str, Any]]:
        """Definition reflecting effective paths (overrides folded in)."""
        out: Dict[str, Dict[str, Any]] = {}
        for map_name, actions in self._maps.items():
            out[map_name] = {}
            for action, entries in actions.items():
                parts = {e.name: e.effective_path for e in entries if e.is_part_of_composite}
                plain = [e.effective_path for e in entries if e.is_plain]
                if parts:
                    spec: Dict[str, Any] = {COMPOSITE_KEY: parts}
                    if plain:
                        spec["bindings"] = plain
                    out[map_name][action] = spec
                elif len(plain) == 1:
                    out[map_name][action] = plain[0]
                else:
                    out[map_name][action] = plain
        return out


def load_action_maps(path: Union[str, Path]) -> InMemoryActionMaps:
    """Load an action-map definition from YAML (top-level ``maps`` key)."""
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    maps = raw.get("maps", raw) if isinstance(raw, Mapping) else None
    if not isinstance(maps, Mapping):
        raise ValueError(f"Action-map definition in {path} must be a mapping")
    logger.debug("Loaded %d action maps from %s", len(maps), path)
    return InMemoryActionMaps(maps)


__all__ = [
    "ActionMapProvider",
    "BindingInfo",
    "InMemoryActionMaps",
    "apply_collection",
    "capture_collection",
    "current_path",
    "first_plain_index",
    "load_action_maps",
    "resolve_binding_index",
]
