"""Action-map collaborator interface and an in-memory implementation."""
from .provider import (
    ActionMapProvider,
    BindingInfo,
    InMemoryActionMaps,
    apply_collection,
    capture_collection,
    current_path,
    load_action_maps,
    resolve_binding_index,
)

__all__ = [
    "ActionMapProvider",
    "BindingInfo",
    "InMemoryActionMaps",
    "apply_collection",
    "capture_collection",
    "current_path",
    "load_action_maps",
    "resolve_binding_index",
]
