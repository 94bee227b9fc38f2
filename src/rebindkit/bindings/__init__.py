"""Binding model: path normalization, records, conflict validation and the store."""
from .models import BindingSlot, KeybindCollection, KeybindRecord
from .paths import human_label, normalize
from .store import KeybindStore
from .validator import Allowed, Rejected, Verdict, can_assign, collect_reserved

__all__ = [
    "Allowed",
    "BindingSlot",
    "KeybindCollection",
    "KeybindRecord",
    "KeybindStore",
    "Rejected",
    "Verdict",
    "can_assign",
    "collect_reserved",
    "human_label",
    "normalize",
]
