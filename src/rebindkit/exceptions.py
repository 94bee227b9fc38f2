from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .bindings.models import BindingSlot


class RebindkitError(Exception):
    """Base exception for the rebindkit project."""


class ValidationRejected(RebindkitError):
    """Raised when a candidate binding cannot be assigned to a slot.

    Recoverable and user-facing; nothing has been mutated when this is raised.
    """

    def __init__(
        self,
        reason: str,
        slot: Optional["BindingSlot"] = None,
        conflict: Optional["BindingSlot"] = None,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.slot = slot
        self.conflict = conflict


class PersistenceError(RebindkitError):
    """Raised when keybind persistence (save/load) operations fail."""


class PersistenceNotFound(PersistenceError):
    """Raised when a keybind file does not exist yet (first run)."""


class PersistenceCorrupt(PersistenceError):
    """Raised when a keybind file cannot be decrypted, parsed or validated."""


class CipherError(RebindkitError):
    """Raised by a cipher when a payload cannot be decrypted."""


class InvariantViolation(RebindkitError):
    """Raised on programming/configuration defects (duplicate slots, missing components)."""
