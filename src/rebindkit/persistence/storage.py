"""Encrypted keybind files: the write-once defaults and the user settings."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..actions.provider import ActionMapProvider, apply_collection, capture_collection
from ..bindings.models import KeybindCollection
from ..exceptions import (
    CipherError,
    InvariantViolation,
    PersistenceCorrupt,
    PersistenceError,
    PersistenceNotFound,
)
from .crypto import Cipher
from .fs import atomic_write_bytes, canonical_dumps
from .schema import SCHEMA_VERSION, schema_errors

logger = logging.getLogger(__name__)


def encode_collection(collection: KeybindCollection, **preferences: Any) -> Dict[str, Any]:
    """Payload for a collection; preferences sit alongside the keybinds list."""
    payload: Dict[str, Any] = {"schema_version": SCHEMA_VERSION, "keybinds": collection.to_list()}
    payload.update(preferences)
    return payload


def decode_collection(payload: Dict[str, Any], *, source: Path) -> KeybindCollection:
    try:
        return KeybindCollection.from_list(payload["keybinds"])
    except (KeyError, TypeError, ValueError, InvariantViolation) as exc:
        logger.error("Invalid keybind data in %s: %s", source, exc)
        raise PersistenceCorrupt(f"Invalid keybind data in {source}: {exc}") from exc


class EncryptedJsonFile:
    """One encrypted JSON document on disk.

    Writes are atomic. Reads either return a schema-valid payload or raise
    PersistenceNotFound / PersistenceCorrupt; nothing half-read escapes.
    """

    def __init__(self, path: Path, cipher: Cipher) -> None:
        self.path = Path(path)
        self.cipher = cipher

    def exists(self) -> bool:
        return self.path.exists()

    def write(self, payload: Dict[str, Any]) -> None:
        data = self.cipher.encrypt(canonical_dumps(payload).encode("utf-8"))
        try:
            atomic_write_bytes(self.path, data)
        except OSError as exc:
            logger.error("Failed to write %s: %s", self.path, exc)
            raise PersistenceError(f"Failed to write {self.path}") from exc
        logger.debug("Wrote %s", self.path)

    def read(self) -> Dict[str, Any]:
        if not self.path.exists():
            raise PersistenceNotFound(f"{self.path} does not exist")
        try:
            raw = self.path.read_bytes()
        except OSError as exc:
            logger.error("Failed to read %s: %s", self.path, exc)
            raise PersistenceCorrupt(f"Unreadable file {self.path}") from exc
        try:
            payload = json.loads(self.cipher.decrypt(raw).decode("utf-8"))
        except (CipherError, ValueError) as exc:
            logger.error("Failed to decrypt/parse %s: %s", self.path, exc)
            raise PersistenceCorrupt(f"Corrupt file {self.path}") from exc
        errors = schema_errors(payload)
        if errors:
            logger.error("Schema validation failed for %s: %s", self.path, "; ".join(errors))
            raise PersistenceCorrupt(f"Schema validation failed for {self.path}")
        return payload


class DefaultsStore:
    """Write-once snapshot of the factory keybinds.

    First run captures whatever the action maps are configured with; later
    runs load the file and push it back into the action maps. Normal
    rebinding never touches this file.
    """

    def __init__(self, file: EncryptedJsonFile) -> None:
        self.file = file
        self._defaults: Optional[KeybindCollection] = None
        self._persisted = False

    @property
    def path(self) -> Path:
        return self.file.path

    @property
    def initialized(self) -> bool:
        return self._defaults is not None

    @property
    def defaults(self) -> Optional[KeybindCollection]:
        return self._defaults

    def initialize(self, actions: ActionMapProvider) -> KeybindCollection:
        try:
            collection = self._load()
        except PersistenceNotFound:
            collection = self._capture(actions)
            logger.info("Default keybinds captured from action maps.")
        except PersistenceCorrupt:
            logger.warning("Default keybinds unreadable at %s; regenerating from action maps", self.path)
            collection = self._capture(actions)
        else:
            self._persisted = True
            applied = apply_collection(actions, collection)
            logger.info("Default keybinds loaded from file (%d applied).", applied)
        self._defaults = collection
        return collection

    @property
    def persisted(self) -> bool:
        """False when the snapshot could not be written and lives in memory only."""
        return self._persisted

    def read(self) -> KeybindCollection:
        """Current defaults snapshot for a reset.

        Re-read from disk so a damaged file is noticed before anything is
        mutated; raises PersistenceNotFound/PersistenceCorrupt. A snapshot that
        was never written is served from memory.
        """
        if self._defaults is not None and not self._persisted:
            logger.debug("Serving in-memory default keybinds; %s was never written", self.path)
            return self._defaults
        return self._load()

    def _load(self) -> KeybindCollection:
        return decode_collection(self.file.read(), source=self.path)

    def _capture(self, actions: ActionMapProvider) -> KeybindCollection:
        collection = capture_collection(actions)
        try:
            self.file.write(encode_collection(collection))
        except PersistenceError:
            logger.warning("Default keybinds kept in memory only; %s was not written", self.path)
        else:
            self._persisted = True
        return collection


@dataclass
class KeybindSettings:
    """Binding-relevant slice of the user settings file."""

    auto_save: bool = False
    keybinds: Optional[KeybindCollection] = None
    recovered: bool = False


class SettingsStore:
    """The user's current keybinds plus keybind preferences."""

    def __init__(self, file: EncryptedJsonFile, *, auto_save_default: bool = False) -> None:
        self.file = file
        self.auto_save_default = auto_save_default

    @property
    def path(self) -> Path:
        return self.file.path

    def load(self) -> KeybindSettings:
        """Load settings; a missing or corrupt file yields fresh settings."""
        try:
            payload = self.file.read()
            keybinds = decode_collection(payload, source=self.path)
        except PersistenceNotFound:
            logger.info("No keybind settings at %s; using defaults", self.path)
            return KeybindSettings(auto_save=self.auto_save_default)
        except PersistenceCorrupt:
            logger.warning("Keybind settings at %s are corrupt; starting fresh", self.path)
            return KeybindSettings(auto_save=self.auto_save_default, recovered=True)
        auto_save = payload.get("keybind_auto_save", self.auto_save_default)
        logger.info("Keybind settings loaded from %s (%d keybinds)", self.path, len(keybinds))
        return KeybindSettings(auto_save=bool(auto_save), keybinds=keybinds)

    def save(self, settings: KeybindSettings) -> None:
        keybinds = settings.keybinds if settings.keybinds is not None else KeybindCollection()
        self.file.write(encode_collection(keybinds, keybind_auto_save=settings.auto_save))
        logger.info("Keybind settings saved to %s", self.path)
