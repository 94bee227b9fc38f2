"""Cipher seam for keybind files.

The file format only needs an ``encrypt(bytes) -> bytes`` / ``decrypt(bytes)
-> bytes`` pair. :class:`SealedCipher` is the default: an HMAC-SHA256 tagged,
base64 envelope keyed per install. It makes hand-edited or truncated files
fail loudly; it does not hide their contents. Inject a different
:class:`Cipher` when confidentiality matters.
"""
from __future__ import annotations

import base64
import binascii
import hmac
import logging
import os
from hashlib import sha256
from pathlib import Path
from typing import Protocol

from ..exceptions import CipherError
from .fs import atomic_write_bytes

logger = logging.getLogger(__name__)

KEY_SIZE = 32
_MAGIC = b"RBK1"
_TAG_SIZE = sha256().digest_size


class Cipher(Protocol):
    def encrypt(self, data: bytes) -> bytes: ...

    def decrypt(self, data: bytes) -> bytes: ...


class KeyManager:
    """Manages the per-install key used to seal keybind files."""

    def __init__(self, key_path: Path) -> None:
        self.key_path = Path(key_path)

    def get_or_create_key(self) -> bytes:
        if self.key_path.exists():
            try:
                key = self.key_path.read_bytes()
                if len(key) == KEY_SIZE:
                    return key
                logger.warning("Keybind key at %s has wrong size; regenerating.", self.key_path)
            except OSError:
                logger.warning("Failed to read keybind key; regenerating.", exc_info=True)
        key = os.urandom(KEY_SIZE)
        atomic_write_bytes(self.key_path, key)
        try:
            os.chmod(self.key_path, 0o600)
        except OSError:
            logger.debug("Could not chmod key file", exc_info=True)
        logger.info("Created keybind key at %s", self.key_path)
        return key


class SealedCipher:
    """HMAC-tagged base64 envelope: ``b64(MAGIC + tag + payload)``."""

    def __init__(self, key: bytes) -> None:
        if not key:
            raise ValueError("SealedCipher requires a non-empty key")
        self._key = key

    @classmethod
    def from_key_file(cls, key_path: Path) -> "SealedCipher":
        return cls(KeyManager(key_path).get_or_create_key())

    def _tag(self, payload: bytes) -> bytes:
        return hmac.new(self._key, payload, sha256).digest()

    def encrypt(self, data: bytes) -> bytes:
        return base64.b64encode(_MAGIC + self._tag(data) + data)

    def decrypt(self, data: bytes) -> bytes:
        try:
            raw = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise CipherError("Payload is not a sealed keybind envelope") from exc
        header = len(_MAGIC) + _TAG_SIZE
        if len(raw) < header or not raw.startswith(_MAGIC):
            raise CipherError("Sealed envelope header missing")
        tag, payload = raw[len(_MAGIC):header], raw[header:]
        if not hmac.compare_digest(tag, self._tag(payload)):
            raise CipherError("Sealed envelope failed verification")
        return payload
