"""Persistence layer: storage paths, atomic encrypted files and keybind stores."""
from .crypto import Cipher, KeyManager, SealedCipher
from .paths import KeybindPaths, get_data_root
from .storage import DefaultsStore, EncryptedJsonFile, KeybindSettings, SettingsStore

__all__ = [
    "Cipher",
    "DefaultsStore",
    "EncryptedJsonFile",
    "KeyManager",
    "KeybindPaths",
    "KeybindSettings",
    "SealedCipher",
    "SettingsStore",
    "get_data_root",
]
