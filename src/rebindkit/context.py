"""Composition root.

``InputContext.bootstrap`` wires the one live keybind system for a process:
storage paths, the defaults snapshot, the user's settings, the in-memory
store and the orchestrator. Hosts keep the returned context and pass it (or
its parts) to whoever needs it; nothing here is global.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .actions.provider import ActionMapProvider, apply_collection, capture_collection
from .bindings.store import KeybindStore
from .config import RebindConfig, load_rebind_config
from .events import EventBus, EventType
from .exceptions import InvariantViolation
from .persistence.crypto import Cipher, SealedCipher
from .persistence.paths import KeybindPaths
from .persistence.storage import DefaultsStore, EncryptedJsonFile, SettingsStore
from .rebind.orchestrator import RebindOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class InputContext:
    config: RebindConfig
    actions: ActionMapProvider
    paths: KeybindPaths
    bus: EventBus
    store: KeybindStore
    defaults: DefaultsStore
    settings: SettingsStore
    orchestrator: RebindOrchestrator
    recovered: bool = False

    @classmethod
    def bootstrap(
        cls,
        actions: ActionMapProvider,
        *,
        config: Optional[RebindConfig] = None,
        data_dir: Optional[Path] = None,
        cipher: Optional[Cipher] = None,
        bus: Optional[EventBus] = None,
    ) -> "InputContext":
        """Load (or create) persisted keybinds and build the orchestrator.

        Order: defaults are captured or applied first, then the user's saved
        keybinds are applied on top, then the store is filled from the
        resulting action-map state.
        """
        if actions is None:
            raise InvariantViolation("An action-map provider is required to bootstrap keybinds")
        config = config or load_rebind_config()
        paths = KeybindPaths.resolve(config, data_dir)
        paths.ensure()
        cipher = cipher or SealedCipher.from_key_file(paths.key_file)
        bus = bus or EventBus()

        defaults = DefaultsStore(EncryptedJsonFile(paths.defaults_file, cipher))
        defaults.initialize(actions)

        settings = SettingsStore(EncryptedJsonFile(paths.settings_file, cipher), auto_save_default=config.auto_save_default)
        loaded = settings.load()
        if loaded.keybinds is not None:
            applied = apply_collection(actions, loaded.keybinds)
            logger.debug("Applied %d saved keybinds", applied)

        store = KeybindStore(capture_collection(actions))
        store.mark_saved()

        orchestrator = RebindOrchestrator(
            actions, store, defaults, settings, bus=bus, config=config, auto_save=loaded.auto_save
        )
        if loaded.recovered:
            bus.publish(EventType.SETTINGS_RECOVERED, {"path": str(paths.settings_file)})
        logger.info("Keybinds ready (%d slots, autosave=%s)", len(store), loaded.auto_save)
        return cls(
            config=config,
            actions=actions,
            paths=paths,
            bus=bus,
            store=store,
            defaults=defaults,
            settings=settings,
            orchestrator=orchestrator,
            recovered=loaded.recovered,
        )

    def close(self) -> None:
        """Cancel any listening session so no action stays disabled."""
        self.orchestrator.cancel_rebind()

    def __enter__(self) -> "InputContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
