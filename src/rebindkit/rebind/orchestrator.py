from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from ..actions.provider import ActionMapProvider, current_path, resolve_binding_index
from ..bindings.models import BindingSlot, KeybindCollection, KeybindRecord
from ..bindings.paths import human_label
from ..bindings.store import KeybindStore
from ..bindings.validator import Rejected, ReservedSet, Verdict, can_assign, collect_reserved
from ..config import RebindConfig
from ..events import Event, EventBus, EventType
from ..exceptions import PersistenceError
from ..persistence.storage import DefaultsStore, KeybindSettings, SettingsStore
from .session import REASON_SUPERSEDED, RebindSession, RebindState
from .slots import ActionMapSlots, SlotCatalog, SlotEntry

logger = logging.getLogger(__name__)


class RebindOrchestrator:
    """Front door for the keybind menu.

    Owns at most one listening :class:`RebindSession`, validates candidates
    against the store and the reserved paths, commits into the store and the
    action maps, and handles reset, autosave and saving. Notifications go out
    on the injected :class:`EventBus`.
    """

    def __init__(
        self,
        actions: ActionMapProvider,
        store: KeybindStore,
        defaults: DefaultsStore,
        settings: SettingsStore,
        *,
        bus: EventBus,
        config: Optional[RebindConfig] = None,
        auto_save: bool = False,
    ) -> None:
        self.actions = actions
        self.store = store
        self.defaults = defaults
        self.settings = settings
        self.bus = bus
        self.config = config or RebindConfig()
        self._auto_save = auto_save
        self._catalog = SlotCatalog(
            actions,
            composite_actions=self.config.composite_actions,
            excluded_actions=self.config.excluded_actions,
        )
        self._session: Optional[RebindSession] = None
        self._superseding = False
        self._active_map: Optional[str] = None

        maps = self._catalog.action_maps
        if len(maps) == 1:
            self.select_action_map(maps[0])

    # ---------- Action maps ----------
    @property
    def action_maps(self) -> List[str]:
        return self._catalog.action_maps

    @property
    def active_map(self) -> Optional[str]:
        return self._active_map

    def select_action_map(self, action_map: str) -> ActionMapSlots:
        if action_map not in self._catalog.action_maps:
            raise KeyError(f"Unknown action map '{action_map}'")
        slots = self._catalog.for_map(action_map)
        if action_map != self._active_map:
            self.cancel_rebind()
            self._active_map = action_map
            logger.debug("Showing %d slots for action map '%s'", len(slots.entries), action_map)
        return slots

    @property
    def visible_entries(self) -> List[SlotEntry]:
        if self._active_map is None:
            return []
        return list(self._catalog.for_map(self._active_map).entries)

    @property
    def visible_slots(self) -> List[BindingSlot]:
        return [e.slot for e in self.visible_entries]

    def all_entries(self) -> List[SlotEntry]:
        return self._catalog.entries()

    # ---------- Lookup ----------
    def binding_for(self, slot: BindingSlot) -> Optional[str]:
        record = self.store.find(slot)
        if record is not None:
            return record.path
        return current_path(self.actions, slot)

    def label_for(self, slot: BindingSlot) -> str:
        return human_label(self.binding_for(slot))

    def get_key(self, action_name: str) -> str:
        """Readable first simple binding of ``action_name`` in any action map."""
        for action_map in self.actions.action_maps():
            if action_name not in self.actions.actions(action_map):
                continue
            path = current_path(self.actions, BindingSlot(action_map, action_name))
            if path is not None:
                return human_label(path)
        logger.warning("No binding found for action '%s'", action_name)
        return ""

    # ---------- Validation ----------
    def reserved_for(self, slot: BindingSlot) -> ReservedSet:
        return collect_reserved(self.actions, self.config.reserved_actions, skip=slot)

    def can_assign(self, candidate: str, slot: BindingSlot) -> Verdict:
        return can_assign(candidate, slot, self.reserved_for(slot), self.store.to_collection())

    # ---------- Interactive rebinding ----------
    @property
    def active_session(self) -> Optional[RebindSession]:
        return self._session

    def start_rebind(self, slot: BindingSlot, *, timeout: Optional[float] = None) -> Optional[RebindSession]:
        """Begin listening for a new binding for ``slot``.

        A session that is still listening is canceled first. Returns None when
        the slot has no bindable entry.
        """
        if self._superseding:
            logger.warning("Ignoring rebind of %s requested while another rebind is being replaced", slot)
            return None
        self._supersede()

        if self.actions.current_map != slot.action_map:
            self.actions.switch_map(slot.action_map)

        if resolve_binding_index(self.actions, slot) is None:
            logger.warning("No valid binding found to rebind for %s", slot)
            return None

        session = RebindSession(
            slot,
            self.actions,
            validate=lambda path: self.can_assign(path, slot),
            commit=self._commit,
            previous=self.store.find(slot),
            excluded_controls=self.config.excluded_controls,
            debounce=self.config.match_debounce,
            timeout=timeout if timeout is not None else self.config.rebind_timeout,
            on_finished=self._on_session_finished,
        )
        self._session = session
        session.start()
        self.bus.publish(EventType.REBIND_STARTED, {"slot": slot})
        return session

    def _supersede(self) -> None:
        """Cancel the listening session, if any, before another one starts.

        Rebinds requested by cancel listeners while this runs are refused.
        """
        session = self._session
        if session is None or not session.listening:
            return
        logger.debug("Canceling rebind of %s", session.slot)
        self._superseding = True
        try:
            session.cancel(REASON_SUPERSEDED)
        finally:
            self._superseding = False

    def cancel_rebind(self) -> bool:
        if self._session is None:
            return False
        return self._session.cancel()

    def feed(self, control_path: str, magnitude: float = 1.0) -> bool:
        """Forward one polled input event to the listening session."""
        if self._session is None:
            return False
        return self._session.feed(control_path, magnitude)

    def update(self, dt: float) -> None:
        if self._session is not None:
            self._session.update(dt)

    def assign(self, slot: BindingSlot, path: str) -> KeybindRecord:
        """Validated non-interactive assignment; raises ValidationRejected."""
        if self._session is not None and self._session.slot == slot:
            self._supersede()
        if resolve_binding_index(self.actions, slot) is None:
            raise KeyError(f"Slot {slot} has no bindable entry")
        verdict = self.can_assign(path, slot)
        if isinstance(verdict, Rejected):
            self.bus.publish(EventType.REBIND_REJECTED, {"slot": slot, "reason": verdict.reason, "path": verdict.path})
            raise verdict.to_exception(slot)
        record = KeybindRecord(slot, verdict.path)
        self._commit(record)
        self._succeeded(record)
        return record

    def _commit(self, record: KeybindRecord) -> None:
        slot = record.slot
        index = resolve_binding_index(self.actions, slot)
        if index is None:
            raise KeyError(f"Slot {slot} has no bindable entry")
        # Provider first: a failed override leaves the store untouched.
        self.actions.apply_override(slot.action_map, slot.action, index, record.path)
        self.store.upsert(record)

    def _succeeded(self, record: KeybindRecord) -> None:
        label = human_label(record.path)
        logger.info("Rebind successful: %s => %s", record.slot, label)
        self.bus.publish(EventType.REBIND_SUCCEEDED, {"slot": record.slot, "label": label, "path": record.path})
        if self._auto_save:
            self.save_confirmed_changes()

    def _on_session_finished(self, session: RebindSession) -> None:
        if self._session is session:
            self._session = None
        if session.state is RebindState.COMMITTED:
            record = self.store.find(session.slot)
            assert record is not None
            self._succeeded(record)
        elif session.state is RebindState.REJECTED:
            self.bus.publish(
                EventType.REBIND_REJECTED,
                {"slot": session.slot, "reason": session.reason, "path": session.candidate},
            )
        else:
            self.bus.publish(EventType.REBIND_CANCELED, {"slot": session.slot, "reason": session.reason})

    # ---------- Reset ----------
    def _load_defaults(self) -> Optional[KeybindCollection]:
        try:
            return self.defaults.read()
        except PersistenceError as exc:
            logger.warning("Default keybind file not available: %s", exc)
            self.bus.publish(EventType.KEYBINDS_RESET_FAILED, {"reason": str(exc)})
            return None

    def _reset(self, slots: List[BindingSlot]) -> bool:
        defaults = self._load_defaults()
        if defaults is None:
            return False
        self.cancel_rebind()

        restored: List[Dict[str, Any]] = []
        for slot in slots:
            record = defaults.find(slot)
            if record is None:
                continue
            if resolve_binding_index(self.actions, slot) is None:
                continue
            self._commit(record)
            restored.append({"slot": slot, "label": human_label(record.path), "path": record.path})

        self.bus.publish(EventType.KEYBINDS_RESET, {"slots": restored})
        logger.info("Keybinds reset to default (%d slots).", len(restored))
        if restored and self._auto_save:
            self.save_confirmed_changes()
        return True

    def reset_all_to_default(self) -> bool:
        """Restore every visible slot from the defaults snapshot.

        Slots without a default record keep their binding. Returns False,
        with nothing changed, when the defaults cannot be read.
        """
        return self._reset(self.visible_slots)

    def reset_one(self, slot: BindingSlot) -> bool:
        return self._reset([slot])

    # ---------- Autosave / save ----------
    @property
    def auto_save(self) -> bool:
        return self._auto_save

    def toggle_auto_save(self) -> bool:
        """Flip autosave; the preference is written with the next save."""
        self._auto_save = not self._auto_save
        self.bus.publish(EventType.AUTOSAVE_CHANGED, {"enabled": self._auto_save})
        logger.debug("Keybind autosave %s", "on" if self._auto_save else "off")
        return self._auto_save

    def save_confirmed_changes(self) -> bool:
        """Persist the store and tell dispatchers to refresh their bindings."""
        snapshot = self.store.to_collection()
        try:
            self.settings.save(KeybindSettings(auto_save=self._auto_save, keybinds=snapshot))
        except PersistenceError:
            logger.exception("Failed to save keybinds")
            return False
        self.store.mark_saved()
        logger.info("Keybinds saved.")
        self.bus.publish(EventType.KEYBINDS_UPDATED, {"count": len(snapshot)})
        return True

    # ---------- Notification helpers ----------
    def on_rebind_succeeded(self, callback: Callable[[BindingSlot, str, str], None]) -> None:
        def _handler(event: Event) -> None:
            callback(event.payload["slot"], event.payload["label"], event.payload["path"])

        self.bus.subscribe(EventType.REBIND_SUCCEEDED, _handler)

    def on_rebind_rejected(self, callback: Callable[[BindingSlot, str], None]) -> None:
        def _handler(event: Event) -> None:
            callback(event.payload["slot"], event.payload["reason"])

        self.bus.subscribe(EventType.REBIND_REJECTED, _handler)

    def on_keybinds_updated(self, callback: Callable[[], None]) -> None:
        self.bus.subscribe(EventType.KEYBINDS_UPDATED, lambda event: callback())
