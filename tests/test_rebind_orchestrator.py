from __future__ import annotations

import pytest

from rebindkit.bindings.models import BindingSlot, KeybindCollection, KeybindRecord
from rebindkit.events import EventType
from rebindkit.exceptions import ValidationRejected
from rebindkit.persistence.storage import encode_collection
from rebindkit.rebind.session import RebindState

JUMP = BindingSlot("Gameplay", "Jump")
FIRE = BindingSlot("Gameplay", "Fire")
MOVE_UP = BindingSlot("Gameplay", "Move", "up")
CONFIRM = BindingSlot("UI", "Confirm")
CANCEL = BindingSlot("UI", "Cancel")


def _events(bus, *names):
    seen = []
    for name in names:
        bus.subscribe(name, lambda e: seen.append((e.name, e.payload)))
    return seen


def test_interactive_rebind_commits_and_notifies(context):
    orch = context.orchestrator
    succeeded = []
    orch.on_rebind_succeeded(lambda slot, label, path: succeeded.append((slot, label, path)))

    session = orch.start_rebind(JUMP)
    assert orch.active_session is session
    assert not context.actions.is_enabled("Gameplay", "Jump")

    orch.feed("/Keyboard/k")
    orch.update(0.1)

    assert session.state is RebindState.COMMITTED
    assert orch.active_session is None
    assert succeeded == [(JUMP, "K", "<Keyboard>/k")]
    assert context.store.find(JUMP).path == "<Keyboard>/k"
    assert context.actions.bindings("Gameplay", "Jump")[0].effective_path == "<Keyboard>/k"
    assert context.actions.is_enabled("Gameplay", "Jump")
    assert orch.get_key("Jump") == "K"


def test_confirm_cannot_take_cancel_button(context):
    orch = context.orchestrator
    rejected = []
    orch.on_rebind_rejected(lambda slot, reason: rejected.append((slot, reason)))

    verdict = orch.can_assign("<Mouse>/leftButton", CONFIRM)
    assert not verdict.allowed
    assert verdict.reason == "in use by UI/Cancel"

    session = orch.start_rebind(CONFIRM)
    orch.feed("<Mouse>/leftButton")
    orch.update(0.2)
    assert session.state is RebindState.REJECTED
    assert rejected == [(CONFIRM, "in use by UI/Cancel")]
    assert context.store.find(CONFIRM).path == "<Keyboard>/enter"
    assert context.actions.is_enabled("UI", "Confirm")


def test_reserved_paths_never_reach_the_store(context):
    orch = context.orchestrator
    with pytest.raises(ValidationRejected) as info:
        orch.assign(JUMP, "<Keyboard>/w")
    assert info.value.reason == "reserved"
    assert context.store.find(JUMP).path == "<Keyboard>/space"

    # The owning part can always take its key back, but not a sibling's
    assert orch.assign(MOVE_UP, "<Keyboard>/w").path == "<Keyboard>/w"
    with pytest.raises(ValidationRejected):
        orch.assign(MOVE_UP, "<Keyboard>/s")


def test_assigning_own_key_back_is_allowed(context):
    record = context.orchestrator.assign(CANCEL, "/Mouse/leftButton")
    assert record.path == "<Mouse>/leftButton"


def test_starting_a_rebind_cancels_the_listening_one(context):
    orch = context.orchestrator
    seen = _events(context.bus, EventType.REBIND_CANCELED, EventType.REBIND_STARTED)

    first = orch.start_rebind(JUMP)
    second = orch.start_rebind(FIRE)

    assert first.state is RebindState.CANCELED
    assert first.reason == "superseded"
    assert second.listening
    assert orch.active_session is second
    assert context.actions.is_enabled("Gameplay", "Jump")
    assert not context.actions.is_enabled("Gameplay", "Fire")
    assert context.store.find(JUMP).path == "<Keyboard>/space"
    assert [name for name, _ in seen] == [
        EventType.REBIND_STARTED,
        EventType.REBIND_CANCELED,
        EventType.REBIND_STARTED,
    ]


def test_cancel_rebind(context):
    orch = context.orchestrator
    assert not orch.cancel_rebind()
    session = orch.start_rebind(JUMP)
    assert orch.cancel_rebind()
    assert session.state is RebindState.CANCELED
    assert orch.active_session is None
    assert context.actions.is_enabled("Gameplay", "Jump")


def test_rebind_on_slot_without_binding(context):
    assert context.orchestrator.start_rebind(BindingSlot("Gameplay", "Move", "jump")) is None
    with pytest.raises(KeyError):
        context.orchestrator.start_rebind(BindingSlot("Gameplay", "Nope"))


def test_reset_one_restores_default(context):
    orch = context.orchestrator
    orch.assign(JUMP, "<Keyboard>/k")
    assert context.store.find(JUMP).path == "<Keyboard>/k"

    assert orch.reset_one(JUMP)
    assert context.store.find(JUMP).path == "<Keyboard>/space"
    assert context.actions.bindings("Gameplay", "Jump")[0].effective_path == "<Keyboard>/space"


def test_reset_all_leaves_slots_without_defaults(context):
    orch = context.orchestrator
    # Defaults that only know about Jump
    only_jump = KeybindCollection([KeybindRecord(JUMP, "<Keyboard>/space")])
    context.defaults.file.write(encode_collection(only_jump))

    orch.assign(JUMP, "<Keyboard>/k")
    orch.assign(FIRE, "<Keyboard>/g")
    seen = _events(context.bus, EventType.KEYBINDS_RESET)

    orch.select_action_map("Gameplay")
    assert orch.reset_all_to_default()

    assert context.store.find(JUMP).path == "<Keyboard>/space"
    assert context.store.find(FIRE).path == "<Keyboard>/g"
    assert [entry["slot"] for entry in seen[0][1]["slots"]] == [JUMP]


def test_reset_all_only_touches_visible_map(context):
    orch = context.orchestrator
    orch.assign(JUMP, "<Keyboard>/k")
    orch.assign(CONFIRM, "<Keyboard>/e")
    orch.select_action_map("UI")
    orch.reset_all_to_default()
    assert context.store.find(CONFIRM).path == "<Keyboard>/enter"
    assert context.store.find(JUMP).path == "<Keyboard>/k"


def test_reset_with_unreadable_defaults_changes_nothing(context):
    orch = context.orchestrator
    orch.assign(JUMP, "<Keyboard>/k")
    before = context.store.to_collection()
    revision = context.store.revision
    context.defaults.path.write_bytes(b"garbage")
    seen = _events(context.bus, EventType.KEYBINDS_RESET_FAILED, EventType.KEYBINDS_RESET)

    orch.select_action_map("Gameplay")
    assert not orch.reset_all_to_default()
    assert not orch.reset_one(JUMP)

    assert context.store.to_collection() == before
    assert context.store.revision == revision
    assert [name for name, _ in seen] == [EventType.KEYBINDS_RESET_FAILED] * 2


def test_reset_cancels_listening_session(context):
    orch = context.orchestrator
    session = orch.start_rebind(FIRE)
    orch.reset_one(JUMP)
    assert session.state is RebindState.CANCELED
    assert context.actions.is_enabled("Gameplay", "Fire")


def test_toggle_auto_save_does_not_save(context):
    orch = context.orchestrator
    seen = _events(context.bus, EventType.AUTOSAVE_CHANGED, EventType.KEYBINDS_UPDATED)
    assert orch.toggle_auto_save() is True
    assert orch.auto_save
    assert not context.paths.settings_file.exists()
    assert seen == [(EventType.AUTOSAVE_CHANGED, {"enabled": True})]


def test_auto_save_persists_each_rebind(context):
    orch = context.orchestrator
    updated = []
    orch.on_keybinds_updated(lambda: updated.append(True))
    orch.toggle_auto_save()

    orch.assign(JUMP, "<Keyboard>/k")
    assert context.paths.settings_file.exists()
    assert updated == [True]
    assert not context.store.dirty

    loaded = context.settings.load()
    assert loaded.auto_save is True
    assert loaded.keybinds.find(JUMP).path == "<Keyboard>/k"


def test_save_confirmed_changes_snapshots_store(context):
    orch = context.orchestrator
    seen = _events(context.bus, EventType.KEYBINDS_UPDATED)
    orch.assign(FIRE, "<Keyboard>/g")
    assert context.store.dirty
    assert not context.paths.settings_file.exists()

    assert orch.save_confirmed_changes()
    assert not context.store.dirty
    assert seen == [(EventType.KEYBINDS_UPDATED, {"count": len(context.store)})]
    assert context.settings.load().keybinds == context.store.to_collection()


def test_save_failure_is_reported(context, monkeypatch):
    from rebindkit.exceptions import PersistenceError

    def boom(settings):
        raise PersistenceError("disk full")

    monkeypatch.setattr(context.settings, "save", boom)
    context.orchestrator.assign(FIRE, "<Keyboard>/g")
    assert not context.orchestrator.save_confirmed_changes()
    assert context.store.dirty


def test_action_map_selection(context):
    orch = context.orchestrator
    assert orch.action_maps == ["Gameplay", "UI"]
    assert orch.active_map is None
    assert orch.visible_slots == []

    slots = orch.select_action_map("Gameplay")
    assert [e.slot for e in slots.actions] == [JUMP, FIRE]
    assert orch.visible_slots == [JUMP, FIRE]
    with pytest.raises(KeyError):
        orch.select_action_map("Vehicle")


def test_switching_map_cancels_session(context):
    orch = context.orchestrator
    orch.select_action_map("Gameplay")
    session = orch.start_rebind(JUMP)
    orch.select_action_map("UI")
    assert session.state is RebindState.CANCELED


def test_labels(context):
    orch = context.orchestrator
    assert orch.label_for(CANCEL) == "Left Button"
    assert orch.binding_for(MOVE_UP) == "<Keyboard>/w"
    assert orch.get_key("Nope") == ""


def test_rebind_requested_by_cancel_listener_is_refused(context):
    orch = context.orchestrator
    retried = []

    def retry(event):
        retried.append(orch.start_rebind(CONFIRM))

    context.bus.subscribe(EventType.REBIND_CANCELED, retry)

    orch.start_rebind(JUMP)
    fire = orch.start_rebind(FIRE)

    assert retried == [None]
    assert orch.active_session is fire
    assert context.actions.is_enabled("UI", "Confirm")
    assert context.actions.is_enabled("Gameplay", "Jump")

    # Explicit cancel is not a supersede: a listener may start a new rebind
    orch.cancel_rebind()
    confirm = retried[-1]
    assert confirm is not None and confirm.listening
    assert orch.active_session is confirm
    assert context.actions.is_enabled("Gameplay", "Fire")

    context.bus.unsubscribe(EventType.REBIND_CANCELED, retry)
    context.close()
    assert orch.active_session is None
    assert context.actions.is_enabled("UI", "Confirm")


def test_failed_override_leaves_store_unchanged(context, monkeypatch):
    orch = context.orchestrator

    def broken(action_map, action, index, path):
        raise RuntimeError("provider refused override")

    monkeypatch.setattr(context.actions, "apply_override", broken)
    session = orch.start_rebind(JUMP)
    orch.feed("<Keyboard>/k")
    with pytest.raises(RuntimeError):
        orch.update(0.1)

    assert session.state is RebindState.CANCELED
    assert session.reason == "commit failed"
    assert context.store.find(JUMP).path == "<Keyboard>/space"
    assert not context.store.dirty
    assert context.actions.bindings("Gameplay", "Jump")[0].effective_path == "<Keyboard>/space"
    assert context.actions.is_enabled("Gameplay", "Jump")


def test_reset_uses_in_memory_defaults_when_never_written(action_maps, data_dir, monkeypatch):
    from rebindkit.config import RebindConfig
    from rebindkit.context import InputContext

    def disk_full(path, data):
        raise OSError("disk full")

    monkeypatch.setattr("rebindkit.persistence.storage.atomic_write_bytes", disk_full)
    ctx = InputContext.bootstrap(action_maps, config=RebindConfig(), data_dir=data_dir)
    monkeypatch.undo()

    assert not ctx.defaults.persisted
    assert not ctx.paths.defaults_file.exists()
    ctx.orchestrator.assign(JUMP, "<Keyboard>/k")
    assert ctx.orchestrator.reset_one(JUMP)
    assert ctx.store.find(JUMP).path == "<Keyboard>/space"
