from __future__ import annotations

from pathlib import Path

import pytest

from rebindkit.actions import InMemoryActionMaps
from rebindkit.bindings.models import BindingSlot
from rebindkit.config import RebindConfig
from rebindkit.context import InputContext
from rebindkit.events import EventBus, EventType
from rebindkit.exceptions import InvariantViolation

from conftest import ACTION_MAPS

JUMP = BindingSlot("Gameplay", "Jump")


def test_first_run_captures_defaults(context):
    assert context.paths.defaults_file.exists()
    assert context.paths.key_file.exists()
    assert not context.paths.settings_file.exists()
    assert context.defaults.defaults.find(JUMP).path == "<Keyboard>/space"
    assert context.store.find(JUMP).path == "<Keyboard>/space"
    assert not context.store.dirty
    assert not context.orchestrator.auto_save
    assert not context.recovered


def test_saved_keybinds_survive_restart(context, data_dir: Path):
    context.orchestrator.toggle_auto_save()
    context.orchestrator.assign(JUMP, "<Keyboard>/k")

    fresh_maps = InMemoryActionMaps(ACTION_MAPS)
    with InputContext.bootstrap(fresh_maps, config=RebindConfig(), data_dir=data_dir) as again:
        assert again.orchestrator.auto_save
        assert again.store.find(JUMP).path == "<Keyboard>/k"
        assert fresh_maps.bindings("Gameplay", "Jump")[0].effective_path == "<Keyboard>/k"
        # Defaults were not touched by the rebind
        assert again.defaults.defaults.find(JUMP).path == "<Keyboard>/space"


def test_corrupt_settings_are_recovered(context, data_dir: Path):
    context.paths.settings_file.write_bytes(b"garbage")
    bus = EventBus()
    seen = []
    bus.subscribe(EventType.SETTINGS_RECOVERED, lambda e: seen.append(e.payload))

    again = InputContext.bootstrap(InMemoryActionMaps(ACTION_MAPS), config=RebindConfig(), data_dir=data_dir, bus=bus)
    assert again.recovered
    assert again.store.find(JUMP).path == "<Keyboard>/space"
    assert seen == [{"path": str(context.paths.settings_file)}]


def test_missing_action_maps_is_fatal(data_dir: Path):
    with pytest.raises(InvariantViolation):
        InputContext.bootstrap(None, config=RebindConfig(), data_dir=data_dir)


def test_close_cancels_listening_session(context):
    session = context.orchestrator.start_rebind(JUMP)
    context.close()
    assert not session.listening
    assert context.actions.is_enabled("Gameplay", "Jump")


def test_data_dir_from_environment(action_maps, tmp_path: Path, monkeypatch):
    monkeypatch.setenv("REBINDKIT_DATA_DIR", str(tmp_path / "env"))
    ctx = InputContext.bootstrap(action_maps, config=RebindConfig())
    assert ctx.paths.defaults_file == (tmp_path / "env").resolve() / "Settings" / "DefaultKeybinds.star"
    assert ctx.paths.defaults_file.exists()
