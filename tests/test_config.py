import logging
from pathlib import Path

import pytest

from rebindkit.config import RebindConfig, load_rebind_config


def test_embedded_defaults():
    config = load_rebind_config()
    assert config == RebindConfig()
    assert config.defaults_file == "DefaultKeybinds.star"
    assert config.settings_file == "SettingsConfig.star"
    assert config.excluded_controls == ("<Mouse>/scroll",)
    assert config.match_debounce == pytest.approx(0.1)
    assert config.rebind_timeout is None
    assert config.reserved_actions == (("Gameplay", "Move"),)


def test_user_file_overrides_only_given_keys(tmp_path: Path):
    path = tmp_path / "rebind.yaml"
    path.write_text(
        "file_extension: dat\n"
        "rebind_timeout: 5\n"
        "composite_actions: [Gameplay/Move]\n"
        "reserved_actions: []\n",
        encoding="utf-8",
    )
    config = load_rebind_config(str(path))
    assert config.file_extension == ".dat"
    assert config.rebind_timeout == 5.0
    assert config.composite_actions == (("Gameplay", "Move"),)
    assert config.reserved_actions == ()
    assert config.match_debounce == pytest.approx(0.1)


@pytest.mark.parametrize(
    "raw",
    [
        {"match_debounce": -0.5},
        {"match_debounce": "fast"},
        {"rebind_timeout": 0},
        {"excluded_controls": "<Mouse>/scroll"},
        {"reserved_actions": [{"map": "Gameplay"}]},
    ],
)
def test_invalid_values_raise(raw):
    with pytest.raises(ValueError):
        RebindConfig.from_dict(raw)


def test_unknown_keys_warn(caplog):
    with caplog.at_level(logging.WARNING):
        RebindConfig.from_dict({"frobnicate": True})
    assert "frobnicate" in caplog.text
