from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib.resources import files as resource_files
from typing import Any, List, Mapping, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

ActionRef = Tuple[str, str]


@dataclass(frozen=True)
class RebindConfig:
    """Tunables for rebinding and keybind persistence.

    - excluded_controls: paths (and their children) that never end a listening session.
    - match_debounce: seconds to keep listening after the first plausible match.
    - rebind_timeout: seconds before a session cancels itself, or None.
    - reserved_actions: (map, action) pairs whose composite parts are reserved paths.
    - composite_actions: (map, action) pairs exposed as one rebind slot per part.
    - excluded_actions: (map, action) pairs hidden from rebinding.
    """

    settings_folder: str = "Settings"
    defaults_file_name: str = "DefaultKeybinds"
    settings_file_name: str = "SettingsConfig"
    file_extension: str = ".star"
    excluded_controls: Tuple[str, ...] = ("<Mouse>/scroll",)
    match_debounce: float = 0.1
    rebind_timeout: Optional[float] = None
    reserved_actions: Tuple[ActionRef, ...] = (("Gameplay", "Move"),)
    composite_actions: Tuple[ActionRef, ...] = ()
    excluded_actions: Tuple[ActionRef, ...] = ()
    auto_save_default: bool = False

    @property
    def defaults_file(self) -> str:
        return self.defaults_file_name + self.file_extension

    @property
    def settings_file(self) -> str:
        return self.settings_file_name + self.file_extension

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "RebindConfig":
        """Build a config; missing keys fall back to defaults, bad types raise ValueError."""
        base = cls()
        known = {
            "settings_folder", "defaults_file_name", "settings_file_name", "file_extension",
            "excluded_controls", "match_debounce", "rebind_timeout", "reserved_actions",
            "composite_actions", "excluded_actions", "auto_save_default",
        }
        unknown = sorted(k for k in raw if k not in known)
        if unknown:
            logger.warning("Ignoring unknown rebind config keys: %s", unknown)

        extension = _string(raw, "file_extension", base.file_extension)
        if extension and not extension.startswith("."):
            extension = "." + extension

        debounce = _number(raw, "match_debounce", base.match_debounce)
        if debounce < 0:
            raise ValueError("match_debounce must be >= 0")
        timeout = raw.get("rebind_timeout", base.rebind_timeout)
        if timeout is not None:
            timeout = _number(raw, "rebind_timeout", 0.0)
            if timeout <= 0:
                raise ValueError("rebind_timeout must be positive or null")

        return cls(
            settings_folder=_string(raw, "settings_folder", base.settings_folder),
            defaults_file_name=_string(raw, "defaults_file_name", base.defaults_file_name),
            settings_file_name=_string(raw, "settings_file_name", base.settings_file_name),
            file_extension=extension,
            excluded_controls=tuple(_string_list(raw, "excluded_controls", list(base.excluded_controls))),
            match_debounce=debounce,
            rebind_timeout=timeout,
            reserved_actions=_action_refs(raw, "reserved_actions", base.reserved_actions),
            composite_actions=_action_refs(raw, "composite_actions", base.composite_actions),
            excluded_actions=_action_refs(raw, "excluded_actions", base.excluded_actions),
            auto_save_default=bool(raw.get("auto_save_default", base.auto_save_default)),
        )


def _string(raw: Mapping[str, Any], key: str, default: str) -> str:
    value = raw.get(key, default)
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {value!r}")
    return value


def _number(raw: Mapping[str, Any], key: str, default: float) -> float:
    value = raw.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number, got {value!r}")
    return float(value)


def _string_list(raw: Mapping[str, Any], key: str, default: List[str]) -> List[str]:
    value = raw.get(key, default)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{key} must be a list of strings")
    return value


def _action_refs(raw: Mapping[str, Any], key: str, default: Tuple[ActionRef, ...]) -> Tuple[ActionRef, ...]:
    if key not in raw:
        return default
    value = raw[key] or []
    if not isinstance(value, list):
        raise ValueError(f"{key} must be a list of {{map, action}} entries")
    refs: List[ActionRef] = []
    for entry in value:
        if isinstance(entry, str) and "/" in entry:
            map_name, _, action = entry.partition("/")
        elif isinstance(entry, Mapping) and isinstance(entry.get("map"), str) and isinstance(entry.get("action"), str):
            map_name, action = entry["map"], entry["action"]
        else:
            raise ValueError(f"Invalid {key} entry: {entry!r}")
        refs.append((map_name, action))
    return tuple(refs)


def load_rebind_config(path: Optional[str] = None) -> RebindConfig:
    """Load rebind configuration from YAML.

    If path is None, loads the embedded default resource at
    rebindkit/config/defaults.yaml. A user file only needs the keys it
    overrides.
    """
    data = resource_files("rebindkit.config").joinpath("defaults.yaml").read_text(encoding="utf-8")
    raw = dict(yaml.safe_load(data) or {})
    if path is None:
        logger.debug("Loaded embedded rebind config resource")
    else:
        with open(path, "r", encoding="utf-8") as f:
            user = yaml.safe_load(f) or {}
        if not isinstance(user, Mapping):
            raise ValueError(f"Rebind config {path} must be a mapping")
        raw.update(user)
        logger.debug("Loaded rebind config from path: %s", path)

    config = RebindConfig.from_dict(raw)
    logger.info(
        "Rebind config: debounce=%.3fs timeout=%s reserved=%s",
        config.match_debounce, config.rebind_timeout, list(config.reserved_actions),
    )
    return config
