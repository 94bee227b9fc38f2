from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from platformdirs import PlatformDirs

from ..config import RebindConfig
from .fs import ensure_private_dir

logger = logging.getLogger(__name__)

APP_NAME = "rebindkit"

# Environment variable override (useful for tests and portable installs)
ENV_DATA_DIR = "REBINDKIT_DATA_DIR"


def get_data_root() -> Path:
    """Per-install storage root: $REBINDKIT_DATA_DIR or the platform user data dir."""
    override = os.getenv(ENV_DATA_DIR)
    if override:
        return Path(override).expanduser().resolve()
    return Path(PlatformDirs(appname=APP_NAME, appauthor=False).user_data_dir)


@dataclass(frozen=True)
class KeybindPaths:
    folder: Path
    defaults_file: Path
    settings_file: Path
    key_file: Path

    @classmethod
    def resolve(cls, config: RebindConfig, base_dir: Optional[Path] = None) -> "KeybindPaths":
        root = Path(base_dir) if base_dir is not None else get_data_root()
        folder = root / config.settings_folder
        return cls(
            folder=folder,
            defaults_file=folder / config.defaults_file,
            settings_file=folder / config.settings_file,
            key_file=root / "security" / "keybinds.key",
        )

    def ensure(self) -> None:
        ensure_private_dir(self.folder)
        logger.debug("Keybind storage folder: %s", self.folder)
