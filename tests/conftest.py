import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))


ACTION_MAPS = {
    "Gameplay": {
        "Move": {
            "composite": {
                "up": "<Keyboard>/w",
                "down": "<Keyboard>/s",
                "left": "<Keyboard>/a",
                "right": "<Keyboard>/d",
            }
        },
        "Jump": "<Keyboard>/space",
        "Fire": ["<Keyboard>/f", "<Gamepad>/rightTrigger"],
    },
    "UI": {
        "Confirm": "<Keyboard>/enter",
        "Cancel": "<Mouse>/leftButton",
    },
}


@pytest.fixture()
def action_maps():
    from rebindkit.actions import InMemoryActionMaps

    return InMemoryActionMaps(ACTION_MAPS)


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    d = tmp_path / "data"
    d.mkdir()
    return d


@pytest.fixture()
def context(action_maps, data_dir):
    from rebindkit.config import RebindConfig
    from rebindkit.context import InputContext

    ctx = InputContext.bootstrap(action_maps, config=RebindConfig(), data_dir=data_dir)
    yield ctx
    ctx.close()
