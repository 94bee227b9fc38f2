from __future__ import annotations

import json
import logging
from functools import lru_cache
from importlib import resources
from typing import Any, List

from jsonschema import Draft7Validator

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
_PKG = "rebindkit.persistence.schemas"
_SCHEMA_FILE = "keybinds.schema.json"


@lru_cache(maxsize=1)
def keybinds_validator() -> Draft7Validator:
    """Validator for persisted keybind payloads (bundled schema)."""
    text = resources.files(_PKG).joinpath(_SCHEMA_FILE).read_text(encoding="utf-8")
    schema = json.loads(text)
    Draft7Validator.check_schema(schema)
    return Draft7Validator(schema)


def schema_errors(payload: Any) -> List[str]:
    """Human-readable schema violations, empty when the payload is valid."""
    errors = sorted(keybinds_validator().iter_errors(payload), key=lambda e: [str(p) for p in e.path])
    messages = []
    for e in errors:
        path = "/".join(str(p) for p in e.path) or "<root>"
        messages.append(f"at {path}: {e.message}")
    return messages
