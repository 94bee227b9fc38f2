"""Binding path canonicalization and display helpers.

A binding path identifies one physical control as ``<Device>/control``. The
host input layer is not consistent about how it spells these paths: the same
key may arrive as ``<Keyboard>/k``, ``/Keyboard/k`` or ``Keyboard/k``. Every
comparison in rebindkit goes through :func:`normalize` first.
"""
from __future__ import annotations

import re
from typing import Optional

__all__ = ["normalize", "paths_equal", "device_of", "control_of", "human_label"]

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _split(raw: str) -> Optional[tuple[str, str]]:
    """Return ``(device, control)`` for a recognized path, else None."""
    body = raw.strip().lstrip("/")
    if body.startswith("<"):
        end = body.find(">")
        if end <= 1:
            return None
        device, control = body[1:end], body[end + 1 :]
    else:
        device, sep, control = body.partition("/")
        if not sep or not device:
            return None
        if "<" in device or ">" in device:
            return None
    device = device.strip()
    if not device:
        return None
    # Segments are trimmed; blank ones are dropped.
    segments = (segment.strip() for segment in control.split("/"))
    control = "/".join(segment for segment in segments if segment)
    return device, control


def normalize(raw: Optional[str]) -> str:
    """Canonicalize a binding path.

    ``/Keyboard/k``, ``Keyboard/k``, ``<Keyboard>k`` and ``<Keyboard>/k`` all
    become ``<Keyboard>/k``. Input without a device part is returned unchanged
    so that it still compares consistently to itself. Never raises.
    """
    if raw is None or not raw.strip():
        return ""
    parts = _split(raw)
    if parts is None:
        return raw
    device, control = parts
    if not control:
        return f"<{device}>"
    return f"<{device}>/{control}"


def paths_equal(left: Optional[str], right: Optional[str]) -> bool:
    return normalize(left) == normalize(right)


def device_of(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    parts = _split(path)
    return parts[0] if parts else None


def control_of(path: Optional[str]) -> str:
    if not path:
        return ""
    parts = _split(path)
    return parts[1] if parts else path


def _words(segment: str) -> str:
    spaced = _CAMEL_BOUNDARY.sub(" ", segment.replace("_", " "))
    return " ".join(word[:1].upper() + word[1:] for word in spaced.split())


def human_label(path: Optional[str]) -> str:
    """Readable name of the control with the device omitted.

    ``<Mouse>/leftButton`` -> ``Left Button``; ``<Gamepad>/leftStick/up`` ->
    ``Left Stick/Up``. Unrecognized paths are returned stripped.
    """
    if not path or not path.strip():
        return ""
    parts = _split(path)
    if parts is None:
        return path.strip()
    device, control = parts
    if not control:
        return _words(device)
    return "/".join(_words(segment) for segment in control.split("/"))
