"""Interactive capture of one new binding.

A session is driven by the host's update loop: ``feed`` delivers input
events as they are polled, ``update`` advances time. Nothing blocks; while the
session listens only the slot's own action is disabled.

States::

    IDLE -> LISTENING -> MATCHED -> COMMITTED
                      -> REJECTED
                      -> CANCELED   (cancel, dispose, timeout)
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Iterable, Optional, Tuple

from ..actions.provider import ActionMapProvider
from ..bindings.models import BindingSlot, KeybindRecord
from ..bindings.paths import normalize
from ..bindings.validator import Rejected, Verdict

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.1
_EPSILON = 1e-9

REASON_CANCELED = "canceled"
REASON_TIMEOUT = "timeout"
REASON_DISPOSED = "disposed"
REASON_SUPERSEDED = "superseded"


class RebindState(Enum):
    IDLE = "idle"
    LISTENING = "listening"
    MATCHED = "matched"
    COMMITTED = "committed"
    CANCELED = "canceled"
    REJECTED = "rejected"

    @property
    def terminal(self) -> bool:
        return self in (RebindState.COMMITTED, RebindState.CANCELED, RebindState.REJECTED)


class RebindSession:
    """One rebind operation for one slot.

    Args:
        slot: The slot being rebound.
        actions: Action-map provider; the slot's action is disabled while listening.
        validate: Called with the candidate path; returns Allowed or Rejected.
        commit: Called with the new record once validation passed.
        previous: Record held by the slot before the rebind, kept for callers.
        excluded_controls: Paths (and their child controls) that never match.
        debounce: Seconds to wait for a stronger signal after the first match.
        timeout: Seconds of listening after which the session cancels itself.
        on_finished: Called exactly once when the session reaches a terminal state.
    """

    def __init__(
        self,
        slot: BindingSlot,
        actions: ActionMapProvider,
        *,
        validate: Callable[[str], Verdict],
        commit: Callable[[KeybindRecord], None],
        previous: Optional[KeybindRecord] = None,
        excluded_controls: Iterable[str] = (),
        debounce: float = DEFAULT_DEBOUNCE,
        timeout: Optional[float] = None,
        on_finished: Optional[Callable[["RebindSession"], None]] = None,
    ) -> None:
        if debounce < 0:
            raise ValueError("debounce must be >= 0")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive")
        self.slot = slot
        self.previous = previous
        self._actions = actions
        self._validate = validate
        self._commit = commit
        self._excluded: Tuple[str, ...] = tuple(normalize(p) for p in excluded_controls if p)
        self.debounce = debounce
        self.timeout = timeout
        self._on_finished = on_finished

        self.state = RebindState.IDLE
        self.candidate: Optional[str] = None
        self.verdict: Optional[Verdict] = None
        self.reason: Optional[str] = None
        self._magnitude = 0.0
        self._elapsed = 0.0
        self._window: Optional[float] = None

    # ---------- State ----------
    @property
    def listening(self) -> bool:
        return self.state is RebindState.LISTENING

    @property
    def finished(self) -> bool:
        return self.state.terminal

    @property
    def elapsed(self) -> float:
        return self._elapsed

    @property
    def pending(self) -> bool:
        """True while a candidate is waiting out the debounce window."""
        return self._window is not None

    # ---------- Lifecycle ----------
    def start(self) -> "RebindSession":
        if self.state is not RebindState.IDLE:
            raise RuntimeError(f"Rebind session for {self.slot} already {self.state.value}")
        self._actions.disable(self.slot.action_map, self.slot.action)
        self.state = RebindState.LISTENING
        logger.debug("Listening for new binding for %s", self.slot)
        return self

    def feed(self, control_path: str, magnitude: float = 1.0) -> bool:
        """Offer one input event. Returns True if it became the candidate."""
        if not self.listening:
            return False
        path = normalize(control_path)
        if not path or self._is_excluded(path):
            logger.debug("Ignoring excluded control %s", control_path)
            return False

        if self._window is None:
            self.candidate, self._magnitude, self._window = path, magnitude, 0.0
        elif magnitude > self._magnitude:
            self.candidate, self._magnitude = path, magnitude
        else:
            return False

        if self.debounce <= 0:
            self._resolve()
        return True

    def update(self, dt: float) -> None:
        """Advance session time by ``dt`` seconds."""
        if not self.listening:
            return
        self._elapsed += dt
        if self._window is not None:
            self._window += dt
            if self._window + _EPSILON >= self.debounce:
                self._resolve()
            return
        if self.timeout is not None and self._elapsed + _EPSILON >= self.timeout:
            logger.info("Rebind for %s timed out after %.2fs", self.slot, self._elapsed)
            self.cancel(REASON_TIMEOUT)

    def cancel(self, reason: str = REASON_CANCELED) -> bool:
        """Cancel while listening. Returns False if the session already ended."""
        if not self.listening:
            return False
        self._finish(RebindState.CANCELED, reason)
        return True

    def dispose(self) -> None:
        """Tear down; equivalent to cancel while listening, no-op afterwards."""
        self.cancel(REASON_DISPOSED)

    def __enter__(self) -> "RebindSession":
        if self.state is RebindState.IDLE:
            self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    # ---------- Internals ----------
    def _is_excluded(self, path: str) -> bool:
        return any(path == ex or path.startswith(ex + "/") for ex in self._excluded)

    def _resolve(self) -> None:
        assert self.candidate is not None
        self._window = None
        verdict = self._validate(self.candidate)
        self.verdict = verdict
        if isinstance(verdict, Rejected):
            logger.info("Rebind blocked for %s: %s (%s)", self.slot, self.candidate, verdict.reason)
            self._finish(RebindState.REJECTED, verdict.reason)
            return

        self.state = RebindState.MATCHED
        record = KeybindRecord(self.slot, verdict.path)
        try:
            self._commit(record)
        except Exception:
            logger.exception("Committing rebind for %s failed", self.slot)
            self._finish(RebindState.CANCELED, "commit failed")
            raise
        self._finish(RebindState.COMMITTED, None)

    def _finish(self, state: RebindState, reason: Optional[str]) -> None:
        self.state = state
        self.reason = reason
        self._window = None
        self._actions.enable(self.slot.action_map, self.slot.action)
        logger.debug("Rebind session for %s ended: %s", self.slot, state.value)
        if self._on_finished is not None:
            self._on_finished(self)


__all__ = [
    "DEFAULT_DEBOUNCE",
    "REASON_CANCELED",
    "REASON_DISPOSED",
    "REASON_SUPERSEDED",
    "REASON_TIMEOUT",
    "RebindSession",
    "RebindState",
]
