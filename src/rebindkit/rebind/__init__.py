"""Interactive rebinding: session state machine, slot catalog and orchestrator."""
from .orchestrator import RebindOrchestrator
from .session import RebindSession, RebindState
from .slots import ActionMapSlots, SlotCatalog, SlotEntry, friendly_part_name

__all__ = [
    "ActionMapSlots",
    "RebindOrchestrator",
    "RebindSession",
    "RebindState",
    "SlotCatalog",
    "SlotEntry",
    "friendly_part_name",
]
