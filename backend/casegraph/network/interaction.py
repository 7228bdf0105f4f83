"""
Node-selection state machine for the "connect two entities" workflow.

    IDLE --enter()--> SELECTING --toggle x2--> READY_TO_CONNECT
      ^                   |  ^                     |
      +-----cancel()------+  +----toggle(selected)-+
      +----------------reset() / cancel()----------+
"""
from enum import Enum
from typing import List, Optional, Tuple


class SelectionState(str, Enum):
    IDLE = "idle"
    SELECTING = "selecting"
    READY_TO_CONNECT = "ready_to_connect"


class ConnectionSelection:
    """Single-threaded UI selection state. Holds at most two node ids."""

    MAX_SELECTION = 2

    def __init__(self) -> None:
        self._selected: List[str] = []
        self._active = False

    @property
    def state(self) -> SelectionState:
        if not self._active:
            return SelectionState.IDLE
        if len(self._selected) == self.MAX_SELECTION:
            return SelectionState.READY_TO_CONNECT
        return SelectionState.SELECTING

    @property
    def selected(self) -> Tuple[str, ...]:
        return tuple(self._selected)

    @property
    def pair(self) -> Optional[Tuple[str, str]]:
        """(source, target) in click order once two nodes are chosen."""
        if self.state != SelectionState.READY_TO_CONNECT:
            return None
        return self._selected[0], self._selected[1]

    def enter(self) -> SelectionState:
        if not self._active:
            self._active = True
            self._selected = []
        return self.state

    def toggle(self, node_id: str) -> SelectionState:
        """Add or remove a node. Clicks are ignored when idle or already full."""
        if not self._active:
            return self.state
        if node_id in self._selected:
            self._selected.remove(node_id)
        elif len(self._selected) < self.MAX_SELECTION:
            self._selected.append(node_id)
        return self.state

    def cancel(self) -> SelectionState:
        self._selected = []
        self._active = False
        return self.state

    # A confirmed connect ends the workflow exactly like a cancel.
    reset = cancel
