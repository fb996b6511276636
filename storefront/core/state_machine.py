from __future__ import annotations
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

logger = logging.getLogger(__name__)


class InvalidTransition(ValueError):
    """Target state is not reachable from the current one."""


class OptimisticLockError(Exception):
    """The row changed since the caller read it."""


HistoryEntry = Dict[str, Any]


class StateMachine:
    """
    Walks a string state through an adjacency map, appending one history
    entry per move and bumping `version` so concurrent writers can detect
    each other. Terminal states simply have no outgoing edges.

      sm = StateMachine(state="pending", allowed_transitions=Order.ALLOWED_TRANSITIONS)
      result = sm.apply("paid", actor="webhook", expected_version=order.version)
      order.status = result["state"]
      order.status_history = result["history"]
      order.version = result["version"]
    """

    def __init__(self, state: str, allowed_transitions: Dict[str, List[str]], version: int = 0,
                 history: Optional[List[HistoryEntry]] = None):
        self.state = state or ""
        self.allowed_transitions = allowed_transitions or {}
        self.version = int(version or 0)
        self.history: List[HistoryEntry] = list(history or [])

    def allowed_targets(self) -> List[str]:
        return list(self.allowed_transitions.get(self.state, []))

    def can_transition(self, to_state: str) -> bool:
        return to_state in self.allowed_targets()

    def apply(self, to_state: str, actor: Optional[str] = None, meta: Optional[Dict[str, Any]] = None,
              expected_version: Optional[int] = None) -> Dict[str, Any]:
        """Move to `to_state` and return the new {state, history, version}.

        Re-applying the current state is a no-op that leaves version untouched.
        """
        to_state = (to_state or "").strip()
        if not to_state:
            raise InvalidTransition("Empty target state")

        if expected_version is not None and int(expected_version) != int(self.version):
            raise OptimisticLockError(f"Version mismatch (expected {expected_version}, got {self.version})")

        # idempotent: already in the target state
        if to_state == self.state:
            return {"state": self.state, "history": list(self.history), "version": self.version}

        if not self.can_transition(to_state):
            raise InvalidTransition(f"Invalid transition: {self.state} -> {to_state}")

        entry: HistoryEntry = {
            "from": self.state,
            "to": to_state,
            "at": datetime.utcnow().isoformat(sep=" "),
            "actor": actor,
            "meta": dict(meta or {}),
        }
        logger.info("State transition %s -> %s (actor=%s)", self.state, to_state, actor)
        self.state = to_state
        self.history.append(entry)
        self.version = int(self.version) + 1

        return {"state": self.state, "history": list(self.history), "version": self.version}
