"""
Assignment Ledger

Append-only record of assignment and completion events. Agent counters
are derived by replaying the ledger instead of being incremented in place,
so a duplicated event can never inflate them.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple

from orderdesk.models.domain import AssignmentEvent, CompletionEvent

logger = logging.getLogger(__name__)


class AssignmentLedger:
    """In-memory view of the assignment history"""

    def __init__(
        self,
        assignments: Optional[Iterable[AssignmentEvent]] = None,
        completions: Optional[Iterable[CompletionEvent]] = None
    ):
        self.assignments: List[AssignmentEvent] = list(assignments or [])
        self.completions: List[CompletionEvent] = list(completions or [])

    def has_assignment(self, order_id: str, agent_name: str) -> bool:
        return any(
            e.order_id == order_id and e.agent_name == agent_name
            for e in self.assignments
        )

    def has_completion(self, order_id: str, agent_name: str) -> bool:
        return any(
            e.order_id == order_id and e.agent_name == agent_name
            for e in self.completions
        )

    def record_assignment(
        self,
        order_id: str,
        agent_name: str,
        now: Optional[datetime] = None
    ) -> Tuple[AssignmentEvent, bool]:
        """
        Append an assignment event.

        Returns:
            The new event and whether it is the first for this (order, agent) pair
        """
        first = not self.has_assignment(order_id, agent_name)
        event = AssignmentEvent(
            order_id=order_id,
            agent_name=agent_name,
            assigned_at=now or datetime.now(timezone.utc)
        )
        self.assignments.append(event)
        logger.debug(f"Recorded assignment of {order_id} to {agent_name} (first={first})")
        return event, first

    def record_completion(
        self,
        order_id: str,
        agent_name: str,
        now: Optional[datetime] = None
    ) -> Optional[CompletionEvent]:
        """Append a completion event unless this agent already completed the order"""
        if self.has_completion(order_id, agent_name):
            return None
        event = CompletionEvent(
            order_id=order_id,
            agent_name=agent_name,
            completed_at=now or datetime.now(timezone.utc)
        )
        self.completions.append(event)
        logger.debug(f"Recorded completion of {order_id} by {agent_name}")
        return event

    def history(self, order_id: str) -> List[AssignmentEvent]:
        """Assignment events for one order, newest first"""
        events = [e for e in self.assignments if e.order_id == order_id]
        return sorted(events, key=lambda e: e.assigned_at, reverse=True)

    def counters(self) -> Dict[str, Tuple[int, int]]:
        """
        Replay the ledger into per-agent counters.

        Returns:
            agent name -> (completed_orders, total_orders)
        """
        assigned: Dict[str, Set[str]] = {}
        for e in self.assignments:
            assigned.setdefault(e.agent_name, set()).add(e.order_id)

        completed: Dict[str, Set[str]] = {}
        for e in self.completions:
            # a completion only counts against an order the agent was assigned
            if e.order_id in assigned.get(e.agent_name, set()):
                completed.setdefault(e.agent_name, set()).add(e.order_id)

        return {
            name: (len(completed.get(name, ())), len(order_ids))
            for name, order_ids in assigned.items()
        }

    def counters_for(self, agent_name: str) -> Tuple[int, int]:
        return self.counters().get(agent_name, (0, 0))
