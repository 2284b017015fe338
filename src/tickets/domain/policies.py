"""
Ticket Policies
===============

Role-based rules and the assignment strategy. Pure functions over domain
objects; no I/O.
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional
from uuid import UUID

from src.config import Priority, Role, TicketStatus
from src.tickets.domain.entities import Principal

_CONTENT_FIELDS = frozenset({"title", "description", "priority"})
_WORKFLOW_FIELDS = _CONTENT_FIELDS | frozenset({"status", "assigned_to"})

# Fields each role may change on an existing ticket
WRITABLE_FIELDS: Dict[Role, FrozenSet[str]] = {
    Role.USER: _CONTENT_FIELDS,
    Role.AGENT: _WORKFLOW_FIELDS,
    Role.ADMIN: _WORKFLOW_FIELDS,
}


def permitted_changes(role: Role, patch: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Keep only the keys ``role`` may write.

    Everything else is dropped silently, including immutable fields such as
    ``created_by`` or ``sla_deadline``.
    """
    allowed = WRITABLE_FIELDS.get(role, frozenset())
    return {key: value for key, value in patch.items() if key in allowed}


@dataclass(frozen=True)
class VisibilityScope:
    """Restriction a role places on which tickets a principal can reach."""
    created_by: Optional[UUID] = None
    assigned_to: Optional[UUID] = None

    @classmethod
    def for_principal(cls, principal: Principal) -> "VisibilityScope":
        if principal.role == Role.USER:
            return cls(created_by=principal.id)
        if principal.role == Role.AGENT:
            return cls(assigned_to=principal.id)
        return cls()


@dataclass(frozen=True)
class TicketCriteria:
    """
    Conjunctive ticket filter: the visibility scope ANDed with the caller's
    optional filters.
    """
    scope: VisibilityScope = VisibilityScope()
    status: Optional[TicketStatus] = None
    priority: Optional[Priority] = None
    assigned_to: Optional[UUID] = None
    breached_only: bool = False
    text: Optional[str] = None


class AssignmentSelector:
    """
    Picks the least-loaded agent for a new ticket.

    The load snapshot is taken per creation without any reservation, so two
    concurrent creations can land on the same agent.
    """

    @staticmethod
    def select(
        candidates: Iterable[Principal],
        loads: Mapping[UUID, int]
    ) -> Optional[Principal]:
        """
        Args:
            candidates: Active agents in store order
            loads: Open/in-progress ticket count per agent id; missing means 0

        Returns:
            The agent with the smallest load (first seen wins ties), or None
            when there are no candidates.
        """
        chosen: Optional[Principal] = None
        chosen_load = 0
        for agent in candidates:
            load = loads.get(agent.id, 0)
            if chosen is None or load < chosen_load:
                chosen, chosen_load = agent, load
        return chosen
