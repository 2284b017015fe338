"""
Ticket Domain Entities
======================

Pure Python domain entities for the ticket lifecycle.

Following Domain-Driven Design principles, these entities contain
business state and rules and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from src.config import Priority, Role, TicketStatus
from src.sla.domain import SLAEvaluator, SLAState


@dataclass(frozen=True)
class IdentitySummary:
    """Public identity of a principal; never carries credential material."""
    id: UUID
    name: str
    email: str
    role: Role


@dataclass(frozen=True)
class Principal:
    """
    Authenticated actor performing an operation.

    Supplied by the authentication collaborator; the core trusts it once
    attached to a request.
    """
    id: UUID
    role: Role
    is_active: bool = True
    name: str = ""
    email: str = ""

    def summary(self) -> IdentitySummary:
        return IdentitySummary(id=self.id, name=self.name, email=self.email, role=self.role)


@dataclass
class Ticket:
    """
    Ticket entity representing a support request.

    ``is_sla_breached`` is persisted but derived: it is only ever written
    through the SLAEvaluator.
    """

    id: UUID
    title: str
    description: str
    created_by: UUID
    status: TicketStatus
    priority: Priority
    sla_deadline: datetime
    is_sla_breached: bool
    version: int
    created_at: datetime
    updated_at: datetime
    assigned_to: Optional[UUID] = None
    resolved_at: Optional[datetime] = None

    def __post_init__(self):
        if self.version < 1:
            raise ValueError("version starts at 1")
        if self.sla_deadline < self.created_at:
            raise ValueError("sla_deadline cannot be before created_at")

    @property
    def sla_state(self) -> SLAState:
        return SLAEvaluator.restore(self.status, self.sla_deadline, self.is_sla_breached)

    @property
    def is_resolved(self) -> bool:
        return self.status == TicketStatus.RESOLVED

    def with_changes(self, **changes) -> "Ticket":
        """Copy of the ticket with ``changes`` applied."""
        return replace(self, **changes)


@dataclass
class Comment:
    """Comment on a ticket. Immutable once written."""

    id: UUID
    ticket_id: UUID
    author_id: UUID
    content: str
    created_at: datetime
    is_internal: bool = False


@dataclass
class CommentDetails:
    """Comment enriched with its author's identity."""
    comment: Comment
    author: Optional[IdentitySummary] = None


@dataclass
class TicketDetails:
    """
    Ticket enriched for presentation.

    ``comments`` is None when the call site does not attach comments.
    """
    ticket: Ticket
    created_by: Optional[IdentitySummary] = None
    assigned_to: Optional[IdentitySummary] = None
    comments: Optional[List[CommentDetails]] = None


@dataclass
class TicketPage:
    """One page of a ticket listing."""
    items: List[TicketDetails]
    total: int
    limit: int
    offset: int
    next_offset: Optional[int] = field(default=None)
