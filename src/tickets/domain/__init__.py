"""
Tickets Domain Layer
====================

Contains:
- Entities: Principal, Ticket, Comment and their presentation aggregates
- Policies: role allow-lists, visibility scoping, assignment selection

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from src.tickets.domain.entities import (
    Comment,
    CommentDetails,
    IdentitySummary,
    Principal,
    Ticket,
    TicketDetails,
    TicketPage,
)
from src.tickets.domain.policies import (
    WRITABLE_FIELDS,
    AssignmentSelector,
    TicketCriteria,
    VisibilityScope,
    permitted_changes,
)

__all__ = [
    # Entities
    "Comment",
    "CommentDetails",
    "IdentitySummary",
    "Principal",
    "Ticket",
    "TicketDetails",
    "TicketPage",
    # Policies
    "WRITABLE_FIELDS",
    "AssignmentSelector",
    "TicketCriteria",
    "VisibilityScope",
    "permitted_changes",
]
