"""
Ticket Application Services
===========================

The ticket lifecycle engine: creation with agent assignment, role-scoped
reads, optimistic-locked updates, comments and listings.

Following SOLID principles:
- Single Responsibility: business rules live in the domain policies and the
  SLA evaluator; this layer orchestrates them
- Dependency Inversion: depends on repository interfaces, not SQLAlchemy
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from uuid import UUID, uuid4

from src.config import Priority, Role, TicketStatus
from src.core import (
    ConflictException,
    RepositoryException,
    ResourceNotFoundException,
    ValidationException,
)
from src.shared.infrastructure.clock import Clock, utc_now
from src.shared.infrastructure.logging import get_logger, log_latency
from src.sla.domain import SLAEvaluator
from src.tickets.domain import (
    AssignmentSelector,
    Comment,
    CommentDetails,
    Principal,
    Ticket,
    TicketCriteria,
    TicketDetails,
    TicketPage,
    VisibilityScope,
    permitted_changes,
)

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get_visible(self, ticket_id: str, scope: VisibilityScope) -> Optional[Ticket]:
        """Get ticket by id restricted to ``scope``."""

    @abstractmethod
    async def add(self, ticket: Ticket) -> Ticket:
        """Persist a new ticket."""

    @abstractmethod
    async def update_if_version(
        self,
        ticket_id: UUID,
        expected_version: int,
        changes: Mapping[str, Any]
    ) -> bool:
        """
        Apply ``changes`` only if the stored version still equals
        ``expected_version``. Returns whether a row was written.
        """

    @abstractmethod
    async def search(
        self,
        criteria: TicketCriteria,
        limit: int,
        offset: int
    ) -> Tuple[List[Ticket], int]:
        """Page of matching tickets, newest first, plus the total match count."""

    @abstractmethod
    async def count_open_by_assignee(self, agent_ids: Iterable[UUID]) -> Dict[UUID, int]:
        """Open and in-progress ticket count per agent id."""


class ICommentRepository(ABC):
    """Interface for comment data access."""

    @abstractmethod
    async def add(self, comment: Comment) -> Comment:
        """Persist a new comment."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: UUID, newest_first: bool) -> List[Comment]:
        """All comments of a ticket ordered by creation time."""


class IUserRepository(ABC):
    """Read-only access to the principal collection."""

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Optional[Principal]:
        """Get a principal by id."""

    @abstractmethod
    async def get_many(self, user_ids: Iterable[UUID]) -> Dict[UUID, Principal]:
        """Principals keyed by id; unknown ids are absent."""

    @abstractmethod
    async def list_active_agents(self) -> List[Principal]:
        """Active agents in store order."""


# ========== Application Services ==========

class TicketService:
    """
    Orchestrates ticket create/read/update/comment operations.

    Every read and write is scoped by the caller's role: users reach the
    tickets they filed, agents the tickets assigned to them, admins all.
    A ticket outside the caller's scope is reported exactly like a missing
    one.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        comment_repository: ICommentRepository,
        user_repository: IUserRepository,
        evaluator: Optional[SLAEvaluator] = None,
        clock: Clock = utc_now
    ):
        self._tickets = ticket_repository
        self._comments = comment_repository
        self._users = user_repository
        self._evaluator = evaluator or SLAEvaluator()
        self._clock = clock

    # ---------- Commands ----------

    async def create_ticket(
        self,
        principal: Principal,
        title: str,
        description: str,
        priority: Priority = Priority.MEDIUM
    ) -> TicketDetails:
        """
        File a new ticket and hand it to the least-loaded active agent.

        Returns:
            The stored ticket with creator and assignee identities
        """
        now = self._clock()
        assignee = await self._select_assignee()
        sla = self._evaluator.initial_state(now)

        ticket = Ticket(
            id=uuid4(),
            title=title,
            description=description,
            created_by=principal.id,
            assigned_to=assignee.id if assignee else None,
            status=TicketStatus.OPEN,
            priority=priority,
            sla_deadline=sla.deadline,
            is_sla_breached=sla.is_breached(now),
            version=1,
            created_at=now,
            updated_at=now,
        )
        ticket = await self._tickets.add(ticket)

        logger.info(
            "Ticket created",
            extra={
                "ticket_id": str(ticket.id),
                "created_by": str(principal.id),
                "assigned_to": str(ticket.assigned_to) if ticket.assigned_to else None,
                "priority": ticket.priority.value,
            }
        )

        return await self._with_identities(ticket)

    async def update_ticket(
        self,
        principal: Principal,
        ticket_id: str,
        patch: Mapping[str, Any]
    ) -> TicketDetails:
        """
        Apply a partial update under optimistic locking.

        Args:
            principal: Caller
            ticket_id: Ticket to change
            patch: Requested fields; ``version`` is the version the caller
                last read. Keys the caller's role may not write are dropped.

        Raises:
            ResourceNotFoundException: Ticket missing or out of scope
            ConflictException: ``version`` is stale, or another writer got
                there first
            ValidationException: ``assigned_to`` is not an agent
        """
        ticket = await self._get_visible_or_raise(principal, ticket_id)

        expected_version = patch.get("version")
        if expected_version is not None and expected_version != ticket.version:
            logger.info(
                "Stale ticket update rejected",
                extra={
                    "ticket_id": str(ticket.id),
                    "expected_version": expected_version,
                    "current_version": ticket.version,
                }
            )
            raise ConflictException("Ticket has been modified by another user")

        changes = permitted_changes(principal.role, patch)
        if changes.get("assigned_to") is not None:
            await self._ensure_agent(changes["assigned_to"])

        now = self._clock()
        new_status = changes.get("status", ticket.status)
        sla = SLAEvaluator.advance(ticket.sla_state, new_status, now)

        changes["is_sla_breached"] = sla.is_breached(now)
        changes["version"] = ticket.version + 1
        changes["updated_at"] = now
        if new_status == TicketStatus.RESOLVED and not ticket.is_resolved:
            changes["resolved_at"] = now
        elif new_status != TicketStatus.RESOLVED and ticket.is_resolved:
            changes["resolved_at"] = None

        written = await self._tickets.update_if_version(ticket.id, ticket.version, changes)
        if not written:
            logger.info(
                "Concurrent ticket update lost the version race",
                extra={"ticket_id": str(ticket.id), "version": ticket.version}
            )
            raise ConflictException("Ticket has been modified by another user")

        logger.info(
            "Ticket updated",
            extra={
                "ticket_id": str(ticket.id),
                "updated_by": str(principal.id),
                "fields": sorted(k for k in changes if k not in ("updated_at", "version")),
                "version": changes["version"],
            }
        )

        return await self._with_identities(ticket.with_changes(**changes))

    async def add_comment(
        self,
        principal: Principal,
        ticket_id: str,
        content: str,
        is_internal: bool = False
    ) -> CommentDetails:
        """Comment on a ticket the caller can see."""
        ticket = await self._get_visible_or_raise(principal, ticket_id)

        comment = await self._comments.add(Comment(
            id=uuid4(),
            ticket_id=ticket.id,
            author_id=principal.id,
            content=content,
            is_internal=is_internal,
            created_at=self._clock(),
        ))

        logger.info(
            "Comment added",
            extra={
                "ticket_id": str(ticket.id),
                "comment_id": str(comment.id),
                "is_internal": is_internal,
            }
        )

        return CommentDetails(comment=comment, author=principal.summary())

    # ---------- Queries ----------

    async def get_ticket(
        self,
        principal: Principal,
        ticket_id: str
    ) -> Tuple[TicketDetails, List[CommentDetails]]:
        """
        Fetch one ticket and its comments, oldest comment first.

        Internal comments are returned to every role that can see the ticket.
        """
        ticket = await self._get_visible_or_raise(principal, ticket_id)
        details = await self._with_identities(ticket)
        comments = await self._load_comments(ticket.id, newest_first=False)
        return details, comments

    async def list_tickets(
        self,
        principal: Principal,
        limit: int = 10,
        offset: int = 0,
        text: Optional[str] = None,
        status: Optional[TicketStatus] = None,
        priority: Optional[Priority] = None,
        assigned_to: Optional[UUID] = None,
        breached_only: bool = False
    ) -> TicketPage:
        """
        Page through the tickets visible to ``principal``, newest first.

        Each item carries its comments newest first. A ticket whose comments
        cannot be loaded is returned with an empty list.
        """
        if limit < 0 or offset < 0:
            raise ValidationException("limit and offset must be non-negative")

        criteria = TicketCriteria(
            scope=VisibilityScope.for_principal(principal),
            status=status,
            priority=priority,
            assigned_to=assigned_to,
            breached_only=breached_only,
            text=text or None,
        )

        with log_latency(logger, "ticket_search", role=principal.role.value):
            tickets, total = await self._tickets.search(criteria, limit, offset)

        identities = await self._users.get_many(self._identity_ids(tickets))
        items = []
        for ticket in tickets:
            details = self._attach(ticket, identities)
            details.comments = await self._load_comments(ticket.id, newest_first=True)
            items.append(details)

        next_offset = offset + limit if offset + limit < total else None
        return TicketPage(
            items=items,
            total=total,
            limit=limit,
            offset=offset,
            next_offset=next_offset,
        )

    # ---------- Helpers ----------

    async def _get_visible_or_raise(self, principal: Principal, ticket_id: str) -> Ticket:
        scope = VisibilityScope.for_principal(principal)
        ticket = await self._tickets.get_visible(ticket_id, scope)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return ticket

    async def _select_assignee(self) -> Optional[Principal]:
        agents = await self._users.list_active_agents()
        if not agents:
            return None
        loads = await self._tickets.count_open_by_assignee(a.id for a in agents)
        return AssignmentSelector.select(agents, loads)

    async def _ensure_agent(self, user_id: UUID) -> None:
        user = await self._users.get_by_id(user_id)
        if user is None or user.role != Role.AGENT:
            raise ValidationException(
                "assigned_to must reference an agent", field="assigned_to"
            )

    async def _load_comments(self, ticket_id: UUID, newest_first: bool) -> List[CommentDetails]:
        """
        Comments with author identities. Storage failures degrade to an
        empty list instead of failing the enclosing read.
        """
        try:
            comments = await self._comments.list_for_ticket(ticket_id, newest_first)
            authors = await self._users.get_many({c.author_id for c in comments})
        except RepositoryException as exc:
            logger.warning(
                "Comment population failed; returning no comments",
                extra={"ticket_id": str(ticket_id), "error_message": exc.message}
            )
            return []

        return [
            CommentDetails(
                comment=comment,
                author=authors[comment.author_id].summary() if comment.author_id in authors else None,
            )
            for comment in comments
        ]

    async def _with_identities(self, ticket: Ticket) -> TicketDetails:
        identities = await self._users.get_many(self._identity_ids([ticket]))
        return self._attach(ticket, identities)

    @staticmethod
    def _identity_ids(tickets: Iterable[Ticket]) -> set:
        ids = set()
        for ticket in tickets:
            ids.add(ticket.created_by)
            if ticket.assigned_to:
                ids.add(ticket.assigned_to)
        return ids

    @staticmethod
    def _attach(ticket: Ticket, identities: Mapping[UUID, Principal]) -> TicketDetails:
        creator = identities.get(ticket.created_by)
        assignee = identities.get(ticket.assigned_to) if ticket.assigned_to else None
        return TicketDetails(
            ticket=ticket,
            created_by=creator.summary() if creator else None,
            assigned_to=assignee.summary() if assignee else None,
        )
