"""
SLA Application Services
=========================

Admin reporting over ticket SLA outcomes and the periodic breach sweep.

Following SOLID principles:
- Single Responsibility: report aggregation lives in the SLA domain
  entities; this layer loads tickets and identities and hands them over
- Dependency Inversion: depend on repository interfaces, not SQLAlchemy
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from src.shared.infrastructure.clock import Clock, utc_now
from src.shared.infrastructure.logging import get_logger
from src.sla.domain import AgentPerformance, ResolvedTicketRecord, SLAReportSummary
from src.tickets.application import IUserRepository
from src.tickets.domain import Principal, Ticket, TicketDetails

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ISLATicketRepository(ABC):
    """Interface for the ticket reads and writes the SLA module needs."""

    @abstractmethod
    async def list_breached(self) -> List[Ticket]:
        """Tickets flagged as breached, earliest deadline first."""

    @abstractmethod
    async def list_resolved(self) -> List[Ticket]:
        """Resolved tickets, most recently resolved first."""

    @abstractmethod
    async def list_assigned_to(self, agent_ids: Iterable[UUID]) -> List[Ticket]:
        """Every ticket assigned to one of ``agent_ids``."""

    @abstractmethod
    async def flag_overdue(self, now: datetime) -> int:
        """
        Set the breach flag on unresolved, unflagged tickets whose deadline
        is before ``now``. Returns the number of tickets flagged.
        """


# ========== Application Services ==========

class SLAReportService:
    """Read-only SLA reports for administrators."""

    def __init__(
        self,
        ticket_repository: ISLATicketRepository,
        user_repository: IUserRepository
    ):
        self._tickets = ticket_repository
        self._users = user_repository

    async def breached_tickets(self) -> List[TicketDetails]:
        """All breached tickets with creator and assignee identities."""
        tickets = await self._tickets.list_breached()
        identities = await self._identities(tickets)

        return [
            TicketDetails(
                ticket=ticket,
                created_by=self._summary(identities, ticket.created_by),
                assigned_to=self._summary(identities, ticket.assigned_to),
            )
            for ticket in tickets
        ]

    async def agent_performance(self) -> List[AgentPerformance]:
        """
        Workload and SLA compliance per active agent.

        Agents without tickets are listed with zero counts.
        """
        agents = await self._users.list_active_agents()
        if not agents:
            return []

        performance: Dict[UUID, AgentPerformance] = {
            agent.id: AgentPerformance(agent_id=agent.id, agent_name=agent.name)
            for agent in agents
        }

        for ticket in await self._tickets.list_assigned_to(performance.keys()):
            stats = performance.get(ticket.assigned_to)
            if stats is None:
                continue
            resolution_time = None
            if ticket.is_resolved and ticket.resolved_at is not None:
                resolution_time = ticket.resolved_at - ticket.created_at
            stats.record(resolution_time, ticket.is_sla_breached)

        return list(performance.values())

    async def sla_report(self) -> Tuple[List[ResolvedTicketRecord], SLAReportSummary]:
        """Resolved tickets with their SLA outcome, plus totals."""
        tickets = [t for t in await self._tickets.list_resolved() if t.resolved_at is not None]
        identities = await self._identities(tickets)

        records = [
            ResolvedTicketRecord(
                ticket_id=ticket.id,
                title=ticket.title,
                created_at=ticket.created_at,
                resolved_at=ticket.resolved_at,
                sla_deadline=ticket.sla_deadline,
                is_sla_breached=ticket.is_sla_breached,
                created_by_name=self._name(identities, ticket.created_by),
                assigned_to_name=self._name(identities, ticket.assigned_to),
            )
            for ticket in tickets
        ]
        return records, SLAReportSummary.from_records(records)

    async def _identities(self, tickets: List[Ticket]) -> Dict[UUID, Principal]:
        ids = {t.created_by for t in tickets}
        ids.update(t.assigned_to for t in tickets if t.assigned_to)
        return await self._users.get_many(ids)

    @staticmethod
    def _summary(identities: Dict[UUID, Principal], user_id: Optional[UUID]):
        principal = identities.get(user_id) if user_id else None
        return principal.summary() if principal else None

    @staticmethod
    def _name(identities: Dict[UUID, Principal], user_id: Optional[UUID]) -> Optional[str]:
        principal = identities.get(user_id) if user_id else None
        return principal.name if principal else None


class SLASweepService:
    """
    Flags tickets that ran past their deadline without being touched.

    Request-time writes already recompute the flag; the sweep covers tickets
    nobody edits. It never touches resolved tickets and does not bump the
    ticket version.
    """

    def __init__(self, ticket_repository: ISLATicketRepository, clock: Clock = utc_now):
        self._tickets = ticket_repository
        self._clock = clock

    async def sweep(self) -> Tuple[int, datetime]:
        """Run one sweep. Returns (tickets flagged, evaluation time)."""
        now = self._clock()
        flagged = await self._tickets.flag_overdue(now)

        if flagged:
            logger.info(
                "SLA sweep flagged breached tickets",
                extra={"tickets_flagged": flagged, "evaluated_at": now.isoformat()}
            )
        else:
            logger.debug("SLA sweep found no new breaches")

        return flagged, now
