"""
SLA Infrastructure Repositories
=================================

SQLAlchemy implementation of the SLA ticket repository. It reads and
writes the tickets module's tables; the SLA module owns no tables.
"""

from datetime import datetime
from typing import Iterable, List
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import TicketStatus
from src.infrastructure.database import translate_db_errors
from src.sla.application import ISLATicketRepository
from src.tickets.domain import Ticket
from src.tickets.infrastructure.models import TicketModel
from src.tickets.infrastructure.repositories import ticket_to_domain


class SQLAlchemySLATicketRepository(ISLATicketRepository):
    """SQLAlchemy implementation of the SLA ticket repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @translate_db_errors("load breached tickets")
    async def list_breached(self) -> List[Ticket]:
        stmt = (
            select(TicketModel)
            .where(TicketModel.is_sla_breached.is_(True))
            .order_by(TicketModel.sla_deadline.asc(), TicketModel.id.asc())
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [ticket_to_domain(m) for m in result.scalars().all()]

    @translate_db_errors("load resolved tickets")
    async def list_resolved(self) -> List[Ticket]:
        stmt = (
            select(TicketModel)
            .where(TicketModel.status == TicketStatus.RESOLVED.value)
            .order_by(TicketModel.resolved_at.desc(), TicketModel.id.asc())
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [ticket_to_domain(m) for m in result.scalars().all()]

    @translate_db_errors("load agent tickets")
    async def list_assigned_to(self, agent_ids: Iterable[UUID]) -> List[Ticket]:
        ids = list(agent_ids)
        if not ids:
            return []

        stmt = (
            select(TicketModel)
            .where(TicketModel.assigned_to.in_(ids))
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [ticket_to_domain(m) for m in result.scalars().all()]

    @translate_db_errors("flag overdue tickets")
    async def flag_overdue(self, now: datetime) -> int:
        # System write: version and updated_at stay as the last user edit left them
        stmt = (
            update(TicketModel)
            .where(
                TicketModel.status != TicketStatus.RESOLVED.value,
                TicketModel.is_sla_breached.is_(False),
                TicketModel.sla_deadline < now,
            )
            .values(is_sla_breached=True)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0
