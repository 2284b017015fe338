"""
Ticket Infrastructure Repositories
==================================

Concrete implementations of the ticket repository interfaces using
SQLAlchemy. Rows are mapped to domain entities on the way out; driver
errors are translated to ``RepositoryException`` by ``translate_db_errors``.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import OPEN_STATUSES, Priority, Role, TicketStatus
from src.infrastructure.database import translate_db_errors
from src.shared.infrastructure.clock import ensure_utc
from src.tickets.application import ICommentRepository, ITicketRepository, IUserRepository
from src.tickets.domain import Comment, Principal, Ticket, TicketCriteria, VisibilityScope
from src.tickets.infrastructure.models import CommentModel, TicketModel, UserModel


def _parse_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _column_value(value: Any) -> Any:
    """Enums are stored by value in plain string columns."""
    return value.value if isinstance(value, Enum) else value


def ticket_to_domain(model: TicketModel) -> Ticket:
    return Ticket(
        id=model.id,
        title=model.title,
        description=model.description,
        created_by=model.created_by,
        assigned_to=model.assigned_to,
        status=TicketStatus(model.status),
        priority=Priority(model.priority),
        sla_deadline=ensure_utc(model.sla_deadline),
        is_sla_breached=model.is_sla_breached,
        version=model.version,
        created_at=ensure_utc(model.created_at),
        updated_at=ensure_utc(model.updated_at),
        resolved_at=ensure_utc(model.resolved_at),
    )


def user_to_domain(model: UserModel) -> Principal:
    return Principal(
        id=model.id,
        role=Role(model.role),
        is_active=model.is_active,
        name=model.name,
        email=model.email,
    )


def _scope_conditions(scope: VisibilityScope) -> list:
    conditions = []
    if scope.created_by is not None:
        conditions.append(TicketModel.created_by == scope.created_by)
    if scope.assigned_to is not None:
        conditions.append(TicketModel.assigned_to == scope.assigned_to)
    return conditions


def _criteria_conditions(criteria: TicketCriteria) -> list:
    conditions = _scope_conditions(criteria.scope)

    if criteria.status is not None:
        conditions.append(TicketModel.status == _column_value(criteria.status))
    if criteria.priority is not None:
        conditions.append(TicketModel.priority == _column_value(criteria.priority))
    if criteria.assigned_to is not None:
        conditions.append(TicketModel.assigned_to == criteria.assigned_to)
    if criteria.breached_only:
        conditions.append(TicketModel.is_sla_breached.is_(True))
    if criteria.text:
        conditions.append(or_(
            TicketModel.title.icontains(criteria.text, autoescape=True),
            TicketModel.description.icontains(criteria.text, autoescape=True),
        ))

    return conditions


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Updates go through a conditional ``UPDATE ... WHERE version = :expected``
    so the optimistic lock holds even when two requests read the same
    version.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    @translate_db_errors("load ticket")
    async def get_visible(self, ticket_id: str, scope: VisibilityScope) -> Optional[Ticket]:
        ticket_uuid = _parse_uuid(ticket_id)
        if ticket_uuid is None:
            return None

        stmt = (
            select(TicketModel)
            .where(TicketModel.id == ticket_uuid, *_scope_conditions(scope))
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return ticket_to_domain(model) if model else None

    @translate_db_errors("create ticket")
    async def add(self, ticket: Ticket) -> Ticket:
        model = TicketModel(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            created_by=ticket.created_by,
            assigned_to=ticket.assigned_to,
            status=_column_value(ticket.status),
            priority=_column_value(ticket.priority),
            sla_deadline=ticket.sla_deadline,
            is_sla_breached=ticket.is_sla_breached,
            resolved_at=ticket.resolved_at,
            version=ticket.version,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
        )

        self._session.add(model)
        await self._session.flush()

        return ticket

    @translate_db_errors("update ticket")
    async def update_if_version(
        self,
        ticket_id: UUID,
        expected_version: int,
        changes: Mapping[str, Any]
    ) -> bool:
        stmt = (
            update(TicketModel)
            .where(TicketModel.id == ticket_id, TicketModel.version == expected_version)
            .values({key: _column_value(value) for key, value in changes.items()})
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    @translate_db_errors("search tickets")
    async def search(
        self,
        criteria: TicketCriteria,
        limit: int,
        offset: int
    ) -> Tuple[List[Ticket], int]:
        conditions = _criteria_conditions(criteria)

        count_stmt = select(func.count()).select_from(TicketModel).where(*conditions)
        total = (await self._session.execute(count_stmt)).scalar_one()

        stmt = (
            select(TicketModel)
            .where(*conditions)
            .order_by(TicketModel.created_at.desc(), TicketModel.id.desc())
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [ticket_to_domain(m) for m in result.scalars().all()], total

    @translate_db_errors("count agent workload")
    async def count_open_by_assignee(self, agent_ids: Iterable[UUID]) -> Dict[UUID, int]:
        ids = list(agent_ids)
        if not ids:
            return {}

        stmt = (
            select(TicketModel.assigned_to, func.count(TicketModel.id))
            .where(
                TicketModel.assigned_to.in_(ids),
                TicketModel.status.in_([s.value for s in OPEN_STATUSES]),
            )
            .group_by(TicketModel.assigned_to)
        )
        result = await self._session.execute(stmt)
        return {agent_id: count for agent_id, count in result.all()}


class SQLAlchemyCommentRepository(ICommentRepository):
    """SQLAlchemy implementation of comment repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @translate_db_errors("create comment")
    async def add(self, comment: Comment) -> Comment:
        self._session.add(CommentModel(
            id=comment.id,
            ticket_id=comment.ticket_id,
            author_id=comment.author_id,
            content=comment.content,
            is_internal=comment.is_internal,
            created_at=comment.created_at,
        ))
        await self._session.flush()
        return comment

    @translate_db_errors("load comments")
    async def list_for_ticket(self, ticket_id: UUID, newest_first: bool) -> List[Comment]:
        if newest_first:
            ordering = (CommentModel.created_at.desc(), CommentModel.id.desc())
        else:
            ordering = (CommentModel.created_at.asc(), CommentModel.id.asc())

        stmt = select(CommentModel).where(CommentModel.ticket_id == ticket_id).order_by(*ordering)
        # Savepoint: a failed read must not abort the request transaction
        async with self._session.begin_nested():
            result = await self._session.execute(stmt)
            models = result.scalars().all()

        return [
            Comment(
                id=m.id,
                ticket_id=m.ticket_id,
                author_id=m.author_id,
                content=m.content,
                is_internal=m.is_internal,
                created_at=ensure_utc(m.created_at),
            )
            for m in models
        ]


class SQLAlchemyUserRepository(IUserRepository):
    """Read-only access to the ``users`` table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @translate_db_errors("load user")
    async def get_by_id(self, user_id: UUID) -> Optional[Principal]:
        model = await self._session.get(UserModel, user_id)
        return user_to_domain(model) if model else None

    @translate_db_errors("load users")
    async def get_many(self, user_ids: Iterable[UUID]) -> Dict[UUID, Principal]:
        ids = list(user_ids)
        if not ids:
            return {}

        async with self._session.begin_nested():
            result = await self._session.execute(select(UserModel).where(UserModel.id.in_(ids)))
            models = result.scalars().all()
        return {m.id: user_to_domain(m) for m in models}

    @translate_db_errors("load agents")
    async def list_active_agents(self) -> List[Principal]:
        stmt = (
            select(UserModel)
            .where(UserModel.role == Role.AGENT.value, UserModel.is_active.is_(True))
            .order_by(UserModel.created_at.asc(), UserModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return [user_to_domain(m) for m in result.scalars().all()]
