"""
Ticket API Dependencies
=======================

FastAPI dependencies resolving the calling principal and wiring services.

Authentication happens upstream: the gateway verifies credentials and
forwards the user id in ``settings.principal_header``. This module only
loads that user and checks it is active.
"""

from datetime import timedelta
from typing import Callable
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Role, settings
from src.core import AuthenticationException, ForbiddenException
from src.infrastructure.database import get_session
from src.shared.infrastructure.clock import Clock, get_clock
from src.sla.domain import SLAEvaluator
from src.tickets.application import TicketService
from src.tickets.domain import Principal
from src.tickets.infrastructure import (
    SQLAlchemyCommentRepository,
    SQLAlchemyTicketRepository,
    SQLAlchemyUserRepository,
)


def get_sla_evaluator() -> SLAEvaluator:
    """SLA evaluator built from the configured window."""
    return SLAEvaluator(window=timedelta(hours=settings.sla_window_hours))


async def get_current_principal(
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> Principal:
    """
    Resolve the principal attached to the request.

    Raises:
        AuthenticationException: header missing or malformed, user unknown
            or deactivated
    """
    raw_id = request.headers.get(settings.principal_header)
    if not raw_id:
        raise AuthenticationException("Authentication required")

    try:
        user_id = UUID(raw_id)
    except ValueError:
        raise AuthenticationException("Invalid principal")

    principal = await SQLAlchemyUserRepository(session).get_by_id(user_id)
    if principal is None or not principal.is_active:
        raise AuthenticationException("Invalid principal")

    request.state.principal_id = str(principal.id)
    return principal


def require_role(*roles: Role) -> Callable:
    """Dependency factory admitting only principals holding one of ``roles``."""

    async def checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            raise ForbiddenException("Insufficient permissions")
        return principal

    return checker


async def get_ticket_service(
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    evaluator: SLAEvaluator = Depends(get_sla_evaluator)
) -> TicketService:
    """Get ticket service instance."""
    return TicketService(
        ticket_repository=SQLAlchemyTicketRepository(session),
        comment_repository=SQLAlchemyCommentRepository(session),
        user_repository=SQLAlchemyUserRepository(session),
        evaluator=evaluator,
        clock=clock,
    )
