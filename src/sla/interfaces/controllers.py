"""
SLA Controllers (API Routes)
=============================

Admin-only FastAPI routes for SLA reporting and the manual breach sweep.

Controllers are thin - they delegate to application services.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Role
from src.infrastructure.database import get_session
from src.shared.infrastructure.clock import Clock, get_clock
from src.shared.infrastructure.logging import get_logger
from src.sla.application import (
    AgentPerformanceResponse,
    BreachedTicketsResponse,
    PerformanceReportResponse,
    SLAReportEntryResponse,
    SLAReportResponse,
    SLAReportService,
    SLASummaryResponse,
    SLASweepService,
    SweepResponse,
)
from src.sla.infrastructure import SQLAlchemySLATicketRepository
from src.tickets.domain import Principal
from src.tickets.infrastructure import SQLAlchemyUserRepository
from src.tickets.interfaces.dependencies import require_role

logger = get_logger(__name__)
router = APIRouter(prefix="/api/tickets/admin", tags=["SLA Administration"])

require_admin = require_role(Role.ADMIN)


# ========== Dependencies ==========

async def get_report_service(
    session: AsyncSession = Depends(get_session)
) -> SLAReportService:
    """Get SLA report service instance."""
    return SLAReportService(
        ticket_repository=SQLAlchemySLATicketRepository(session),
        user_repository=SQLAlchemyUserRepository(session),
    )


async def get_sweep_service(
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock)
) -> SLASweepService:
    """Get breach sweep service instance."""
    return SLASweepService(SQLAlchemySLATicketRepository(session), clock=clock)


# ========== Endpoints ==========

@router.get(
    "/breached",
    response_model=BreachedTicketsResponse,
    summary="List SLA-breached tickets",
    description="All tickets flagged as breached, earliest deadline first.",
)
async def list_breached_tickets(
    _: Principal = Depends(require_admin),
    service: SLAReportService = Depends(get_report_service),
    clock: Clock = Depends(get_clock)
):
    tickets = await service.breached_tickets()
    return BreachedTicketsResponse.from_domain(tickets, clock())


@router.get(
    "/reports/performance",
    response_model=PerformanceReportResponse,
    summary="Agent performance report",
    description="""
    Per active agent: tickets assigned, tickets resolved, mean resolution
    time in whole hours and the share of resolutions that met the SLA.
    """,
)
async def agent_performance_report(
    _: Principal = Depends(require_admin),
    service: SLAReportService = Depends(get_report_service)
):
    agents = await service.agent_performance()
    return PerformanceReportResponse(
        agents=[AgentPerformanceResponse.from_domain(a) for a in agents]
    )


@router.get(
    "/reports/sla",
    response_model=SLAReportResponse,
    summary="SLA compliance report",
    description="Every resolved ticket with its SLA outcome, plus totals.",
)
async def sla_report(
    _: Principal = Depends(require_admin),
    service: SLAReportService = Depends(get_report_service)
):
    records, summary = await service.sla_report()
    return SLAReportResponse(
        entries=[SLAReportEntryResponse.from_domain(r) for r in records],
        summary=SLASummaryResponse.from_domain(summary),
    )


@router.post(
    "/sla/sweep",
    response_model=SweepResponse,
    summary="Run the breach sweep now",
    description="""
    Flag unresolved tickets past their deadline. The same sweep runs in the
    background every `SLA_EVALUATION_INTERVAL` seconds.
    """,
)
async def run_sweep(
    principal: Principal = Depends(require_admin),
    service: SLASweepService = Depends(get_sweep_service)
):
    flagged, evaluated_at = await service.sweep()
    logger.info(
        "Manual SLA sweep",
        extra={"requested_by": str(principal.id), "tickets_flagged": flagged}
    )
    return SweepResponse(tickets_flagged=flagged, evaluated_at=evaluated_at)


# Export router for inclusion in main app
sla_router = router
