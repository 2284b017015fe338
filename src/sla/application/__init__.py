"""
SLA Application Layer
======================

Application layer for the SLA module.

Contains:
- Services: admin reports and the breach sweep
- DTOs: response models for the admin endpoints

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from src.sla.application.dto import (
    AgentPerformanceResponse,
    BreachedTicketsResponse,
    PerformanceReportResponse,
    SLAReportEntryResponse,
    SLAReportResponse,
    SLASummaryResponse,
    SweepResponse,
)
from src.sla.application.services import (
    ISLATicketRepository,
    SLAReportService,
    SLASweepService,
)

__all__ = [
    # DTOs
    "AgentPerformanceResponse",
    "BreachedTicketsResponse",
    "PerformanceReportResponse",
    "SLAReportEntryResponse",
    "SLAReportResponse",
    "SLASummaryResponse",
    "SweepResponse",
    # Services
    "SLAReportService",
    "SLASweepService",
    # Repository Interfaces
    "ISLATicketRepository",
]
