"""
SLA Application DTOs
=====================

Response models for the admin SLA endpoints. Ticket payloads reuse the
tickets module's ``TicketResponse`` so every ticket has one wire shape.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.sla.domain import AgentPerformance, ResolvedTicketRecord, SLAReportSummary
from src.tickets.application import TicketResponse
from src.tickets.domain import TicketDetails


class BreachedTicketsResponse(BaseModel):
    """Tickets currently flagged as breached, earliest deadline first."""
    tickets: List[TicketResponse]
    count: int

    @classmethod
    def from_domain(cls, items: List[TicketDetails], now: datetime) -> "BreachedTicketsResponse":
        return cls(
            tickets=[TicketResponse.from_domain(item, now) for item in items],
            count=len(items),
        )


class AgentPerformanceResponse(BaseModel):
    """Workload and SLA compliance of one agent."""
    agent_id: UUID
    agent_name: str
    total_tickets: int
    resolved_tickets: int
    avg_resolution_hours: int = Field(..., description="Mean resolution time in whole hours")
    sla_compliance: int = Field(..., description="Percent of resolved tickets within SLA")

    @classmethod
    def from_domain(cls, stats: AgentPerformance) -> "AgentPerformanceResponse":
        return cls(
            agent_id=stats.agent_id,
            agent_name=stats.agent_name,
            total_tickets=stats.total_tickets,
            resolved_tickets=stats.resolved_tickets,
            avg_resolution_hours=stats.avg_resolution_hours,
            sla_compliance=stats.sla_compliance,
        )


class PerformanceReportResponse(BaseModel):
    agents: List[AgentPerformanceResponse]


class SLAReportEntryResponse(BaseModel):
    """One resolved ticket in the SLA report."""
    ticket_id: UUID
    title: str
    created_by_name: Optional[str]
    assigned_to_name: Optional[str]
    created_at: datetime
    resolved_at: datetime
    resolution_hours: int
    sla_deadline: datetime
    is_sla_breached: bool

    @classmethod
    def from_domain(cls, record: ResolvedTicketRecord) -> "SLAReportEntryResponse":
        return cls(
            ticket_id=record.ticket_id,
            title=record.title,
            created_by_name=record.created_by_name,
            assigned_to_name=record.assigned_to_name,
            created_at=record.created_at,
            resolved_at=record.resolved_at,
            resolution_hours=record.resolution_hours,
            sla_deadline=record.sla_deadline,
            is_sla_breached=record.is_sla_breached,
        )


class SLASummaryResponse(BaseModel):
    resolved_count: int
    breached_count: int
    compliance_rate: int = Field(..., description="Percent of resolved tickets within SLA")

    @classmethod
    def from_domain(cls, summary: SLAReportSummary) -> "SLASummaryResponse":
        return cls(
            resolved_count=summary.resolved_count,
            breached_count=summary.breached_count,
            compliance_rate=summary.compliance_rate,
        )


class SLAReportResponse(BaseModel):
    """Resolved tickets with their SLA outcome, plus totals."""
    entries: List[SLAReportEntryResponse]
    summary: SLASummaryResponse


class SweepResponse(BaseModel):
    """Result of a manually triggered breach sweep."""
    tickets_flagged: int
    evaluated_at: datetime
