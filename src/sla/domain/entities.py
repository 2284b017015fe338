"""
SLA Domain Entities
====================

Report records derived from ticket history. Plain dataclasses, no
infrastructure.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID


@dataclass
class ResolvedTicketRecord:
    """A resolved ticket as seen by the SLA reports."""

    ticket_id: UUID
    title: str
    created_at: datetime
    resolved_at: datetime
    sla_deadline: datetime
    is_sla_breached: bool
    created_by_name: Optional[str] = None
    assigned_to_name: Optional[str] = None

    @property
    def resolution_time(self) -> timedelta:
        return self.resolved_at - self.created_at

    @property
    def resolution_hours(self) -> int:
        """Resolution time rounded to whole hours."""
        return round(self.resolution_time.total_seconds() / 3600)


@dataclass
class AgentPerformance:
    """
    Workload and SLA outcome for one agent.

    Averages and compliance are zero when the agent resolved nothing.
    """

    agent_id: UUID
    agent_name: str
    total_tickets: int = 0
    resolution_times: List[timedelta] = field(default_factory=list)
    breached_resolutions: int = 0

    @property
    def resolved_tickets(self) -> int:
        return len(self.resolution_times)

    @property
    def avg_resolution_hours(self) -> int:
        if not self.resolution_times:
            return 0
        total = sum(self.resolution_times, timedelta(0))
        return round(total.total_seconds() / len(self.resolution_times) / 3600)

    @property
    def sla_compliance(self) -> int:
        """Percentage of resolved tickets that met their SLA."""
        if not self.resolution_times:
            return 0
        compliant = self.resolved_tickets - self.breached_resolutions
        return round(compliant / self.resolved_tickets * 100)

    def record(self, resolution_time: Optional[timedelta], breached: bool) -> None:
        """Count a ticket; ``resolution_time`` is None while unresolved."""
        self.total_tickets += 1
        if resolution_time is None:
            return
        self.resolution_times.append(resolution_time)
        if breached:
            self.breached_resolutions += 1


@dataclass
class SLAReportSummary:
    """Totals over the resolved tickets of an SLA report."""

    resolved_count: int = 0
    breached_count: int = 0

    @property
    def compliance_rate(self) -> int:
        if not self.resolved_count:
            return 0
        return round((self.resolved_count - self.breached_count) / self.resolved_count * 100)

    @classmethod
    def from_records(cls, records: List[ResolvedTicketRecord]) -> "SLAReportSummary":
        return cls(
            resolved_count=len(records),
            breached_count=sum(1 for r in records if r.is_sla_breached),
        )
