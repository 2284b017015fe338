"""
SLA Domain Layer
================

Domain layer for the SLA module.

Contains:
- Value Objects: tagged SLA state (ActiveSLA, ResolvedSLA) and the
  SLAEvaluator rules
- Entities: report records (ResolvedTicketRecord, AgentPerformance,
  SLAReportSummary)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from src.sla.domain.entities import AgentPerformance, ResolvedTicketRecord, SLAReportSummary
from src.sla.domain.value_objects import (
    DEFAULT_SLA_WINDOW,
    ActiveSLA,
    ResolvedSLA,
    SLAEvaluator,
    SLAState,
)

__all__ = [
    # Entities
    "AgentPerformance",
    "ResolvedTicketRecord",
    "SLAReportSummary",
    # Value Objects & Services
    "DEFAULT_SLA_WINDOW",
    "ActiveSLA",
    "ResolvedSLA",
    "SLAEvaluator",
    "SLAState",
]
