"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for the SLA module:
- Repositories: ticket reads and the breach sweep write
- Scheduler: APScheduler job running the sweep
"""

from src.sla.infrastructure.repositories import SQLAlchemySLATicketRepository
from src.sla.infrastructure.scheduler import SLAScheduler

__all__ = [
    "SQLAlchemySLATicketRepository",
    "SLAScheduler",
]
