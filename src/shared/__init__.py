"""
Shared Kernel Module
====================

Shared infrastructure and API plumbing used by both bounded contexts
(Tickets and SLA).

Architecture Pattern: Modular Monolith
- Each module (tickets, sla) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add ticket or SLA business rules to the shared kernel.
"""

__version__ = "1.0.0"
