"""
SLA Module
==========

Bounded Context for Service Level Agreement tracking.

Responsibilities:
- Tagged SLA state and the rules advancing it on ticket writes
- Background sweep flagging tickets that passed their deadline
- Admin reports: breached tickets, agent performance, SLA compliance
"""

__version__ = "1.0.0"
