"""
Tickets Module
==============

Bounded Context for the ticket lifecycle.

Responsibilities:
- File tickets and auto-assign them to the least-loaded active agent
- Role-scoped reads, updates and comments
- Optimistic-locked updates keyed on the ticket version
- Filtered, paginated ticket listings
"""

__version__ = "1.0.0"
