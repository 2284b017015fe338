"""
Tickets Interfaces Layer
========================

Interface adapters (controllers) for the tickets module.

Contains:
- Controllers: FastAPI route handlers
- Dependencies: principal resolution and service wiring
"""

from src.tickets.interfaces.controllers import tickets_router

__all__ = ["tickets_router"]
