"""
Tickets Infrastructure Layer
============================

- Models: SQLAlchemy ORM models (users, tickets, ticket_comments)
- Repositories: data access implementing the application interfaces
"""

from src.tickets.infrastructure.models import CommentModel, TicketModel, UserModel
from src.tickets.infrastructure.repositories import (
    SQLAlchemyCommentRepository,
    SQLAlchemyTicketRepository,
    SQLAlchemyUserRepository,
)

__all__ = [
    "CommentModel",
    "TicketModel",
    "UserModel",
    "SQLAlchemyCommentRepository",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyUserRepository",
]
