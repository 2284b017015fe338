"""
Tickets Application Layer
=========================

Contains:
- Services: TicketService, the ticket lifecycle engine
- DTOs: Pydantic request/response models
- Repository interfaces implemented by the infrastructure layer

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from src.tickets.application.dto import (
    CommentCreateRequest,
    CommentMutationResponse,
    CommentResponse,
    IdentityResponse,
    TicketCreateRequest,
    TicketDetailResponse,
    TicketMutationResponse,
    TicketPageResponse,
    TicketResponse,
    TicketUpdateRequest,
)
from src.tickets.application.services import (
    ICommentRepository,
    ITicketRepository,
    IUserRepository,
    TicketService,
)

__all__ = [
    # DTOs
    "CommentCreateRequest",
    "CommentMutationResponse",
    "CommentResponse",
    "IdentityResponse",
    "TicketCreateRequest",
    "TicketDetailResponse",
    "TicketMutationResponse",
    "TicketPageResponse",
    "TicketResponse",
    "TicketUpdateRequest",
    # Services
    "TicketService",
    # Repository Interfaces
    "ICommentRepository",
    "ITicketRepository",
    "IUserRepository",
]
