"""
Ticket Controllers (API Routes)
===============================

FastAPI routes for the ticket lifecycle.

Controllers are thin - they delegate to TicketService and shape responses.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from src.config import Priority, TicketStatus, settings
from src.shared.infrastructure.clock import Clock, get_clock
from src.shared.infrastructure.logging import get_logger
from src.tickets.application import (
    CommentCreateRequest,
    CommentMutationResponse,
    CommentResponse,
    TicketCreateRequest,
    TicketDetailResponse,
    TicketMutationResponse,
    TicketPageResponse,
    TicketResponse,
    TicketService,
    TicketUpdateRequest,
)
from src.tickets.domain import Principal
from src.tickets.interfaces.dependencies import get_current_principal, get_ticket_service

logger = get_logger(__name__)
router = APIRouter(prefix="/api/tickets", tags=["Tickets"])


ERROR_EXAMPLE = {"error": {"code": "NOT_FOUND", "message": "Ticket not found"}}


async def get_update_request(
    body: Dict[str, Any] = Body(
        ...,
        examples=[{"title": "VPN drops every hour", "status": "in_progress", "version": 1}],
    ),
    principal: Principal = Depends(get_current_principal)
) -> TicketUpdateRequest:
    """Parse a patch body against the fields the caller's role may write."""
    try:
        return TicketUpdateRequest.for_role(principal.role, body)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False), body=body) from exc


@router.post(
    "/",
    response_model=TicketMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="File a ticket",
    description="""
    Create a ticket owned by the caller.

    The ticket gets an SLA deadline 24 hours from now and is assigned to the
    active agent with the fewest open or in-progress tickets. It stays
    unassigned when no agent is active.
    """,
)
async def create_ticket(
    payload: TicketCreateRequest,
    principal: Principal = Depends(get_current_principal),
    service: TicketService = Depends(get_ticket_service),
    clock: Clock = Depends(get_clock)
):
    details = await service.create_ticket(
        principal,
        title=payload.title,
        description=payload.description,
        priority=payload.priority,
    )
    return TicketMutationResponse(
        message="Ticket created successfully",
        ticket=TicketResponse.from_domain(details, clock()),
    )


@router.get(
    "/",
    response_model=TicketPageResponse,
    summary="List tickets",
    description="""
    Tickets visible to the caller, newest first.

    **Visibility**: users see tickets they filed, agents tickets assigned to
    them, admins everything. Filters narrow that set further.

    **Query Parameters:**
    - `q`: case-insensitive text matched against title or description
    - `status`, `priority`: exact match
    - `assigned`: assignee user id
    - `breached`: only tickets flagged as SLA-breached
    - `limit` / `offset`: paging; `next_offset` is null on the last page
    """,
)
async def list_tickets(
    limit: int = Query(settings.default_page_size, ge=0, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    q: Optional[str] = Query(None, max_length=200, description="Text search"),
    ticket_status: Optional[TicketStatus] = Query(None, alias="status"),
    priority: Optional[Priority] = Query(None),
    assigned: Optional[UUID] = Query(None, description="Assignee user id"),
    breached: bool = Query(False, description="Only SLA-breached tickets"),
    principal: Principal = Depends(get_current_principal),
    service: TicketService = Depends(get_ticket_service),
    clock: Clock = Depends(get_clock)
):
    page = await service.list_tickets(
        principal,
        limit=limit,
        offset=offset,
        text=q.strip() if q else None,
        status=ticket_status,
        priority=priority,
        assigned_to=assigned,
        breached_only=breached,
    )
    return TicketPageResponse.from_domain(page, clock())


@router.get(
    "/{ticket_id}",
    response_model=TicketDetailResponse,
    summary="Get a ticket",
    responses={404: {"description": "Ticket not found", "content": {"application/json": {"example": ERROR_EXAMPLE}}}},
)
async def get_ticket(
    ticket_id: str,
    principal: Principal = Depends(get_current_principal),
    service: TicketService = Depends(get_ticket_service),
    clock: Clock = Depends(get_clock)
):
    details, comments = await service.get_ticket(principal, ticket_id)
    return TicketDetailResponse(
        ticket=TicketResponse.from_domain(details, clock()),
        comments=[CommentResponse.from_domain(c) for c in comments],
    )


@router.patch(
    "/{ticket_id}",
    response_model=TicketMutationResponse,
    summary="Update a ticket",
    description="""
    Partial update with optimistic locking.

    Send the `version` you last read; a stale version returns `409 CONFLICT`
    and nothing is written. Users may change `title`, `description` and
    `priority`; other keys they send are ignored. Agents and admins may also
    change `status` and `assigned_to`.
    """,
    responses={409: {"description": "Stale version"}},
)
async def update_ticket(
    ticket_id: str,
    payload: TicketUpdateRequest = Depends(get_update_request),
    principal: Principal = Depends(get_current_principal),
    service: TicketService = Depends(get_ticket_service),
    clock: Clock = Depends(get_clock)
):
    details = await service.update_ticket(principal, ticket_id, payload.to_patch())
    return TicketMutationResponse(
        message="Ticket updated successfully",
        ticket=TicketResponse.from_domain(details, clock()),
    )


@router.post(
    "/{ticket_id}/comments",
    response_model=CommentMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a ticket",
)
async def add_comment(
    ticket_id: str,
    payload: CommentCreateRequest,
    principal: Principal = Depends(get_current_principal),
    service: TicketService = Depends(get_ticket_service)
):
    details = await service.add_comment(
        principal,
        ticket_id,
        content=payload.content,
        is_internal=payload.is_internal,
    )
    return CommentMutationResponse(
        message="Comment added successfully",
        comment=CommentResponse.from_domain(details),
    )


# Export router for inclusion in main app
tickets_router = router
