"""
Ticket Application DTOs
=======================

Pydantic models for request validation and response serialization.

Requests trim surrounding whitespace before length checks. Update requests
ignore unknown keys so a malformed patch never reaches the service with
fields it cannot handle.
"""

from datetime import datetime
from typing import Any, List, Mapping, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.config import (
    COMMENT_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    DESCRIPTION_MIN_LENGTH,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
    Priority,
    Role,
    SLAStatus,
    TicketStatus,
)
from src.sla.domain import SLAEvaluator
from src.tickets.domain import (
    CommentDetails,
    IdentitySummary,
    TicketDetails,
    TicketPage,
    permitted_changes,
)


# ========== Request DTOs ==========

class TicketCreateRequest(BaseModel):
    """Request model for filing a ticket."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    description: str = Field(
        ..., min_length=DESCRIPTION_MIN_LENGTH, max_length=DESCRIPTION_MAX_LENGTH
    )
    priority: Priority = Field(default=Priority.MEDIUM)


class TicketUpdateRequest(BaseModel):
    """
    Partial update. Only keys present in the request body are applied.

    Build it with :meth:`for_role` so keys the caller may not write are
    dropped before their values are looked at.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    title: Optional[str] = Field(None, min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(
        None, min_length=DESCRIPTION_MIN_LENGTH, max_length=DESCRIPTION_MAX_LENGTH
    )
    priority: Optional[Priority] = None
    status: Optional[TicketStatus] = None
    assigned_to: Optional[UUID] = None
    version: Optional[int] = Field(None, ge=1, description="Version last read by the caller")

    @field_validator("title", "description", "priority", "status", "version", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        """Only ``assigned_to`` may be explicitly cleared."""
        if v is None:
            raise ValueError("may not be null")
        return v

    @classmethod
    def for_role(cls, role: Role, body: Mapping[str, Any]) -> "TicketUpdateRequest":
        """Validate the keys ``role`` may write plus ``version``; ignore the rest."""
        fields = permitted_changes(role, body)
        if "version" in body:
            fields["version"] = body["version"]
        return cls.model_validate(fields)

    def to_patch(self) -> dict:
        """Fields the caller actually sent."""
        return self.model_dump(exclude_unset=True)


class CommentCreateRequest(BaseModel):
    """Request model for commenting on a ticket."""
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(..., min_length=1, max_length=COMMENT_MAX_LENGTH)
    is_internal: bool = Field(default=False)


# ========== Response DTOs ==========

class IdentityResponse(BaseModel):
    """Public identity summary."""
    id: UUID
    name: str
    email: str
    role: Role

    @classmethod
    def from_domain(cls, identity: Optional[IdentitySummary]) -> Optional["IdentityResponse"]:
        if identity is None:
            return None
        return cls(id=identity.id, name=identity.name, email=identity.email, role=identity.role)


class CommentResponse(BaseModel):
    """Response model for a comment."""
    id: UUID
    ticket_id: UUID
    author: Optional[IdentityResponse]
    content: str
    is_internal: bool
    created_at: datetime

    @classmethod
    def from_domain(cls, details: CommentDetails) -> "CommentResponse":
        comment = details.comment
        return cls(
            id=comment.id,
            ticket_id=comment.ticket_id,
            author=IdentityResponse.from_domain(details.author),
            content=comment.content,
            is_internal=comment.is_internal,
            created_at=comment.created_at,
        )


class TicketResponse(BaseModel):
    """Response model for a ticket."""
    id: UUID
    title: str
    description: str
    status: TicketStatus
    priority: Priority
    created_by: Optional[IdentityResponse]
    assigned_to: Optional[IdentityResponse]
    sla_deadline: datetime
    is_sla_breached: bool
    sla_status: SLAStatus = Field(..., description="SLA label evaluated at read time")
    version: int
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None
    comments: Optional[List[CommentResponse]] = None

    @classmethod
    def from_domain(cls, details: TicketDetails, now: datetime) -> "TicketResponse":
        ticket = details.ticket
        comments = None
        if details.comments is not None:
            comments = [CommentResponse.from_domain(c) for c in details.comments]

        return cls(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            status=ticket.status,
            priority=ticket.priority,
            created_by=IdentityResponse.from_domain(details.created_by),
            assigned_to=IdentityResponse.from_domain(details.assigned_to),
            sla_deadline=ticket.sla_deadline,
            is_sla_breached=ticket.is_sla_breached,
            sla_status=SLAEvaluator.status_label(ticket.sla_state, ticket.is_sla_breached, now),
            version=ticket.version,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
            resolved_at=ticket.resolved_at,
            comments=comments,
        )


class TicketMutationResponse(BaseModel):
    """Envelope for create/update responses."""
    message: str
    ticket: TicketResponse


class TicketDetailResponse(BaseModel):
    """Single ticket with its comments, oldest first."""
    ticket: TicketResponse
    comments: List[CommentResponse]


class CommentMutationResponse(BaseModel):
    """Envelope for comment creation."""
    message: str
    comment: CommentResponse


class TicketPageResponse(BaseModel):
    """Paginated ticket listing."""
    items: List[TicketResponse]
    total: int
    limit: int
    offset: int
    next_offset: Optional[int] = None

    @classmethod
    def from_domain(cls, page: TicketPage, now: datetime) -> "TicketPageResponse":
        return cls(
            items=[TicketResponse.from_domain(item, now) for item in page.items],
            total=page.total,
            limit=page.limit,
            offset=page.offset,
            next_offset=page.next_offset,
        )
