"""Tests for the ticket lifecycle service against an in-memory database."""

from datetime import timedelta
from typing import List, Optional, Set
from uuid import UUID, uuid4

import pytest

from src.config import Priority, Role, TicketStatus
from src.core import (
    ConflictException,
    RepositoryException,
    ResourceNotFoundException,
    ValidationException,
)
from src.sla.domain import SLAEvaluator
from src.tickets.application import ICommentRepository, TicketService
from src.tickets.domain import Comment
from src.tickets.infrastructure import (
    SQLAlchemyCommentRepository,
    SQLAlchemyTicketRepository,
    SQLAlchemyUserRepository,
)


async def _file(service, principal, title="Printer is broken", description="The office printer jams on every page", **kwargs):
    details = await service.create_ticket(principal, title=title, description=description, **kwargs)
    return details.ticket


class TestCreateTicket:
    @pytest.mark.asyncio
    async def test_new_ticket_defaults(self, ticket_service, make_user, clock):
        user = await make_user(Role.USER)

        details = await ticket_service.create_ticket(
            user, title="Cannot log in", description="Password reset link never arrives"
        )
        ticket = details.ticket

        assert ticket.status == TicketStatus.OPEN
        assert ticket.priority == Priority.MEDIUM
        assert ticket.version == 1
        assert ticket.created_at == clock()
        assert ticket.sla_deadline == clock() + timedelta(hours=24)
        assert ticket.is_sla_breached is False
        assert details.created_by.id == user.id

    @pytest.mark.asyncio
    async def test_unassigned_without_active_agents(self, ticket_service, make_user):
        user = await make_user(Role.USER)
        await make_user(Role.AGENT, is_active=False)

        details = await ticket_service.create_ticket(
            user, title="Cannot log in", description="Password reset link never arrives"
        )

        assert details.ticket.assigned_to is None
        assert details.assigned_to is None

    @pytest.mark.asyncio
    async def test_assigns_least_loaded_agent(self, ticket_service, make_user, clock):
        user = await make_user(Role.USER)
        admin = await make_user(Role.ADMIN)
        busy = await make_user(Role.AGENT, name="Busy")
        idle = await make_user(Role.AGENT, name="Idle")

        # First ticket goes to the first agent in store order
        first = await _file(ticket_service, user)
        assert first.assigned_to == busy.id

        second = await _file(ticket_service, user)
        assert second.assigned_to == idle.id

        # Resolved tickets do not count towards load
        await ticket_service.update_ticket(admin, str(second.id), {"status": TicketStatus.RESOLVED})
        third = await _file(ticket_service, user)
        assert third.assigned_to == idle.id


class TestVisibility:
    @pytest.mark.asyncio
    async def test_user_cannot_reach_another_users_ticket(self, ticket_service, make_user):
        owner = await make_user(Role.USER)
        other = await make_user(Role.USER)
        ticket = await _file(ticket_service, owner)

        with pytest.raises(ResourceNotFoundException):
            await ticket_service.get_ticket(other, str(ticket.id))
        with pytest.raises(ResourceNotFoundException):
            await ticket_service.update_ticket(other, str(ticket.id), {"title": "Hijacked title"})
        with pytest.raises(ResourceNotFoundException):
            await ticket_service.add_comment(other, str(ticket.id), "Me too")

    @pytest.mark.asyncio
    async def test_agent_sees_only_assigned_tickets(self, ticket_service, make_user):
        user = await make_user(Role.USER)
        agent = await make_user(Role.AGENT)
        assigned = await _file(ticket_service, user)
        other_agent = await make_user(Role.AGENT)

        details, _ = await ticket_service.get_ticket(agent, str(assigned.id))
        assert details.ticket.id == assigned.id

        with pytest.raises(ResourceNotFoundException):
            await ticket_service.get_ticket(other_agent, str(assigned.id))

    @pytest.mark.asyncio
    async def test_admin_sees_everything(self, ticket_service, make_user):
        user = await make_user(Role.USER)
        admin = await make_user(Role.ADMIN)
        ticket = await _file(ticket_service, user)

        details, comments = await ticket_service.get_ticket(admin, str(ticket.id))
        assert details.ticket.id == ticket.id
        assert comments == []

    @pytest.mark.asyncio
    async def test_malformed_id_is_not_found(self, ticket_service, make_user):
        admin = await make_user(Role.ADMIN)

        with pytest.raises(ResourceNotFoundException):
            await ticket_service.get_ticket(admin, "not-a-uuid")


class InterleavedReadRepository(SQLAlchemyTicketRepository):
    """Runs ``on_first_read`` after the first ticket read, before the caller writes."""

    def __init__(self, session, on_first_read):
        super().__init__(session)
        self._on_first_read = on_first_read

    async def get_visible(self, ticket_id, scope):
        ticket = await super().get_visible(ticket_id, scope)
        hook, self._on_first_read = self._on_first_read, None
        if hook is not None:
            await hook()
        return ticket


class TestUpdateTicket:
    @pytest.mark.asyncio
    async def test_stale_version_conflicts_exactly_once(self, ticket_service, make_user):
        user = await make_user(Role.USER)
        ticket = await _file(ticket_service, user)

        updated = await ticket_service.update_ticket(
            user, str(ticket.id), {"title": "First writer wins", "version": 1}
        )
        assert updated.ticket.version == 2

        with pytest.raises(ConflictException):
            await ticket_service.update_ticket(
                user, str(ticket.id), {"title": "Second writer loses", "version": 1}
            )

        details, _ = await ticket_service.get_ticket(user, str(ticket.id))
        assert details.ticket.title == "First writer wins"
        assert details.ticket.version == 2

    @pytest.mark.asyncio
    async def test_update_without_version_still_bumps(self, ticket_service, make_user, clock):
        user = await make_user(Role.USER)
        ticket = await _file(ticket_service, user)
        clock.advance(minutes=5)

        updated = await ticket_service.update_ticket(user, str(ticket.id), {"priority": Priority.URGENT})

        assert updated.ticket.priority == Priority.URGENT
        assert updated.ticket.version == 2
        assert updated.ticket.updated_at == clock()

    @pytest.mark.asyncio
    async def test_user_cannot_change_workflow_fields(self, ticket_service, make_user):
        user = await make_user(Role.USER)
        ticket = await _file(ticket_service, user)

        updated = await ticket_service.update_ticket(
            user, str(ticket.id), {"status": TicketStatus.RESOLVED, "title": "Still broken printer"}
        )

        assert updated.ticket.status == TicketStatus.OPEN
        assert updated.ticket.title == "Still broken printer"
        assert updated.ticket.resolved_at is None

    @pytest.mark.asyncio
    async def test_assignee_must_be_an_agent(self, ticket_service, make_user):
        user = await make_user(Role.USER)
        admin = await make_user(Role.ADMIN)
        ticket = await _file(ticket_service, user)

        with pytest.raises(ValidationException) as exc_info:
            await ticket_service.update_ticket(admin, str(ticket.id), {"assigned_to": user.id})
        assert exc_info.value.field == "assigned_to"

    @pytest.mark.asyncio
    async def test_lost_version_race_is_reported(self, db_session, make_user, ticket_service):
        user = await make_user(Role.USER)
        ticket = await _file(ticket_service, user)
        repository = SQLAlchemyTicketRepository(db_session)

        assert await repository.update_if_version(ticket.id, 1, {"title": "Winner title", "version": 2}) is True
        assert await repository.update_if_version(ticket.id, 1, {"title": "Loser title", "version": 2}) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("version", [1, None])
    async def test_interleaved_updates_conflict_exactly_once(self, ticket_service, db_session, make_user, clock, version):
        user = await make_user(Role.USER)
        ticket = await _file(ticket_service, user)

        def patch(title):
            return {"title": title} if version is None else {"title": title, "version": version}

        async def competing_update():
            await ticket_service.update_ticket(user, str(ticket.id), patch("Competing writer"))

        service = TicketService(
            ticket_repository=InterleavedReadRepository(db_session, competing_update),
            comment_repository=SQLAlchemyCommentRepository(db_session),
            user_repository=SQLAlchemyUserRepository(db_session),
            evaluator=SLAEvaluator(),
            clock=clock,
        )

        with pytest.raises(ConflictException):
            await service.update_ticket(user, str(ticket.id), patch("Interrupted writer"))

        details, _ = await ticket_service.get_ticket(user, str(ticket.id))
        assert details.ticket.title == "Competing writer"
        assert details.ticket.version == 2


class TestSLAOnUpdate:
    @pytest.mark.asyncio
    async def test_resolving_in_time_freezes_compliance(self, ticket_service, make_user, clock):
        user = await make_user(Role.USER)
        admin = await make_user(Role.ADMIN)
        ticket = await _file(ticket_service, user)

        clock.advance(hours=3)
        resolved = await ticket_service.update_ticket(admin, str(ticket.id), {"status": TicketStatus.RESOLVED})
        assert resolved.ticket.is_sla_breached is False
        assert resolved.ticket.resolved_at == clock()

        # Editing long after the deadline does not re-evaluate a resolved ticket
        clock.advance(hours=48)
        edited = await ticket_service.update_ticket(admin, str(ticket.id), {"title": "Printer fixed for good"})
        assert edited.ticket.status == TicketStatus.RESOLVED
        assert edited.ticket.is_sla_breached is False

    @pytest.mark.asyncio
    async def test_resolving_late_records_breach(self, ticket_service, make_user, clock):
        user = await make_user(Role.USER)
        admin = await make_user(Role.ADMIN)
        ticket = await _file(ticket_service, user)

        clock.advance(hours=25)
        resolved = await ticket_service.update_ticket(admin, str(ticket.id), {"status": TicketStatus.RESOLVED})

        assert resolved.ticket.is_sla_breached is True

    @pytest.mark.asyncio
    async def test_reopening_clears_resolution(self, ticket_service, make_user, clock):
        user = await make_user(Role.USER)
        admin = await make_user(Role.ADMIN)
        ticket = await _file(ticket_service, user)

        await ticket_service.update_ticket(admin, str(ticket.id), {"status": TicketStatus.RESOLVED})
        clock.advance(hours=30)
        reopened = await ticket_service.update_ticket(admin, str(ticket.id), {"status": TicketStatus.OPEN})

        assert reopened.ticket.resolved_at is None
        assert reopened.ticket.is_sla_breached is True


class TestListTickets:
    @pytest.mark.asyncio
    async def test_pagination(self, ticket_service, make_user, clock):
        user = await make_user(Role.USER)
        for i in range(25):
            await _file(ticket_service, user, title=f"Ticket number {i}")
            clock.advance(minutes=1)

        first = await ticket_service.list_tickets(user, limit=10, offset=0)
        assert first.total == 25
        assert len(first.items) == 10
        assert first.next_offset == 10
        assert first.items[0].ticket.title == "Ticket number 24"

        last = await ticket_service.list_tickets(user, limit=10, offset=20)
        assert len(last.items) == 5
        assert last.next_offset is None

    @pytest.mark.asyncio
    async def test_zero_limit_returns_only_total(self, ticket_service, make_user):
        user = await make_user(Role.USER)
        await _file(ticket_service, user)

        page = await ticket_service.list_tickets(user, limit=0)

        assert page.items == []
        assert page.total == 1

    @pytest.mark.asyncio
    async def test_text_search_is_case_insensitive_over_description(self, ticket_service, make_user, clock):
        user = await make_user(Role.USER)
        await _file(ticket_service, user, title="Hardware issue", description="The office PRINTER jams daily")
        clock.advance(minutes=1)
        await _file(ticket_service, user, title="Network issue", description="VPN drops every hour")

        page = await ticket_service.list_tickets(user, text="printer jams")

        assert page.total == 1
        assert page.items[0].ticket.title == "Hardware issue"

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_literally(self, ticket_service, make_user):
        user = await make_user(Role.USER)
        await _file(ticket_service, user, title="Disk full", description="Disk usage is at 100 percent")

        page = await ticket_service.list_tickets(user, text="100%")

        assert page.total == 0

    @pytest.mark.asyncio
    async def test_filters_combine_with_scope(self, ticket_service, make_user, clock):
        owner = await make_user(Role.USER)
        other = await make_user(Role.USER)
        admin = await make_user(Role.ADMIN)

        urgent = await _file(ticket_service, owner, priority=Priority.URGENT)
        await _file(ticket_service, owner, priority=Priority.LOW)
        await _file(ticket_service, other, priority=Priority.URGENT)

        page = await ticket_service.list_tickets(owner, priority=Priority.URGENT)
        assert [d.ticket.id for d in page.items] == [urgent.id]

        everything = await ticket_service.list_tickets(admin, priority=Priority.URGENT)
        assert everything.total == 2

    @pytest.mark.asyncio
    async def test_breached_filter(self, ticket_service, make_user, clock):
        user = await make_user(Role.USER)
        admin = await make_user(Role.ADMIN)
        late = await _file(ticket_service, user)
        await _file(ticket_service, user)

        clock.advance(hours=25)
        await ticket_service.update_ticket(admin, str(late.id), {"status": TicketStatus.IN_PROGRESS})

        page = await ticket_service.list_tickets(admin, breached_only=True)

        assert [d.ticket.id for d in page.items] == [late.id]

    @pytest.mark.asyncio
    async def test_negative_paging_rejected(self, ticket_service, make_user):
        user = await make_user(Role.USER)

        with pytest.raises(ValidationException):
            await ticket_service.list_tickets(user, limit=-1)


class TestComments:
    @pytest.mark.asyncio
    async def test_ordering_differs_between_get_and_list(self, ticket_service, make_user, clock):
        user = await make_user(Role.USER)
        ticket = await _file(ticket_service, user)

        for text in ("first", "second", "third"):
            clock.advance(minutes=1)
            await ticket_service.add_comment(user, str(ticket.id), text)

        _, comments = await ticket_service.get_ticket(user, str(ticket.id))
        assert [c.comment.content for c in comments] == ["first", "second", "third"]
        assert comments[0].author.id == user.id

        page = await ticket_service.list_tickets(user)
        assert [c.comment.content for c in page.items[0].comments] == ["third", "second", "first"]

    @pytest.mark.asyncio
    async def test_internal_comments_are_returned(self, ticket_service, make_user):
        user = await make_user(Role.USER)
        agent = await make_user(Role.AGENT)
        ticket = await _file(ticket_service, user)

        created = await ticket_service.add_comment(agent, str(ticket.id), "Escalated to vendor", is_internal=True)
        assert created.comment.is_internal is True

        _, comments = await ticket_service.get_ticket(user, str(ticket.id))
        assert [c.comment.is_internal for c in comments] == [True]


class FailingCommentRepository(ICommentRepository):
    """Fails comment loads for ``failing_ids``, or for every ticket when not given."""

    def __init__(self, inner: ICommentRepository, failing_ids: Optional[Set[UUID]] = None):
        self._inner = inner
        self._failing_ids = failing_ids

    async def add(self, comment: Comment) -> Comment:
        return await self._inner.add(comment)

    async def list_for_ticket(self, ticket_id: UUID, newest_first: bool) -> List[Comment]:
        if self._failing_ids is None or ticket_id in self._failing_ids:
            raise RepositoryException("Failed to load comments")
        return await self._inner.list_for_ticket(ticket_id, newest_first)


def _service_with(db_session, clock, comment_repository):
    return TicketService(
        ticket_repository=SQLAlchemyTicketRepository(db_session),
        comment_repository=comment_repository,
        user_repository=SQLAlchemyUserRepository(db_session),
        evaluator=SLAEvaluator(),
        clock=clock,
    )


class TestCommentDegradation:
    @pytest.mark.asyncio
    async def test_comment_failure_yields_empty_list(self, db_session, make_user, clock):
        service = _service_with(
            db_session, clock, FailingCommentRepository(SQLAlchemyCommentRepository(db_session))
        )
        user = await make_user(Role.USER)
        ticket = await _file(service, user)
        await service.add_comment(user, str(ticket.id), "Any update?")

        details, comments = await service.get_ticket(user, str(ticket.id))
        assert details.ticket.id == ticket.id
        assert comments == []

        page = await service.list_tickets(user)
        assert page.items[0].comments == []

    @pytest.mark.asyncio
    async def test_comment_failure_is_confined_to_its_ticket(self, ticket_service, db_session, make_user, clock):
        user = await make_user(Role.USER)
        tickets = []
        for title in ("Monitor flickers", "Keyboard missing keys", "Mouse double clicks"):
            ticket = await _file(ticket_service, user, title=title)
            await ticket_service.add_comment(user, str(ticket.id), f"More detail on {title.lower()}")
            tickets.append(ticket)
            clock.advance(minutes=1)

        broken = tickets[1]
        service = _service_with(
            db_session,
            clock,
            FailingCommentRepository(SQLAlchemyCommentRepository(db_session), failing_ids={broken.id}),
        )

        page = await service.list_tickets(user)

        comments = {item.ticket.id: item.comments for item in page.items}
        assert comments[broken.id] == []
        for ticket in (tickets[0], tickets[2]):
            assert [c.comment.content for c in comments[ticket.id]] == [
                f"More detail on {ticket.title.lower()}"
            ]

    @pytest.mark.asyncio
    async def test_unknown_ticket_comment(self, ticket_service, make_user):
        user = await make_user(Role.USER)

        with pytest.raises(ResourceNotFoundException):
            await ticket_service.add_comment(user, str(uuid4()), "Hello")
