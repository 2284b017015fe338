"""
SLA Value Objects
==================

Immutable value objects for the SLA domain.

A ticket's SLA is a tagged state rather than a boolean next to a status:

- ``ActiveSLA``: the ticket is unresolved and its breach flag follows the
  clock (``now > deadline``).
- ``ResolvedSLA``: the ticket was resolved and the breach flag is whatever
  it was at the resolving write. Time no longer changes it.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Union

from src.config import SLAStatus, TicketStatus

DEFAULT_SLA_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class ActiveSLA:
    """SLA clock of an unresolved ticket."""
    deadline: datetime

    def is_breached(self, now: datetime) -> bool:
        # Strict: a ticket sitting exactly on its deadline is not breached
        return now > self.deadline


@dataclass(frozen=True)
class ResolvedSLA:
    """SLA outcome frozen when the ticket was resolved."""
    deadline: datetime
    breached_at_resolution: bool

    def is_breached(self, now: datetime) -> bool:
        return self.breached_at_resolution


SLAState = Union[ActiveSLA, ResolvedSLA]


class SLAEvaluator:
    """
    Pure SLA rules for the ticket lifecycle.

    Stateless apart from the configured window, so one instance can be
    shared by every request.
    """

    def __init__(self, window: timedelta = DEFAULT_SLA_WINDOW):
        if window <= timedelta(0):
            raise ValueError("SLA window must be positive")
        self._window = window

    @property
    def window(self) -> timedelta:
        return self._window

    def deadline_for(self, created_at: datetime) -> datetime:
        """Deadline of a ticket created at ``created_at``."""
        return created_at + self._window

    def initial_state(self, created_at: datetime) -> ActiveSLA:
        return ActiveSLA(deadline=self.deadline_for(created_at))

    @staticmethod
    def restore(
        status: TicketStatus,
        deadline: datetime,
        is_breached: bool
    ) -> SLAState:
        """
        Rebuild the tagged state from persisted columns.

        Args:
            status: Stored ticket status
            deadline: Stored SLA deadline
            is_breached: Stored breach flag (only meaningful once resolved)
        """
        if status == TicketStatus.RESOLVED:
            return ResolvedSLA(deadline=deadline, breached_at_resolution=is_breached)
        return ActiveSLA(deadline=deadline)

    @staticmethod
    def advance(state: SLAState, status: TicketStatus, now: datetime) -> SLAState:
        """
        Move the SLA state along with a write that sets ``status``.

        Resolving freezes the breach flag as evaluated at ``now``; staying
        resolved keeps it frozen; reopening hands the ticket back to the
        clock.
        """
        if isinstance(state, ResolvedSLA):
            if status == TicketStatus.RESOLVED:
                return state
            return ActiveSLA(deadline=state.deadline)

        if status == TicketStatus.RESOLVED:
            return ResolvedSLA(
                deadline=state.deadline,
                breached_at_resolution=state.is_breached(now),
            )
        return state

    @staticmethod
    def status_label(state: SLAState, persisted_breach: bool, now: datetime) -> SLAStatus:
        """Read-time label shown to API callers; never persisted."""
        if isinstance(state, ResolvedSLA):
            return SLAStatus.RESOLVED
        if persisted_breach or state.is_breached(now):
            return SLAStatus.BREACHED
        return SLAStatus.ACTIVE
