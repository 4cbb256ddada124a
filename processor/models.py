"""Data models for event lifecycle processing."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


MAX_NAG_ATTEMPTS = 5


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


class RecordDecodeError(Exception):
    """Raised when a raw store page cannot be decoded into an EventRecord."""

    def __init__(self, record_id: str, message: str):
        super().__init__(f"Record {record_id}: {message}")
        self.record_id = record_id


class MissingFieldError(Exception):
    """Raised when a record lacks a field required to build a calendar event."""


class InvalidTransitionError(Exception):
    """Raised when a status change is not allowed by the transition table."""


class EventStatus(Enum):
    """Lifecycle status of an event record."""
    APPROVED = 'Approved'
    SCHEDULED = 'Scheduled'
    OTHER = 'Other'

    @classmethod
    def from_store(cls, value: Optional[str]) -> 'EventStatus':
        """Map a raw select value; anything unrecognised is OTHER."""
        if value == cls.APPROVED.value:
            return cls.APPROVED
        if value == cls.SCHEDULED.value:
            return cls.SCHEDULED
        return cls.OTHER


class NagStatus(Enum):
    """Reminder tracking status of an event record."""
    EMPTY = ''
    PENDING = 'Pending'
    GAVE_UP = 'Gave Up'

    @classmethod
    def from_store(cls, value: Optional[str]) -> 'NagStatus':
        """
        Map a raw select value.

        Raises:
            ValueError: If the value is not a known nag status
        """
        if value is None:
            return cls.EMPTY
        return cls(value)


STATUS_TRANSITIONS = {
    EventStatus.APPROVED: {EventStatus.SCHEDULED},
    EventStatus.SCHEDULED: set(),
    EventStatus.OTHER: set(),
}

NAG_STATUS_TRANSITIONS = {
    NagStatus.EMPTY: {NagStatus.PENDING, NagStatus.GAVE_UP},
    NagStatus.PENDING: {NagStatus.PENDING, NagStatus.GAVE_UP},
    NagStatus.GAVE_UP: set(),
}


def check_status_transition(current: EventStatus, new: EventStatus) -> None:
    """Raise InvalidTransitionError unless current -> new is allowed."""
    if new not in STATUS_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Status cannot change from {current.value} to {new.value}"
        )


def check_nag_transition(current: NagStatus, new: NagStatus) -> None:
    """Raise InvalidTransitionError unless current -> new is allowed."""
    if new not in NAG_STATUS_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Nag status cannot change from {current.value or 'empty'} "
            f"to {new.value or 'empty'}"
        )


@dataclass
class EventRecord:
    """Typed snapshot of an event record read from the store."""
    id: str
    status: EventStatus
    nag_status: NagStatus
    nag_count: int
    last_edited: datetime
    last_nagged: Optional[datetime] = None
    title: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    asked_who: Optional[str] = None
    calendar_id: Optional[str] = None
    raw_status: Optional[str] = None


class NagAction(Enum):
    """Outcome of a scheduling decision."""
    DUE = 'due'
    NOT_DUE = 'not_due'
    GIVE_UP = 'give_up'


@dataclass(frozen=True)
class NagDecision:
    """Whether to nag a record now, and whom."""
    action: NagAction
    reason: str
    person: Optional[str] = None

    @classmethod
    def due(cls, person: str, reason: str) -> 'NagDecision':
        return cls(action=NagAction.DUE, reason=reason, person=person)

    @classmethod
    def not_due(cls, reason: str) -> 'NagDecision':
        return cls(action=NagAction.NOT_DUE, reason=reason)

    @classmethod
    def give_up(cls) -> 'NagDecision':
        return cls(action=NagAction.GIVE_UP, reason='max_attempts')


@dataclass
class NagRunResult:
    """Result of a nag pass."""
    candidates: int = 0
    nagged: int = 0
    skipped: int = 0
    gave_up: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class CalendarSyncResult:
    """Result of a calendar sync pass."""
    approved: int = 0
    synced: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
