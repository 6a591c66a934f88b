"""Domain models for server-held pending records and permanent entries."""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

from entry_preservation.domain.errors import InvalidTransitionError


class PendingStatus(StrEnum):
    """Lifecycle of a pending record row."""

    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"

    def can_transition(self, target: "PendingStatus") -> bool:
        """Return True if ``self -> target`` is an allowed transition."""
        return target in _ALLOWED_TRANSITIONS.get(self, frozenset())

    def require_transition(self, target: "PendingStatus") -> None:
        """Raise ``InvalidTransitionError`` for a disallowed transition."""
        if not self.can_transition(target):
            raise InvalidTransitionError(f"{self.value} -> {target.value}")


_ALLOWED_TRANSITIONS: dict[PendingStatus, frozenset[PendingStatus]] = {
    PendingStatus.PENDING_CONFIRMATION: frozenset(
        {PendingStatus.CONFIRMED, PendingStatus.EXPIRED}
    ),
    PendingStatus.CONFIRMED: frozenset(),
    PendingStatus.EXPIRED: frozenset(),
}


@dataclass(frozen=True)
class PendingRecord:
    """One guess awaiting migration, grouped by submission token."""

    token: str
    competition_id: str
    competition_title: str
    prize_label: str
    x: float
    y: float
    sequence_number: int
    unit_price: float
    image_ref: str
    email: str | None
    status: PendingStatus
    created_at: datetime
    expires_at: datetime
    confirmed_user_id: str | None = None

    def is_live(self, now: datetime) -> bool:
        """Return True while the row is still eligible for migration."""
        return (
            self.status is PendingStatus.PENDING_CONFIRMATION and self.expires_at > now
        )


@dataclass(frozen=True)
class PermanentEntry:
    """Authoritative, user-attributed competition entry."""

    competition_id: str
    user_id: str
    x: float
    y: float
    price_paid: float
    sequence_number: int
    source_key: str


@dataclass(frozen=True)
class TempEntryRecord:
    """Server-side backup of a whole guess set, keyed by session."""

    id: str
    session_id: str
    competition_id: str
    payload: dict[str, object]
    email: str | None
    expires_at: datetime


def token_source_key(token: str) -> str:
    """Idempotency key for entries migrated from a submission token."""
    return f"token:{token}"


def session_source_key(
    session_id: str, competition_id: str, created_at: datetime
) -> str:
    """Idempotency key for entries migrated from a preserved local copy.

    The creation time tells apart successive guess sets played in the same
    session for the same competition.
    """
    stamp = created_at.astimezone(UTC).isoformat()
    return f"session:{session_id}:{competition_id}:{stamp}"
