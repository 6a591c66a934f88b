"""Server-side tokenized pending records for cross-device recovery."""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from entry_preservation.domain.guesses import Guess, GuessSet
from entry_preservation.domain.pending import PendingRecord, PendingStatus

logger = logging.getLogger(__name__)

PENDING_TTL = timedelta(days=7)
TOKEN_SESSION_ID = "token-based"


class PendingRecordRepository(Protocol):
    """Persistence interface for pending record rows."""

    def insert_pending(self, records: list[PendingRecord]) -> None:
        """Insert a full token group, raising on failure."""

    def list_pending(self, token: str, now: datetime) -> list[PendingRecord]:
        """Return unexpired pending_confirmation rows ordered by sequence."""

    def transition(
        self,
        token: str,
        sequence_number: int,
        from_status: PendingStatus,
        to_status: PendingStatus,
        user_id: str | None = None,
    ) -> bool:
        """Change a row's status only if it still has ``from_status``."""

    def expire_stale(self, now: datetime) -> int:
        """Mark past-TTL pending rows expired and return how many changed."""

    def delete_finished(self, before: datetime) -> int:
        """Delete confirmed or expired rows created before the cutoff."""


def generate_submission_token() -> str:
    """Return a new opaque submission token."""
    return f"sub_{secrets.token_urlsafe(18)}"


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SubmissionTokenService:
    """Mints tokens and stores one pending row per guess."""

    repository: PendingRecordRepository
    ttl: timedelta = PENDING_TTL
    clock: Callable[[], datetime] = field(default=_utcnow)

    def issue_token(self, guess_set: GuessSet) -> str | None:
        """Persist the guess set under a fresh token.

        Best-effort: any failure returns None and the caller keeps relying on
        the local copy.
        """
        if not guess_set.guesses:
            return None
        token = generate_submission_token()
        now = self.clock()
        records = [
            PendingRecord(
                token=token,
                competition_id=guess_set.competition_id,
                competition_title=guess_set.competition_title,
                prize_label=guess_set.prize_label,
                x=guess.x,
                y=guess.y,
                sequence_number=index,
                unit_price=guess_set.unit_price,
                image_ref=guess_set.image_ref,
                email=guess_set.email,
                status=PendingStatus.PENDING_CONFIRMATION,
                created_at=now,
                expires_at=now + self.ttl,
            )
            for index, guess in enumerate(guess_set.guesses, start=1)
        ]
        try:
            self.repository.insert_pending(records)
        except Exception:
            logger.exception("Failed to store pending guesses")
            return None
        logger.info("Stored %d pending guesses under a new token", len(records))
        return token

    def load_by_token(self, token: str) -> GuessSet | None:
        """Rebuild a guess set from the token's live pending rows."""
        try:
            rows = self.repository.list_pending(token, self.clock())
        except Exception:
            logger.exception("Failed to load pending guesses by token")
            return None
        if not rows:
            logger.info("No live pending guesses for token")
            return None
        first = rows[0]
        return GuessSet(
            session_id=TOKEN_SESSION_ID,
            competition_id=first.competition_id,
            competition_title=first.competition_title,
            prize_label=first.prize_label,
            unit_price=first.unit_price,
            guesses=tuple(
                Guess(
                    id=f"entry-{row.sequence_number}",
                    x=row.x,
                    y=row.y,
                    captured_at=row.created_at,
                )
                for row in rows
            ),
            image_ref=first.image_ref,
            created_at=first.created_at,
            email=first.email,
            submission_token=token,
        )
