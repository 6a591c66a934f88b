"""Optional server-side backup of whole guess sets, keyed by session."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from entry_preservation.domain.pending import TempEntryRecord
from entry_preservation.services.preservation import LOCAL_TTL, PreservationTier

logger = logging.getLogger(__name__)


class TempEntryRepository(Protocol):
    """Persistence interface for the temp_entries backup table."""

    def upsert_entry(
        self,
        session_id: str,
        competition_id: str,
        payload: dict[str, object],
        email: str | None,
        expires_at: datetime,
    ) -> None:
        """Insert or replace the backup for a session and competition."""

    def get_by_session(self, session_id: str, now: datetime) -> TempEntryRecord | None:
        """Return the newest unexpired backup for a session."""

    def list_by_email(self, email: str, now: datetime) -> list[TempEntryRecord]:
        """Return unexpired backups associated with an email."""

    def delete_entry(self, entry_id: str) -> None:
        """Delete a single backup row."""

    def delete_session(self, session_id: str) -> None:
        """Delete every backup row for a session."""

    def delete_expired(self, now: datetime) -> int:
        """Delete past-TTL backup rows and return how many were removed."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class TempEntryTier(PreservationTier):
    """Preservation tier backed by the temp_entries table."""

    repository: TempEntryRepository
    session_id: str
    name: str = "server_backup"
    ttl: timedelta = LOCAL_TTL
    clock: Callable[[], datetime] = field(default=_utcnow)

    def save(self, payload: dict[str, object]) -> None:
        email = payload.get("email")
        self.repository.upsert_entry(
            session_id=self.session_id,
            competition_id=str(payload["competition_id"]),
            payload=payload,
            email=str(email) if email else None,
            expires_at=self.clock() + self.ttl,
        )

    def load(self) -> dict[str, object] | None:
        record = self.repository.get_by_session(self.session_id, self.clock())
        return record.payload if record else None

    def clear(self) -> None:
        self.repository.delete_session(self.session_id)
