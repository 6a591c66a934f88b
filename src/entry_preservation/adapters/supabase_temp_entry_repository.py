"""Supabase repository for server-side guess set backups."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from entry_preservation.domain.pending import TempEntryRecord
from entry_preservation.services.backup import TempEntryRepository

_TABLE = "temp_entries"
_COLUMNS = "id, session_id, competition_id, entries_data, user_email, expires_at"


@dataclass
class SupabaseTempEntryRepository(TempEntryRepository):
    """Supabase implementation for temp_entries."""

    client: Client

    def upsert_entry(
        self,
        session_id: str,
        competition_id: str,
        payload: dict[str, object],
        email: str | None,
        expires_at: datetime,
    ) -> None:
        """Insert or replace the backup row for a session and competition."""
        response = (
            self.client.table(_TABLE)
            .upsert(
                {
                    "session_id": session_id,
                    "competition_id": competition_id,
                    "entries_data": payload,
                    "user_email": email,
                    "expires_at": expires_at.isoformat(),
                },
                on_conflict="session_id,competition_id",
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to back up guesses")

    def get_by_session(self, session_id: str, now: datetime) -> TempEntryRecord | None:
        """Return the newest unexpired backup for a session."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("session_id", session_id)
            .gt("expires_at", now.isoformat())
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_record(response.data[0])

    def list_by_email(self, email: str, now: datetime) -> list[TempEntryRecord]:
        """Return unexpired backups for an email."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("user_email", email)
            .gt("expires_at", now.isoformat())
            .execute()
        )
        return [_to_record(row) for row in response.data or []]

    def delete_entry(self, entry_id: str) -> None:
        """Delete a backup row by id."""
        self.client.table(_TABLE).delete().eq("id", entry_id).execute()

    def delete_session(self, session_id: str) -> None:
        """Delete every backup row for a session."""
        self.client.table(_TABLE).delete().eq("session_id", session_id).execute()

    def delete_expired(self, now: datetime) -> int:
        """Delete past-TTL backups."""
        response = (
            self.client.table(_TABLE)
            .delete()
            .lte("expires_at", now.isoformat())
            .execute()
        )
        return len(response.data or [])


def _to_record(row: dict[str, object]) -> TempEntryRecord:
    payload = row.get("entries_data")
    return TempEntryRecord(
        id=str(row["id"]),
        session_id=str(row["session_id"]),
        competition_id=str(row["competition_id"]),
        payload=payload if isinstance(payload, dict) else {},
        email=row.get("user_email") or None,
        expires_at=datetime.fromisoformat(str(row["expires_at"])),
    )
