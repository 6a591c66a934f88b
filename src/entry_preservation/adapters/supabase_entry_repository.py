"""Supabase repository for permanent competition entries."""

from dataclasses import dataclass

from supabase import Client

from entry_preservation.domain.pending import PermanentEntry
from entry_preservation.services.migration import PermanentEntryRepository

_TABLE = "competition_entries"


@dataclass
class SupabaseEntryRepository(PermanentEntryRepository):
    """Supabase implementation for competition entries."""

    client: Client

    def insert_entries(self, entries: list[PermanentEntry]) -> int:
        """Insert entries, skipping rows whose idempotency key already exists."""
        if not entries:
            return 0
        payload = [
            {
                "competition_id": entry.competition_id,
                "user_id": entry.user_id,
                "guess_x": entry.x,
                "guess_y": entry.y,
                "entry_price_paid": entry.price_paid,
                "entry_number": entry.sequence_number,
                "source_key": entry.source_key,
            }
            for entry in entries
        ]
        response = (
            self.client.table(_TABLE)
            .upsert(
                payload,
                on_conflict="source_key,entry_number",
                ignore_duplicates=True,
            )
            .execute()
        )
        return len(response.data or [])

    def list_entries(self, user_id: str, competition_id: str) -> list[PermanentEntry]:
        """Return a user's entries for one competition."""
        response = (
            self.client.table(_TABLE)
            .select(
                "competition_id, user_id, guess_x, guess_y, entry_price_paid, "
                "entry_number, source_key"
            )
            .eq("user_id", user_id)
            .eq("competition_id", competition_id)
            .order("entry_number")
            .execute()
        )
        return [
            PermanentEntry(
                competition_id=str(row["competition_id"]),
                user_id=str(row["user_id"]),
                x=float(row["guess_x"]),
                y=float(row["guess_y"]),
                price_paid=float(row["entry_price_paid"]),
                sequence_number=int(row["entry_number"]),
                source_key=str(row["source_key"]),
            )
            for row in response.data or []
        ]
