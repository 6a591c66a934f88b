"""Supabase repository for tokenized pending entries."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from entry_preservation.domain.pending import PendingRecord, PendingStatus
from entry_preservation.services.tokens import PendingRecordRepository

_TABLE = "pending_entries"
_COLUMNS = (
    "submission_token, competition_id, competition_title, prize_short, "
    "entry_price, guess_x, guess_y, entry_number, image_url, user_email, "
    "status, created_at, expires_at, confirmed_user_id"
)


@dataclass
class SupabasePendingRepository(PendingRecordRepository):
    """Supabase implementation for pending entries."""

    client: Client

    def insert_pending(self, records: list[PendingRecord]) -> None:
        """Insert one row per guess."""
        payload = [
            {
                "submission_token": record.token,
                "competition_id": record.competition_id,
                "competition_title": record.competition_title,
                "prize_short": record.prize_label,
                "entry_price": record.unit_price,
                "guess_x": record.x,
                "guess_y": record.y,
                "entry_number": record.sequence_number,
                "image_url": record.image_ref,
                "user_email": record.email,
                "status": record.status.value,
                "created_at": record.created_at.isoformat(),
                "expires_at": record.expires_at.isoformat(),
            }
            for record in records
        ]
        response = self.client.table(_TABLE).insert(payload).execute()
        if not response.data:
            raise RuntimeError("Failed to create pending entries")

    def list_pending(self, token: str, now: datetime) -> list[PendingRecord]:
        """Return live pending rows for a token."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("submission_token", token)
            .eq("status", PendingStatus.PENDING_CONFIRMATION.value)
            .gt("expires_at", now.isoformat())
            .order("entry_number")
            .execute()
        )
        return [_to_record(row) for row in response.data or []]

    def transition(
        self,
        token: str,
        sequence_number: int,
        from_status: PendingStatus,
        to_status: PendingStatus,
        user_id: str | None = None,
    ) -> bool:
        """Apply a status change guarded by the current status."""
        from_status.require_transition(to_status)
        patch: dict[str, object] = {
            "status": to_status.value,
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        if user_id is not None:
            patch["confirmed_user_id"] = user_id
        response = (
            self.client.table(_TABLE)
            .update(patch)
            .eq("submission_token", token)
            .eq("entry_number", sequence_number)
            .eq("status", from_status.value)
            .execute()
        )
        return bool(response.data)

    def expire_stale(self, now: datetime) -> int:
        """Mark past-TTL pending rows expired."""
        PendingStatus.PENDING_CONFIRMATION.require_transition(PendingStatus.EXPIRED)
        response = (
            self.client.table(_TABLE)
            .update(
                {
                    "status": PendingStatus.EXPIRED.value,
                    "updated_at": now.isoformat(),
                }
            )
            .eq("status", PendingStatus.PENDING_CONFIRMATION.value)
            .lte("expires_at", now.isoformat())
            .execute()
        )
        return len(response.data or [])

    def delete_finished(self, before: datetime) -> int:
        """Delete confirmed and expired rows older than the cutoff."""
        response = (
            self.client.table(_TABLE)
            .delete()
            .in_(
                "status",
                [PendingStatus.CONFIRMED.value, PendingStatus.EXPIRED.value],
            )
            .lt("created_at", before.isoformat())
            .execute()
        )
        return len(response.data or [])


def _to_record(row: dict[str, object]) -> PendingRecord:
    return PendingRecord(
        token=str(row["submission_token"]),
        competition_id=str(row["competition_id"]),
        competition_title=str(row.get("competition_title") or ""),
        prize_label=str(row.get("prize_short") or ""),
        x=float(row["guess_x"]),
        y=float(row["guess_y"]),
        sequence_number=int(row["entry_number"]),
        unit_price=float(row["entry_price"]),
        image_ref=str(row.get("image_url") or ""),
        email=row.get("user_email") or None,
        status=PendingStatus(row["status"]),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        expires_at=datetime.fromisoformat(str(row["expires_at"])),
        confirmed_user_id=row.get("confirmed_user_id") or None,
    )
