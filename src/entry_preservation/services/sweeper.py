"""Periodic cleanup of expired pending and backup rows."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from entry_preservation.domain.migration import SweepReport
from entry_preservation.services.backup import TempEntryRepository
from entry_preservation.services.tokens import PendingRecordRepository

logger = logging.getLogger(__name__)


@dataclass
class ExpirySweeper:
    """Physically tidies rows that every reader already treats as absent."""

    pending_repository: PendingRecordRepository
    temp_entry_repository: TempEntryRepository | None = None
    retention: timedelta = timedelta(days=30)

    def sweep(self, now: datetime | None = None) -> SweepReport:
        """Expire stale pending rows and delete old finished ones."""
        current = now or datetime.now(tz=UTC)
        expired = self.pending_repository.expire_stale(current)
        deleted = self.pending_repository.delete_finished(current - self.retention)
        temp_deleted = 0
        if self.temp_entry_repository is not None:
            temp_deleted = self.temp_entry_repository.delete_expired(current)
        logger.info(
            "Sweep finished: expired=%d deleted=%d temp_entries_deleted=%d",
            expired,
            deleted,
            temp_deleted,
        )
        return SweepReport(
            expired=expired, deleted=deleted, temp_entries_deleted=temp_deleted
        )
