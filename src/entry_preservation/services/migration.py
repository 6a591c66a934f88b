"""Exactly-once migration of preserved guesses into permanent entries."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import partial
from typing import Protocol

from entry_preservation.domain.errors import MalformedPayloadError
from entry_preservation.domain.guesses import GuessSet
from entry_preservation.domain.migration import MigrationResult, MigrationSource
from entry_preservation.domain.pending import (
    PendingRecord,
    PendingStatus,
    PermanentEntry,
    session_source_key,
    token_source_key,
)
from entry_preservation.services.backup import TempEntryRepository
from entry_preservation.services.preservation import PreservationStore
from entry_preservation.services.retry import RetryPolicy
from entry_preservation.services.tokens import PendingRecordRepository

logger = logging.getLogger(__name__)


class PermanentEntryRepository(Protocol):
    """Persistence interface for authoritative competition entries."""

    def insert_entries(self, entries: list[PermanentEntry]) -> int:
        """Insert entries, ignoring duplicates of (source_key, sequence_number).

        Returns the number of rows actually created.
        """

    def list_entries(self, user_id: str, competition_id: str) -> list[PermanentEntry]:
        """Return a user's entries for a competition ordered by sequence."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class MigrationEngine:
    """Moves pending or preserved guesses to the permanent store.

    Sources are tried in a fixed order: submission token, local copy, then
    server backups found by email. A token that resolves always wins over a
    local copy; the two are never merged.

    Every permanent write carries an idempotency key derived from its
    source, and a pending row is only confirmed after its permanent write
    succeeded, through a status-guarded update. A run can therefore stop at
    any point and be repeated, concurrently or later, without duplicating or
    dropping a guess.
    """

    pending_repository: PendingRecordRepository
    entry_repository: PermanentEntryRepository
    preservation_store: PreservationStore
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    temp_entry_repository: TempEntryRepository | None = None
    clock: Callable[[], datetime] = field(default=_utcnow)

    async def migrate(
        self, user_id: str, token: str | None = None, email: str | None = None
    ) -> MigrationResult:
        """Run one migration for an authenticated user."""
        normalized_email = email.strip().lower() if email else None
        local = await asyncio.to_thread(self.preservation_store.load)
        resolved_token = token or (local.submission_token if local else None)

        if resolved_token:
            try:
                rows = await self._fetch_pending(resolved_token)
            except Exception:
                # A failed lookup must not fall through to the local copy.
                logger.exception("Token lookup failed, keeping guesses for retry")
                return await self._finish(
                    MigrationResult(source=MigrationSource.TOKEN, completed=False)
                )
            if rows:
                result = await self._migrate_token(resolved_token, user_id)
                return await self._finish(result)
            logger.info("Token did not resolve, falling back to local guesses")

        if local is not None:
            if normalized_email and local.email and local.email != normalized_email:
                logger.warning(
                    "Preserved guesses belong to a different email, not migrating"
                )
                return MigrationResult.nothing()
            result = await self._migrate_local(local, user_id)
            return await self._finish(result)

        if normalized_email and self.temp_entry_repository is not None:
            result = await self._migrate_by_email(normalized_email, user_id)
            return await self._finish(result)

        logger.info("Nothing to migrate for user %s", user_id)
        return MigrationResult.nothing()

    async def _fetch_pending(self, token: str) -> list[PendingRecord]:
        return await self.retry_policy.run(
            partial(self.pending_repository.list_pending, token, self.clock()),
            "Fetching pending guesses",
        )

    async def _finish(self, result: MigrationResult) -> MigrationResult:
        if result.completed:
            await asyncio.to_thread(self.preservation_store.clear)
        logger.info(
            "Migration from %s: migrated=%d skipped=%d failed=%d completed=%s",
            result.source,
            result.migrated,
            result.skipped,
            result.failed,
            result.completed,
        )
        return result

    async def _migrate_token(self, token: str, user_id: str) -> MigrationResult:
        result = MigrationResult(source=MigrationSource.TOKEN)
        try:
            rows = await self._fetch_pending(token)
        except Exception:
            logger.exception("Could not re-fetch pending guesses")
            result.completed = False
            return result
        if not rows:
            logger.info("Pending guesses already consumed, nothing to do")
            return result

        source_key = token_source_key(token)
        for index, row in enumerate(rows):
            try:
                await self.retry_policy.run(
                    partial(
                        self.entry_repository.insert_entries,
                        [_entry_from_row(row, user_id, source_key)],
                    ),
                    f"Writing entry {row.sequence_number}",
                )
                won = await self.retry_policy.run(
                    partial(
                        self.pending_repository.transition,
                        token,
                        row.sequence_number,
                        PendingStatus.PENDING_CONFIRMATION,
                        PendingStatus.CONFIRMED,
                        user_id,
                    ),
                    f"Confirming entry {row.sequence_number}",
                )
            except Exception:
                logger.exception(
                    "Migration stopped at entry %d, remaining rows stay pending",
                    row.sequence_number,
                )
                result.failed = len(rows) - index
                result.completed = False
                return result
            if won:
                result.migrated += 1
            else:
                result.skipped += 1
        return result

    async def _migrate_local(self, local: GuessSet, user_id: str) -> MigrationResult:
        result = MigrationResult(source=MigrationSource.LOCAL)
        entries = _entries_from_guess_set(local, user_id)
        if not entries:
            return result
        try:
            created = await self.retry_policy.run(
                partial(self.entry_repository.insert_entries, entries),
                "Writing local entries",
            )
        except Exception:
            logger.exception("Failed to migrate local guesses")
            result.failed = len(entries)
            result.completed = False
            return result
        result.migrated = created
        result.skipped = len(entries) - created
        return result

    async def _migrate_by_email(self, email: str, user_id: str) -> MigrationResult:
        result = MigrationResult(source=MigrationSource.EMAIL)
        repository = self.temp_entry_repository
        try:
            records = await self.retry_policy.run(
                partial(repository.list_by_email, email, self.clock()),
                "Fetching backups by email",
            )
        except Exception:
            logger.exception("Could not fetch backed-up guesses by email")
            result.completed = False
            return result

        for record in records:
            try:
                guess_set = GuessSet.from_payload(record.payload)
            except MalformedPayloadError:
                logger.warning("Skipping malformed backup %s", record.id)
                continue
            entries = _entries_from_guess_set(guess_set, user_id)
            try:
                created = await self.retry_policy.run(
                    partial(self.entry_repository.insert_entries, entries),
                    f"Writing entries from backup {record.id}",
                )
                await self.retry_policy.run(
                    partial(repository.delete_entry, record.id),
                    f"Deleting backup {record.id}",
                )
            except Exception:
                logger.exception("Failed to migrate backup %s", record.id)
                result.failed += len(entries)
                result.completed = False
                continue
            result.migrated += created
            result.skipped += len(entries) - created
        return result


def _entry_from_row(
    row: PendingRecord, user_id: str, source_key: str
) -> PermanentEntry:
    return PermanentEntry(
        competition_id=row.competition_id,
        user_id=user_id,
        x=row.x,
        y=row.y,
        price_paid=row.unit_price,
        sequence_number=row.sequence_number,
        source_key=source_key,
    )


def _entries_from_guess_set(guess_set: GuessSet, user_id: str) -> list[PermanentEntry]:
    # A tokenized copy shares the token's key so it can never double up with
    # a token migration of the same guesses.
    if guess_set.submission_token:
        source_key = token_source_key(guess_set.submission_token)
    else:
        source_key = session_source_key(
            guess_set.session_id, guess_set.competition_id, guess_set.created_at
        )
    return [
        PermanentEntry(
            competition_id=guess_set.competition_id,
            user_id=user_id,
            x=guess.x,
            y=guess.y,
            price_paid=guess_set.unit_price,
            sequence_number=index,
            source_key=source_key,
        )
        for index, guess in enumerate(guess_set.guesses, start=1)
    ]
