"""Domain models describing migration outcomes."""

from dataclasses import dataclass
from enum import StrEnum


class MigrationSource(StrEnum):
    """Where a migration run found the guesses it moved."""

    TOKEN = "token"
    LOCAL = "local"
    EMAIL = "email"
    NONE = "none"


@dataclass
class MigrationResult:
    """Outcome of a single migration run."""

    source: MigrationSource
    migrated: int = 0
    skipped: int = 0
    failed: int = 0
    completed: bool = True

    @classmethod
    def nothing(cls) -> "MigrationResult":
        return cls(source=MigrationSource.NONE)


@dataclass(frozen=True)
class SweepReport:
    """Counts of rows touched by an expiry sweep."""

    expired: int
    deleted: int
    temp_entries_deleted: int
