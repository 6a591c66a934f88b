"""Redundant local preservation of anonymous guess sets."""

import json
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from entry_preservation.domain.errors import MalformedPayloadError
from entry_preservation.domain.guesses import GuessSet

logger = logging.getLogger(__name__)

LOCAL_TTL = timedelta(hours=24)


class KeyValueStore(Protocol):
    """A string key-value namespace, shaped like browser web storage."""

    def get_item(self, key: str) -> str | None:
        """Return the stored value or None."""

    def set_item(self, key: str, value: str) -> None:
        """Store a value, raising on quota or I/O failure."""

    def remove_item(self, key: str) -> None:
        """Delete a value if present."""


class PreservationTier(Protocol):
    """One independent backend in the preservation fallback chain."""

    name: str

    def save(self, payload: dict[str, object]) -> None:
        """Persist the payload, raising on failure."""

    def load(self) -> dict[str, object] | None:
        """Return the stored payload, if present."""

    def clear(self) -> None:
        """Delete the stored payload."""


@dataclass
class KeyValueTier(PreservationTier):
    """Tier that stores a JSON document under one key of a namespace."""

    name: str
    store: KeyValueStore
    key: str = "preserved_entries"

    def save(self, payload: dict[str, object]) -> None:
        self.store.set_item(self.key, json.dumps(payload))

    def load(self) -> dict[str, object] | None:
        raw = self.store.get_item(self.key)
        if raw is None:
            return None
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedPayloadError(f"Invalid JSON in {self.name}") from exc
        if not isinstance(decoded, dict):
            raise MalformedPayloadError(f"Unexpected payload type in {self.name}")
        return decoded

    def clear(self) -> None:
        self.store.remove_item(self.key)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class PreservationStore:
    """Writes a guess set to every tier and reads back the first usable copy.

    Tiers are tried in the order given. Each tier is best-effort: a failing
    tier is logged and skipped, so a save succeeds as long as one tier
    accepts the payload and a load returns nothing rather than raising.
    """

    tiers: Sequence[PreservationTier]
    ttl: timedelta = LOCAL_TTL
    clock: Callable[[], datetime] = field(default=_utcnow)

    def save(self, guess_set: GuessSet) -> dict[str, bool]:
        """Write the guess set to all tiers and report per-tier success."""
        payload = guess_set.to_payload()
        results: dict[str, bool] = {}
        for tier in self.tiers:
            try:
                tier.save(payload)
            except Exception:
                logger.warning("Failed to save guesses to tier %s", tier.name)
                results[tier.name] = False
            else:
                results[tier.name] = True
        if not any(results.values()):
            logger.error(
                "All preservation tiers failed for session %s", guess_set.session_id
            )
        return results

    def load(self) -> GuessSet | None:
        """Return the first parseable, unexpired guess set, if any."""
        now = self.clock()
        saw_expired = False
        for tier in self.tiers:
            try:
                payload = tier.load()
                if payload is None:
                    continue
                guess_set = GuessSet.from_payload(payload)
            except Exception:
                logger.warning("Skipping unreadable record in tier %s", tier.name)
                continue
            if guess_set.is_expired(now, self.ttl):
                saw_expired = True
                continue
            if saw_expired:
                self.clear()
                self.save(guess_set)
            return guess_set
        if saw_expired:
            logger.info("Preserved guesses expired, clearing all tiers")
            self.clear()
        return None

    def clear(self) -> None:
        """Delete the preserved guess set from every tier."""
        for tier in self.tiers:
            try:
                tier.clear()
            except Exception:
                logger.warning("Failed to clear tier %s", tier.name)

    def has_valid_guesses(self) -> bool:
        guess_set = self.load()
        return guess_set is not None and len(guess_set.guesses) > 0
