"""Binding a signup email to the preserved guess set."""

import logging
from dataclasses import dataclass

from entry_preservation.domain.errors import InvalidEmailError
from entry_preservation.domain.guesses import GuessSet
from entry_preservation.services.preservation import PreservationStore

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Return a trimmed, lower-cased email or raise ``InvalidEmailError``."""
    cleaned = email.strip().lower()
    local, sep, domain = cleaned.partition("@")
    if not sep or not local or not domain:
        raise InvalidEmailError(f"Not an email address: {email!r}")
    return cleaned


@dataclass
class EmailAssociationService:
    """Stamps the signup email onto every local copy of the guess set."""

    preservation_store: PreservationStore

    def associate(self, email: str) -> GuessSet | None:
        """Return the updated guess set, or None if nothing is preserved."""
        normalized = normalize_email(email)
        preserved = self.preservation_store.load()
        if preserved is None:
            logger.info("No preserved guesses to associate with an email")
            return None
        updated = preserved.with_email(normalized)
        self.preservation_store.save(updated)
        logger.info(
            "Associated %d preserved guesses with an email", len(updated.guesses)
        )
        return updated
