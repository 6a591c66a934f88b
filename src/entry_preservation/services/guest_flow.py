"""Caller-side orchestration of the anonymous entry flow."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from urllib.parse import urlencode

from entry_preservation.domain.guesses import Guess, GuessSet
from entry_preservation.services.association import EmailAssociationService
from entry_preservation.services.identity import SessionIdentityManager
from entry_preservation.services.preservation import PreservationStore
from entry_preservation.services.tokens import SubmissionTokenService

logger = logging.getLogger(__name__)


@dataclass
class GuestEntryFlow:
    """Capture, preserve, tokenize, then associate guesses before signup."""

    identity: SessionIdentityManager
    preservation_store: PreservationStore
    token_service: SubmissionTokenService
    association: EmailAssociationService

    def start(
        self,
        competition_id: str,
        competition_title: str,
        prize_label: str,
        unit_price: float,
        image_ref: str,
    ) -> GuessSet:
        """Resume the preserved set for this competition or start a new one."""
        preserved = self.preservation_store.load()
        if preserved is not None and preserved.competition_id == competition_id:
            return preserved
        return GuessSet(
            session_id=self.identity.get_session_id(),
            competition_id=competition_id,
            competition_title=competition_title,
            prize_label=prize_label,
            unit_price=unit_price,
            guesses=(),
            image_ref=image_ref,
            created_at=datetime.now(tz=UTC),
        )

    def add_guess(self, guess_set: GuessSet, x: float, y: float) -> GuessSet:
        """Append a guess and preserve the result immediately."""
        updated = guess_set.with_guess(Guess.create(x, y))
        self.preservation_store.save(updated)
        return updated

    def checkout(self, guess_set: GuessSet) -> GuessSet:
        """Preserve locally, then try to obtain a cross-device token."""
        self.preservation_store.save(guess_set)
        token = self.token_service.issue_token(guess_set)
        if token is None:
            logger.warning("Continuing with local-only preservation")
            return guess_set
        tokenized = guess_set.with_token(token)
        self.preservation_store.save(tokenized)
        return tokenized

    def sign_up(self, email: str) -> GuessSet | None:
        return self.association.associate(email)


def confirmation_url(base_url: str, token: str | None) -> str:
    """Build the auth callback URL carried in the confirmation email."""
    url = f"{base_url.rstrip('/')}/auth/callback"
    if token:
        url = f"{url}?{urlencode({'token': token})}"
    return url
