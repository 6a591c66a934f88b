"""Pydantic models for the HTTP API."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from entry_preservation.domain.guesses import Guess, GuessSet


class GuessPayload(BaseModel):
    """A single guess in normalised coordinates."""

    id: str | None = None
    x: float = Field(ge=0, le=1)
    y: float = Field(ge=0, le=1)
    captured_at: datetime | None = None


class GuessSetPayload(BaseModel):
    """A guess set submitted before the player has an account."""

    session_id: str
    competition_id: str
    competition_title: str
    prize_label: str
    unit_price: float = Field(ge=0)
    guesses: list[GuessPayload] = Field(min_length=1)
    image_ref: str
    created_at: datetime | None = None
    email: str | None = None

    def to_domain(self) -> GuessSet:
        now = datetime.now(tz=UTC)
        return GuessSet(
            session_id=self.session_id,
            competition_id=self.competition_id,
            competition_title=self.competition_title,
            prize_label=self.prize_label,
            unit_price=self.unit_price,
            guesses=tuple(
                Guess(
                    id=guess.id or f"entry-{index}",
                    x=guess.x,
                    y=guess.y,
                    captured_at=guess.captured_at or now,
                )
                for index, guess in enumerate(self.guesses, start=1)
            ),
            image_ref=self.image_ref,
            created_at=self.created_at or now,
            email=self.email,
        )


class TokenResponse(BaseModel):
    """Token minted for a pending guess set."""

    token: str


class CallbackRequest(BaseModel):
    """Optional client-held copy sent along with the auth callback."""

    preserved: dict[str, object] | None = None


class MigrationResponse(BaseModel):
    """Outcome of a migration run."""

    source: str
    migrated: int
    skipped: int
    failed: int
    completed: bool
