"""Domain models for anonymous guess sets."""

from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from entry_preservation.domain.errors import InvalidGuessError, MalformedPayloadError


@dataclass(frozen=True)
class Guess:
    """A single positional guess with normalised coordinates."""

    id: str
    x: float
    y: float
    captured_at: datetime

    def __post_init__(self) -> None:
        for axis, value in (("x", self.x), ("y", self.y)):
            if not 0 <= value <= 1:
                raise InvalidGuessError(f"{axis}={value} is outside [0, 1]")

    @classmethod
    def create(cls, x: float, y: float, captured_at: datetime | None = None) -> "Guess":
        """Create a guess with a fresh id."""
        return cls(
            id=f"guess-{uuid4().hex[:12]}",
            x=float(x),
            y=float(y),
            captured_at=captured_at or datetime.now(tz=UTC),
        )


@dataclass(frozen=True)
class GuessSet:
    """Pre-authentication collection of guesses for one competition."""

    session_id: str
    competition_id: str
    competition_title: str
    prize_label: str
    unit_price: float
    guesses: tuple[Guess, ...]
    image_ref: str
    created_at: datetime
    email: str | None = None
    submission_token: str | None = None

    def with_guess(self, guess: Guess) -> "GuessSet":
        """Return a copy with the guess appended."""
        return replace(self, guesses=(*self.guesses, guess))

    def with_email(self, email: str) -> "GuessSet":
        return replace(self, email=email)

    def with_token(self, token: str) -> "GuessSet":
        return replace(self, submission_token=token)

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        """Return True when the set is older than the TTL."""
        return now - self.created_at > ttl

    def to_payload(self) -> dict[str, object]:
        """Serialize to a JSON-safe dict."""
        return {
            "session_id": self.session_id,
            "competition_id": self.competition_id,
            "competition_title": self.competition_title,
            "prize_label": self.prize_label,
            "unit_price": self.unit_price,
            "guesses": [
                {
                    "id": guess.id,
                    "x": guess.x,
                    "y": guess.y,
                    "captured_at": guess.captured_at.isoformat(),
                }
                for guess in self.guesses
            ],
            "image_ref": self.image_ref,
            "created_at": self.created_at.isoformat(),
            "email": self.email,
            "submission_token": self.submission_token,
        }

    @classmethod
    def from_payload(cls, payload: object) -> "GuessSet":
        """Parse a payload produced by ``to_payload``.

        Raises ``MalformedPayloadError`` for anything that is not a complete,
        well-typed record.
        """
        if not isinstance(payload, dict):
            raise MalformedPayloadError("Payload is not an object")
        try:
            raw_guesses = payload["guesses"]
            if not isinstance(raw_guesses, list):
                raise MalformedPayloadError("guesses is not a list")
            guesses = tuple(
                Guess(
                    id=str(item["id"]),
                    x=float(item["x"]),
                    y=float(item["y"]),
                    captured_at=_parse_timestamp(item["captured_at"]),
                )
                for item in raw_guesses
            )
            return cls(
                session_id=str(payload["session_id"]),
                competition_id=str(payload["competition_id"]),
                competition_title=str(payload["competition_title"]),
                prize_label=str(payload["prize_label"]),
                unit_price=float(payload["unit_price"]),
                guesses=guesses,
                image_ref=str(payload["image_ref"]),
                created_at=_parse_timestamp(payload["created_at"]),
                email=payload.get("email") or None,
                submission_token=payload.get("submission_token") or None,
            )
        except MalformedPayloadError:
            raise
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedPayloadError(str(exc)) from exc


def _parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
