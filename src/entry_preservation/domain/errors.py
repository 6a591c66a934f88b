"""Domain-level exceptions."""


class InvalidGuessError(ValueError):
    """Raised when a guess has coordinates outside the playing field."""


class InvalidEmailError(ValueError):
    """Raised when an email address cannot be associated with guesses."""


class MalformedPayloadError(ValueError):
    """Raised when a stored payload cannot be parsed into a guess set."""


class InvalidTransitionError(ValueError):
    """Raised when a pending status change is not in the transition table."""


class StorageQuotaExceededError(OSError):
    """Raised by a key-value namespace when a write exceeds its quota."""
