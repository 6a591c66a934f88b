"""Anonymous session identity for a browsing context."""

import logging
import secrets
from dataclasses import dataclass

from entry_preservation.services.preservation import KeyValueStore

logger = logging.getLogger(__name__)

SESSION_ID_KEY = "entry_session_id"


def generate_session_id() -> str:
    """Return a new cryptographically random session id."""
    return f"session_{secrets.token_urlsafe(16)}"


@dataclass
class SessionIdentityManager:
    """Returns a stable anonymous id, persisting it in the primary namespace.

    Never raises: when the namespace is unavailable the id lives only on
    this manager for the rest of the browsing context.
    """

    store: KeyValueStore
    _fallback_id: str | None = None

    def get_session_id(self) -> str:
        """Return the existing session id or create and persist a new one."""
        if self._fallback_id is not None:
            return self._fallback_id
        try:
            existing = self.store.get_item(SESSION_ID_KEY)
        except Exception:
            logger.warning("Session store unreadable, using in-memory session id")
            return self._use_fallback()
        if existing:
            return existing

        session_id = generate_session_id()
        try:
            self.store.set_item(SESSION_ID_KEY, session_id)
        except Exception:
            logger.warning("Session store unwritable, using in-memory session id")
            self._fallback_id = session_id
        return session_id

    def _use_fallback(self) -> str:
        self._fallback_id = generate_session_id()
        return self._fallback_id
