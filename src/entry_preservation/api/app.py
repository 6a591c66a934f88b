"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, HTTPException, Request, status

from entry_preservation.api.admin import router as admin_router
from entry_preservation.api.models import (
    CallbackRequest,
    GuessSetPayload,
    MigrationResponse,
    TokenResponse,
)
from entry_preservation.app_logging import configure_logging
from entry_preservation.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/pending-entries", status_code=status.HTTP_201_CREATED)
    async def create_pending_entries(
        payload: GuessSetPayload, request: Request
    ) -> TokenResponse:
        """Store a guess set server-side and return its submission token."""
        state_container: AppContainer = request.app.state.container
        token = await asyncio.to_thread(
            state_container.token_service.issue_token, payload.to_domain()
        )
        if token is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Pending entry store unavailable",
            )
        return TokenResponse(token=token)

    @app.get("/pending-entries/{token}")
    async def get_pending_entries(token: str, request: Request) -> dict[str, object]:
        """Return the live guess set for a token."""
        state_container: AppContainer = request.app.state.container
        guess_set = await asyncio.to_thread(
            state_container.token_service.load_by_token, token
        )
        if guess_set is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return guess_set.to_payload()

    @app.post("/auth/callback")
    async def auth_callback(
        request: Request,
        body: CallbackRequest | None = None,
        token: str | None = None,
        x_user_id: str | None = Header(default=None),
        x_user_email: str | None = Header(default=None),
        x_session_id: str | None = Header(default=None),
    ) -> MigrationResponse:
        """Migrate pending guesses once the identity provider has a user."""
        if not x_user_id:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
        state_container: AppContainer = request.app.state.container
        preservation_store = state_container.request_store(
            session_id=x_session_id,
            client_copy=body.preserved if body else None,
        )
        engine = state_container.migration_engine(preservation_store)
        result = await engine.migrate(
            user_id=x_user_id, token=token, email=x_user_email
        )
        if not result.completed:
            logger.warning(
                "Migration for user %s incomplete, will resume on next load",
                x_user_id,
            )
        return MigrationResponse(
            source=result.source.value,
            migrated=result.migrated,
            skipped=result.skipped,
            failed=result.failed,
            completed=result.completed,
        )

    return app
