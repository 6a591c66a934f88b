"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from supabase import create_client

from entry_preservation.adapters.key_value_stores import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)
from entry_preservation.adapters.supabase_entry_repository import (
    SupabaseEntryRepository,
)
from entry_preservation.adapters.supabase_pending_repository import (
    SupabasePendingRepository,
)
from entry_preservation.adapters.supabase_temp_entry_repository import (
    SupabaseTempEntryRepository,
)
from entry_preservation.config import Settings
from entry_preservation.services.association import EmailAssociationService
from entry_preservation.services.backup import TempEntryRepository, TempEntryTier
from entry_preservation.services.guest_flow import GuestEntryFlow
from entry_preservation.services.identity import SessionIdentityManager
from entry_preservation.services.migration import (
    MigrationEngine,
    PermanentEntryRepository,
)
from entry_preservation.services.preservation import (
    KeyValueStore,
    KeyValueTier,
    PreservationStore,
    PreservationTier,
)
from entry_preservation.services.retry import RetryPolicy
from entry_preservation.services.sweeper import ExpirySweeper
from entry_preservation.services.tokens import (
    PendingRecordRepository,
    SubmissionTokenService,
)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    pending_repository: PendingRecordRepository
    entry_repository: PermanentEntryRepository
    temp_entry_repository: TempEntryRepository | None
    token_service: SubmissionTokenService
    retry_policy: RetryPolicy
    sweeper: ExpirySweeper
    close_resources: Callable[[], Awaitable[None]]

    @property
    def local_ttl(self) -> timedelta:
        return timedelta(hours=self.settings.local_ttl_hours)

    def request_store(
        self,
        session_id: str | None = None,
        client_copy: dict[str, object] | None = None,
    ) -> PreservationStore:
        """Build a preservation store for one callback request.

        Tiers are the copy the browser sent along, then the server backup for
        its session when backups are enabled.
        """
        tiers: list[PreservationTier] = []
        if client_copy is not None:
            tier = KeyValueTier(name="client_copy", store=InMemoryKeyValueStore())
            tier.save(client_copy)
            tiers.append(tier)
        if session_id and self.temp_entry_repository is not None:
            tiers.append(
                TempEntryTier(
                    repository=self.temp_entry_repository,
                    session_id=session_id,
                    ttl=self.local_ttl,
                )
            )
        return PreservationStore(tiers=tiers, ttl=self.local_ttl)

    def migration_engine(
        self, preservation_store: PreservationStore
    ) -> MigrationEngine:
        return MigrationEngine(
            pending_repository=self.pending_repository,
            entry_repository=self.entry_repository,
            preservation_store=preservation_store,
            retry_policy=self.retry_policy,
            temp_entry_repository=self.temp_entry_repository,
        )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    pending_repository = SupabasePendingRepository(supabase_client)
    entry_repository = SupabaseEntryRepository(supabase_client)
    temp_entry_repository = (
        SupabaseTempEntryRepository(supabase_client)
        if resolved_settings.server_backup_enabled
        else None
    )
    token_service = SubmissionTokenService(
        repository=pending_repository,
        ttl=timedelta(days=resolved_settings.pending_ttl_days),
    )
    retry_policy = RetryPolicy(
        max_attempts=resolved_settings.migration_max_attempts,
        base_delay=resolved_settings.migration_base_delay_seconds,
        max_delay=resolved_settings.migration_max_delay_seconds,
        timeout=resolved_settings.request_timeout_seconds,
    )
    sweeper = ExpirySweeper(
        pending_repository=pending_repository,
        temp_entry_repository=temp_entry_repository,
        retention=timedelta(days=resolved_settings.finished_retention_days),
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=resolved_settings,
        pending_repository=pending_repository,
        entry_repository=entry_repository,
        temp_entry_repository=temp_entry_repository,
        token_service=token_service,
        retry_policy=retry_policy,
        sweeper=sweeper,
        close_resources=close_resources,
    )


def build_guest_flow(
    container: AppContainer,
    persistent_store: KeyValueStore | None = None,
    session_store: KeyValueStore | None = None,
) -> GuestEntryFlow:
    """Wire the anonymous entry flow for one browsing context.

    Tier order: persistent namespace, session namespace, then the server
    backup when enabled. The persistent namespace also holds the session id.
    """
    settings = container.settings
    persistent = persistent_store or JsonFileKeyValueStore(
        Path(settings.local_store_path)
    )
    session = session_store or InMemoryKeyValueStore(
        quota_bytes=settings.session_store_quota_bytes
    )
    identity = SessionIdentityManager(persistent)
    tiers: list[PreservationTier] = [
        KeyValueTier(name="persistent", store=persistent),
        KeyValueTier(name="session", store=session),
    ]
    if container.temp_entry_repository is not None:
        tiers.append(
            TempEntryTier(
                repository=container.temp_entry_repository,
                session_id=identity.get_session_id(),
                ttl=container.local_ttl,
            )
        )
    preservation_store = PreservationStore(tiers=tiers, ttl=container.local_ttl)
    return GuestEntryFlow(
        identity=identity,
        preservation_store=preservation_store,
        token_service=container.token_service,
        association=EmailAssociationService(preservation_store),
    )
