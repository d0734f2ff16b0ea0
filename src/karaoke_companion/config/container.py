"""Dependency Injection Container

Manages the application's dependency graph, providing lazy initialization
and lifecycle management for services, repositories and adapters.
Components are created on-demand and cached for reuse throughout the application.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from ..application.interfaces.auth import TokenRefresher, TokenStore
    from ..application.interfaces.fair_ranking import FairPositionRanker
    from ..application.interfaces.hosted_session_api import HostedSessionApi
    from ..application.interfaces.notifier import Notifier
    from ..application.services.auth_gate import AuthTokenGate
    from ..application.services.fair_insertion import FairInsertionPolicy
    from ..application.services.hosted_session_service import HostedSessionLifecycle
    from ..application.services.queue_service import QueueApplicationService
    from ..application.services.session_service import SessionApplicationService
    from ..domain.queue.repository import QueueRepository
    from ..domain.session.repository import SessionRepository, SingerRepository
    from ..infrastructure.persistence.database import Database
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    Components are lazily initialized when first accessed. Adapters that
    have no default (the fairness ranker) are injected with ``set_*``.
    """

    settings: Settings

    # Persistence layer
    _database: Database | None = None
    _session_repository: SessionRepository | None = None
    _singer_repository: SingerRepository | None = None
    _queue_repository: QueueRepository | None = None

    # Infrastructure adapters
    _hosted_session_api: HostedSessionApi | None = None
    _token_store: TokenStore | None = None
    _token_refresher: TokenRefresher | None = None
    _fair_position_ranker: FairPositionRanker | None = None
    _notifier: Notifier | None = None

    # Application services
    _auth_gate: AuthTokenGate | None = None
    _fair_insertion: FairInsertionPolicy | None = None
    _queue_service: QueueApplicationService | None = None
    _session_service: SessionApplicationService | None = None
    _hosted_session_lifecycle: HostedSessionLifecycle | None = None

    def set_fair_position_ranker(self, ranker: FairPositionRanker) -> None:
        """Set the turn-order ranker used by fair insertion.

        Must be called before ``queue_service`` is first accessed.
        """
        self._fair_position_ranker = ranker

    def set_notifier(self, notifier: Notifier) -> None:
        self._notifier = notifier

    # === Database ===

    @property
    def database(self) -> Database:
        """Get the database connection manager."""
        if self._database is None:
            from ..infrastructure.persistence.database import Database

            self._database = Database(self.settings.database.url, settings=self.settings.database)
        return self._database

    # === Repositories ===

    @property
    def session_repository(self) -> SessionRepository:
        if self._session_repository is None:
            from ..infrastructure.persistence.repositories.session_repository import (
                SQLiteSessionRepository,
            )

            self._session_repository = SQLiteSessionRepository(self.database)
        return self._session_repository

    @property
    def singer_repository(self) -> SingerRepository:
        if self._singer_repository is None:
            from ..infrastructure.persistence.repositories.singer_repository import (
                SQLiteSingerRepository,
            )

            self._singer_repository = SQLiteSingerRepository(self.database)
        return self._singer_repository

    @property
    def queue_repository(self) -> QueueRepository:
        if self._queue_repository is None:
            from ..infrastructure.persistence.repositories.queue_repository import (
                SQLiteQueueRepository,
            )

            self._queue_repository = SQLiteQueueRepository(self.database)
        return self._queue_repository

    # === Infrastructure Adapters ===

    @property
    def hosted_session_api(self) -> HostedSessionApi:
        """Get the relay client."""
        if self._hosted_session_api is None:
            from ..infrastructure.relay.hosted_session_client import HttpHostedSessionApi

            self._hosted_session_api = HttpHostedSessionApi(self.settings.relay)
        return self._hosted_session_api

    @property
    def token_store(self) -> TokenStore:
        if self._token_store is None:
            from ..infrastructure.auth.token_store import InMemoryTokenStore

            self._token_store = InMemoryTokenStore()
        return self._token_store

    @property
    def token_refresher(self) -> TokenRefresher:
        if self._token_refresher is None:
            from ..infrastructure.auth.token_refresher import HttpTokenRefresher

            self._token_refresher = HttpTokenRefresher(self.settings.auth)
        return self._token_refresher

    @property
    def notifier(self) -> Notifier:
        if self._notifier is None:
            from ..application.interfaces.notifier import LoggingNotifier

            self._notifier = LoggingNotifier()
        return self._notifier

    # === Application Services ===

    @property
    def auth_gate(self) -> AuthTokenGate:
        if self._auth_gate is None:
            from ..application.services.auth_gate import AuthTokenGate

            self._auth_gate = AuthTokenGate(
                token_store=self.token_store,
                token_refresher=self.token_refresher,
                settings=self.settings.auth,
            )
        return self._auth_gate

    @property
    def fair_insertion(self) -> FairInsertionPolicy | None:
        """Fair insertion policy, or None while no ranker is injected."""
        if self._fair_insertion is None and self._fair_position_ranker is not None:
            from ..application.services.fair_insertion import FairInsertionPolicy

            # Resolved lazily: the session service depends on the queue service.
            self._fair_insertion = FairInsertionPolicy(
                ranker=self._fair_position_ranker,
                active_singer=lambda: self.session_service.active_singer_id,
                settings=self.settings.queue,
            )
        return self._fair_insertion

    @property
    def queue_service(self) -> QueueApplicationService:
        if self._queue_service is None:
            from ..application.services.queue_service import QueueApplicationService

            self._queue_service = QueueApplicationService(
                queue_repository=self.queue_repository,
                fair_insertion=self.fair_insertion,
            )
        return self._queue_service

    @property
    def session_service(self) -> SessionApplicationService:
        if self._session_service is None:
            from ..application.services.session_service import SessionApplicationService

            self._session_service = SessionApplicationService(
                session_repository=self.session_repository,
                singer_repository=self.singer_repository,
                queue_service=self.queue_service,
                notifier=self.notifier,
            )
        return self._session_service

    @property
    def hosted_session_lifecycle(self) -> HostedSessionLifecycle:
        if self._hosted_session_lifecycle is None:
            from ..application.services.hosted_session_service import HostedSessionLifecycle

            self._hosted_session_lifecycle = HostedSessionLifecycle(
                session_service=self.session_service,
                session_repository=self.session_repository,
                hosted_session_api=self.hosted_session_api,
                auth_gate=self.auth_gate,
                notifier=self.notifier,
                settings=self.settings.hosting,
                auth_settings=self.settings.auth,
            )
        return self._hosted_session_lifecycle

    # === Lifecycle ===

    async def initialize(self) -> None:
        """Initialize all async resources."""
        await self.database.initialize()

        # Subscribe before the first SessionLoaded is published.
        self.hosted_session_lifecycle.start()

    async def shutdown(self) -> None:
        """Shutdown and cleanup all resources."""
        if self._hosted_session_lifecycle is not None:
            try:
                await self._hosted_session_lifecycle.shutdown()
            except Exception as exc:
                logger.warning(LogTemplates.SUBSCRIBER_STOP_FAILED, "hosted session lifecycle", exc)

        if self._queue_service is not None:
            await self._queue_service.flush()

        if self._hosted_session_api is not None:
            await self._hosted_session_api.close()
        if self._token_refresher is not None:
            await self._token_refresher.close()

        if self._database is not None:
            await self._database.close()


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)
