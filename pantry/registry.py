"""Registry wiring: builds every collaborator from a ``RegistryConfig``.

The ``Registry`` owns the store, tarball store, side-effect collaborators,
orchestrators and the uploads controller.  Use it as a context manager so
the effect executor and job queue are closed.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from pantry.api.uploads import CookbookUploadsController
from pantry.auth.authenticator import RequestAuthenticator
from pantry.auth.authorization import AuthorizationGate
from pantry.config import RegistryConfig
from pantry.core.production_guard import enforce_production_constraints
from pantry.core.store import RegistryStore
from pantry.core.tarball_store import TarballStore
from pantry.effects import AnalyticsSink, EnumerationCache, Notifier
from pantry.effects.analytics import FileAnalyticsSink
from pantry.effects.cache import MemoryEnumerationCache
from pantry.effects.dispatcher import SideEffectDispatcher
from pantry.effects.notifier import JobQueueNotifier
from pantry.intake.presence import ArtifactIntake
from pantry.orchestration.publish import PublishOrchestrator
from pantry.orchestration.retract import RetractionOrchestrator

logger = logging.getLogger(__name__)


class Registry:
    """A fully wired registry.

    Parameters
    ----------
    config:
        Registry configuration.  A fresh ``RegistryConfig()`` is read from
        the environment when omitted.
    notifier, analytics, cache:
        Override the default side-effect collaborators.
    synchronous_effects:
        Run side effects inline after each commit instead of on the
        effect worker pool.
    """

    def __init__(
        self,
        config: RegistryConfig | None = None,
        *,
        notifier: Notifier | None = None,
        analytics: AnalyticsSink | None = None,
        cache: EnumerationCache | None = None,
        synchronous_effects: bool = False,
    ) -> None:
        self.config = config or RegistryConfig()
        enforce_production_constraints(self.config)

        self.store = RegistryStore(
            self.config.db_path, busy_timeout=self.config.commit_timeout_seconds
        )
        self.tarballs = TarballStore(self.config.tarball_store_path)

        self._owned_notifier: JobQueueNotifier | None = None
        if notifier is None:
            self._owned_notifier = JobQueueNotifier(self.config.notify_queue_path)
            notifier = self._owned_notifier
        self.notifier = notifier
        self.analytics = analytics or FileAnalyticsSink(self.config.analytics_path)
        self.cache = cache or MemoryEnumerationCache()

        self._effect_executor: ThreadPoolExecutor | None = None
        if not synchronous_effects:
            self._effect_executor = ThreadPoolExecutor(
                max_workers=self.config.effect_workers, thread_name_prefix="pantry-effects"
            )
        self.dispatcher = SideEffectDispatcher(
            self.notifier,
            self.analytics,
            self.cache,
            cache_key=self.config.universe_cache_key,
            executor=self._effect_executor,
        )

        gate = AuthorizationGate()
        self.publisher = PublishOrchestrator(
            self.store,
            self.tarballs,
            gate,
            self.dispatcher,
            parse_timeout_seconds=self.config.parse_timeout_seconds,
            max_tarball_bytes=self.config.max_tarball_bytes,
        )
        self.retractor = RetractionOrchestrator(
            self.store, gate, self.dispatcher, base_url=self.config.base_url
        )
        self.controller = CookbookUploadsController(
            intake=ArtifactIntake(),
            authenticator=RequestAuthenticator(
                clock_skew_seconds=self.config.clock_skew_seconds
            ),
            identity_lookup=self.store.find_identity,
            publisher=self.publisher,
            retractor=self.retractor,
            base_url=self.config.base_url,
        )
        logger.info(
            "Registry ready (environment=%s, db=%s).", self.config.environment, self.config.db_path
        )

    def universe(self) -> dict[str, Any]:
        """The cached universe listing, rebuilt after any publish or retraction."""

        def build() -> dict[str, Any]:
            return self.store.universe(self.config.base_url)

        fetch = getattr(self.cache, "fetch", None)
        if fetch is None:
            return build()
        return fetch(self.config.universe_cache_key, build)

    def close(self) -> None:
        """Wait for pending effects, then release owned resources."""
        self.publisher.close()
        if self._effect_executor is not None:
            self._effect_executor.shutdown(wait=True)
        if self._owned_notifier is not None:
            self._owned_notifier.close()

    def __enter__(self) -> Registry:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
