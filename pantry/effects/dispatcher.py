"""SideEffectDispatcher: post-commit effects, best-effort.

Called exactly once per committed publish or retraction.  Every effect
is attempted; a failure is logged and does not prevent the others, and
nothing is raised back to the caller.  With an executor the effects run
in the background and the caller does not wait for them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Executor, Future
from typing import TYPE_CHECKING

from pantry.models.cookbooks import Cookbook, CookbookSnapshot, CookbookVersion
from pantry.models.identity import Identity

if TYPE_CHECKING:
    from pantry.effects import AnalyticsSink, EnumerationCache, Notifier

logger = logging.getLogger(__name__)

PUBLISHED_EVENT = "cookbook_version_published"
DELETED_EVENT = "cookbook_deleted"


class SideEffectDispatcher:
    """Fans out post-commit effects to the notifier, analytics and cache.

    Parameters
    ----------
    notifier, analytics, cache:
        The three collaborators.
    cache_key:
        Key of the universe listing in the enumeration cache.
    executor:
        When given, each effect is submitted to it and the dispatch
        methods return immediately.  When ``None`` effects run inline.
    """

    def __init__(
        self,
        notifier: Notifier,
        analytics: AnalyticsSink,
        cache: EnumerationCache,
        *,
        cache_key: str = "api-v1-universe",
        executor: Executor | None = None,
    ) -> None:
        self._notifier = notifier
        self._analytics = analytics
        self._cache = cache
        self._cache_key = cache_key
        self._executor = executor

    @property
    def cache_key(self) -> str:
        return self._cache_key

    def published(
        self, identity: Identity, cookbook: Cookbook, version: CookbookVersion
    ) -> list[Future[None]]:
        """Effects of a committed publish."""
        return self._fire(
            f"publish {cookbook.name} {version.version}",
            [
                ("notify", lambda: self._notifier.notify_published(cookbook.cookbook_id)),
                (
                    "analytics",
                    lambda: self._analytics.track(
                        PUBLISHED_EVENT,
                        identity,
                        {"cookbook": cookbook.name, "version": version.version},
                    ),
                ),
                ("cache", lambda: self._cache.invalidate(self._cache_key)),
            ],
        )

    def retracted(self, identity: Identity, snapshot: CookbookSnapshot) -> list[Future[None]]:
        """Effects of a committed retraction."""
        return self._fire(
            f"retract {snapshot.name}",
            [
                ("notify", lambda: self._notifier.notify_retracted(snapshot)),
                (
                    "analytics",
                    lambda: self._analytics.track(
                        DELETED_EVENT, identity, {"cookbook": snapshot.name}
                    ),
                ),
                ("cache", lambda: self._cache.invalidate(self._cache_key)),
            ],
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _fire(
        self, label: str, effects: list[tuple[str, Callable[[], None]]]
    ) -> list[Future[None]]:
        if self._executor is None:
            for name, effect in effects:
                self._run(label, name, effect)
            return []

        futures: list[Future[None]] = []
        for name, effect in effects:
            try:
                futures.append(self._executor.submit(self._run, label, name, effect))
            except RuntimeError as exc:
                # Executor already shut down
                logger.error("Could not schedule %s effect for %s: %s", name, label, exc)
        return futures

    @staticmethod
    def _run(label: str, name: str, effect: Callable[[], None]) -> None:
        try:
            effect()
        except Exception as exc:  # noqa: BLE001
            logger.error("%s effect failed for %s: %s", name, label, exc)
        else:
            logger.debug("%s effect done for %s.", name, label)
