"""Post-commit side effects and the collaborator protocols they use.

After a publish or retraction commits, three things happen, in no
particular order: a notification job is queued, an analytics event is
tracked, and the universe cache is invalidated.  Each collaborator
implements one of the protocols below; ``SideEffectDispatcher`` fans out
to all three and never lets a failure reach the caller.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pantry.models.cookbooks import CookbookSnapshot
from pantry.models.identity import Identity


@runtime_checkable
class Notifier(Protocol):
    """Asynchronous, at-least-once notification of registry changes."""

    def notify_published(self, cookbook_id: int) -> None:
        ...

    def notify_retracted(self, snapshot: CookbookSnapshot) -> None:
        ...


@runtime_checkable
class AnalyticsSink(Protocol):
    """Fire-and-forget event tracking."""

    def track(self, event_name: str, identity: Identity, properties: dict[str, Any]) -> None:
        ...


@runtime_checkable
class EnumerationCache(Protocol):
    """Derived read cache; ``invalidate`` must be idempotent."""

    def invalidate(self, cache_key: str) -> None:
        ...

