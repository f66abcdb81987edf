"""Analytics sink: appends tracked events to a JSON-lines file.

Layout: one canonical JSON object per line::

    {"event":"cookbook_version_published","properties":{...},"timestamp_utc":"...","user":"alice"}
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pantry.core.hasher import canonical_json_bytes
from pantry.models.identity import Identity

logger = logging.getLogger(__name__)


class AnalyticsEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event: str
    user: str
    properties: dict[str, Any] = Field(default_factory=dict)
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class FileAnalyticsSink:
    """Writes analytics events to a local JSON-lines file.

    Parameters
    ----------
    path:
        Target file.  Parent directories are created on construction.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def track(self, event_name: str, identity: Identity, properties: dict[str, Any]) -> None:
        event = AnalyticsEvent(
            event=event_name, user=identity.username, properties=dict(properties)
        )
        line = canonical_json_bytes(event.model_dump(mode="json")) + b"\n"
        with self._lock, self._path.open("ab") as handle:
            handle.write(line)
        logger.debug("Tracked %s for %s.", event_name, identity.username)

    def read_events(self) -> list[AnalyticsEvent]:
        """Read back every tracked event, oldest first."""
        if not self._path.exists():
            return []
        with self._lock:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        return [AnalyticsEvent(**json.loads(line)) for line in lines if line.strip()]
