"""Notification job queue: the hand-off point to background workers.

Publishing and retraction enqueue a job rather than notifying anyone
inline.  Two queue backends:

1. **SQLite queue** (``queue_db_path`` provided): persistent, survives a
   restart, shared between the web process and the worker process.
2. **In-memory deque** (``queue_db_path`` is None): volatile, bounded,
   suitable for tests and single-process deployments.

Both are bounded (default 1024 jobs) so a stalled worker cannot grow the
queue without limit.
"""

from __future__ import annotations

import collections
import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

from pantry.core.hasher import canonical_json_bytes
from pantry.models.cookbooks import CookbookSnapshot

logger = logging.getLogger(__name__)

NOTIFY_WORKER = "CookbookNotifyWorker"
DELETION_WORKER = "CookbookDeletionWorker"


class QueueFullError(RuntimeError):
    """Raised when the job queue has reached its maximum depth."""


class Job(BaseModel):
    """A queued background job."""

    model_config = ConfigDict(frozen=True)

    worker: str
    payload: dict[str, Any]


class JobQueueNotifier:
    """Queues notification jobs for the background workers.

    Parameters
    ----------
    queue_db_path:
        Path to a SQLite database file for persistent queue storage.
        When ``None``, an in-memory deque is used (volatile).
    max_depth:
        Maximum number of pending jobs.
    """

    def __init__(self, queue_db_path: Path | None = None, *, max_depth: int = 1024) -> None:
        self._max_depth = max_depth
        self._lock = threading.Lock()
        self._db: sqlite3.Connection | None = None
        self._local_queue: collections.deque[bytes] = collections.deque()

        if queue_db_path is not None:
            Path(queue_db_path).parent.mkdir(parents=True, exist_ok=True)
            self._db = sqlite3.connect(str(queue_db_path), check_same_thread=False)
            self._db.execute(
                "CREATE TABLE IF NOT EXISTS jobs ("
                "  id INTEGER PRIMARY KEY AUTOINCREMENT,"
                "  payload BLOB NOT NULL,"
                "  created_at TEXT DEFAULT (datetime('now'))"
                ")"
            )
            self._db.commit()
            logger.info(
                "JobQueueNotifier: using SQLite queue at %s (max_depth=%d).",
                queue_db_path,
                max_depth,
            )
        else:
            logger.info(
                "JobQueueNotifier: using in-memory queue (max_depth=%d).", max_depth
            )

    # ------------------------------------------------------------------
    # Notifier protocol
    # ------------------------------------------------------------------

    def notify_published(self, cookbook_id: int) -> None:
        self.enqueue(Job(worker=NOTIFY_WORKER, payload={"cookbook_id": cookbook_id}))

    def notify_retracted(self, snapshot: CookbookSnapshot) -> None:
        self.enqueue(
            Job(worker=DELETION_WORKER, payload=snapshot.model_dump(mode="json"))
        )

    # ------------------------------------------------------------------
    # Queue operations
    # ------------------------------------------------------------------

    @property
    def depth(self) -> int:
        """Number of jobs waiting in the queue."""
        with self._lock:
            return self._depth()

    def enqueue(self, job: Job) -> None:
        """Append *job* to the queue.

        Raises
        ------
        QueueFullError
            If the queue is at ``max_depth``.
        """
        payload = canonical_json_bytes(job.model_dump(mode="json"))
        with self._lock:
            depth = self._depth()
            if depth >= self._max_depth:
                raise QueueFullError(
                    f"Job queue is full (depth={depth}).  {job.worker} job dropped."
                )
            if self._db is not None:
                self._db.execute("INSERT INTO jobs (payload) VALUES (?)", (payload,))
                self._db.commit()
            else:
                self._local_queue.append(payload)
        logger.debug("Queued %s job (depth=%d).", job.worker, depth + 1)

    def dequeue(self) -> Job | None:
        """Remove and return the oldest job, or ``None`` if the queue is empty."""
        with self._lock:
            if self._db is not None:
                row = self._db.execute(
                    "SELECT id, payload FROM jobs ORDER BY id LIMIT 1"
                ).fetchone()
                if row is None:
                    return None
                row_id, payload = row
                self._db.execute("DELETE FROM jobs WHERE id = ?", (row_id,))
                self._db.commit()
            elif self._local_queue:
                payload = self._local_queue.popleft()
            else:
                return None
        return Job(**json.loads(bytes(payload)))

    def drain(self, *, max_jobs: int = 100) -> list[Job]:
        """Dequeue up to *max_jobs* jobs."""
        jobs: list[Job] = []
        for _ in range(max_jobs):
            job = self.dequeue()
            if job is None:
                break
            jobs.append(job)
        return jobs

    def close(self) -> None:
        with self._lock:
            if self._db is not None:
                self._db.close()
                self._db = None
            self._local_queue.clear()

    def _depth(self) -> int:
        if self._db is not None:
            row = self._db.execute("SELECT COUNT(*) FROM jobs").fetchone()
            return row[0] if row else 0
        return len(self._local_queue)

    def __enter__(self) -> JobQueueNotifier:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
