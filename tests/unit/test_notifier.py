"""Tests for the JobQueueNotifier (SQLite and in-memory backends)."""

from __future__ import annotations

import pytest

from pantry.effects.notifier import (
    DELETION_WORKER,
    NOTIFY_WORKER,
    Job,
    JobQueueNotifier,
    QueueFullError,
)
from pantry.models.cookbooks import CookbookSnapshot

SNAPSHOT = CookbookSnapshot(
    cookbook_id=3,
    name="redis",
    category="Databases",
    owner="alice",
    versions=["1.0.0", "3.0.0"],
    latest_version_url="https://pantry.test/api/v1/cookbooks/redis/versions/3_0_0",
)


@pytest.fixture(params=["memory", "sqlite"])
def queue(request, tmp_dir):
    path = tmp_dir / "jobs.db" if request.param == "sqlite" else None
    with JobQueueNotifier(path, max_depth=3) as notifier:
        yield notifier


class TestJobQueueNotifier:
    def test_publish_job(self, queue):
        queue.notify_published(42)
        assert queue.dequeue() == Job(worker=NOTIFY_WORKER, payload={"cookbook_id": 42})

    def test_retract_job_carries_snapshot(self, queue):
        queue.notify_retracted(SNAPSHOT)
        job = queue.dequeue()
        assert job.worker == DELETION_WORKER
        assert CookbookSnapshot(**job.payload) == SNAPSHOT

    def test_fifo_and_drain(self, queue):
        for cookbook_id in (1, 2, 3):
            queue.notify_published(cookbook_id)
        assert queue.depth == 3
        jobs = queue.drain()
        assert [j.payload["cookbook_id"] for j in jobs] == [1, 2, 3]
        assert queue.depth == 0
        assert queue.dequeue() is None

    def test_bounded(self, queue):
        for cookbook_id in range(3):
            queue.notify_published(cookbook_id)
        with pytest.raises(QueueFullError):
            queue.notify_published(99)


class TestPersistence:
    def test_jobs_survive_reopen(self, tmp_dir):
        path = tmp_dir / "jobs.db"
        with JobQueueNotifier(path) as first:
            first.notify_published(5)
        with JobQueueNotifier(path) as second:
            assert second.dequeue().payload == {"cookbook_id": 5}
