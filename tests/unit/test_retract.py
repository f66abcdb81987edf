"""Tests for the RetractionOrchestrator."""

from __future__ import annotations

import pytest

from pantry.auth.authorization import AuthorizationGate, Decision
from pantry.models.artifacts import StoredTarball
from pantry.models.cookbooks import ArtifactMetadata
from pantry.models.results import Denied, NotFound, RetractCommitted
from pantry.orchestration.retract import RetractionOrchestrator

TARBALL = StoredTarball(content_address="sha256:" + "ab" * 32, size_bytes=1)


class CountingGate(AuthorizationGate):
    def __init__(self):
        self.calls = 0

    def authorize(self, identity, target):
        self.calls += 1
        return super().authorize(identity, target)


@pytest.fixture
def gate():
    return CountingGate()


@pytest.fixture
def retractor(store, gate, dispatcher):
    return RetractionOrchestrator(store, gate, dispatcher, base_url="https://pantry.test")


@pytest.fixture
def redis(store, alice):
    store.add_category("Databases")
    for version in ("1.0.0", "2.0.0"):
        store.commit_version(
            identity=alice,
            metadata=ArtifactMetadata(name="redis", version=version),
            category="Databases",
            tarball=TARBALL,
        )
    return store.find_cookbook("redis")


class TestRetract:
    def test_owner_retracts(self, retractor, store, alice, redis, notifier, analytics, cache):
        outcome = retractor.retract(alice, "redis")
        assert isinstance(outcome, RetractCommitted)
        assert store.find_cookbook("redis") is None

        snapshot = outcome.snapshot
        assert snapshot.cookbook_id == redis.cookbook_id
        assert snapshot.versions == ["1.0.0", "2.0.0"]
        assert snapshot.latest_version_url == (
            "https://pantry.test/api/v1/cookbooks/redis/versions/2_0_0"
        )
        assert notifier.retracted == [snapshot]
        assert analytics.events == [("cookbook_deleted", "alice", {"cookbook": "redis"})]
        assert cache.invalidated == ["api-v1-universe"]

    def test_missing_cookbook_never_consults_gate(self, retractor, gate, alice, notifier):
        outcome = retractor.retract(alice, "ghost")
        assert outcome == NotFound(cookbook_name="ghost")
        assert gate.calls == 0
        assert notifier.retracted == []

    def test_stranger_denied(self, retractor, store, bob, redis, notifier, analytics, cache):
        outcome = retractor.retract(bob, "redis")
        assert isinstance(outcome, Denied)
        assert store.find_cookbook("redis") is not None
        assert notifier.retracted == [] and analytics.events == [] and cache.invalidated == []

    def test_collaborator_may_retract(self, retractor, store, bob, redis):
        store.add_collaborator("redis", "bob")
        assert isinstance(retractor.retract(bob, "redis"), RetractCommitted)

    def test_concurrent_delete_reports_not_found_without_effects(
        self, store, dispatcher, alice, redis, notifier
    ):
        class DeletingGate(AuthorizationGate):
            def authorize(self, identity, target):
                # Someone else deletes it between lookup and our delete
                store.delete_cookbook(target)
                return Decision.ALLOWED

        retractor = RetractionOrchestrator(store, DeletingGate(), dispatcher)
        outcome = retractor.retract(alice, "redis")
        assert outcome == NotFound(cookbook_name="redis")
        assert notifier.retracted == []
