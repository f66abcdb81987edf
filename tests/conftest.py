"""Shared test fixtures for Pantry."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

from pantry.auth.keys import generate_keypair
from pantry.auth.signature import sign_request
from pantry.config import RegistryConfig
from pantry.core.store import RegistryStore
from pantry.core.tarball_store import TarballStore
from pantry.effects.cache import MemoryEnumerationCache
from pantry.effects.dispatcher import SideEffectDispatcher
from pantry.intake.tarball import build_tarball
from pantry.models.cookbooks import CookbookSnapshot
from pantry.models.identity import Identity
from pantry.models.requests import InboundRequest, UploadRequest
from pantry.registry import Registry

BASE_URL = "https://pantry.test"


# ---------------------------------------------------------------------------
# Recording collaborators
# ---------------------------------------------------------------------------


class RecordingNotifier:
    def __init__(self) -> None:
        self.published: list[int] = []
        self.retracted: list[CookbookSnapshot] = []

    def notify_published(self, cookbook_id: int) -> None:
        self.published.append(cookbook_id)

    def notify_retracted(self, snapshot: CookbookSnapshot) -> None:
        self.retracted.append(snapshot)


class RecordingAnalytics:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def track(self, event_name: str, identity: Identity, properties: dict[str, Any]) -> None:
        self.events.append((event_name, identity.username, dict(properties)))


class RecordingCache(MemoryEnumerationCache):
    def __init__(self) -> None:
        super().__init__()
        self.invalidated: list[str] = []

    def invalidate(self, cache_key: str) -> None:
        self.invalidated.append(cache_key)
        super().invalidate(cache_key)


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def store(tmp_dir: Path) -> RegistryStore:
    """Provide a fresh RegistryStore backed by a temp SQLite database."""
    return RegistryStore(tmp_dir / "registry.db", busy_timeout=1.0)


@pytest.fixture
def tarball_store(tmp_dir: Path) -> TarballStore:
    """Provide a fresh TarballStore in a temp directory."""
    return TarballStore(tmp_dir / "tarballs")


# ---------------------------------------------------------------------------
# Keys and identities
# ---------------------------------------------------------------------------


@pytest.fixture
def alice_keys() -> tuple[str, str]:
    """``(private_key, public_key)`` for alice."""
    return generate_keypair()


@pytest.fixture
def bob_keys() -> tuple[str, str]:
    """``(private_key, public_key)`` for bob."""
    return generate_keypair()


@pytest.fixture
def alice(store: RegistryStore, alice_keys: tuple[str, str]) -> Identity:
    return store.add_user("alice", alice_keys[1])


@pytest.fixture
def bob(store: RegistryStore, bob_keys: tuple[str, str]) -> Identity:
    return store.add_user("bob", bob_keys[1])


# ---------------------------------------------------------------------------
# Side effects
# ---------------------------------------------------------------------------


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def analytics() -> RecordingAnalytics:
    return RecordingAnalytics()


@pytest.fixture
def cache() -> RecordingCache:
    return RecordingCache()


@pytest.fixture
def dispatcher(
    notifier: RecordingNotifier, analytics: RecordingAnalytics, cache: RecordingCache
) -> SideEffectDispatcher:
    """Inline dispatcher wired to the recording collaborators."""
    return SideEffectDispatcher(notifier, analytics, cache)


# ---------------------------------------------------------------------------
# Request factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_tarball() -> Callable[..., bytes]:
    """Factory fixture: build a cookbook tarball with a metadata.json entry."""

    def _factory(
        name: Any = "redis",
        version: Any = "3.0.0",
        *,
        include_manifest: bool = True,
        root: str | None = None,
        **manifest_overrides: Any,
    ) -> bytes:
        prefix = f"{root if root is not None else name}/"
        files: dict[str, bytes | str] = {f"{prefix}README.md": "# cookbook\n"}
        if include_manifest:
            manifest = {
                "name": name,
                "version": version,
                "description": "Installs and configures the thing",
                "license": "Apache-2.0",
                "maintainer": "Pantry Tests",
                "platforms": {"ubuntu": ">= 20.04"},
                "dependencies": {"build-essential": ">= 1.0.0"},
            }
            manifest.update(manifest_overrides)
            files[f"{prefix}metadata.json"] = json.dumps(manifest)
        return build_tarball(files)

    return _factory


@pytest.fixture
def make_signed_request() -> Callable[..., InboundRequest]:
    """Factory fixture: build an InboundRequest signed with *private_key*."""

    def _factory(
        *,
        username: str,
        private_key: str,
        method: str = "POST",
        path: str = "/api/v1/cookbooks",
        body: bytes = b"",
        form: dict[str, Any] | None = None,
        timestamp: datetime | None = None,
    ) -> InboundRequest:
        headers = sign_request(
            method=method,
            path=path,
            body=body,
            username=username,
            private_key=private_key,
            timestamp=timestamp,
        )
        return InboundRequest(
            method=method,
            path=path,
            headers=headers,
            body=body,
            form=form or {},
            base_url=BASE_URL,
        )

    return _factory


@pytest.fixture
def make_upload_request(
    make_signed_request: Callable[..., InboundRequest],
) -> Callable[..., InboundRequest]:
    """Factory fixture: a publish request signed over its category and *tarball*."""

    def _factory(
        *, username: str, private_key: str, tarball: bytes, category: str = "Databases"
    ) -> InboundRequest:
        return make_signed_request(
            username=username,
            private_key=private_key,
            body=UploadRequest(category_name=category, tarball=tarball).canonical_body(),
            form={"category": category, "tarball": tarball},
        )

    return _factory


# ---------------------------------------------------------------------------
# Fully wired registry
# ---------------------------------------------------------------------------


@pytest.fixture
def registry_config(tmp_dir: Path) -> RegistryConfig:
    return RegistryConfig(
        environment="test",
        db_path=tmp_dir / "registry.db",
        tarball_store_path=tmp_dir / "tarballs",
        notify_queue_path=None,
        analytics_path=tmp_dir / "analytics.jsonl",
        base_url=BASE_URL,
        commit_timeout_seconds=1.0,
    )


@pytest.fixture
def registry(
    registry_config: RegistryConfig,
    notifier: RecordingNotifier,
    analytics: RecordingAnalytics,
    cache: RecordingCache,
):
    """A Registry with inline side effects recorded by the test doubles."""
    with Registry(
        registry_config,
        notifier=notifier,
        analytics=analytics,
        cache=cache,
        synchronous_effects=True,
    ) as wired:
        yield wired
