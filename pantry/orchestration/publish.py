"""Publish orchestrator: create or update a cookbook version.

Flow
----
1. Read the tarball's ``metadata.json`` under a per-request timeout.
2. Authorize the identity against the cookbook named in the metadata.
3. Validate category and metadata, aggregating every problem.
4. Store the tarball and commit cookbook + version in one transaction.
   Authorization is re-checked inside the transaction against the
   cookbook as it exists at commit time.
5. After the commit, dispatch the side effects exactly once.

Publishing a version that already exists replaces it and dispatches the
same effects again.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError

from pantry.auth.authorization import AuthorizationGate
from pantry.core.store import RegistryStore
from pantry.core.tarball_store import TarballStore
from pantry.effects.dispatcher import SideEffectDispatcher
from pantry.intake.tarball import TIMED_OUT, ParsedTarball, parse_tarball
from pantry.intake.validation import validate_category, validate_metadata
from pantry.models.cookbooks import Cookbook
from pantry.models.identity import Identity
from pantry.models.requests import UploadRequest
from pantry.models.results import (
    Denied,
    PublishCommitted,
    PublishOutcome,
    PublishRejected,
    ValidationFailure,
)

logger = logging.getLogger(__name__)


class PublishOrchestrator:
    """Drives authorize -> ingest -> validate -> commit -> dispatch.

    Parameters
    ----------
    store:
        The registry store.
    tarballs:
        Content-addressed storage for the uploaded bytes.
    gate:
        Authorization predicate.
    dispatcher:
        Post-commit side effects.
    parse_timeout_seconds:
        Time allowed for reading the tarball.  Exceeding it is reported as a
        validation failure.
    max_tarball_bytes:
        Uploads larger than this are rejected without being opened.
    parse_executor:
        Where tarball parsing runs.  A private two-thread pool is created
        when omitted and shut down by ``close()``.
    """

    def __init__(
        self,
        store: RegistryStore,
        tarballs: TarballStore,
        gate: AuthorizationGate,
        dispatcher: SideEffectDispatcher,
        *,
        parse_timeout_seconds: float = 10.0,
        max_tarball_bytes: int | None = None,
        parse_executor: Executor | None = None,
    ) -> None:
        self._store = store
        self._tarballs = tarballs
        self._gate = gate
        self._dispatcher = dispatcher
        self._parse_timeout_seconds = parse_timeout_seconds
        self._max_tarball_bytes = max_tarball_bytes
        self._owns_executor = parse_executor is None
        self._parse_executor = parse_executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="pantry-parse"
        )

    def publish(self, identity: Identity, upload: UploadRequest) -> PublishOutcome:
        parsed = self._parse(upload.tarball)
        metadata = parsed.metadata

        name = metadata.name if metadata is not None else None
        if isinstance(name, str) and name:
            existing = self._store.find_cookbook(name)
            if not self._gate.authorize(identity, existing).allowed:
                logger.info("Publish denied: %r may not publish to %r.", identity.username, name)
                return Denied()

        messages = validate_category(upload.category_name, self._store.category_names())
        messages.extend(parsed.errors)
        if metadata is not None:
            messages.extend(validate_metadata(metadata))
        if messages or metadata is None:
            logger.info(
                "Publish by %r rejected with %d problem(s).", identity.username, len(messages)
            )
            return PublishRejected(failure=ValidationFailure(messages=messages))

        stored = self._tarballs.store(upload.tarball)

        def still_allowed(current: Cookbook | None) -> bool:
            return self._gate.authorize(identity, current).allowed

        result = self._store.commit_version(
            identity=identity,
            metadata=metadata,
            category=upload.category_name,
            tarball=stored,
            guard=still_allowed,
        )
        if result is None:
            logger.info(
                "Publish denied at commit: %r lost the race for %r.",
                identity.username,
                metadata.name,
            )
            return Denied()

        self._dispatcher.published(identity, result.cookbook, result.version)
        return PublishCommitted(
            cookbook=result.cookbook,
            version=result.version,
            created_cookbook=result.created_cookbook,
            replaced_version=result.replaced_version,
        )

    def close(self) -> None:
        if self._owns_executor:
            self._parse_executor.shutdown(wait=False, cancel_futures=True)

    def _parse(self, data: bytes) -> ParsedTarball:
        future = self._parse_executor.submit(
            parse_tarball, data, max_bytes=self._max_tarball_bytes
        )
        try:
            return future.result(timeout=self._parse_timeout_seconds)
        except FuturesTimeoutError:
            future.cancel()
            logger.warning(
                "Tarball parsing exceeded %.1fs (%d bytes).",
                self._parse_timeout_seconds,
                len(data),
            )
            return ParsedTarball(errors=[TIMED_OUT], size_bytes=len(data))
