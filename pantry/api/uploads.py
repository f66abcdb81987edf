"""Cookbook uploads controller.

``POST /api/v1/cookbooks`` -> ``create``; ``DELETE /api/v1/cookbooks/:name``
-> ``destroy``.  The controller owns the mapping from typed outcomes to
status codes and JSON bodies; everything else lives in the intake gate,
authenticator and orchestrators.

Status mapping
--------------
- 201: version published (body is the version JSON)
- 204: cookbook deleted (no body)
- 400: missing upload part or invalid data (``INVALID_DATA``)
- 401: authentication failure, or upload parts that differ from the
  signed body (``AUTHENTICATION_FAILED``)
- 403: authorization failure (empty body)
- 404: cookbook not found
- 503: store busy or tarball storage failure (``SERVICE_UNAVAILABLE``)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Union

from pydantic import BaseModel, ConfigDict

from pantry.api import messages
from pantry.auth.authenticator import (
    Authenticated,
    IdentityLookup,
    Rejected,
    RequestAuthenticator,
)
from pantry.core.store import TransientStoreError
from pantry.core.tarball_store import StoreIntegrityError
from pantry.intake.presence import ArtifactIntake
from pantry.models.cookbooks import Cookbook, CookbookVersion, version_param
from pantry.models.identity import Identity
from pantry.models.requests import InboundRequest, PreconditionFailure
from pantry.models.results import (
    NotFound,
    PublishCommitted,
    PublishRejected,
    RetractCommitted,
)
from pantry.orchestration.publish import PublishOrchestrator
from pantry.orchestration.retract import RetractionOrchestrator

logger = logging.getLogger(__name__)


class ApiResponse(BaseModel):
    """Status code plus JSON body (``None`` for an empty body)."""

    model_config = ConfigDict(frozen=True)

    status: int
    body: dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def _error(status: int, code: str, *error_messages: str) -> ApiResponse:
    return ApiResponse(
        status=status,
        body={"error_code": code, "error_messages": list(error_messages)},
    )


def version_json(cookbook: Cookbook, version: CookbookVersion, base_url: str) -> dict[str, Any]:
    """Public representation of a published version."""
    api = f"{base_url.rstrip('/')}/api/v1"
    metadata = version.metadata
    return {
        "cookbook": f"{api}/cookbooks/{cookbook.name}",
        "file": f"{api}/cookbooks/{cookbook.name}/versions/{version_param(version.version)}/download",
        "version": version.version,
        "license": metadata.license,
        "tarball_file_size": version.tarball_size,
        "dependencies": metadata.dependencies if isinstance(metadata.dependencies, dict) else {},
        "platforms": metadata.platforms if isinstance(metadata.platforms, dict) else {},
        "published_at": version.published_at.isoformat(),
    }


class CookbookUploadsController:
    """Maps inbound requests through the intake gate to the orchestrators.

    Parameters
    ----------
    intake:
        Checks upload preconditions.  Runs before authentication.
    authenticator:
        Verifies the request signature.
    identity_lookup:
        Resolves a claimed username to an ``Identity``.
    publisher, retractor:
        The publish and retraction orchestrators.
    base_url:
        Public host used in messages and links when the request carries
        no ``base_url`` of its own.
    """

    def __init__(
        self,
        *,
        intake: ArtifactIntake,
        authenticator: RequestAuthenticator,
        identity_lookup: IdentityLookup,
        publisher: PublishOrchestrator,
        retractor: RetractionOrchestrator,
        base_url: str = "",
    ) -> None:
        self._intake = intake
        self._authenticator = authenticator
        self._identity_lookup = identity_lookup
        self._publisher = publisher
        self._retractor = retractor
        self._base_url = base_url

    def create(self, request: InboundRequest) -> ApiResponse:
        """Publish a cookbook version."""
        upload = self._intake.validate_presence(request.form)
        if isinstance(upload, PreconditionFailure):
            return _error(400, messages.INVALID_DATA, messages.missing_part(upload.missing_field))

        def publish(identity: Identity) -> ApiResponse:
            if request.body != upload.canonical_body():
                logger.warning(
                    "Publish by %r rejected: upload parts differ from the signed body.",
                    identity.username,
                )
                return _error(
                    401, messages.AUTHENTICATION_FAILED, messages.UNSIGNED_PARTS_MESSAGE
                )
            outcome = self._publisher.publish(identity, upload)
            if isinstance(outcome, PublishCommitted):
                return ApiResponse(
                    status=201,
                    body=version_json(outcome.cookbook, outcome.version, self._host(request)),
                )
            if isinstance(outcome, PublishRejected):
                return _error(400, messages.INVALID_DATA, *outcome.failure.messages)
            return ApiResponse(status=403)

        return self._guarded(request, publish)

    def destroy(self, request: InboundRequest, cookbook_name: str) -> ApiResponse:
        """Delete a cookbook and all of its versions."""

        def retract(identity: Identity) -> ApiResponse:
            outcome = self._retractor.retract(identity, cookbook_name)
            if isinstance(outcome, RetractCommitted):
                return ApiResponse(status=204)
            if isinstance(outcome, NotFound):
                return _error(404, messages.NOT_FOUND, messages.not_found(cookbook_name))
            return ApiResponse(status=403)

        return self._guarded(request, retract)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _host(self, request: InboundRequest) -> str:
        return request.base_url or self._base_url

    def _guarded(
        self, request: InboundRequest, action: Callable[[Identity], ApiResponse]
    ) -> ApiResponse:
        """Authenticate, run *action*, and map store failures to 503."""
        try:
            auth = self._authenticate(request)
            if not isinstance(auth, Authenticated):
                return auth
            return action(auth.identity)
        except TransientStoreError as exc:
            logger.warning("%s %s failed transiently: %s", request.method, request.path, exc)
            return _error(503, messages.SERVICE_UNAVAILABLE, messages.SERVICE_UNAVAILABLE_MESSAGE)
        except StoreIntegrityError as exc:
            logger.error("%s %s failed storing the tarball: %s", request.method, request.path, exc)
            return _error(503, messages.SERVICE_UNAVAILABLE, messages.STORAGE_FAILURE_MESSAGE)

    def _authenticate(self, request: InboundRequest) -> Union[Authenticated, ApiResponse]:
        result = self._authenticator.authenticate(request, self._identity_lookup)
        if isinstance(result, Rejected):
            message = messages.authentication_message(
                result.reason, username=result.username, host=self._host(request)
            )
            return _error(401, messages.AUTHENTICATION_FAILED, message)
        return result
