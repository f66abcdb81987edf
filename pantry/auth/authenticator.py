"""Request authentication: who signed this request?

The authenticator resolves the claimed username to a stored identity,
then verifies the request signature against that identity's public key.
It returns a typed result instead of raising; each rejection reason is
distinct so callers can tell "who are you" from "your signature is wrong".

Authentication failures are never transient and are never retried.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

from pantry.auth.keys import key_fingerprint
from pantry.auth.signature import (
    USERID_HEADER,
    SignatureCodec,
    SignedRequest,
    SigningHeaderError,
)
from pantry.models.identity import Identity
from pantry.models.requests import InboundRequest

logger = logging.getLogger(__name__)

IdentityLookup = Callable[[str], Union[Identity, None]]


class RejectionReason(str, Enum):
    """Why a request failed authentication."""

    UNKNOWN_IDENTITY = "unknown_identity"
    MISSING_KEY = "missing_key"
    BAD_SIGNATURE = "bad_signature"
    MALFORMED_REQUEST = "malformed_request"


class Authenticated(BaseModel):
    model_config = ConfigDict(frozen=True)

    outcome: Literal["authenticated"] = "authenticated"
    identity: Identity


class Rejected(BaseModel):
    model_config = ConfigDict(frozen=True)

    outcome: Literal["rejected"] = "rejected"
    reason: RejectionReason
    username: str = ""


AuthenticationResult = Union[Authenticated, Rejected]


class RequestAuthenticator:
    """Authenticates signed requests against stored public keys.

    Parameters
    ----------
    codec:
        The signature codec.  A default instance is used if omitted.
    clock_skew_seconds:
        Maximum allowed distance between the request timestamp and now.
        A request outside the window fails as ``bad_signature``.
    clock:
        Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        codec: SignatureCodec | None = None,
        *,
        clock_skew_seconds: int = 900,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._codec = codec or SignatureCodec()
        self._clock_skew_seconds = clock_skew_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def authenticate(
        self, request: InboundRequest, identity_lookup: IdentityLookup
    ) -> AuthenticationResult:
        """Authenticate *request*, resolving identities via *identity_lookup*.

        Steps
        -----
        1. Claimed username from ``X-Ops-Userid``; absent or unknown ->
           ``unknown_identity``.
        2. Identity without a public key -> ``missing_key``.
        3. Missing or undecodable signing headers -> ``malformed_request``.
        4. Canonicalize and verify; mismatch or stale timestamp ->
           ``bad_signature``.
        """
        username = request.header(USERID_HEADER) or ""
        identity = identity_lookup(username) if username else None
        if identity is None:
            logger.info("Authentication rejected: unknown identity %r.", username)
            return Rejected(reason=RejectionReason.UNKNOWN_IDENTITY, username=username)

        public_key = identity.public_key
        if not public_key:
            logger.info("Authentication rejected: %r has no public key.", username)
            return Rejected(reason=RejectionReason.MISSING_KEY, username=username)

        try:
            signed = SignedRequest.from_inbound(request)
        except SigningHeaderError as exc:
            logger.info("Authentication rejected for %r: %s.", username, exc)
            return Rejected(reason=RejectionReason.MALFORMED_REQUEST, username=username)

        if not self._within_skew(signed.timestamp):
            logger.warning(
                "Authentication rejected for %r: timestamp %s outside %ds window.",
                username,
                signed.timestamp.isoformat(),
                self._clock_skew_seconds,
            )
            return Rejected(reason=RejectionReason.BAD_SIGNATURE, username=username)

        if not self._codec.verify_request(signed, public_key):
            logger.warning(
                "Authentication rejected for %r: signature does not match key %s.",
                username,
                key_fingerprint(public_key),
            )
            return Rejected(reason=RejectionReason.BAD_SIGNATURE, username=username)

        logger.debug("Authenticated %r.", username)
        return Authenticated(identity=identity)

    def _within_skew(self, timestamp: datetime) -> bool:
        delta = abs((self._clock() - timestamp).total_seconds())
        return delta <= self._clock_skew_seconds
