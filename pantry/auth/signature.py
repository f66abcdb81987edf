"""Request signing: canonicalization and Ed25519 verification.

Wire format
-----------
A signed request carries these headers::

    X-Ops-Sign:            algorithm=ed25519;version=1.0
    X-Ops-Userid:          <username>
    X-Ops-Timestamp:       <ISO-8601 UTC, e.g. 2026-10-19T12:00:00Z>
    X-Ops-Content-Hash:    <sha256 hex of the body>
    X-Ops-Authorization-1: <first 60 hex chars of the signature>
    X-Ops-Authorization-2: <next 60 hex chars>
    ...

The signature is computed over the canonical request::

    Method:<method>
    Hashed Path:<sha256 hex of path>
    Hashed Body:<sha256 hex of body>
    X-Ops-Sign:<header value>
    X-Ops-Timestamp:<header value>
    X-Ops-Content-Hash:<header value>
    X-Ops-Userid:<header value>

Method, path and header values are used exactly as received.  Nothing is
case-folded or trimmed, so any alteration of a covered field yields
different canonical bytes.  Only the public key is needed to verify.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from pantry.auth.keys import sign_data, verify_data
from pantry.core.hasher import sha256_hex
from pantry.models.requests import InboundRequest

SIGN_HEADER = "x-ops-sign"
USERID_HEADER = "x-ops-userid"
TIMESTAMP_HEADER = "x-ops-timestamp"
CONTENT_HASH_HEADER = "x-ops-content-hash"
AUTHORIZATION_HEADER_PREFIX = "x-ops-authorization-"

SIGN_DESCRIPTION = "algorithm=ed25519;version=1.0"
SIGNATURE_CHUNK_SIZE = 60

# Covered headers, in canonical order: (wire name, canonical label)
COVERED_HEADERS: tuple[tuple[str, str], ...] = (
    (SIGN_HEADER, "X-Ops-Sign"),
    (TIMESTAMP_HEADER, "X-Ops-Timestamp"),
    (CONTENT_HASH_HEADER, "X-Ops-Content-Hash"),
    (USERID_HEADER, "X-Ops-Userid"),
)


class SigningHeaderError(ValueError):
    """Raised when a request lacks signing headers or they cannot be decoded."""


def format_timestamp(moment: datetime) -> str:
    """Render *moment* as the ``X-Ops-Timestamp`` wire format."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(value: str) -> datetime:
    """Parse an ``X-Ops-Timestamp`` value.  Naive values are taken as UTC."""
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class SignedRequest(BaseModel):
    """The identifying fields of an inbound request plus its signature.

    Constructed once per inbound call via ``from_inbound`` and immutable
    afterwards.  ``headers`` holds only the covered headers.
    """

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""
    timestamp: datetime
    claimed_username: str
    signature: str

    @classmethod
    def from_inbound(cls, request: InboundRequest) -> SignedRequest:
        """Extract signing material from *request*.

        Raises
        ------
        SigningHeaderError
            If a covered header or the signature is missing, or the
            timestamp cannot be parsed.
        """
        covered: dict[str, str] = {}
        for wire_name, label in COVERED_HEADERS:
            value = request.header(wire_name)
            if value is None:
                raise SigningHeaderError(f"Missing {label} header")
            covered[wire_name] = value

        chunks: list[str] = []
        index = 1
        while True:
            chunk = request.header(f"{AUTHORIZATION_HEADER_PREFIX}{index}")
            if chunk is None:
                break
            chunks.append(chunk)
            index += 1
        if not chunks:
            raise SigningHeaderError("Missing X-Ops-Authorization-N headers")

        try:
            timestamp = parse_timestamp(covered[TIMESTAMP_HEADER])
        except ValueError as exc:
            raise SigningHeaderError(
                f"Unparseable X-Ops-Timestamp {covered[TIMESTAMP_HEADER]!r}"
            ) from exc

        return cls(
            method=request.method,
            path=request.path,
            headers=covered,
            body=request.body,
            timestamp=timestamp,
            claimed_username=covered[USERID_HEADER],
            signature="".join(chunks),
        )

    @property
    def declared_content_hash(self) -> str:
        return self.headers.get(CONTENT_HASH_HEADER, "")


class SignatureCodec:
    """Canonicalizes signed requests and verifies their signatures.

    Both operations are pure functions over their inputs.
    """

    def canonicalize(self, request: SignedRequest) -> bytes:
        """Deterministic byte string over every covered field of *request*."""
        lines = [
            f"Method:{request.method}",
            f"Hashed Path:{sha256_hex(request.path.encode('utf-8'))}",
            f"Hashed Body:{sha256_hex(request.body)}",
        ]
        for wire_name, label in COVERED_HEADERS:
            lines.append(f"{label}:{request.headers.get(wire_name, '')}")
        return "\n".join(lines).encode("utf-8")

    def verify(self, canonical: bytes, signature: str, public_key: str) -> bool:
        """Ed25519 verification.  ``False`` is a normal outcome, never an error."""
        return verify_data(canonical, signature, public_key)

    def verify_request(self, request: SignedRequest, public_key: str) -> bool:
        """Check the declared content hash, then the signature."""
        if request.declared_content_hash != sha256_hex(request.body):
            return False
        return self.verify(self.canonicalize(request), request.signature, public_key)


def sign_request(
    *,
    method: str,
    path: str,
    body: bytes,
    username: str,
    private_key: str,
    timestamp: datetime | None = None,
) -> dict[str, str]:
    """Client side: produce the signing headers for a request.

    Returns a header dict ready to merge into the outgoing request.
    """
    moment = timestamp or datetime.now(timezone.utc)
    headers = {
        "X-Ops-Sign": SIGN_DESCRIPTION,
        "X-Ops-Userid": username,
        "X-Ops-Timestamp": format_timestamp(moment),
        "X-Ops-Content-Hash": sha256_hex(body),
    }
    unsigned = SignedRequest(
        method=method,
        path=path,
        headers={k.lower(): v for k, v in headers.items()},
        body=body,
        timestamp=moment,
        claimed_username=username,
        signature="",
    )
    signature = sign_data(SignatureCodec().canonicalize(unsigned), private_key)
    for n, start in enumerate(range(0, len(signature), SIGNATURE_CHUNK_SIZE), start=1):
        headers[f"X-Ops-Authorization-{n}"] = signature[start:start + SIGNATURE_CHUNK_SIZE]
    return headers
