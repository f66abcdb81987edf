"""Inbound request models.

``InboundRequest`` is what the routing layer hands to the intake gate:
method, path, headers, the raw body the client signed, and the decoded
form parts.  Header names are case-insensitive; they are normalized to
lower case on construction while preserving their original order.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pantry.core.hasher import sha256_hex


class InboundRequest(BaseModel):
    """An HTTP-shaped request as received by the registry."""

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""
    form: dict[str, Any] = Field(default_factory=dict)
    base_url: str = ""

    @field_validator("headers", mode="before")
    @classmethod
    def _lower_header_names(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k).lower(): str(v) for k, v in value.items()}
        return value

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower())


class UploadRequest(BaseModel):
    """The two required parts of a publish request."""

    model_config = ConfigDict(frozen=True)

    category_name: str
    tarball: bytes

    def canonical_body(self) -> bytes:
        """The request body a client signs when publishing this upload.

        Digests of both parts, one per line.  A publish request is acted on
        only when its signed body equals these bytes.
        """
        return "\n".join([
            f"Category:{sha256_hex(self.category_name.encode('utf-8'))}",
            f"Tarball:{sha256_hex(self.tarball)}",
        ]).encode("utf-8")


class PreconditionFailure(BaseModel):
    """A required upload field was absent from the request."""

    model_config = ConfigDict(frozen=True)

    missing_field: str
