"""Content-addressed tarball reference."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class StoredTarball(BaseModel):
    """Where an uploaded tarball lives in the tarball store."""

    model_config = ConfigDict(frozen=True)

    content_address: str  # "sha256:<hex>"
    size_bytes: int
