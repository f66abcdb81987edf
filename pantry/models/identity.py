"""Identity model: a registry user as seen by the intake gate."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Identity(BaseModel):
    """A user who may sign requests.

    Looked up per request and never mutated by the intake gate.  An
    identity without a public key on file can never authenticate.
    """

    model_config = ConfigDict(frozen=True)

    username: str
    public_key: str | None = None  # hex-encoded Ed25519 verify key
    identity_id: int | None = None

    @property
    def has_public_key(self) -> bool:
        return bool(self.public_key)
