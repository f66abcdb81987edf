"""Authorization gate: may this identity mutate this cookbook?

Publishing a brand-new cookbook is open to every authenticated identity.
Publishing to, or retracting, an existing cookbook is limited to its
owner and collaborators.  The gate is a pure predicate.
"""

from __future__ import annotations

from enum import Enum

from pantry.models.cookbooks import Cookbook
from pantry.models.identity import Identity


class Decision(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOWED


class AuthorizationGate:
    """Decides whether an identity may mutate a target cookbook."""

    def authorize(self, identity: Identity, target: Cookbook | None) -> Decision:
        """``target`` is ``None`` when the cookbook does not exist yet."""
        if target is None:
            return Decision.ALLOWED
        if target.is_maintainer(identity.username):
            return Decision.ALLOWED
        return Decision.DENIED
