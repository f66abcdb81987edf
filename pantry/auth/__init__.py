"""Request authentication and authorization.

Modules
-------
keys
    Ed25519 key generation, signing and verification via PyNaCl.
signature
    Canonical request form, ``SignedRequest`` and the client-side signer.
authenticator
    Resolves the claimed identity and verifies its signature.
authorization
    Owner/collaborator checks for existing cookbooks.
"""

from pantry.auth.authenticator import (
    Authenticated,
    AuthenticationResult,
    Rejected,
    RejectionReason,
    RequestAuthenticator,
)
from pantry.auth.authorization import AuthorizationGate, Decision
from pantry.auth.signature import SignatureCodec, SignedRequest, sign_request

__all__ = [
    "Authenticated",
    "AuthenticationResult",
    "AuthorizationGate",
    "Decision",
    "Rejected",
    "RejectionReason",
    "RequestAuthenticator",
    "SignatureCodec",
    "SignedRequest",
    "sign_request",
]
