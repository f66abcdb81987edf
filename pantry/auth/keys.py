"""Ed25519 key handling via PyNaCl (libsodium).

Keys and signatures travel as hex strings: a 32-byte signing seed
(64 hex chars), a 32-byte verify key (64 hex chars) and a 64-byte
signature (128 hex chars).  Only the verify key is ever stored by the
registry; signing happens on the client.
"""

from __future__ import annotations

import hashlib
import logging

import nacl.signing
from nacl.exceptions import BadSignatureError

logger = logging.getLogger(__name__)


def generate_keypair() -> tuple[str, str]:
    """Generate a signing key-pair.

    Returns
    -------
    tuple[str, str]
        ``(private_key_hex, public_key_hex)``
    """
    sk = nacl.signing.SigningKey.generate()
    return (sk.encode().hex(), sk.verify_key.encode().hex())


def public_key_for(private_key: str) -> str:
    """Derive the hex verify key from a hex signing seed."""
    sk = nacl.signing.SigningKey(bytes.fromhex(private_key))
    return sk.verify_key.encode().hex()


def sign_data(data: bytes, private_key: str) -> str:
    """Sign *data* with *private_key* and return the hex-encoded signature.

    Parameters
    ----------
    data:
        Raw bytes to sign (typically a canonical request digest).
    private_key:
        Hex-encoded private key (seed) returned by ``generate_keypair()``.
    """
    sk = nacl.signing.SigningKey(bytes.fromhex(private_key))
    return sk.sign(data).signature.hex()


def verify_data(data: bytes, signature: str, public_key: str) -> bool:
    """Verify that *signature* is valid for *data* under *public_key*.

    Returns ``False`` if the signature is empty or malformed, if the key
    is malformed, or if verification fails.  Never raises.
    """
    if not signature or not public_key:
        return False
    try:
        sig_bytes = bytes.fromhex(signature)
        vk = nacl.signing.VerifyKey(bytes.fromhex(public_key))
        vk.verify(data, sig_bytes)
        return True
    except BadSignatureError:
        return False
    except (ValueError, TypeError) as exc:
        # Malformed hex or wrong key/signature length
        logger.debug("verify_data: malformed key or signature (%s).", exc)
        return False


def is_valid_public_key(public_key: str) -> bool:
    """Return ``True`` if *public_key* decodes to an Ed25519 verify key."""
    try:
        nacl.signing.VerifyKey(bytes.fromhex(public_key))
        return True
    except (ValueError, TypeError):
        return False


def key_fingerprint(public_key: str) -> str:
    """Compute a short fingerprint of a public key.

    Returns the first 16 hex characters of SHA-256(public_key_bytes).
    Used in log lines so the full key never lands in logs.
    """
    if not public_key:
        return ""
    return hashlib.sha256(public_key.encode("utf-8")).hexdigest()[:16]
