"""Error codes and the fixed message catalog for API responses."""

from __future__ import annotations

from pantry.auth.authenticator import RejectionReason

INVALID_DATA = "INVALID_DATA"
AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
NOT_FOUND = "NOT_FOUND"
SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

SERVICE_UNAVAILABLE_MESSAGE = "The registry is busy. Please retry the request."
STORAGE_FAILURE_MESSAGE = "The registry could not store the tarball. Please retry the request."
UNSIGNED_PARTS_MESSAGE = "upload parts do not match the signed request body"


def missing_part(field_name: str) -> str:
    return f"Multipart POST must include a part named '{field_name}'"


def not_found(cookbook_name: str) -> str:
    return f"Cookbook '{cookbook_name}' was not found."


def authentication_message(reason: RejectionReason, *, username: str, host: str) -> str:
    """Message shown to the client for an authentication rejection."""
    if reason is RejectionReason.UNKNOWN_IDENTITY:
        return f"{username} was not found on {host}."
    if reason is RejectionReason.MISSING_KEY:
        return f"no public key on file; link one at {host}"
    if reason is RejectionReason.BAD_SIGNATURE:
        return "signature does not match the stored key"
    return "request is missing signing headers"
