"""Structural preconditions of an upload request.

Runs before authentication, authorization or tarball parsing.  A missing
part is a precondition failure, not a validation failure, and it names
the field so the caller can tell ``category`` from ``tarball``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pantry.models.requests import PreconditionFailure, UploadRequest

logger = logging.getLogger(__name__)

CATEGORY_FIELD = "category"
TARBALL_FIELD = "tarball"


def _read_tarball(value: Any) -> bytes | None:
    """Accept raw bytes or a file-like upload part."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    read = getattr(value, "read", None)
    if callable(read):
        data = read()
        return data if isinstance(data, bytes) else None
    return None


class ArtifactIntake:
    """Checks that both required upload parts are present."""

    def validate_presence(
        self, raw_fields: Mapping[str, Any]
    ) -> UploadRequest | PreconditionFailure:
        """Return the ``UploadRequest`` or the first missing field.

        ``category`` is checked before ``tarball``.  Blank strings and
        empty uploads count as missing.
        """
        category = raw_fields.get(CATEGORY_FIELD)
        if not isinstance(category, str) or not category.strip():
            logger.info("Upload rejected: missing %r part.", CATEGORY_FIELD)
            return PreconditionFailure(missing_field=CATEGORY_FIELD)

        tarball = _read_tarball(raw_fields.get(TARBALL_FIELD))
        if not tarball:
            logger.info("Upload rejected: missing %r part.", TARBALL_FIELD)
            return PreconditionFailure(missing_field=TARBALL_FIELD)

        return UploadRequest(category_name=category.strip(), tarball=tarball)
