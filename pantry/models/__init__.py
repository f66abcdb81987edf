"""Pantry data models: all Pydantic v2, all frozen (immutable)."""

from pantry.models.artifacts import StoredTarball
from pantry.models.cookbooks import (
    ArtifactMetadata,
    Cookbook,
    CookbookSnapshot,
    CookbookVersion,
    version_param,
    version_sort_key,
)
from pantry.models.identity import Identity
from pantry.models.requests import InboundRequest, PreconditionFailure, UploadRequest
from pantry.models.results import (
    Denied,
    NotFound,
    PublishCommitted,
    PublishOutcome,
    PublishRejected,
    RetractCommitted,
    RetractOutcome,
    ValidationFailure,
)

__all__ = [
    # artifacts
    "StoredTarball",
    # identity
    "Identity",
    # cookbooks
    "ArtifactMetadata",
    "Cookbook",
    "CookbookSnapshot",
    "CookbookVersion",
    "version_param",
    "version_sort_key",
    # requests
    "InboundRequest",
    "PreconditionFailure",
    "UploadRequest",
    # results
    "ValidationFailure",
    "PublishCommitted",
    "PublishRejected",
    "RetractCommitted",
    "Denied",
    "NotFound",
    "PublishOutcome",
    "RetractOutcome",
]
