"""Typed outcomes of the publish and retract flows.

Every failure path is a value rather than an exception so callers can
enumerate them:

* publish  -> ``PublishCommitted | PublishRejected | Denied``
* retract  -> ``RetractCommitted | NotFound | Denied``
"""

from __future__ import annotations

from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from pantry.models.cookbooks import Cookbook, CookbookSnapshot, CookbookVersion


class ValidationFailure(BaseModel):
    """Ordered field-level error messages.  Empty means valid."""

    model_config = ConfigDict(frozen=True)

    messages: list[str] = Field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.messages)

    def __len__(self) -> int:
        return len(self.messages)


class PublishCommitted(BaseModel):
    """A version was created or replaced."""

    model_config = ConfigDict(frozen=True)

    cookbook: Cookbook
    version: CookbookVersion
    created_cookbook: bool = False
    replaced_version: bool = False


class PublishRejected(BaseModel):
    """The upload failed validation; nothing was written."""

    model_config = ConfigDict(frozen=True)

    failure: ValidationFailure


class RetractCommitted(BaseModel):
    """The cookbook and all of its versions were deleted."""

    model_config = ConfigDict(frozen=True)

    snapshot: CookbookSnapshot


class Denied(BaseModel):
    """The identity may not mutate the target.  Deliberately carries no detail."""

    model_config = ConfigDict(frozen=True)


class NotFound(BaseModel):
    """The retraction target does not exist."""

    model_config = ConfigDict(frozen=True)

    cookbook_name: str


PublishOutcome = Union[PublishCommitted, PublishRejected, Denied]
RetractOutcome = Union[RetractCommitted, NotFound, Denied]
