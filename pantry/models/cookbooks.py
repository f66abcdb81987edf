"""Cookbook and cookbook-version models.

A cookbook is a named package owned by one user, optionally shared with
collaborators, holding an ordered set of versions.  Version identifiers
are unique within a cookbook; republishing a version replaces it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def version_sort_key(version: str) -> tuple[int, ...]:
    """Sort key for ``x.y.z`` version strings.

    Non-numeric parts sort as ``-1`` so malformed identifiers never win
    the "latest" comparison.
    """
    parts: list[int] = []
    for part in version.split("."):
        parts.append(int(part) if part.isdigit() else -1)
    return tuple(parts)


def version_param(version: str) -> str:
    """URL form of a version identifier (``1.2.3`` -> ``1_2_3``)."""
    return version.replace(".", "_")


class ArtifactMetadata(BaseModel):
    """Metadata extracted from a tarball's ``metadata.json`` entry.

    Fields are kept loosely typed so that malformed values survive
    extraction and are reported by validation rather than lost.
    """

    model_config = ConfigDict(frozen=True)

    name: Any = None
    version: Any = None
    description: str = ""
    license: str = ""
    maintainer: str = ""
    platforms: Any = Field(default_factory=dict)
    dependencies: Any = Field(default_factory=dict)
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> ArtifactMetadata:
        return cls(
            name=manifest.get("name"),
            version=manifest.get("version"),
            description=str(manifest.get("description") or ""),
            license=str(manifest.get("license") or ""),
            maintainer=str(manifest.get("maintainer") or ""),
            platforms=manifest.get("platforms", {}),
            dependencies=manifest.get("dependencies", {}),
            raw=manifest,
        )


class CookbookVersion(BaseModel):
    """One release of a cookbook.

    ``tarball_address`` is the ``sha256:<hex>`` content address of the
    uploaded tarball in the tarball store.
    """

    model_config = ConfigDict(frozen=True)

    cookbook_name: str
    version: str
    metadata: ArtifactMetadata
    tarball_address: str
    tarball_size: int = 0
    published_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class Cookbook(BaseModel):
    """A named cookbook and its versions (ascending version order)."""

    model_config = ConfigDict(frozen=True)

    cookbook_id: int
    name: str
    category: str
    owner: str
    collaborators: list[str] = Field(default_factory=list)
    versions: list[CookbookVersion] = Field(default_factory=list)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def latest_version(self) -> CookbookVersion | None:
        if not self.versions:
            return None
        return max(self.versions, key=lambda v: version_sort_key(v.version))

    def get_version(self, version: str) -> CookbookVersion | None:
        for candidate in self.versions:
            if candidate.version == version:
                return candidate
        return None

    def is_maintainer(self, username: str) -> bool:
        """Owner or collaborator."""
        return username == self.owner or username in self.collaborators


class CookbookSnapshot(BaseModel):
    """What the deletion notification needs, captured before deletion."""

    model_config = ConfigDict(frozen=True)

    cookbook_id: int
    name: str
    category: str
    owner: str
    collaborators: list[str] = Field(default_factory=list)
    versions: list[str] = Field(default_factory=list)
    latest_version_url: str | None = None

    @classmethod
    def capture(cls, cookbook: Cookbook, base_url: str) -> CookbookSnapshot:
        latest = cookbook.latest_version
        url = None
        if latest is not None:
            url = (
                f"{base_url.rstrip('/')}/api/v1/cookbooks/{cookbook.name}"
                f"/versions/{version_param(latest.version)}"
            )
        return cls(
            cookbook_id=cookbook.cookbook_id,
            name=cookbook.name,
            category=cookbook.category,
            owner=cookbook.owner,
            collaborators=list(cookbook.collaborators),
            versions=[v.version for v in cookbook.versions],
            latest_version_url=url,
        )
