"""Domain rules for an upload candidate.

Each check returns a list of messages; callers concatenate them so one
response reports every problem.  Dependency constraint syntax is not
interpreted, only the shape of the mapping.
"""

from __future__ import annotations

import re
from collections.abc import Collection
from typing import Any

from pantry.models.cookbooks import ArtifactMetadata

NAME_PATTERN = re.compile(r"\A[A-Za-z0-9_.\-]+\Z")
VERSION_PATTERN = re.compile(r"\A[0-9]+\.[0-9]+(\.[0-9]+)?\Z")
MAX_NAME_LENGTH = 100


def validate_category(category_name: str, known_categories: Collection[str]) -> list[str]:
    if category_name not in known_categories:
        return [f"Category '{category_name}' does not exist."]
    return []


def _is_string_map(value: Any) -> bool:
    return isinstance(value, dict) and all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    )


def validate_metadata(metadata: ArtifactMetadata) -> list[str]:
    """Completeness and shape checks for ``metadata.json`` content."""
    errors: list[str] = []

    name = metadata.name
    if name is not None and not isinstance(name, str):
        errors.append(f"Name must be a string, not {type(name).__name__}.")
    elif not name or not name.strip():
        errors.append("Name can't be blank.")
    elif len(name) > MAX_NAME_LENGTH:
        errors.append(f"Name is too long (maximum is {MAX_NAME_LENGTH} characters).")
    elif not NAME_PATTERN.match(name):
        errors.append(
            "Name may only contain letters, numbers, hyphens, underscores and periods."
        )

    version = metadata.version
    if version is not None and not isinstance(version, str):
        errors.append(f"Version must be a string, not {type(version).__name__}.")
    elif not version or not version.strip():
        errors.append("Version can't be blank.")
    elif not VERSION_PATTERN.match(version):
        errors.append(f"Version '{version}' is not a valid version (expected x.y or x.y.z).")

    if not _is_string_map(metadata.dependencies):
        errors.append("Dependencies must map cookbook names to version constraints.")

    if not _is_string_map(metadata.platforms):
        errors.append("Platforms must map platform names to version constraints.")

    return errors
