"""Cookbook tarball reading.

A cookbook tarball is a gzipped tar archive whose top-level directory
holds a ``metadata.json`` entry (usually ``<name>/metadata.json``, as
generated by knife).  Only that entry is read; nothing is extracted to
disk.  Problems are returned as messages, never raised.
"""

from __future__ import annotations

import gzip
import io
import json
import logging
import tarfile
import zlib

from pydantic import BaseModel, ConfigDict, Field

from pantry.models.cookbooks import ArtifactMetadata

logger = logging.getLogger(__name__)

MANIFEST_NAME = "metadata.json"
MAX_MANIFEST_BYTES = 1024 * 1024

UNREADABLE = "Tarball could not be read as a gzipped tar archive."
NO_MANIFEST = "Tarball has no metadata.json entry."
BAD_JSON = "Tarball metadata.json is not valid JSON."
NOT_AN_OBJECT = "Tarball metadata.json must contain a JSON object."
TIMED_OUT = "Tarball is unreadable: parsing timed out."


def too_large(limit: int) -> str:
    return f"Tarball exceeds the maximum size of {limit} bytes."


def manifest_too_large(limit: int) -> str:
    return f"Tarball is unreadable: metadata.json exceeds {limit} bytes."


class ParsedTarball(BaseModel):
    """Result of reading a tarball: metadata, or the reasons there is none."""

    model_config = ConfigDict(frozen=True)

    metadata: ArtifactMetadata | None = None
    errors: list[str] = Field(default_factory=list)
    size_bytes: int = 0


def _manifest_member(archive: tarfile.TarFile) -> tarfile.TarInfo | None:
    """The shallowest regular ``metadata.json`` at depth <= 2."""
    best: tarfile.TarInfo | None = None
    best_depth = 3
    for member in archive:
        if not member.isfile():
            continue
        parts = [p for p in member.name.split("/") if p and p != "."]
        if not parts or parts[-1] != MANIFEST_NAME:
            continue
        depth = len(parts)
        if depth < best_depth:
            best, best_depth = member, depth
            if depth == 1:
                break
    return best


def parse_tarball(
    data: bytes,
    *,
    max_bytes: int | None = None,
    max_manifest_bytes: int = MAX_MANIFEST_BYTES,
) -> ParsedTarball:
    """Read the ``metadata.json`` entry out of *data*.

    *max_bytes* bounds the compressed upload; *max_manifest_bytes* bounds
    the decompressed manifest, which is never read past that limit.
    """
    if max_bytes is not None and len(data) > max_bytes:
        return ParsedTarball(errors=[too_large(max_bytes)], size_bytes=len(data))

    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as archive:
            member = _manifest_member(archive)
            if member is None:
                return ParsedTarball(errors=[NO_MANIFEST], size_bytes=len(data))
            if member.size > max_manifest_bytes:
                logger.info(
                    "Manifest of %d bytes exceeds the %d byte limit.",
                    member.size,
                    max_manifest_bytes,
                )
                return ParsedTarball(
                    errors=[manifest_too_large(max_manifest_bytes)], size_bytes=len(data)
                )
            handle = archive.extractfile(member)
            raw = handle.read(max_manifest_bytes) if handle is not None else b""
    except (tarfile.TarError, OSError, EOFError, zlib.error) as exc:
        logger.info("Unreadable tarball (%d bytes): %s", len(data), exc)
        return ParsedTarball(errors=[UNREADABLE], size_bytes=len(data))

    try:
        manifest = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return ParsedTarball(errors=[BAD_JSON], size_bytes=len(data))

    if not isinstance(manifest, dict):
        return ParsedTarball(errors=[NOT_AN_OBJECT], size_bytes=len(data))

    return ParsedTarball(
        metadata=ArtifactMetadata.from_manifest(manifest),
        size_bytes=len(data),
    )


def build_tarball(files: dict[str, bytes | str]) -> bytes:
    """Pack *files* (archive path -> content) into a gzipped tarball.

    Used by the CLI ``package`` command and the test suite.
    """
    buffer = io.BytesIO()
    with gzip.GzipFile(fileobj=buffer, mode="wb", mtime=0) as gz, \
            tarfile.open(fileobj=gz, mode="w") as archive:
        for name in sorted(files):
            content = files[name]
            payload = content.encode("utf-8") if isinstance(content, str) else content
            info = tarfile.TarInfo(name=name)
            info.size = len(payload)
            info.mtime = 0
            archive.addfile(info, io.BytesIO(payload))
    return buffer.getvalue()
