"""Content-addressed tarball store.

Storage layout: {base_path}/{sha256[0:2]}/{sha256[2:4]}/{sha256}.tgz
Tarballs are never deleted: two versions may share an address, and a
retracted cookbook's bytes are simply no longer referenced.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from pantry.core.hasher import sha256_hex
from pantry.models.artifacts import StoredTarball


class StoreIntegrityError(RuntimeError):
    """Raised when a stored tarball's hash does not match its address."""


class TarballStore:
    """SHA-256 keyed, immutable tarball store.

    Storing the same content twice is a no-op (idempotent).

    Parameters
    ----------
    base_path:
        Root directory for tarball storage.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _extract_digest(content_address: str) -> str:
        """Strip the ``sha256:`` prefix from a content address, if present."""
        return content_address.removeprefix("sha256:")

    def _tarball_path(self, sha256_digest: str) -> Path:
        return self._base / sha256_digest[:2] / sha256_digest[2:4] / f"{sha256_digest}.tgz"

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def store(self, data: bytes) -> StoredTarball:
        """Store *data* and return its address.

        If the content already exists, verifies integrity and returns
        without rewriting.  New content is written to a temporary file
        and renamed into place so readers never see a partial tarball.
        """
        digest = sha256_hex(data)
        path = self._tarball_path(digest)

        if path.exists():
            if not self.verify(digest):
                raise StoreIntegrityError(
                    f"Existing tarball at {digest} failed integrity check"
                )
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".part")
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

        return StoredTarball(content_address=f"sha256:{digest}", size_bytes=len(data))

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    def retrieve(self, content_address: str) -> bytes:
        """Retrieve tarball bytes by content address ("sha256:<hex>" or hex)."""
        path = self._tarball_path(self._extract_digest(content_address))
        if not path.exists():
            raise FileNotFoundError(f"Tarball not found: {content_address}")
        return path.read_bytes()

    def exists(self, content_address: str) -> bool:
        return self._tarball_path(self._extract_digest(content_address)).exists()

    def verify(self, content_address: str) -> bool:
        """Re-hash stored data and compare against the content address."""
        digest = self._extract_digest(content_address)
        path = self._tarball_path(digest)
        if not path.exists():
            return False
        return sha256_hex(path.read_bytes()) == digest
