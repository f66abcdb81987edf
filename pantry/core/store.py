"""Registry store backed by SQLite.

The store owns identities, categories, cookbooks and cookbook versions.
The intake gate only reads and writes them through this interface and
never caches them beyond one request.

Design:
- ``users.username`` is UNIQUE, so identity lookup returns at most one row.
- ``(cookbook_id, version)`` is UNIQUE; republishing upserts in place.
- Every mutation runs in one ``BEGIN IMMEDIATE`` transaction.  SQLite
  hands the write lock to one transaction at a time, so the state a
  publish is checked against cannot change before it commits.
- A busy/locked database past ``busy_timeout`` surfaces as
  ``TransientStoreError``; the transaction is rolled back in full.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

from pantry.models.artifacts import StoredTarball
from pantry.models.cookbooks import (
    ArtifactMetadata,
    Cookbook,
    CookbookVersion,
    version_param,
    version_sort_key,
)
from pantry.models.identity import Identity

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_SCHEMA: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        username    TEXT NOT NULL UNIQUE,
        public_key  TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS categories (
        id    INTEGER PRIMARY KEY AUTOINCREMENT,
        name  TEXT NOT NULL UNIQUE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS cookbooks (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        name        TEXT NOT NULL UNIQUE,
        category    TEXT NOT NULL,
        owner       TEXT NOT NULL,
        created_at  TEXT NOT NULL,
        updated_at  TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS cookbook_collaborators (
        cookbook_id  INTEGER NOT NULL REFERENCES cookbooks(id) ON DELETE CASCADE,
        username     TEXT NOT NULL,
        PRIMARY KEY (cookbook_id, username)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS cookbook_versions (
        id               INTEGER PRIMARY KEY AUTOINCREMENT,
        cookbook_id      INTEGER NOT NULL REFERENCES cookbooks(id) ON DELETE CASCADE,
        version          TEXT NOT NULL,
        metadata_json    TEXT NOT NULL,
        tarball_address  TEXT NOT NULL,
        tarball_size     INTEGER NOT NULL DEFAULT 0,
        published_at     TEXT NOT NULL,
        UNIQUE (cookbook_id, version)
    );
    """,
)

_TRANSIENT_MARKERS = ("locked", "busy")


class TransientStoreError(RuntimeError):
    """The store could not complete the operation in time.  Safe to retry."""


class RecordExistsError(ValueError):
    """Raised when creating a user or category that already exists."""


class CommitResult(BaseModel):
    """What a publish commit wrote."""

    model_config = ConfigDict(frozen=True)

    cookbook: Cookbook
    version: CookbookVersion
    created_cookbook: bool
    replaced_version: bool


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RegistryStore:
    """SQLite-backed registry store.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.  Created if it does not exist.
    busy_timeout:
        Seconds to wait for the write lock before giving up with
        ``TransientStoreError``.
    """

    def __init__(self, db_path: Path, *, busy_timeout: float = 5.0) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._busy_timeout = busy_timeout
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self._db_path),
            timeout=self._busy_timeout,
            check_same_thread=False,
            isolation_level=None,
        )
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _init_schema(self) -> None:
        with self._transaction() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        """Autocommit connection for reads."""
        conn = self._connect()
        try:
            yield conn
        except sqlite3.OperationalError as exc:
            raise self._translate(exc) from exc
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """One all-or-nothing write transaction holding the write lock."""
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except sqlite3.OperationalError as exc:
            raise self._translate(exc) from exc
        finally:
            conn.close()

    @staticmethod
    def _translate(exc: sqlite3.OperationalError) -> Exception:
        message = str(exc).lower()
        if any(marker in message for marker in _TRANSIENT_MARKERS):
            logger.warning("Registry store unavailable: %s", exc)
            return TransientStoreError(f"Registry store unavailable: {exc}")
        return exc

    # ------------------------------------------------------------------
    # Identities
    # ------------------------------------------------------------------

    def add_user(self, username: str, public_key: str | None = None) -> Identity:
        try:
            with self._transaction() as conn:
                cur = conn.execute(
                    "INSERT INTO users (username, public_key) VALUES (?, ?)",
                    (username, public_key),
                )
                identity_id = cur.lastrowid
        except sqlite3.IntegrityError as exc:
            raise RecordExistsError(f"User {username!r} already exists") from exc
        logger.info("Added user %r.", username)
        return Identity(username=username, public_key=public_key, identity_id=identity_id)

    def set_public_key(self, username: str, public_key: str | None) -> Identity:
        with self._transaction() as conn:
            cur = conn.execute(
                "UPDATE users SET public_key = ? WHERE username = ?",
                (public_key, username),
            )
            if cur.rowcount == 0:
                raise KeyError(f"No user named {username!r}")
        identity = self.find_identity(username)
        if identity is None:
            raise KeyError(f"No user named {username!r}")
        return identity

    def find_identity(self, username: str) -> Identity | None:
        """At most one identity per username (UNIQUE constraint)."""
        with self._session() as conn:
            row = conn.execute(
                "SELECT id, username, public_key FROM users WHERE username = ?",
                (username,),
            ).fetchone()
        if row is None:
            return None
        return Identity(identity_id=row[0], username=row[1], public_key=row[2])

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def add_category(self, name: str) -> None:
        try:
            with self._transaction() as conn:
                conn.execute("INSERT INTO categories (name) VALUES (?)", (name,))
        except sqlite3.IntegrityError as exc:
            raise RecordExistsError(f"Category {name!r} already exists") from exc

    def category_names(self) -> set[str]:
        with self._session() as conn:
            rows = conn.execute("SELECT name FROM categories").fetchall()
        return {row[0] for row in rows}

    # ------------------------------------------------------------------
    # Cookbooks
    # ------------------------------------------------------------------

    def find_cookbook(self, name: str) -> Cookbook | None:
        with self._session() as conn:
            return self._load_cookbook(conn, name)

    def add_collaborator(self, cookbook_name: str, username: str) -> None:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT id FROM cookbooks WHERE name = ?", (cookbook_name,)
            ).fetchone()
            if row is None:
                raise KeyError(f"No cookbook named {cookbook_name!r}")
            conn.execute(
                "INSERT OR IGNORE INTO cookbook_collaborators (cookbook_id, username) "
                "VALUES (?, ?)",
                (row[0], username),
            )

    def commit_version(
        self,
        *,
        identity: Identity,
        metadata: ArtifactMetadata,
        category: str,
        tarball: StoredTarball,
        guard: Callable[[Cookbook | None], bool] | None = None,
    ) -> CommitResult | None:
        """Create the cookbook if new and create/replace the version.

        *guard* is called inside the transaction with the cookbook as it
        exists at that moment (or ``None``).  Returning ``False`` aborts
        without writing and this method returns ``None``.
        """
        name = str(metadata.name)
        version = str(metadata.version)
        now = _now()

        with self._transaction() as conn:
            current = self._load_cookbook(conn, name)
            if guard is not None and not guard(current):
                return None

            if current is None:
                cur = conn.execute(
                    "INSERT INTO cookbooks (name, category, owner, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (name, category, identity.username, now, now),
                )
                cookbook_id = cur.lastrowid
            else:
                cookbook_id = current.cookbook_id
                conn.execute(
                    "UPDATE cookbooks SET category = ?, updated_at = ? WHERE id = ?",
                    (category, now, cookbook_id),
                )

            replaced = current is not None and current.get_version(version) is not None
            conn.execute(
                """
                INSERT INTO cookbook_versions
                    (cookbook_id, version, metadata_json, tarball_address,
                     tarball_size, published_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT (cookbook_id, version) DO UPDATE SET
                    metadata_json   = excluded.metadata_json,
                    tarball_address = excluded.tarball_address,
                    tarball_size    = excluded.tarball_size,
                    published_at    = excluded.published_at
                """,
                (
                    cookbook_id,
                    version,
                    metadata.model_dump_json(),
                    tarball.content_address,
                    tarball.size_bytes,
                    now,
                ),
            )
            cookbook = self._load_cookbook(conn, name)
            committed = cookbook.get_version(version) if cookbook is not None else None
            if cookbook is None or committed is None:
                raise RuntimeError(f"Committed {name} {version} could not be read back")

        logger.info(
            "Committed %s %s (%s).",
            name,
            version,
            "replaced" if replaced else "new version",
        )
        return CommitResult(
            cookbook=cookbook,
            version=committed,
            created_cookbook=current is None,
            replaced_version=replaced,
        )

    def delete_cookbook(self, cookbook: Cookbook) -> bool:
        """Delete *cookbook* and all of its versions.

        Returns ``True`` only if the row that was read is the row that
        was deleted.
        """
        with self._transaction() as conn:
            cur = conn.execute(
                "DELETE FROM cookbooks WHERE id = ? AND name = ?",
                (cookbook.cookbook_id, cookbook.name),
            )
            deleted = cur.rowcount == 1
        if deleted:
            logger.info("Deleted cookbook %r.", cookbook.name)
        return deleted

    def universe(self, base_url: str = "") -> dict[str, dict[str, dict[str, Any]]]:
        """Every cookbook version with its dependencies.

        Shape: ``{name: {version: {location_type, location_path,
        download_url, dependencies}}}``.
        """
        api = f"{base_url.rstrip('/')}/api/v1"
        with self._session() as conn:
            rows = conn.execute(
                """
                SELECT c.name, v.version, v.metadata_json
                FROM cookbooks c JOIN cookbook_versions v ON v.cookbook_id = c.id
                ORDER BY c.name, v.id
                """
            ).fetchall()

        result: dict[str, dict[str, dict[str, Any]]] = {}
        for name, version, metadata_json in rows:
            metadata = ArtifactMetadata.model_validate_json(metadata_json)
            dependencies = metadata.dependencies if isinstance(metadata.dependencies, dict) else {}
            result.setdefault(name, {})[version] = {
                "location_type": "opscode",
                "location_path": api,
                "download_url": (
                    f"{api}/cookbooks/{name}/versions/{version_param(version)}/download"
                ),
                "dependencies": dependencies,
            }
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _load_cookbook(conn: sqlite3.Connection, name: str) -> Cookbook | None:
        row = conn.execute(
            "SELECT id, name, category, owner, created_at, updated_at "
            "FROM cookbooks WHERE name = ?",
            (name,),
        ).fetchone()
        if row is None:
            return None
        cookbook_id, cookbook_name, category, owner, created_at, updated_at = row

        collaborators = [
            r[0]
            for r in conn.execute(
                "SELECT username FROM cookbook_collaborators "
                "WHERE cookbook_id = ? ORDER BY username",
                (cookbook_id,),
            ).fetchall()
        ]
        versions = [
            CookbookVersion(
                cookbook_name=cookbook_name,
                version=version,
                metadata=ArtifactMetadata.model_validate_json(metadata_json),
                tarball_address=tarball_address,
                tarball_size=tarball_size,
                published_at=published_at,
            )
            for version, metadata_json, tarball_address, tarball_size, published_at in conn.execute(
                "SELECT version, metadata_json, tarball_address, tarball_size, published_at "
                "FROM cookbook_versions WHERE cookbook_id = ?",
                (cookbook_id,),
            ).fetchall()
        ]
        versions.sort(key=lambda v: version_sort_key(v.version))

        return Cookbook(
            cookbook_id=cookbook_id,
            name=cookbook_name,
            category=category,
            owner=owner,
            collaborators=collaborators,
            versions=versions,
            created_at=created_at,
            updated_at=updated_at,
        )
