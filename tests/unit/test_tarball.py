"""Tests for reading metadata.json out of a cookbook tarball."""

from __future__ import annotations

import json

from pantry.intake.tarball import (
    BAD_JSON,
    MAX_MANIFEST_BYTES,
    NO_MANIFEST,
    NOT_AN_OBJECT,
    UNREADABLE,
    build_tarball,
    manifest_too_large,
    parse_tarball,
    too_large,
)


class TestParseTarball:
    def test_reads_metadata(self, make_tarball):
        parsed = parse_tarball(make_tarball("redis", "3.0.0"))
        assert parsed.errors == []
        assert parsed.metadata.name == "redis"
        assert parsed.metadata.version == "3.0.0"
        assert parsed.metadata.license == "Apache-2.0"
        assert parsed.metadata.dependencies == {"build-essential": ">= 1.0.0"}

    def test_top_level_manifest(self):
        data = build_tarball({"metadata.json": json.dumps({"name": "nginx", "version": "1.0"})})
        assert parse_tarball(data).metadata.name == "nginx"

    def test_shallowest_manifest_wins(self):
        data = build_tarball({
            "redis/metadata.json": json.dumps({"name": "redis", "version": "1.0.0"}),
            "redis/vendor/metadata.json": json.dumps({"name": "vendored", "version": "9.9.9"}),
        })
        assert parse_tarball(data).metadata.name == "redis"

    def test_too_deep_manifest_ignored(self):
        data = build_tarball({"a/b/metadata.json": json.dumps({"name": "x", "version": "1.0"})})
        assert parse_tarball(data).errors == [NO_MANIFEST]

    def test_missing_manifest(self, make_tarball):
        parsed = parse_tarball(make_tarball(include_manifest=False))
        assert parsed.metadata is None
        assert parsed.errors == [NO_MANIFEST]

    def test_not_a_tarball(self):
        assert parse_tarball(b"definitely not gzip").errors == [UNREADABLE]

    def test_bad_json(self):
        data = build_tarball({"redis/metadata.json": "{not json"})
        assert parse_tarball(data).errors == [BAD_JSON]

    def test_json_array(self):
        data = build_tarball({"redis/metadata.json": "[1, 2]"})
        assert parse_tarball(data).errors == [NOT_AN_OBJECT]

    def test_size_limit(self, make_tarball):
        data = make_tarball()
        parsed = parse_tarball(data, max_bytes=10)
        assert parsed.errors == [too_large(10)]
        assert parsed.size_bytes == len(data)

    def test_oversized_manifest_rejected_unread(self):
        padding = "a" * (MAX_MANIFEST_BYTES + 1)
        data = build_tarball({
            "redis/metadata.json": json.dumps({"name": "redis", "version": "1.0.0", "x": padding})
        })
        assert len(data) < MAX_MANIFEST_BYTES
        parsed = parse_tarball(data, max_bytes=32 * 1024 * 1024)
        assert parsed.metadata is None
        assert parsed.errors == [manifest_too_large(MAX_MANIFEST_BYTES)]

    def test_manifest_limit_is_configurable(self, make_tarball):
        assert parse_tarball(make_tarball(), max_manifest_bytes=16).errors == [
            manifest_too_large(16)
        ]

    def test_build_tarball_is_deterministic(self):
        files = {"a/metadata.json": "{}", "a/README.md": "hi"}
        assert build_tarball(files) == build_tarball(dict(reversed(list(files.items()))))
