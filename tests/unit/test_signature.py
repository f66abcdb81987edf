"""Tests for request canonicalization, signing and verification."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from pantry.auth.keys import generate_keypair, sign_data
from pantry.auth.signature import (
    SIGN_DESCRIPTION,
    SignatureCodec,
    SignedRequest,
    SigningHeaderError,
    format_timestamp,
    parse_timestamp,
    sign_request,
)
from pantry.core.hasher import sha256_hex
from pantry.models.requests import InboundRequest

MOMENT = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)


def _inbound(headers, *, method="POST", path="/api/v1/cookbooks", body=b"tarball-bytes"):
    return InboundRequest(method=method, path=path, headers=headers, body=body)


class TestTimestamps:
    def test_format(self):
        assert format_timestamp(MOMENT) == "2024-05-01T12:30:00Z"

    def test_parse_round_trips_wire_format(self):
        assert parse_timestamp("2024-05-01T12:30:00Z") == MOMENT

    def test_parse_naive_is_utc(self):
        assert parse_timestamp("2024-05-01T12:30:00").tzinfo is not None

    def test_parse_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")


class TestSignRequest:
    def test_headers_present(self):
        private_key, _ = generate_keypair()
        headers = sign_request(
            method="POST", path="/api/v1/cookbooks", body=b"abc",
            username="alice", private_key=private_key, timestamp=MOMENT,
        )
        assert headers["X-Ops-Sign"] == SIGN_DESCRIPTION
        assert headers["X-Ops-Userid"] == "alice"
        assert headers["X-Ops-Timestamp"] == "2024-05-01T12:30:00Z"
        assert headers["X-Ops-Content-Hash"] == sha256_hex(b"abc")
        # 128 hex chars split into 60-char chunks
        assert [len(headers[f"X-Ops-Authorization-{n}"]) for n in (1, 2, 3)] == [60, 60, 8]

    def test_signature_verifies(self):
        private_key, public_key = generate_keypair()
        headers = sign_request(
            method="POST", path="/api/v1/cookbooks", body=b"abc",
            username="alice", private_key=private_key,
        )
        signed = SignedRequest.from_inbound(_inbound(headers, body=b"abc"))
        assert SignatureCodec().verify_request(signed, public_key) is True


class TestFromInbound:
    def _headers(self):
        private_key, _ = generate_keypair()
        return sign_request(
            method="POST", path="/api/v1/cookbooks", body=b"tarball-bytes",
            username="alice", private_key=private_key, timestamp=MOMENT,
        )

    def test_header_names_are_case_insensitive(self):
        headers = {k.upper(): v for k, v in self._headers().items()}
        signed = SignedRequest.from_inbound(_inbound(headers))
        assert signed.claimed_username == "alice"
        assert signed.timestamp == MOMENT

    @pytest.mark.parametrize(
        "missing", ["X-Ops-Sign", "X-Ops-Timestamp", "X-Ops-Content-Hash", "X-Ops-Userid"]
    )
    def test_missing_covered_header(self, missing):
        headers = self._headers()
        del headers[missing]
        with pytest.raises(SigningHeaderError, match=missing):
            SignedRequest.from_inbound(_inbound(headers))

    def test_missing_authorization_chunks(self):
        headers = {k: v for k, v in self._headers().items() if "Authorization" not in k}
        with pytest.raises(SigningHeaderError):
            SignedRequest.from_inbound(_inbound(headers))

    def test_unparseable_timestamp(self):
        headers = self._headers()
        headers["X-Ops-Timestamp"] = "not-a-time"
        with pytest.raises(SigningHeaderError):
            SignedRequest.from_inbound(_inbound(headers))


class TestCanonicalize:
    def _signed(self, **overrides):
        fields = dict(
            method="POST",
            path="/api/v1/cookbooks",
            headers={
                "x-ops-sign": SIGN_DESCRIPTION,
                "x-ops-timestamp": "2024-05-01T12:30:00Z",
                "x-ops-content-hash": sha256_hex(b"body"),
                "x-ops-userid": "alice",
            },
            body=b"body",
            timestamp=MOMENT,
            claimed_username="alice",
            signature="",
        )
        fields.update(overrides)
        return SignedRequest(**fields)

    def test_deterministic(self):
        codec = SignatureCodec()
        assert codec.canonicalize(self._signed()) == codec.canonicalize(self._signed())

    def test_layout(self):
        lines = SignatureCodec().canonicalize(self._signed()).decode().split("\n")
        assert lines[0] == "Method:POST"
        assert lines[1] == f"Hashed Path:{sha256_hex(b'/api/v1/cookbooks')}"
        assert lines[2] == f"Hashed Body:{sha256_hex(b'body')}"
        assert [line.split(":", 1)[0] for line in lines[3:]] == [
            "X-Ops-Sign", "X-Ops-Timestamp", "X-Ops-Content-Hash", "X-Ops-Userid",
        ]

    def test_method_case_is_significant(self):
        codec = SignatureCodec()
        assert codec.canonicalize(self._signed()) != codec.canonicalize(
            self._signed(method="post")
        )

    def test_path_is_not_normalized(self):
        codec = SignatureCodec()
        assert codec.canonicalize(self._signed()) != codec.canonicalize(
            self._signed(path="/api/v1/cookbooks/")
        )

    def test_verify_rejects_content_hash_mismatch(self):
        private_key, public_key = generate_keypair()
        codec = SignatureCodec()
        signed = self._signed(body=b"other body")
        canonical = codec.canonicalize(signed)
        signed = signed.model_copy(update={"signature": sign_data(canonical, private_key)})
        # Signature covers the body, but the declared hash is for b"body"
        assert codec.verify_request(signed, public_key) is False
