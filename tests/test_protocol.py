"""
Tests for the protocol module.
"""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from server_log.protocol import (
    Acknowledged,
    CapturedBody,
    ErrorKind,
    ErrorOutcome,
    IncomingRequest,
    RequestKind,
    ResolvedFile,
    ServedFile,
    classify_method,
)


class TestClassifyMethod:
    """Tests for method classification."""

    @pytest.mark.parametrize("method", ["GET", "HEAD", "OPTIONS", "get", "Head"])
    def test_safe_methods(self, method):
        assert classify_method(method) is RequestKind.SAFE

    @pytest.mark.parametrize(
        "method", ["POST", "PUT", "DELETE", "PATCH", "TRACE", "PROPFIND", "post"]
    )
    def test_everything_else_is_mutating(self, method):
        assert classify_method(method) is RequestKind.MUTATING


class TestIncomingRequest:
    """Tests for IncomingRequest."""

    def test_from_request(self, make_request):
        request = make_request(
            method="post",
            path="/api/items",
            query="a=1&b=2",
            headers=[("Content-Type", "application/json"), ("X-Trace", "abc")],
        )

        incoming = IncomingRequest.from_request(request)

        assert incoming.method == "POST"
        assert incoming.path == "/api/items"
        assert incoming.query == "a=1&b=2"
        assert incoming.kind is RequestKind.MUTATING
        assert not incoming.is_safe
        assert incoming.headers == [
            ("content-type", "application/json"),
            ("x-trace", "abc"),
        ]

    def test_duplicate_headers_are_kept_in_order(self, make_request):
        request = make_request(
            headers=[("X-Dup", "one"), ("Accept", "*/*"), ("X-Dup", "two")]
        )

        incoming = IncomingRequest.from_request(request)

        assert incoming.headers == [
            ("x-dup", "one"),
            ("accept", "*/*"),
            ("x-dup", "two"),
        ]

    def test_path_taken_verbatim_from_scope(self, make_request):
        incoming = IncomingRequest.from_request(make_request(path="/a?b#c.txt"))

        assert incoming.path == "/a?b#c.txt"
        assert incoming.query == ""

    def test_no_query(self, make_request):
        incoming = IncomingRequest.from_request(make_request(path="/x"))
        assert incoming.query == ""
        assert incoming.is_safe


class TestCapturedBody:
    """Tests for CapturedBody."""

    def test_text_decodes_utf8(self):
        body = CapturedBody(data='{"name": "café"}'.encode(), received=17)
        assert body.text() == '{"name": "café"}'

    def test_text_replaces_invalid_bytes(self):
        body = CapturedBody(data=b"ok\xff\xfeok")
        assert body.text() == "ok\ufffd\ufffdok"

    def test_defaults(self):
        body = CapturedBody()
        assert body.data == b""
        assert body.rejected is False
        assert body.received == 0


class TestOutcomes:
    """Tests for response outcome variants."""

    def test_acknowledged_default_text(self):
        assert Acknowledged().text == "OK"
        assert Acknowledged().type == "acknowledged"

    def test_error_outcome(self):
        outcome = ErrorOutcome(kind=ErrorKind.BODY_TOO_LARGE, message="too big")
        assert outcome.type == "error"
        assert outcome.kind is ErrorKind.BODY_TOO_LARGE

    def test_served_file(self):
        modified = datetime(2024, 6, 15, 10, 0, tzinfo=timezone.utc)
        outcome = ServedFile(
            content=b"hello",
            content_type="text/plain",
            last_modified=modified,
            size=5,
        )
        assert outcome.type == "served_file"
        assert outcome.content == b"hello"
        assert outcome.last_modified == modified

    def test_resolved_file(self):
        resolved = ResolvedFile(
            path=Path("/srv/index.txt"),
            content_type="text/plain",
            last_modified=datetime.now(timezone.utc),
            size=5,
        )
        assert resolved.path.name == "index.txt"
