# SPDX-License-Identifier: Apache-2.0
"""
Shared fixtures for unit tests.
"""

from collections.abc import Sequence
from pathlib import Path
from typing import Callable

import pytest
from starlette.requests import Request

from server_log.config import Settings


@pytest.fixture
def web_root(tmp_path: Path) -> Path:
    """A static root with a few files and a subdirectory."""
    root = tmp_path / "www"
    root.mkdir()
    (root / "index.txt").write_text("hello")
    (root / "index.html").write_text("<h1>home</h1>")
    (root / "data.json").write_text('{"ok": true}')
    (root / "blob.bin").write_bytes(bytes(range(256)))
    (root / "docs").mkdir()
    (root / "docs" / "guide.md").write_text("# Guide\n")
    (tmp_path / "secret.txt").write_text("outside the root")
    return root


@pytest.fixture
def settings(web_root: Path, tmp_path: Path) -> Settings:
    """Test settings pointing at the temporary web root."""
    return Settings(
        web_root=str(web_root),
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Build a Starlette request from raw ASGI pieces.

    ``chunks`` are delivered as successive body messages. With
    ``disconnect=True`` the client goes away after the last chunk instead of
    finishing the body.
    """

    def _make(
        method: str = "GET",
        path: str = "/",
        query: str = "",
        headers: Sequence[tuple[str, str]] = (),
        chunks: Sequence[bytes] = (b"",),
        disconnect: bool = False,
    ) -> Request:
        scope = {
            "type": "http",
            "http_version": "1.1",
            "method": method,
            "scheme": "http",
            "path": path,
            "raw_path": path.encode(),
            "root_path": "",
            "query_string": query.encode(),
            "headers": [
                (key.lower().encode("latin-1"), value.encode("latin-1"))
                for key, value in headers
            ],
            "server": ("testserver", 80),
            "client": ("127.0.0.1", 50000),
        }
        messages = [
            {
                "type": "http.request",
                "body": chunk,
                "more_body": disconnect or index < len(chunks) - 1,
            }
            for index, chunk in enumerate(chunks)
        ]

        async def receive():
            if messages:
                return messages.pop(0)
            return {"type": "http.disconnect"}

        return Request(scope, receive)

    return _make
