# SPDX-License-Identifier: Apache-2.0
"""
Data model shared by the observer, the static resolver and the response decider.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Literal, Union

from pydantic import BaseModel, Field
from starlette.requests import Request

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class RequestKind(str, Enum):
    """Whether a request may carry a body we need to capture."""

    SAFE = "safe"
    MUTATING = "mutating"


def classify_method(method: str) -> RequestKind:
    """Classify an HTTP method. Every method maps to exactly one kind."""
    if method.upper() in SAFE_METHODS:
        return RequestKind.SAFE
    return RequestKind.MUTATING


class IncomingRequest(BaseModel):
    """What the observer records about a request, minus the body."""

    method: str
    path: str
    query: str = ""
    headers: list[tuple[str, str]] = Field(default_factory=list)
    kind: RequestKind

    @property
    def is_safe(self) -> bool:
        return self.kind is RequestKind.SAFE

    @classmethod
    def from_request(cls, request: Request) -> "IncomingRequest":
        """Build from a Starlette request, keeping duplicate headers in order.

        Path and query come from the ASGI scope, not ``request.url``, so a
        decoded ``?`` or ``#`` stays part of the path.
        """
        method = request.method.upper()
        return cls(
            method=method,
            path=request.scope["path"],
            query=request.scope.get("query_string", b"").decode("latin-1"),
            headers=[
                (key.decode("latin-1"), value.decode("latin-1"))
                for key, value in request.headers.raw
            ],
            kind=classify_method(method),
        )


class CapturedBody(BaseModel):
    """Request body read under the size cap.

    A body over the cap is rejected outright: ``data`` stays empty and
    ``received`` holds the byte count seen before the read was aborted.
    """

    data: bytes = b""
    rejected: bool = False
    received: int = 0

    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


class ResolvedFile(BaseModel):
    """A regular file under the static root that answers a safe request."""

    path: Path
    content_type: str
    last_modified: datetime
    size: int


class ErrorKind(str, Enum):
    BODY_TOO_LARGE = "body_too_large"
    FILE_READ_FAILURE = "file_read_failure"


class ServedFile(BaseModel):
    """Static file content to send back."""

    type: Literal["served_file"] = "served_file"
    content: bytes
    content_type: str
    last_modified: datetime
    size: int


class Acknowledged(BaseModel):
    """Fixed textual acknowledgment."""

    type: Literal["acknowledged"] = "acknowledged"
    text: str = "OK"


class ErrorOutcome(BaseModel):
    """A request that failed; ``message`` is safe to show to the client."""

    type: Literal["error"] = "error"
    kind: ErrorKind
    message: str


ResponseOutcome = Union[ServedFile, Acknowledged, ErrorOutcome]


__all__ = [
    "SAFE_METHODS",
    "RequestKind",
    "classify_method",
    "IncomingRequest",
    "CapturedBody",
    "ResolvedFile",
    "ErrorKind",
    "ServedFile",
    "Acknowledged",
    "ErrorOutcome",
    "ResponseOutcome",
]
