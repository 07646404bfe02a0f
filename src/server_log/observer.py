# SPDX-License-Identifier: Apache-2.0
"""
Request observer: writes a human-readable record of every request to a sink.

Record layout, one block per request::

    <blank line>
    2026-10-19T12:00:00 POST /anything
      H host: localhost:5000
      H content-type: application/json
      Q a=1&b=2
    PAYLOAD:
    ---
    {"a":1}
    ---

Consumers read this as a stable diagnostic log, so the order is fixed:
head line, headers, query (when present), body frame (mutating requests with a
non-empty body only).
"""

import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from starlette.requests import Request

from server_log.protocol import CapturedBody, IncomingRequest

logger = logging.getLogger(__name__)
record_logger = logging.getLogger("server_log.records")

RecordSink = Callable[[str], None]

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
BODY_DELIMITER = "---"


def stdout_sink(text: str) -> None:
    """Write a record block to standard output."""
    sys.stdout.write(text + "\n")
    sys.stdout.flush()


def log_sink(text: str) -> None:
    """Write a record block through the ``server_log.records`` logger."""
    record_logger.info(text)


SINKS: dict[str, RecordSink] = {
    "stdout": stdout_sink,
    "log": log_sink,
}


@dataclass
class Observation:
    """Result of observing one request."""

    request: IncomingRequest
    body: Optional[CapturedBody] = None

    @property
    def rejected(self) -> bool:
        return self.body is not None and self.body.rejected


class RequestObserver:
    """Captures and emits request details before any response is computed."""

    def __init__(self, body_limit: int, sink: Optional[RecordSink] = None):
        self.body_limit = body_limit
        self.sink = sink or stdout_sink

    def describe(
        self, incoming: IncomingRequest, now: Optional[datetime] = None
    ) -> list[str]:
        """Head of the record: timestamp line, headers, then query."""
        now = now or datetime.now()
        lines = [
            "",
            f"{now.strftime(TIMESTAMP_FORMAT)} {incoming.method} {incoming.path}",
        ]
        for key, value in incoming.headers:
            lines.append(f"  H {key}: {value}")
        if incoming.query:
            lines.append(f"  Q {incoming.query}")
        return lines

    @staticmethod
    def frame_body(body: CapturedBody) -> list[str]:
        return ["PAYLOAD:", BODY_DELIMITER, body.text(), BODY_DELIMITER]

    async def capture(self, request: Request) -> CapturedBody:
        """Read the request body, rejecting it once it goes over the limit.

        Raises ``starlette.requests.ClientDisconnect`` if the client goes away
        mid-read.
        """
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.body_limit:
            return CapturedBody(rejected=True, received=0)

        chunks: list[bytes] = []
        received = 0
        async for chunk in request.stream():
            received += len(chunk)
            if received > self.body_limit:
                return CapturedBody(rejected=True, received=received)
            chunks.append(chunk)
        return CapturedBody(data=b"".join(chunks), received=received)

    def emit(self, lines: list[str]) -> None:
        self.sink("\n".join(lines))

    async def observe(self, request: Request) -> Observation:
        incoming = IncomingRequest.from_request(request)
        self.emit(self.describe(incoming))

        if incoming.is_safe:
            return Observation(request=incoming)

        body = await self.capture(request)
        if body.rejected:
            logger.warning(
                f"Rejected {incoming.method} {incoming.path}: body exceeds "
                f"{self.body_limit} bytes"
            )
        elif body.data:
            self.emit(self.frame_body(body))
        return Observation(request=incoming, body=body)
