# SPDX-License-Identifier: Apache-2.0
"""
Turns a pipeline outcome into an HTTP response.
"""

from datetime import timezone
from email.utils import format_datetime
from http import HTTPStatus

from fastapi.responses import PlainTextResponse, Response

from server_log.protocol import (
    Acknowledged,
    ErrorKind,
    ErrorOutcome,
    ResponseOutcome,
    ServedFile,
)

ERROR_STATUS = {
    ErrorKind.BODY_TOO_LARGE: HTTPStatus.BAD_REQUEST,
    ErrorKind.FILE_READ_FAILURE: HTTPStatus.INTERNAL_SERVER_ERROR,
}

ERROR_MESSAGES = {
    ErrorKind.BODY_TOO_LARGE: "Payload too large",
    ErrorKind.FILE_READ_FAILURE: "Failed to read file",
}


def body_too_large() -> ErrorOutcome:
    kind = ErrorKind.BODY_TOO_LARGE
    return ErrorOutcome(kind=kind, message=ERROR_MESSAGES[kind])


def file_read_failure() -> ErrorOutcome:
    kind = ErrorKind.FILE_READ_FAILURE
    return ErrorOutcome(kind=kind, message=ERROR_MESSAGES[kind])


def decide(outcome: ResponseOutcome) -> Response:
    """Build the response for exactly one outcome variant."""
    if isinstance(outcome, ServedFile):
        # HEAD outcomes carry no content but still report the file size
        return Response(
            content=outcome.content,
            status_code=HTTPStatus.OK,
            media_type=outcome.content_type,
            headers={
                "content-length": str(outcome.size),
                "last-modified": format_datetime(
                    outcome.last_modified.astimezone(timezone.utc), usegmt=True
                ),
            },
        )

    if isinstance(outcome, Acknowledged):
        return PlainTextResponse(outcome.text, status_code=HTTPStatus.OK)

    if isinstance(outcome, ErrorOutcome):
        return PlainTextResponse(outcome.message, status_code=ERROR_STATUS[outcome.kind])

    raise TypeError(f"Unknown outcome: {outcome!r}")
