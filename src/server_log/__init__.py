# SPDX-License-Identifier: Apache-2.0
"""
server-log: an HTTP endpoint that records every request and serves files from a web root.
"""

__version__ = "0.2.0"

from server_log.protocol import (
    Acknowledged,
    CapturedBody,
    ErrorKind,
    ErrorOutcome,
    IncomingRequest,
    RequestKind,
    ResolvedFile,
    ResponseOutcome,
    ServedFile,
    classify_method,
)

__all__ = [
    "__version__",
    "Acknowledged",
    "CapturedBody",
    "ErrorKind",
    "ErrorOutcome",
    "IncomingRequest",
    "RequestKind",
    "ResolvedFile",
    "ResponseOutcome",
    "ServedFile",
    "classify_method",
]
