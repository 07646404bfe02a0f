# SPDX-License-Identifier: Apache-2.0
"""
The catch-all request pipeline: observe, resolve (safe requests only), decide.
"""

import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool
from starlette.requests import ClientDisconnect

from server_log.config import Settings
from server_log.decider import body_too_large, decide, file_read_failure
from server_log.observer import SINKS, RecordSink, RequestObserver
from server_log.protocol import Acknowledged, ResponseOutcome, ServedFile
from server_log.static import StaticResolver, read_resolved

logger = logging.getLogger(__name__)

# nginx's "client closed request"; never reaches the peer
CLIENT_CLOSED_REQUEST = 499


class InspectionPipeline:
    """Handles every request the server receives.

    Holds no per-request state, so one instance serves all concurrent
    requests.
    """

    def __init__(self, settings: Settings, sink: Optional[RecordSink] = None):
        self.settings = settings
        self.observer = RequestObserver(
            body_limit=settings.body_limit,
            sink=sink or SINKS[settings.record_sink],
        )
        self.resolver = StaticResolver(
            root=settings.static_root,
            fallback_file=settings.fallback_file,
            confine=settings.confine_to_root,
        )

    async def outcome_for(self, request: Request) -> ResponseOutcome:
        observation = await self.observer.observe(request)
        if observation.rejected:
            return body_too_large()
        if not observation.request.is_safe:
            return Acknowledged()

        resolved = await run_in_threadpool(
            self.resolver.resolve, observation.request.path
        )
        if resolved is None:
            return Acknowledged()

        if request.method.upper() == "HEAD":
            content = b""
            size = resolved.size
        else:
            try:
                content = await read_resolved(resolved)
            except OSError as e:
                logger.error(f"Failed to read {resolved.path}: {e}")
                return file_read_failure()
            size = len(content)

        return ServedFile(
            content=content,
            content_type=resolved.content_type,
            last_modified=resolved.last_modified,
            size=size,
        )

    async def handle(self, request: Request) -> Response:
        try:
            outcome = await self.outcome_for(request)
        except ClientDisconnect:
            logger.info(
                f"Client disconnected during {request.method} {request.scope['path']}"
            )
            return Response(status_code=CLIENT_CLOSED_REQUEST)

        response = decide(outcome)
        logger.debug(
            f"{request.method} {request.scope['path']} -> {response.status_code} "
            f"({outcome.type})"
        )
        return response
