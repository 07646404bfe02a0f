# SPDX-License-Identifier: Apache-2.0
"""
Static file resolution for safe requests.
"""

import logging
import mimetypes
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from starlette.concurrency import run_in_threadpool

from server_log.protocol import ResolvedFile

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def guess_content_type(path: Path) -> str:
    """Best-effort content type from the file extension."""
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type or DEFAULT_CONTENT_TYPE


class StaticResolver:
    """Maps request paths onto files under a fixed root directory.

    Two strategies are supported:

    * ``direct``: the request path is joined onto the root, and a miss means
      "not found".
    * ``fallback``: on a miss, ``fallback_file`` (relative to the root) is tried
      before giving up.

    With ``confine`` enabled, a candidate that canonicalises to somewhere
    outside the root is treated as not found. With it disabled the raw join is
    used unchanged, so ``..`` segments can reach anywhere the process can read.
    """

    def __init__(
        self,
        root: Path,
        fallback_file: Optional[str] = None,
        confine: bool = True,
    ):
        self.root = Path(root)
        self.fallback_file = fallback_file or None
        self.confine = confine
        self._canonical_root = self.root.resolve()

    @property
    def strategy(self) -> str:
        return "fallback" if self.fallback_file else "direct"

    def _join(self, relative: str) -> Optional[Path]:
        candidate = self.root / relative.lstrip("/")
        if not self.confine:
            return candidate

        try:
            resolved = candidate.resolve()
        except (OSError, ValueError) as e:
            logger.debug(f"Cannot canonicalise {relative!r}: {e}")
            return None
        try:
            resolved.relative_to(self._canonical_root)
        except ValueError:
            logger.warning(f"Refusing path outside static root: {relative!r}")
            return None
        return resolved

    def _candidates(self, request_path: str) -> Iterator[Path]:
        direct = self._join(request_path)
        if direct is not None:
            yield direct
        if self.fallback_file:
            fallback = self._join(self.fallback_file)
            if fallback is not None:
                yield fallback

    @staticmethod
    def _inspect(candidate: Path) -> Optional[ResolvedFile]:
        try:
            info = candidate.stat()
        except (OSError, ValueError):
            # ValueError covers names with embedded NUL bytes
            return None
        if not stat.S_ISREG(info.st_mode):
            return None
        return ResolvedFile(
            path=candidate,
            content_type=guess_content_type(candidate),
            last_modified=datetime.fromtimestamp(info.st_mtime, tz=timezone.utc),
            size=info.st_size,
        )

    def resolve(self, request_path: str) -> Optional[ResolvedFile]:
        """Find the file answering ``request_path``, or None.

        Missing entries, directories and special files are all "not found";
        none of them is an error.
        """
        for candidate in self._candidates(request_path):
            resolved = self._inspect(candidate)
            if resolved is not None:
                logger.debug(f"Resolved {request_path} -> {resolved.path}")
                return resolved
        return None


async def read_resolved(resolved: ResolvedFile) -> bytes:
    """Read a resolved file off the event loop. Raises OSError on failure."""
    return await run_in_threadpool(resolved.path.read_bytes)
