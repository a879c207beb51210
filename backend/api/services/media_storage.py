"""Local media storage for submission uploads.

Files live flat under ``root`` and are referenced by URL
(``<url_prefix>/<name>``). Write failures raise :class:`MediaIOError`; delete
failures are logged and reported as ``False`` so they never block a queue
transition.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from pathlib import Path

from shared.errors import MediaIOError

logger = logging.getLogger(__name__)

_MAX_SUFFIX_LEN = 8


class MediaStorage:
    def __init__(self, root: Path, url_prefix: str = "/uploads") -> None:
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def url_for(self, name: str) -> str:
        return f"{self.url_prefix}/{name}"

    def resolve(self, url: str | None) -> Path | None:
        """Map a media URL back to a file under ``root``; None if it points elsewhere."""
        if not url:
            return None
        path = url
        # absolute URLs from older clients: keep only the /uploads/... part
        marker = self.url_prefix + "/"
        idx = path.find(marker)
        if idx == -1:
            return None
        name = path[idx + len(marker) :]
        if not name or Path(name).name != name or name in (".", ".."):
            return None
        return self.root / name

    async def save(self, filename: str | None, data: bytes) -> str:
        """Write an upload and return its URL."""
        suffix = Path(filename or "").suffix.lower()
        if len(suffix) > _MAX_SUFFIX_LEN:
            suffix = ""
        name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{suffix}"
        target = self.root / name
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as e:
            logger.error(f"Failed to store media {name}: {e}")
            raise MediaIOError(f"Could not store media file: {e.strerror or e}") from e
        logger.debug(f"Stored media {name} ({len(data)} bytes)")
        return self.url_for(name)

    def _write(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    async def delete(self, url: str | None) -> bool:
        """Remove the file behind *url*. Missing files count as deleted."""
        path = self.resolve(url)
        if path is None:
            return False
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
            logger.debug(f"Deleted media {path.name}")
            return True
        except OSError as e:
            logger.warning(f"Failed to delete media {path.name}: {e}")
            return False

    async def sweep(
        self,
        referenced: set[str],
        max_age_seconds: float,
        now: float | None = None,
    ) -> int:
        """Delete files older than *max_age_seconds* that no record references."""
        keep = {p.name for p in (self.resolve(u) for u in referenced) if p is not None}
        cutoff = (now if now is not None else time.time()) - max_age_seconds
        return await asyncio.to_thread(self._sweep_sync, keep, cutoff)

    def _sweep_sync(self, keep: set[str], cutoff: float) -> int:
        if not self.root.is_dir():
            return 0
        removed = 0
        for path in self.root.iterdir():
            if not path.is_file() or path.name in keep:
                continue
            try:
                if path.stat().st_mtime >= cutoff:
                    continue
                path.unlink(missing_ok=True)
                removed += 1
            except OSError as e:
                logger.warning(f"Media sweep could not remove {path.name}: {e}")
        if removed:
            logger.info(f"Media sweep removed {removed} stale file(s)")
        return removed
