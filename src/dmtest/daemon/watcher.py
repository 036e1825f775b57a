"""Two-phase completion detection for the daemon log.

The daemon gives no usable exit signal, so completion is inferred from the
log it writes:

- Phase A watches the log directory until the log file appears. The
  directory may not exist at launch; the nearest existing ancestor is watched
  instead and the watch moves down as directories get created.
- Phase B watches the log file itself and re-reads it on every change until
  the finish pattern shows up.

Each phase checks its condition once before waiting and again on every
watcher timeout tick, so a missed notification (network drives, WSL mounts)
only delays detection by one poll interval.
"""

from __future__ import annotations

import asyncio
import hashlib
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from watchfiles import awatch

from dmtest.core.errors import RunError

logger = structlog.get_logger()

FileSignature = tuple[float, int]


def _signature(path: Path) -> FileSignature | None:
    try:
        stat = path.stat()
    except OSError:
        return None
    return (stat.st_mtime, stat.st_size)


def _digest(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=16).digest()


def _nearest_existing_dir(path: Path) -> Path:
    while not path.is_dir() and path.parent != path:
        path = path.parent
    return path


@dataclass
class LogWatcher:
    """Watches one log file for creation, then for a finish marker."""

    log_path: Path
    finish_pattern: str
    poll_interval_sec: float = 1.0
    debounce_ms: int = 50

    _pattern: re.Pattern[str] = field(init=False)
    _snapshot: FileSignature | None = field(default=None, init=False)
    # Length and digest of the log content present before launch
    _stale: tuple[int, bytes] | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self._pattern = re.compile(self.finish_pattern)

    def take_snapshot(self) -> None:
        """Record the log file as it is before the daemon starts.

        A log left over from an earlier run must not count as "appeared", and
        a finish marker it already holds must not count as finished.
        """
        self._snapshot = _signature(self.log_path)
        try:
            stale = self.log_path.read_bytes()
        except OSError:
            self._stale = None
        else:
            self._stale = (len(stale), _digest(stale))
        logger.debug("log_snapshot", path=str(self.log_path), signature=self._snapshot)

    def file_appeared(self) -> bool:
        current = _signature(self.log_path)
        return current is not None and current != self._snapshot

    def marker_found(self) -> bool:
        try:
            data = self.log_path.read_bytes()
        except OSError:
            return False
        text = data[self._new_content_offset(data) :].decode("utf-8", errors="replace")
        return self._pattern.search(text) is not None

    def _new_content_offset(self, data: bytes) -> int:
        """Where this run's output starts: after the stale content if it was appended to."""
        if self._stale is None:
            return 0
        size, digest = self._stale
        if len(data) >= size and _digest(data[:size]) == digest:
            return size
        return 0

    async def wait_for_file(self, stop_event: asyncio.Event) -> bool:
        """Phase A. True once the log file appeared, False if stopped first."""
        while True:
            root = _nearest_existing_dir(self.log_path.parent)
            logger.debug("watching_directory", root=str(root), target=str(self.log_path))
            outcome = await self._watch(
                root,
                self.file_appeared,
                stop_event,
                moved=lambda r=root: _nearest_existing_dir(self.log_path.parent) != r,
            )
            if outcome is not None:
                return outcome

    async def wait_for_marker(self, stop_event: asyncio.Event) -> bool:
        """Phase B. True once the finish pattern is in the log, False if stopped first."""
        logger.debug("watching_file", path=str(self.log_path), pattern=self.finish_pattern)
        outcome = await self._watch(self.log_path, self.marker_found, stop_event)
        return bool(outcome)

    async def _watch(
        self,
        target: Path,
        condition: Callable[[], bool],
        stop_event: asyncio.Event,
        moved: Callable[[], bool] | None = None,
    ) -> bool | None:
        """Wait on ``target`` until ``condition`` holds.

        Returns True when the condition held, False when stopped, None when
        ``moved`` reports that a closer watch root now exists.
        """
        if condition():
            return True
        if stop_event.is_set():
            return False

        try:
            async for changes in awatch(
                target,
                watch_filter=None,
                debounce=self.debounce_ms,
                rust_timeout=int(self.poll_interval_sec * 1000),
                yield_on_timeout=True,
                stop_event=stop_event,
                recursive=False,
            ):
                if changes:
                    logger.debug("log_watch_event", target=str(target), count=len(changes))
                if condition():
                    return True
                if moved is not None and moved():
                    return None
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if stop_event.is_set():
                return False
            logger.error("watcher_error", target=str(target), error=str(e))
            raise RunError.watch_failed(str(target), str(e)) from e

        # awatch only ends on its own once stop_event is set
        return condition()
