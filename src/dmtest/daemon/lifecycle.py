"""Server daemon lifecycle: launch, completion detection, teardown.

State machine::

    NOT_STARTED -> WATCHING_DIRECTORY -> WATCHING_FILE -> FINISHED

``torn_down`` is orthogonal to the state and is checked before every
teardown action, so completion racing with a cancel kills at most once.
"""

from __future__ import annotations

import asyncio
import contextlib
import random
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import structlog

from dmtest.config.constants import (
    CORRELATION_PARAM,
    CORRELATION_TOKEN_LIMIT,
    DAEMON_PARAMS_FLAG,
)
from dmtest.core.cancellation import CancellationSignal
from dmtest.core.errors import CancelError, RunError
from dmtest.daemon.processes import kill_daemon
from dmtest.daemon.watcher import LogWatcher

logger = structlog.get_logger()

# Seconds to reap our own handle after the daemon was killed by lookup
REAP_TIMEOUT_SEC = 2.0


class DaemonState(Enum):
    NOT_STARTED = "not_started"
    WATCHING_DIRECTORY = "watching_directory"
    WATCHING_FILE = "watching_file"
    FINISHED = "finished"


def new_correlation_token() -> int:
    return random.randrange(CORRELATION_TOKEN_LIMIT)


@dataclass
class DaemonProcess:
    """One detached daemon run tagged with a correlation token."""

    executable: Path
    args: list[str]
    cwd: Path
    watcher: LogWatcher
    process_name: str | None = None
    token: int = field(default_factory=new_correlation_token)

    state: DaemonState = field(default=DaemonState.NOT_STARTED, init=False)
    _torn_down: bool = field(default=False, init=False)
    _launched: bool = field(default=False, init=False)
    _process: asyncio.subprocess.Process | None = field(default=None, init=False)
    _stop_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    @property
    def name(self) -> str:
        """Process name used for the OS lookup."""
        return self.process_name or self.executable.name

    @property
    def command_args(self) -> list[str]:
        return [*self.args, DAEMON_PARAMS_FLAG, f"{CORRELATION_PARAM}={self.token}"]

    async def launch(self) -> None:
        """Start the daemon detached. Its exit status is never awaited."""
        if self._launched:
            return
        self.watcher.take_snapshot()
        try:
            self._process = await asyncio.create_subprocess_exec(
                str(self.executable),
                *self.command_args,
                cwd=str(self.cwd),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise RunError.spawn_failed(str(self.executable), str(e)) from e
        self._launched = True
        logger.info(
            "daemon_launched",
            executable=str(self.executable),
            pid=self._process.pid,
            token=self.token,
        )

    async def wait_for_finish(self) -> bool:
        """Run both watch phases. False when stopped before the finish marker."""
        self.state = DaemonState.WATCHING_DIRECTORY
        if not await self.watcher.wait_for_file(self._stop_event):
            return False

        self.state = DaemonState.WATCHING_FILE
        logger.debug("daemon_log_appeared", path=str(self.watcher.log_path))
        if not await self.watcher.wait_for_marker(self._stop_event):
            return False

        self.state = DaemonState.FINISHED
        logger.info("daemon_finished", token=self.token)
        return True

    def request_stop(self) -> None:
        """Stop watching. Safe to call from a cancellation listener."""
        self._stop_event.set()

    async def teardown(self) -> None:
        """Stop watching and kill the daemon unless it already finished.

        Runs at most once; later calls return immediately.
        """
        if self._torn_down:
            return
        self._torn_down = True
        self._stop_event.set()

        if not self._launched or self.state is DaemonState.FINISHED:
            return

        logger.info("daemon_teardown", state=self.state.value, token=self.token)
        killed = await asyncio.to_thread(kill_daemon, self.name, self.token)
        if killed and self._process is not None:
            with contextlib.suppress(asyncio.TimeoutError, ProcessLookupError):
                await asyncio.wait_for(self._process.wait(), timeout=REAP_TIMEOUT_SEC)


async def run_daemon(
    executable: Path,
    args: list[str],
    cancel: CancellationSignal,
    *,
    cwd: Path,
    watch: LogWatcher,
    process_name: str | None = None,
    timeout_sec: float | None = None,
) -> DaemonProcess:
    """Launch the daemon and wait until its log shows the finish marker.

    Raises:
        CancelError: ``cancel`` fired before the daemon finished.
        RunError: Spawn failure, watch failure, timeout, or a duplicate daemon.
    """
    cancel.raise_if_fired("daemon")
    daemon = DaemonProcess(
        executable=executable,
        args=list(args),
        cwd=cwd,
        watcher=watch,
        process_name=process_name,
    )
    listener = cancel.add_listener(daemon.request_stop)
    try:
        await daemon.launch()
        try:
            async with asyncio.timeout(timeout_sec):
                finished = await daemon.wait_for_finish()
        except TimeoutError:
            if timeout_sec is None:
                raise
            logger.warning("daemon_timeout", timeout_sec=timeout_sec, state=daemon.state.value)
            raise RunError.timeout("DreamDaemon", timeout_sec) from None
        if not finished:
            raise CancelError.cancelled("daemon")
        return daemon
    finally:
        listener.dispose()
        await daemon.teardown()
