"""Single-fire cancellation signal shared by every stage of a run.

The signal is broadcast: any number of listeners may be attached, each is
invoked at most once. Firing is permanent. A listener attached after the
signal fired is invoked immediately, so late stages cannot miss a cancel.

Everything runs on one event loop thread; listeners are plain callables and
must not block.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from types import TracebackType

import structlog

from dmtest.core.errors import CancelError

logger = structlog.get_logger()


class ListenerHandle:
    """Detachable registration returned by ``CancellationSignal.add_listener``."""

    __slots__ = ("_signal", "_callback", "_disposed")

    def __init__(self, signal: CancellationSignal, callback: Callable[[], None]) -> None:
        self._signal = signal
        self._callback = callback
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        """Detach the listener. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        self._signal._remove(self)

    def _invoke(self) -> None:
        # Detach first so the callback runs at most once
        self.dispose()
        try:
            self._callback()
        except Exception as e:
            logger.warning("cancel_listener_failed", error=str(e), exc_info=True)

    def __enter__(self) -> ListenerHandle:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()


class CancellationSignal:
    """Broadcast, single-fire-then-idempotent cancellation signal."""

    def __init__(self) -> None:
        self._fired = False
        self._listeners: list[ListenerHandle] = []
        self._event: asyncio.Event | None = None

    @property
    def is_fired(self) -> bool:
        return self._fired

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def fire(self) -> None:
        """Raise the signal. Later calls are no-ops."""
        if self._fired:
            return
        self._fired = True
        logger.debug("cancellation_fired", listeners=len(self._listeners))
        if self._event is not None:
            self._event.set()
        for handle in list(self._listeners):
            handle._invoke()

    def add_listener(self, callback: Callable[[], None]) -> ListenerHandle:
        """Attach ``callback``; invoked once when (or if already) fired."""
        handle = ListenerHandle(self, callback)
        if self._fired:
            handle._invoke()
            return handle
        self._listeners.append(handle)
        return handle

    def raise_if_fired(self, stage: str | None = None) -> None:
        if self._fired:
            raise CancelError.cancelled(stage)

    async def wait(self) -> None:
        """Block until the signal fires."""
        if self._fired:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    def _remove(self, handle: ListenerHandle) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(handle)
