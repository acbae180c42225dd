import asyncio
import logging
from typing import List, Optional, Protocol

logger = logging.getLogger(__name__)


class Closeable(Protocol):
    async def close(self) -> None: ...


class LifecycleCoordinator:
    """Owns a set of live connections and closes each of them exactly once.

    `teardown` may be called any number of times, concurrently or from a
    cancellation path; the first call does the work and every other call waits
    for that same run. Handles adopted after teardown are closed on arrival.
    """

    def __init__(self, cancel: Optional[asyncio.Event] = None) -> None:
        self._handles: List[Closeable] = []
        self._teardown_task: Optional[asyncio.Task] = None
        self._watcher: Optional[asyncio.Task] = None
        if cancel is not None:
            self.bind(cancel)

    @property
    def handles(self) -> List[Closeable]:
        return list(self._handles)

    @property
    def torn_down(self) -> bool:
        return self._teardown_task is not None

    def bind(self, cancel: asyncio.Event) -> None:
        """Run teardown once when `cancel` is set."""
        if self._watcher is not None:
            raise RuntimeError("LifecycleCoordinator is already bound to a cancellation signal")
        self._watcher = asyncio.create_task(self._watch(cancel))

    async def _watch(self, cancel: asyncio.Event) -> None:
        await cancel.wait()
        logger.info("Cancellation received, tearing down %d connection(s)", len(self._handles))
        await self.teardown()

    async def adopt(self, handle: Closeable) -> bool:
        """Take ownership of `handle`. Returns False if it arrived too late and was closed."""
        if self.torn_down:
            logger.debug("Closing %r opened after teardown", handle)
            await _close(handle)
            return False
        self._handles.append(handle)
        return True

    async def teardown(self) -> bool:
        """Close every adopted handle. Returns False when teardown had already happened."""
        if self._teardown_task is not None:
            await asyncio.shield(self._teardown_task)
            return False

        self._teardown_task = asyncio.ensure_future(self._close_all())
        watcher = self._watcher
        if watcher is not None and watcher is not asyncio.current_task() and not watcher.done():
            watcher.cancel()
        await asyncio.shield(self._teardown_task)
        return True

    async def _close_all(self) -> None:
        await asyncio.gather(*(_close(handle) for handle in self._handles))


async def _close(handle: Closeable) -> None:
    try:
        await handle.close()
    except Exception:
        logger.error("Error during MCP connection cleanup for %r", handle, exc_info=True)
