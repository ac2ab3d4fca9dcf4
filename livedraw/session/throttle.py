"""Rate limiting for regeneration triggers: throttle for strokes, debounce for typing."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

AsyncCallback = Callable[[], Awaitable[object]]


class _Scheduled:
    """Shared task bookkeeping for Throttle and Debouncer."""

    def __init__(self, callback: AsyncCallback, name: str):
        self.callback = callback
        self.name = name
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: set[asyncio.Task] = set()

    def _run(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._invoke())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _invoke(self) -> None:
        try:
            await self.callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s callback failed", self.name)

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def cancel(self) -> None:
        """Drop any scheduled run. Callbacks already running are left to finish."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def drain(self) -> None:
        """Wait for callbacks that have already started."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class Throttle(_Scheduled):
    """Runs the callback at most once per ``interval`` seconds.

    The first trigger runs immediately; triggers inside the window collapse
    into one trailing run at the end of it.
    """

    def __init__(self, interval: float, callback: AsyncCallback, name: str = "throttle"):
        super().__init__(callback, name)
        self.interval = interval
        self._last_run: Optional[float] = None

    def _run(self) -> None:
        self._last_run = asyncio.get_running_loop().time()
        super()._run()

    def trigger(self) -> None:
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            return
        now = loop.time()
        if self._last_run is None or now - self._last_run >= self.interval:
            self._run()
        else:
            self._timer = loop.call_later(self.interval - (now - self._last_run), self._run)


class Debouncer(_Scheduled):
    """Runs the callback once ``delay`` seconds pass without another trigger."""

    def __init__(self, delay: float, callback: AsyncCallback, name: str = "debounce"):
        super().__init__(callback, name)
        self.delay = delay

    def trigger(self) -> None:
        self.cancel()
        self._timer = asyncio.get_running_loop().call_later(self.delay, self._run)
