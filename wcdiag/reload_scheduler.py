# wcdiag/reload_scheduler.py

import asyncio
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from .event_manager import EventManager, EventType
from .utils.logger import DiagnosticsLogger


class SchedulerState(Enum):
    IDLE = "idle"
    PENDING = "pending"


class ReloadScheduler:
    """
    Debounces reload requests into single executions.

    Requests inside the quiet window reset the timer. A running reload is
    never interrupted and never overlaps another: if the timer fires while
    one is in flight, the timer is re-armed.
    """

    def __init__(
        self,
        callback: Callable[[List[str]], Awaitable[None]],
        window: float = 0.3,
        event_manager: Optional[EventManager] = None,
        logger: Optional[DiagnosticsLogger] = None
    ):
        self.callback = callback
        self.window = window
        self.event_manager = event_manager or EventManager()
        self.logger = logger or DiagnosticsLogger(name=__name__)

        self.state = SchedulerState.IDLE
        self.cycles = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._reasons: List[str] = []
        self._disposed = False

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending_reasons(self) -> List[str]:
        return list(self._reasons)

    def schedule(self, reason: str) -> None:
        """Request a reload; must be called from the running event loop."""
        if self._disposed:
            self.logger.debug(f"Ignoring reload request after dispose: {reason}")
            return
        self._reasons.append(reason)
        self.state = SchedulerState.PENDING
        self._arm()
        self.logger.debug(f"Reload scheduled ({reason}), {len(self._reasons)} pending")
        self.event_manager.emit(EventType.RELOAD_SCHEDULED, reason=reason)

    def _arm(self) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.window, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        if self._disposed or self.state is not SchedulerState.PENDING:
            return
        if self.in_flight:
            self._arm()
            return
        self._start()

    def _start(self) -> None:
        reasons, self._reasons = self._reasons, []
        self.state = SchedulerState.IDLE
        self._task = asyncio.ensure_future(self._run(reasons))

    async def _run(self, reasons: List[str]) -> None:
        try:
            await self.callback(reasons)
        except Exception as e:
            self.logger.error(f"Reload failed ({', '.join(reasons)}): {str(e)}")
        finally:
            self.cycles += 1

    async def flush(self) -> None:
        """Run any pending reload now and wait until nothing is in flight."""
        while True:
            if self.in_flight:
                await self._task
                continue
            if self.state is SchedulerState.PENDING and not self._disposed:
                self._cancel_timer()
                self._start()
                continue
            return

    def dispose(self) -> None:
        """Drop pending requests; an in-flight reload finishes on its own."""
        self._disposed = True
        self._cancel_timer()
        self._reasons = []
        self.state = SchedulerState.IDLE
