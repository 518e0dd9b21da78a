"""Rate-limited, priority-ordered dispatch of remote calls."""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Set

from .constants import DEFAULT_PRIORITY, MAX_CONCURRENT, MIN_INTERVAL_SECONDS
from .structures import ScheduledCall

logger = logging.getLogger(__name__)


RemoteCall = Callable[..., Awaitable[Any]]


class RateLimitedDispatcher:
    """Single choke point for every call made to the remote service.

    Calls are queued by priority (highest first, FIFO among equals). A call
    starts only when fewer than ``max_concurrent`` calls are in flight and at
    least ``min_interval`` seconds have passed since the previous start.

    One instance is meant to be shared by everything in a process that talks
    to the same service; build it once and pass it around. It may be used
    from successive event loops (one ``asyncio.run`` per request): queue and
    slot state are rebound to whichever loop is running when ``submit`` is
    called, and calls left over from a finished loop are discarded.
    """

    def __init__(
        self,
        call: RemoteCall,
        *,
        max_concurrent: int = MAX_CONCURRENT,
        min_interval: float = MIN_INTERVAL_SECONDS,
        default_priority: float = DEFAULT_PRIORITY,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if min_interval < 0:
            raise ValueError("min_interval must not be negative")
        self.call = call
        self.max_concurrent = max_concurrent
        self.min_interval = min_interval
        self.default_priority = default_priority

        self._queue: List[ScheduledCall] = []
        self._sequence = itertools.count()
        self._in_flight = 0
        self._next_start = 0.0
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._slot_released: Optional[asyncio.Condition] = None
        self._pump_task: Optional[asyncio.Task] = None
        self._running: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def submit(
        self,
        *args: Any,
        priority: float | None = None,
        keywords: Mapping[str, Any] | None = None,
    ) -> Any:
        """Queue ``call(*args, **keywords)`` and wait for its result."""

        loop = asyncio.get_running_loop()
        self._bind(loop)
        scheduled = ScheduledCall(
            priority=self.default_priority if priority is None else priority,
            sequence=next(self._sequence),
            args=args,
            kwargs=dict(keywords or {}),
            future=loop.create_future(),
        )
        heapq.heappush(self._queue, scheduled)
        logger.debug(
            "Queued call #%d (priority %s, %d pending, %d in flight).",
            scheduled.sequence,
            scheduled.priority,
            len(self._queue),
            self._in_flight,
        )
        if self._pump_task is None or self._pump_task.done():
            self._pump_task = loop.create_task(self._pump())
        return await scheduled.future

    def _bind(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._loop is loop:
            return
        if self._loop is not None:
            logger.debug(
                "Event loop changed; dropping %d stale queued calls.", len(self._queue)
            )
        # Futures and tasks from a previous loop can never complete here.
        self._loop = loop
        self._queue = []
        self._in_flight = 0
        self._next_start = 0.0
        self._running = set()
        self._pump_task = None
        self._slot_released = asyncio.Condition()

    def _condition(self) -> asyncio.Condition:
        if self._slot_released is None:
            self._slot_released = asyncio.Condition()
        return self._slot_released

    async def _wait_for_turn(self, loop: asyncio.AbstractEventLoop) -> None:
        condition = self._condition()
        async with condition:
            await condition.wait_for(lambda: self._in_flight < self.max_concurrent)
        delay = self._next_start - loop.time()
        if delay > 0:
            await asyncio.sleep(delay)

    async def _pump(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            while self._queue:
                await self._wait_for_turn(loop)
                if not self._queue:
                    break

                scheduled = heapq.heappop(self._queue)
                if scheduled.future.done():
                    continue
                self._in_flight += 1
                self._next_start = loop.time() + self.min_interval
                logger.debug(
                    "Starting call #%d (priority %s, %d in flight).",
                    scheduled.sequence,
                    scheduled.priority,
                    self._in_flight,
                )
                task = loop.create_task(self._run(scheduled))
                self._running.add(task)
                task.add_done_callback(self._running.discard)
        except asyncio.CancelledError:
            self._abandon_queue(None)
            raise
        except Exception as exc:
            logger.exception("Dispatcher failed while scheduling calls.")
            self._abandon_queue(exc)
        finally:
            if self._pump_task is asyncio.current_task():
                self._pump_task = None

    def _abandon_queue(self, exc: BaseException | None) -> None:
        queued, self._queue = self._queue, []
        for scheduled in queued:
            if scheduled.future.done():
                continue
            if exc is None:
                scheduled.future.cancel()
            else:
                scheduled.future.set_exception(exc)

    async def _run(self, scheduled: ScheduledCall) -> None:
        try:
            result = await self.call(*scheduled.args, **scheduled.kwargs)
        except asyncio.CancelledError:
            scheduled.future.cancel()
            raise
        except Exception as exc:
            if not scheduled.future.done():
                scheduled.future.set_exception(exc)
        else:
            if not scheduled.future.done():
                scheduled.future.set_result(result)
        finally:
            condition = self._condition()
            async with condition:
                self._in_flight -= 1
                condition.notify_all()
