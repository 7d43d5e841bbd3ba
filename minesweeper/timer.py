from __future__ import annotations
import heapq
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    """Anything with Tk-style ``after``/``after_cancel`` (a ``tk.Tk`` root qualifies)."""

    def after(self, delay_ms: int, callback: Callable[[], None]) -> Any: ...

    def after_cancel(self, handle: Any) -> None: ...


class ThreadingScheduler:
    """Runs callbacks on one daemon worker thread, in due-time order.

    The worker is started on the first ``after`` call and sleeps on a
    condition until the earliest pending callback is due.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._queue: List[Tuple[float, int]] = []
        self._callbacks: Dict[int, Callable[[], None]] = {}
        self._next_id = 0
        self._worker: Optional[threading.Thread] = None
        self._closed = False

    def after(self, delay_ms: int, callback: Callable[[], None]) -> int:
        with self._cond:
            if self._closed:
                raise RuntimeError('Scheduler has been shut down')
            handle = self._next_id
            self._next_id += 1
            self._callbacks[handle] = callback
            heapq.heappush(self._queue, (time.monotonic() + max(0, delay_ms) / 1000.0, handle))
            if self._worker is None:
                self._worker = threading.Thread(target=self._run, name='minesweeper-timer', daemon=True)
                self._worker.start()
            self._cond.notify()
        return handle

    def after_cancel(self, handle: int) -> None:
        with self._cond:
            self._callbacks.pop(handle, None)
            self._cond.notify()

    def shutdown(self) -> None:
        with self._cond:
            self._closed = True
            self._callbacks.clear()
            self._queue.clear()
            self._cond.notify()

    def _next_due(self) -> Optional[Callable[[], None]]:
        with self._cond:
            while not self._closed:
                # Cancelled entries stay in the heap until they surface
                while self._queue and self._queue[0][1] not in self._callbacks:
                    heapq.heappop(self._queue)
                if not self._queue:
                    self._cond.wait()
                    continue
                due, handle = self._queue[0]
                wait = due - time.monotonic()
                if wait > 0:
                    self._cond.wait(wait)
                    continue
                heapq.heappop(self._queue)
                return self._callbacks.pop(handle)
            return None

    def _run(self) -> None:
        while True:
            callback = self._next_due()
            if callback is None:
                return
            callback()


class GameTimer:
    """Periodic tick owned by one engine.

    ``on_tick`` is called every ``interval`` seconds between :meth:`start`
    and :meth:`cancel`, always while holding ``lock``. Pass the owner's lock
    so ticks serialize with everything else the owner does. A callback that
    was already in flight when the timer was cancelled is dropped, so a
    cancelled timer never ticks again.
    """

    def __init__(self, on_tick: Callable[[], None], interval: float,
                 scheduler: Optional[Scheduler] = None, lock: Optional[threading.RLock] = None):
        self.on_tick = on_tick
        self.interval = interval
        self.scheduler = scheduler if scheduler is not None else ThreadingScheduler()
        self.lock = lock if lock is not None else threading.RLock()
        self.after_id = None
        self._generation = 0

    @property
    def running(self) -> bool:
        return self.after_id is not None

    def start(self) -> None:
        with self.lock:
            if self.running:
                return
            self._generation += 1
            self._schedule(self._generation)
        logger.debug('Timer started (interval %.3fs)', self.interval)

    def cancel(self) -> None:
        with self.lock:
            self._generation += 1
            if self.after_id is None:
                return
            self.scheduler.after_cancel(self.after_id)
            self.after_id = None
        logger.debug('Timer cancelled')

    def _schedule(self, generation: int) -> None:
        delay = int(round(self.interval * 1000))
        self.after_id = self.scheduler.after(delay, lambda: self._fire(generation))

    def _fire(self, generation: int) -> None:
        with self.lock:
            if generation != self._generation:
                return
            self.after_id = None
            self.on_tick()
            # on_tick may have cancelled or restarted the timer
            if generation == self._generation and self.after_id is None:
                self._schedule(generation)
