"""
Fixed-window admission gate for outbound CRPT calls.
"""

import asyncio
from collections import deque
from datetime import timedelta
from typing import Any, Deque, Dict, Optional

from shared.errors import Cancelled, ConfigurationError, GateUnavailableError
from shared.logging import get_logger
from shared.metrics import MetricsCollector, get_metrics_collector


class AdmissionGate:
    """
    Hands out at most ``request_limit`` permits per ``time_unit``.

    A background task resets the pool to full capacity once per window. A
    permit taken by a caller is never given back by that caller; consumption
    inside a window frees nothing until the next reset. Every reset restores
    the whole capacity at once, so up to ``request_limit`` callers can be
    admitted in a burst right after each tick.

    Waiters are served in arrival order. A caller that finds other callers
    already queued queues behind them even if the count is positive, and a
    reset hands permits straight to the oldest waiters.

    All reads and writes of the counter happen between awaits on the event
    loop, so no two of them interleave.
    """

    def __init__(
        self,
        time_unit: timedelta,
        request_limit: int,
        name: str = "crpt",
        metrics: Optional[MetricsCollector] = None,
    ):
        if isinstance(request_limit, bool) or not isinstance(request_limit, int) or request_limit <= 0:
            raise ConfigurationError(
                f"request_limit must be a positive integer, got {request_limit!r}",
                details={"request_limit": request_limit}
            )
        if not isinstance(time_unit, timedelta) or time_unit <= timedelta(0):
            raise ConfigurationError(
                f"time_unit must be a positive timedelta, got {time_unit!r}",
                details={"time_unit": str(time_unit)}
            )

        self.name = name
        self.time_unit = time_unit
        self.logger = get_logger("crpt.admission_gate")
        self.metrics = metrics or get_metrics_collector("crpt")

        self._capacity = request_limit
        self._available = request_limit
        self._waiters: Deque[asyncio.Future] = deque()
        self._ticks = 0
        self._failure: Optional[BaseException] = None

        # Replenishment task
        self._task: Optional[asyncio.Task] = None
        self.running = False

        self._publish_available()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def available(self) -> int:
        return self._available

    @property
    def waiting(self) -> int:
        """Number of callers currently queued for a permit."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    @property
    def ticks(self) -> int:
        """Number of resets performed since construction."""
        return self._ticks

    @property
    def broken(self) -> bool:
        return self._failure is not None

    async def start(self):
        """Start the replenishment task. Calling it again is a no-op."""
        self._raise_if_broken()
        if self._task is not None and not self._task.done():
            return

        self.running = True
        self._task = asyncio.create_task(self._replenish_loop(), name=f"{self.name}-permit-replenisher")
        self.logger.info(
            "Admission gate started",
            gate=self.name,
            capacity=self._capacity,
            window_seconds=self.time_unit.total_seconds()
        )

    async def stop(self):
        """
        Stop the replenishment task.

        Callers still queued for a permit fail with ``GateUnavailableError``.
        """
        self.running = False
        task, self._task = self._task, None
        released = self._release_waiters("was stopped")
        if task is None:
            return

        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            # Already reported by the loop when it died.
            self.logger.warning("Replenisher had already failed", gate=self.name, error=str(e))

        self.logger.info("Admission gate stopped", gate=self.name, ticks=self._ticks, released_waiters=released)

    async def acquire(self):
        """
        Wait for a permit and take it.

        Raises ``Cancelled`` if the calling task is cancelled while queued;
        the pool is left as it was. Raises ``GateUnavailableError`` once the
        replenishment task has died, or when the gate is stopped while the
        caller is queued.
        """
        self._raise_if_broken()

        if self._available > 0 and not self._waiters:
            self._take()
            return

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        self.metrics.increment_counter("gate_waits_total", gate=self.name)
        self.logger.debug("Waiting for admission permit", gate=self.name, queued=len(self._waiters))

        try:
            await waiter
        except asyncio.CancelledError as e:
            if waiter.done() and not waiter.cancelled() and waiter.exception() is None:
                # A permit was handed over before the cancellation landed.
                self._available = min(self._capacity, self._available + 1)
                self._publish_available()
                self._wake_waiters()
            self.logger.debug("Permit wait cancelled", gate=self.name)
            raise Cancelled(
                "Cancelled while waiting for an admission permit",
                details={"gate": self.name}
            ) from e
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    def reset(self):
        """Refill the pool to capacity and admit queued callers in order."""
        self._available = self._capacity
        self._ticks += 1
        self.metrics.increment_counter("gate_resets_total", gate=self.name)
        self._wake_waiters()
        self._publish_available()

    def get_state(self) -> Dict[str, Any]:
        """Get current gate state."""
        return {
            "name": self.name,
            "capacity": self._capacity,
            "available": self._available,
            "waiting": self.waiting,
            "ticks": self._ticks,
            "window_seconds": self.time_unit.total_seconds(),
            "running": self.running,
            "broken": self.broken
        }

    def _take(self):
        self._available -= 1
        self.metrics.increment_counter("gate_permits_acquired_total", gate=self.name)
        self._publish_available()

    def _wake_waiters(self):
        while self._available > 0 and self._waiters:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            waiter.set_result(True)
            self._take()

    def _publish_available(self):
        self.metrics.set_gauge("gate_available_permits", self._available, gate=self.name)

    def _raise_if_broken(self):
        if self._failure is not None:
            raise GateUnavailableError(
                f"Admission gate '{self.name}' lost its replenisher",
                details={"gate": self.name, "cause": str(self._failure)}
            )

    async def _replenish_loop(self):
        """Reset the pool once per window until stopped."""
        interval = self.time_unit.total_seconds()

        while self.running:
            try:
                # Missed windows are skipped, never made up
                await asyncio.sleep(interval)
                self.reset()
                self.logger.debug("Permit pool reset", gate=self.name, tick=self._ticks, admitted=self._capacity - self._available)

            except asyncio.CancelledError:
                break
            except Exception as e:
                self._fail(e)
                raise

    def _fail(self, error: BaseException):
        """Mark the gate dead and release everyone queued on it."""
        self._failure = error
        self.running = False
        self.logger.critical(
            "Permit replenisher died; admission gate is unusable",
            gate=self.name,
            error=str(error),
            exc_info=True
        )

        self._release_waiters("lost its replenisher", cause=str(error))

    def _release_waiters(self, reason: str, cause: Optional[str] = None) -> int:
        """Fail every queued caller with ``GateUnavailableError``."""
        released = 0
        while self._waiters:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            details = {"gate": self.name}
            if cause is not None:
                details["cause"] = cause
            waiter.set_exception(GateUnavailableError(
                f"Admission gate '{self.name}' {reason}",
                details=details
            ))
            released += 1
        return released
