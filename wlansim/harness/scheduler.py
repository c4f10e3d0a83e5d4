#!/usr/bin/env python3
"""
scheduler.py - Discrete-Event Scheduler

Single-threaded event loop that drives every simulated activity
(mobility walks, application start/stop, packet delivery, simulation stop).

DESIGN PHILOSOPHY:
- One explicit Scheduler object per run, passed to every component
- Integer microsecond timestamps, no floating point drift
- Ordering key is (time_us, seq): equal timestamps run in FIFO order
- Fail fast: a callback exception aborts the run

Lifecycle:
    IDLE --run()--> RUNNING --stop event / empty queue--> HALTED --destroy()--> DESTROYED
"""

import heapq
import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple


def seconds_to_us(seconds: float) -> int:
    """Convert seconds to integer microseconds (rounded to nearest)."""
    return int(round(seconds * 1_000_000))


def us_to_seconds(time_us: int) -> float:
    """Convert integer microseconds to seconds."""
    return time_us / 1_000_000


class SchedulerState(Enum):
    """Scheduler lifecycle states."""
    IDLE = "idle"
    RUNNING = "running"
    HALTED = "halted"
    DESTROYED = "destroyed"


class SchedulerError(Exception):
    """Base class for scheduler failures."""
    pass


class SchedulerStateError(SchedulerError):
    """Raised when an operation is not allowed in the current state."""
    pass


@dataclass(frozen=True)
class EventId:
    """Handle returned by schedule(); used for cancellation."""
    seq: int
    time_us: int


@dataclass(frozen=True)
class TraceRecord:
    """One executed event, in execution order."""
    time_us: int
    seq: int
    label: str


@dataclass
class _ScheduledEvent:
    time_us: int
    seq: int
    callback: Callable
    args: Tuple[Any, ...]
    label: str
    is_stop: bool = False
    cancelled: bool = False

    def __lt__(self, other):
        """For heapq ordering."""
        return (self.time_us, self.seq) < (other.time_us, other.seq)


class Scheduler:
    """
    Global discrete-event scheduler for one simulation run.

    Events are kept in a min-heap keyed by (time_us, insertion sequence).
    Cancellation is lazy: cancelled entries stay in the heap and are skipped
    when popped.

    Usage:
        scheduler = Scheduler()
        scheduler.schedule(seconds_to_us(1.0), callback, arg, label="start")
        scheduler.stop(seconds_to_us(10.0))
        scheduler.run()
        scheduler.destroy()

    Thread safety: Not thread-safe. Single-threaded use only.
    """

    def __init__(self):
        self.current_time_us = 0
        self.state = SchedulerState.IDLE
        self.trace: List[TraceRecord] = []
        self.events_executed = 0

        self._queue: List[_ScheduledEvent] = []
        self._pending: Dict[int, _ScheduledEvent] = {}
        self._seq = itertools.count()
        self._destroy_hooks: List[Callable[[], None]] = []
        self._run_hooks: List[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Time
    # ------------------------------------------------------------------

    @property
    def now(self) -> int:
        """Current simulated time in microseconds."""
        return self.current_time_us

    def now_s(self) -> float:
        return us_to_seconds(self.current_time_us)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def schedule(self, delay_us: int, callback: Callable, *args,
                 label: Optional[str] = None) -> EventId:
        """
        Schedule callback(*args) to run delay_us after the current time.

        Args:
            delay_us: Non-negative delay in microseconds
            callback: Callable to invoke
            label: Name recorded in the execution trace (default: callback name)

        Returns:
            EventId usable with cancel()

        Raises:
            ValueError: If delay_us is negative
            SchedulerStateError: If the scheduler was destroyed
        """
        if delay_us < 0:
            raise ValueError(f"delay_us must be non-negative, got {delay_us}")
        return self._insert(self.current_time_us + int(delay_us), callback, args, label)

    def schedule_at(self, time_us: int, callback: Callable, *args,
                    label: Optional[str] = None) -> EventId:
        """Schedule callback(*args) at an absolute simulated time."""
        if time_us < self.current_time_us:
            raise ValueError(
                f"Cannot schedule in the past: time_us={time_us} < now={self.current_time_us}"
            )
        return self._insert(int(time_us), callback, args, label)

    def schedule_now(self, callback: Callable, *args, label: Optional[str] = None) -> EventId:
        """Schedule callback(*args) at the current time, after already-queued events."""
        return self._insert(self.current_time_us, callback, args, label)

    def stop(self, delay_us: int) -> EventId:
        """
        Register the stop event delay_us from now (the event horizon).

        When the stop event is dequeued the scheduler halts, even if other
        events remain queued.
        """
        if delay_us < 0:
            raise ValueError(f"delay_us must be non-negative, got {delay_us}")
        return self._insert(self.current_time_us + int(delay_us), self._halt, (),
                            "Simulator::Stop", is_stop=True)

    def schedule_destroy(self, callback: Callable[[], None]):
        """Register a teardown hook, run by destroy() in registration order."""
        self._check_not_destroyed()
        self._destroy_hooks.append(callback)

    def on_run(self, callback: Callable[[], None]):
        """Register a hook invoked once when run() leaves IDLE, before any event."""
        self._check_not_destroyed()
        self._run_hooks.append(callback)

    def _insert(self, time_us: int, callback: Callable, args: Tuple[Any, ...],
                label: Optional[str], is_stop: bool = False) -> EventId:
        self._check_not_destroyed()
        if label is None:
            label = getattr(callback, '__qualname__', repr(callback))
        event = _ScheduledEvent(
            time_us=time_us,
            seq=next(self._seq),
            callback=callback,
            args=args,
            label=label,
            is_stop=is_stop,
        )
        heapq.heappush(self._queue, event)
        self._pending[event.seq] = event
        return EventId(seq=event.seq, time_us=time_us)

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel(self, event_id: Optional[EventId]) -> bool:
        """
        Withdraw a pending event.

        Returns:
            True if the event was pending and is now cancelled, False if it
            already ran (or started running) or was cancelled before.
        """
        if event_id is None:
            return False
        event = self._pending.pop(event_id.seq, None)
        if event is None:
            return False
        event.cancelled = True
        return True

    def is_pending(self, event_id: Optional[EventId]) -> bool:
        return event_id is not None and event_id.seq in self._pending

    def delay_left(self, event_id: EventId) -> int:
        """Microseconds until a pending event fires (0 if not pending)."""
        if not self.is_pending(event_id):
            return 0
        return event_id.time_us - self.current_time_us

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self):
        """
        Drain the event queue until the stop event or an empty queue.

        Raises:
            SchedulerStateError: If not IDLE
        """
        self._check_not_destroyed()
        if self.state is not SchedulerState.IDLE:
            raise SchedulerStateError(f"run() requires IDLE state, scheduler is {self.state.value}")

        self.state = SchedulerState.RUNNING
        try:
            for hook in self._run_hooks:
                hook()

            while self.state is SchedulerState.RUNNING and self._queue:
                event = heapq.heappop(self._queue)
                if event.cancelled:
                    continue

                # Once popped, an event can no longer be cancelled
                del self._pending[event.seq]
                self.current_time_us = event.time_us
                self.trace.append(TraceRecord(event.time_us, event.seq, event.label))
                self.events_executed += 1
                event.callback(*event.args)
        finally:
            if self.state is SchedulerState.RUNNING:
                self.state = SchedulerState.HALTED

    def _halt(self):
        self.state = SchedulerState.HALTED

    def has_started(self) -> bool:
        """True once run() was called (RUNNING, HALTED or DESTROYED)."""
        return self.state is not SchedulerState.IDLE

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def destroy(self):
        """
        Release all scheduled events and run teardown hooks.

        The scheduler cannot be reused afterwards.
        """
        self._check_not_destroyed()
        if self.state is SchedulerState.RUNNING:
            raise SchedulerStateError("destroy() called while running")

        hooks = self._destroy_hooks
        self._destroy_hooks = []
        self._run_hooks = []
        self._queue = []
        self._pending = {}
        self.state = SchedulerState.DESTROYED

        for hook in hooks:
            hook()

    def _check_not_destroyed(self):
        if self.state is SchedulerState.DESTROYED:
            raise SchedulerStateError("Scheduler has been destroyed")
