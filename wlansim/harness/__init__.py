"""
wlansim.harness - Simulation orchestration and execution

The discrete-event scheduler lives here; the run launcher and the
command-line entry point are in wlansim.harness.launcher and
wlansim.harness.run_scenario.
"""

from .scheduler import (
    EventId, Scheduler, SchedulerError, SchedulerState, SchedulerStateError,
    TraceRecord, seconds_to_us, us_to_seconds,
)

__all__ = [
    'EventId',
    'Scheduler',
    'SchedulerError',
    'SchedulerState',
    'SchedulerStateError',
    'TraceRecord',
    'seconds_to_us',
    'us_to_seconds',
]
