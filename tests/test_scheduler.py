from __future__ import annotations

from pathlib import Path
import sys

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from faceid.recognition.scheduler import FrameScheduler, SchedulerConfig, TickOutcome


class _Clock:
    def __init__(self, t: float = 100.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


def _counting_pipeline(calls):
    def pipeline(frame):
        calls.append(frame)

    return pipeline


def test_ticks_inside_interval_run_once():
    clock = _Clock()
    sched = FrameScheduler(SchedulerConfig(min_interval=0.3), clock=clock)
    calls = []
    assert sched.run("f1", _counting_pipeline(calls)) is TickOutcome.EXECUTED
    clock.t += 0.05
    assert sched.run("f2", _counting_pipeline(calls)) is TickOutcome.THROTTLED
    assert calls == ["f1"]


def test_ticks_outside_interval_run_twice():
    clock = _Clock()
    sched = FrameScheduler(SchedulerConfig(min_interval=0.3), clock=clock)
    calls = []
    sched.run("f1", _counting_pipeline(calls))
    clock.t += 0.4
    assert sched.run("f2", _counting_pipeline(calls)) is TickOutcome.EXECUTED
    assert calls == ["f1", "f2"]


def test_explicit_now_overrides_clock():
    sched = FrameScheduler(SchedulerConfig(min_interval=0.3), clock=lambda: 0.0)
    calls = []
    sched.run("f1", _counting_pipeline(calls), now=1.0)
    sched.run("f2", _counting_pipeline(calls), now=1.2)
    sched.run("f3", _counting_pipeline(calls), now=1.35)
    assert calls == ["f1", "f3"]


def test_in_flight_execution_blocks_new_ticks():
    clock = _Clock()
    sched = FrameScheduler(SchedulerConfig(min_interval=0.3), clock=clock)
    assert sched.try_admit() is TickOutcome.ADMITTED
    assert sched.in_flight

    clock.t += 1.0
    calls = []
    assert sched.run("late", _counting_pipeline(calls)) is TickOutcome.BUSY
    assert calls == []

    sched.complete()
    assert sched.run("late", _counting_pipeline(calls)) is TickOutcome.EXECUTED
    assert calls == ["late"]


def test_reentrant_tick_during_execution_is_busy():
    clock = _Clock()
    sched = FrameScheduler(SchedulerConfig(min_interval=0.0), clock=clock)
    inner = []

    def pipeline(frame):
        inner.append(sched.run("nested", lambda f: None))

    sched.run("outer", pipeline)
    assert inner == [TickOutcome.BUSY]


def test_failure_calls_on_error_and_releases_gate():
    clock = _Clock()
    sched = FrameScheduler(SchedulerConfig(min_interval=0.3), clock=clock)
    errors = []

    def boom(frame):
        raise RuntimeError("detector exploded")

    assert sched.run("f1", boom, on_error=errors.append) is TickOutcome.FAILED
    assert len(errors) == 1 and isinstance(errors[0], RuntimeError)
    assert not sched.in_flight

    clock.t += 0.4
    calls = []
    assert sched.run("f2", _counting_pipeline(calls)) is TickOutcome.EXECUTED
    assert calls == ["f2"]


def test_reset_forgets_last_admission():
    clock = _Clock()
    sched = FrameScheduler(SchedulerConfig(min_interval=0.3), clock=clock)
    calls = []
    sched.run("f1", _counting_pipeline(calls))
    sched.reset()
    assert sched.run("f2", _counting_pipeline(calls)) is TickOutcome.EXECUTED
    assert calls == ["f1", "f2"]
