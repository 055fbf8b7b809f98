"""
Pytest tests for the pipeline registry eviction policy (capacity + TTL).
"""

from __future__ import annotations

from backend_passport.pipeline.models import PipelineRecord, StepStatus
from backend_passport.pipeline.registry import PipelineRegistry

from conftest import VALID_ADDRESS, FakeClock


def _finished(clock: FakeClock, status: StepStatus = StepStatus.COMPLETED) -> PipelineRecord:
    record = PipelineRecord.create(VALID_ADDRESS, clock())
    record.finish(status, clock())
    return record


def _active(clock: FakeClock) -> PipelineRecord:
    record = PipelineRecord.create(VALID_ADDRESS, clock())
    record.overall_status = StepStatus.PROCESSING
    return record


def test_add_get_and_contains():
    clock = FakeClock()
    registry = PipelineRegistry(clock=clock)
    record = _finished(clock)
    registry.add(record)
    assert registry.get(record.id) is record
    assert record.id in registry
    assert registry.get("pipeline_missing") is None
    assert len(registry) == 1


def test_capacity_evicts_oldest_terminal_first():
    clock = FakeClock()
    registry = PipelineRegistry(max_records=2, clock=clock)
    first, second, third = _finished(clock), _finished(clock), _finished(clock, StepStatus.FAILED)
    for r in (first, second, third):
        registry.add(r)
    assert len(registry) == 2
    assert first.id not in registry
    assert [r.id for r in registry.all_records()] == [second.id, third.id]
    assert registry.evicted == 1


def test_active_records_are_never_evicted():
    clock = FakeClock()
    registry = PipelineRegistry(max_records=1, clock=clock)
    a, b = _active(clock), _active(clock)
    registry.add(a)
    registry.add(b)
    assert len(registry) == 2
    assert registry.active_records() == [a, b]

    # Once one finishes, the next add trims back to capacity
    a.finish(StepStatus.COMPLETED, clock())
    c = _active(clock)
    registry.add(c)
    assert a.id not in registry
    assert [r.id for r in registry.all_records()] == [b.id, c.id]


def test_ttl_sweeps_expired_terminal_records():
    clock = FakeClock()
    registry = PipelineRegistry(ttl_sec=60, clock=clock)
    old = _finished(clock)
    running = _active(clock)
    registry.add(old)
    registry.add(running)

    clock.advance(61_000)
    removed = registry.sweep()

    assert removed == 1
    assert old.id not in registry
    assert running.id in registry


def test_ttl_keeps_recent_records():
    clock = FakeClock()
    registry = PipelineRegistry(ttl_sec=60, clock=clock)
    recent = _finished(clock)
    registry.add(recent)
    clock.advance(30_000)
    assert registry.sweep() == 0
    assert recent.id in registry


def test_non_positive_ttl_disables_expiry():
    assert PipelineRegistry(ttl_sec=0).ttl_sec is None
    assert PipelineRegistry(max_records=0).max_records == 1
