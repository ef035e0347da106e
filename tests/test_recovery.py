import asyncio

import pytest

from script_agent.agent.recovery import RecoveryBoundary
from script_agent.events import EventCollector, EventType


async def _fail() -> int:
    raise RuntimeError("broken")


async def _ok() -> int:
    return 42


@pytest.mark.asyncio
async def test_success_passes_through() -> None:
    collector = EventCollector()
    boundary = RecoveryBoundary(collector)

    assert await boundary.run("op", _ok(), lambda e: -1) == 42
    assert collector.get_events() == []


@pytest.mark.asyncio
async def test_failure_returns_degraded_value_and_emits() -> None:
    collector = EventCollector()
    boundary = RecoveryBoundary(collector)

    result = await boundary.run("op", _fail(), lambda e: len(str(e)))

    assert result == len("broken")
    errors = collector.of_type(EventType.ERROR)
    assert errors[0].payload == {"operation": "op", "error": "broken", "error_type": "RuntimeError"}
    assert len(collector.of_type(EventType.DEGRADED)) == 1


@pytest.mark.asyncio
async def test_cancellation_propagates() -> None:
    boundary = RecoveryBoundary(EventCollector())

    async def _slow() -> int:
        await asyncio.sleep(10)
        return 0

    task = asyncio.create_task(boundary.run("op", _slow(), lambda e: -1))
    await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
