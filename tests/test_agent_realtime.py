import asyncio
from typing import Callable, List
from unittest.mock import AsyncMock, MagicMock

import pytest

from script_agent.agent.service import AgentService
from script_agent.analysis.screen import PollingScreenAnalyzer
from script_agent.domain.results import ActionSuggestion
from script_agent.domain.screen import ScreenContext


@pytest.mark.asyncio
async def test_realtime_delivers_suggestions_to_async_callback(
    make_service: Callable[..., AgentService], screen_context: ScreenContext
) -> None:
    service = make_service(screen_analyzer=PollingScreenAnalyzer(lambda: screen_context, interval=0.01))
    await service.initialize()
    received: List[ActionSuggestion] = []
    delivered = asyncio.Event()

    async def _callback(suggestion: ActionSuggestion) -> None:
        received.append(suggestion)
        delivered.set()

    service.start_realtime_analysis(_callback)
    await asyncio.wait_for(delivered.wait(), timeout=2)
    await service.stop_realtime_analysis()

    assert received[0].reasoning == "nothing to do"
    assert not service._realtime_tasks


@pytest.mark.asyncio
async def test_start_twice_subscribes_once(make_service: Callable[..., AgentService]) -> None:
    analyzer = MagicMock()
    analyzer.get_screen_context.return_value = None
    service = make_service(screen_analyzer=analyzer)
    await service.initialize()

    service.start_realtime_analysis(lambda suggestion: None)
    service.start_realtime_analysis(lambda suggestion: None)
    await service.stop_realtime_analysis()

    analyzer.start_realtime_monitoring.assert_called_once()
    analyzer.start_realtime_monitoring.return_value.cancel.assert_called_once()


@pytest.mark.asyncio
async def test_realtime_failures_do_not_stop_monitoring(
    make_service: Callable[..., AgentService], backend: MagicMock, screen_context: ScreenContext
) -> None:
    polls = 0

    def _provider() -> ScreenContext:
        nonlocal polls
        polls += 1
        return screen_context

    backend.analyze_screen_realtime = AsyncMock(side_effect=RuntimeError("model offline"))
    service = make_service(screen_analyzer=PollingScreenAnalyzer(_provider, interval=0.01))
    await service.initialize()
    callback = MagicMock()

    service.start_realtime_analysis(callback)
    await asyncio.sleep(0.1)
    await service.stop_realtime_analysis()

    assert polls > 1
    assert backend.analyze_screen_realtime.await_count > 1
    callback.assert_not_called()


@pytest.mark.asyncio
async def test_stop_cancels_outstanding_analysis(
    make_service: Callable[..., AgentService], backend: MagicMock, screen_context: ScreenContext
) -> None:
    started = asyncio.Event()

    async def _hang(context: ScreenContext) -> ActionSuggestion:
        started.set()
        await asyncio.Event().wait()
        return ActionSuggestion()

    backend.analyze_screen_realtime = AsyncMock(side_effect=_hang)
    service = make_service(screen_analyzer=PollingScreenAnalyzer(lambda: screen_context, interval=10))
    await service.initialize()

    service.start_realtime_analysis(lambda suggestion: None)
    await asyncio.wait_for(started.wait(), timeout=2)
    pending = list(service._realtime_tasks)
    await service.stop_realtime_analysis()

    assert pending and all(task.cancelled() for task in pending)
    assert not service._realtime_tasks


@pytest.mark.asyncio
async def test_cleanup_stops_realtime_and_releases_analyzer(make_service: Callable[..., AgentService]) -> None:
    analyzer = MagicMock()
    analyzer.get_screen_context.return_value = None
    service = make_service(screen_analyzer=analyzer)
    await service.initialize()
    service.start_realtime_analysis(lambda suggestion: None)

    await service.cleanup()

    analyzer.start_realtime_monitoring.return_value.cancel.assert_called_once()
    analyzer.cleanup.assert_called_once()
