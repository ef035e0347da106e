from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from script_agent.agent.service import AgentService, AgentState
from script_agent.config import AgentConfig, ModelType
from script_agent.domain.results import (
    ExecutionResult,
    OptimizationResult,
    Priority,
    ScriptGenerationResult,
    Suggestion,
    ValidationError,
    ValidationResult,
)
from script_agent.domain.storage import ScriptTemplate
from script_agent.events import EventCollector, EventType
from script_agent.exceptions import AgentInitializationError, AgentNotInitialized


@pytest.mark.asyncio
async def test_operations_require_initialize(service: AgentService) -> None:
    """Every public operation refuses to run before initialize."""
    with pytest.raises(AgentNotInitialized):
        await service.optimize_script("click(1, 2);")
    with pytest.raises(AgentNotInitialized):
        await service.generate_script("open settings")
    with pytest.raises(AgentNotInitialized):
        await service.chat_with_agent("hi")
    with pytest.raises(AgentNotInitialized):
        await service.get_script_suggestions("x")
    with pytest.raises(AgentNotInitialized):
        service.get_config()
    with pytest.raises(AgentNotInitialized):
        service.start_realtime_analysis(lambda suggestion: None)


@pytest.mark.asyncio
async def test_initialize_is_idempotent(service: AgentService, repository: Any) -> None:
    await service.initialize()
    await service.initialize()

    assert service.state == AgentState.READY
    assert repository.initialized is True
    assert len(service.model_registry.created) == 1  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_initialize_failure_resets_state(service: AgentService, repository: Any) -> None:
    repository.initialize = AsyncMock(side_effect=OSError("disk full"))

    with pytest.raises(AgentInitializationError) as exc_info:
        await service.initialize()

    assert isinstance(exc_info.value.__cause__, OSError)
    assert service.state == AgentState.UNINITIALIZED


@pytest.mark.asyncio
async def test_optimize_warm_cache_skips_all_work(
    service: AgentService, backend: MagicMock, repository: Any, collector: EventCollector
) -> None:
    """A second identical request is answered from the cache."""
    await service.initialize()

    first = await service.optimize_script("click(100, 200);")
    second = await service.optimize_script("click(100, 200);")

    assert second == first
    assert backend.analyze_script.await_count == 1
    assert len(repository.optimizations) == 1
    assert len(collector.of_type(EventType.CACHE_HIT)) == 1


@pytest.mark.asyncio
async def test_optimize_fuses_backend_and_local(service: AgentService, backend: MagicMock) -> None:
    await service.initialize()

    result = await service.optimize_script("click(100, 200);")

    assert result.score == 70.0
    assert result.optimized_script == "click(100, 200);\n// optimized"
    assert result.is_successful is True
    titles = [s.title for s in result.suggestions]
    assert "Replace hard-coded coordinates with selectors" in titles
    assert result.warnings == ["Script relies on hard-coded screen coordinates."]


@pytest.mark.asyncio
async def test_optimize_unsuccessful_backend_makes_result_unsuccessful(
    service: AgentService, backend: MagicMock
) -> None:
    backend.analyze_script = AsyncMock(
        side_effect=lambda script, context: OptimizationResult(
            original_script=script, optimized_script=script, score=40.0, is_successful=False
        )
    )
    await service.initialize()

    result = await service.optimize_script("toast('hi');")

    assert result.is_successful is False
    assert result.score == 40.0


@pytest.mark.asyncio
async def test_optimize_degrades_when_backend_raises(
    service: AgentService, backend: MagicMock, repository: Any, collector: EventCollector
) -> None:
    backend.analyze_script = AsyncMock(side_effect=RuntimeError("boom"))
    await service.initialize()

    result = await service.optimize_script("click(1, 2);")

    assert result.is_successful is False
    assert result.optimized_script == "click(1, 2);"
    assert result.warnings == ["Optimization failed: boom"]
    assert repository.optimizations == []
    assert len(service.cache) == 0
    assert collector.of_type(EventType.ERROR)


def _store_for(config: AgentConfig) -> MagicMock:
    store = MagicMock()
    store.load = AsyncMock(return_value=config)
    store.save = AsyncMock()
    return store


@pytest.mark.asyncio
async def test_optimize_without_backend_degrades(make_service: Callable[..., AgentService]) -> None:
    service = make_service(config_store=_store_for(AgentConfig(model_type=ModelType.CUSTOM)))
    await service.initialize()

    result = await service.optimize_script("click(1, 2);")

    assert result.is_successful is False
    assert result.warnings == ["Optimization failed: No AI backend is configured."]


@pytest.mark.asyncio
async def test_generate_uses_template_without_backend(
    service: AgentService, backend: MagicMock, repository: Any, template_manager: Any
) -> None:
    template_manager.similar = [
        ScriptTemplate(
            id="open-app",
            name="Open app",
            script='launchApp("{{app_package}}"); // {{request}}',
            required_permissions=["accessibility"],
        )
    ]
    await service.initialize()

    result = await service.generate_script("open the app")

    assert result.confidence == 0.8
    assert result.is_executable is True
    assert result.script == 'launchApp("com.example.app"); // open the app'
    assert result.required_permissions == ["accessibility"]
    backend.generate_script.assert_not_awaited()
    assert repository.generations == []


@pytest.mark.asyncio
async def test_generate_valid_script_is_persisted(service: AgentService, backend: MagicMock, repository: Any) -> None:
    await service.initialize()

    result = await service.generate_script("press ok")

    assert result.script == 'click("OK");'
    assert result.is_executable is True
    backend.validate_script.assert_awaited_once()
    assert repository.generations == [("press ok", result)]


@pytest.mark.asyncio
async def test_generate_repairs_invalid_script_but_keeps_pre_repair_flag(
    service: AgentService, backend: MagicMock
) -> None:
    """A repaired script is still reported as not executable."""
    backend.generate_script = AsyncMock(
        return_value=ScriptGenerationResult(script='if (ready) {\n  click("OK");', explanation="", confidence=0.7)
    )
    backend.validate_script = AsyncMock(
        return_value=ValidationResult(is_valid=False, errors=[ValidationError(line=2, message="Missing }")])
    )
    await service.initialize()

    result = await service.generate_script("press ok when ready")

    assert result.script == 'if (ready) {\n  click("OK");\n}\n'
    assert result.is_executable is False
    assert result.confidence == 0.7


@pytest.mark.asyncio
async def test_generate_degrades_on_failure(service: AgentService, backend: MagicMock) -> None:
    backend.generate_script = AsyncMock(side_effect=RuntimeError("timeout"))
    await service.initialize()

    result = await service.generate_script("anything")

    assert result.confidence == 0.0
    assert result.is_executable is False
    assert result.script == "// Script generation failed: timeout"


@pytest.mark.asyncio
async def test_suggestions_are_deduplicated_and_sorted(service: AgentService, backend: MagicMock) -> None:
    backend.get_suggestions = AsyncMock(
        return_value=[Suggestion(title="Add error handling", description="from backend", priority=Priority.LOW)]
    )
    await service.initialize()

    suggestions = await service.get_script_suggestions("click(100, 200);")

    assert [s.title for s in suggestions] == [
        "Replace hard-coded coordinates with selectors",
        "Add error handling",
        "Wait for the accessibility service",
    ]
    assert suggestions[1].description == "from backend"


@pytest.mark.asyncio
async def test_suggestions_include_failed_execution(service: AgentService) -> None:
    await service.initialize()

    suggestions = await service.get_script_suggestions(
        "toast('hi');", ExecutionResult(is_success=False, error="ReferenceError: foo")
    )

    assert suggestions[0].priority == Priority.URGENT
    assert "ReferenceError: foo" in suggestions[0].description


@pytest.mark.asyncio
async def test_suggestions_without_backend_use_local_only(make_service: Callable[..., AgentService]) -> None:
    service = make_service(config_store=_store_for(AgentConfig(model_type=ModelType.CUSTOM)))
    await service.initialize()

    suggestions = await service.get_script_suggestions("click(100, 200);")

    assert suggestions[0].title == "Replace hard-coded coordinates with selectors"


@pytest.mark.asyncio
async def test_suggestions_failure_returns_empty(service: AgentService, backend: MagicMock) -> None:
    backend.get_suggestions = AsyncMock(side_effect=RuntimeError("down"))
    await service.initialize()

    assert await service.get_script_suggestions("click(1, 2);") == []


@pytest.mark.asyncio
async def test_templates_and_history_pass_through(service: AgentService) -> None:
    await service.initialize()
    template = ScriptTemplate(id="t1", name="Login", script="login();")

    assert await service.save_script_template(template) is True
    assert await service.get_script_templates() == [template]
    assert await service.get_script_history() == []


@pytest.mark.asyncio
async def test_save_template_failure_returns_false(service: AgentService, template_manager: Any) -> None:
    template_manager.save_template = AsyncMock(side_effect=OSError("read-only"))
    await service.initialize()

    assert await service.save_script_template(ScriptTemplate(id="t1", name="x", script="")) is False


@pytest.mark.asyncio
async def test_cleanup_is_idempotent_and_resets_state(service: AgentService) -> None:
    await service.initialize()
    await service.chat_with_agent("hello")

    await service.cleanup()
    await service.cleanup()

    assert service.state == AgentState.UNINITIALIZED
    assert service.sessions.session_ids() == []
    with pytest.raises(AgentNotInitialized):
        await service.chat_with_agent("hello again")
