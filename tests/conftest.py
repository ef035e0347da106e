from typing import Any, Callable, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import SecretStr

from script_agent.agent.service import AgentService
from script_agent.analysis.screen import StaticScreenAnalyzer
from script_agent.backends.factory import BackendFactory
from script_agent.config import AgentConfig
from script_agent.domain.chat import ChatMessage, ChatResponse, MessageRole
from script_agent.domain.models import AIModel, APIType, ConnectionTestResult
from script_agent.domain.results import (
    ActionSuggestion,
    OptimizationResult,
    ScriptGenerationResult,
    ValidationResult,
)
from script_agent.domain.screen import ScreenContext, UIElement
from script_agent.domain.storage import ScriptExecutionRecord, ScriptTemplate
from script_agent.events import EventCollector

FAKE_MODEL = AIModel(
    id="fake-model",
    name="Fake",
    provider="Test",
    base_url="http://localhost:9999/v1",
    api_type=APIType.OPENAI_COMPATIBLE,
    model_name="fake",
    is_custom=False,
)


class InMemoryConfigStore:
    def __init__(self, config: Optional[AgentConfig] = None) -> None:
        self.config = config or AgentConfig()
        self.saved: List[AgentConfig] = []

    async def load(self) -> AgentConfig:
        return self.config

    async def save(self, config: AgentConfig) -> None:
        self.saved.append(config)
        self.config = config


class InMemoryRepository:
    def __init__(self) -> None:
        self.optimizations: List[Tuple[str, OptimizationResult]] = []
        self.generations: List[Tuple[str, ScriptGenerationResult]] = []
        self.chats: List[Tuple[str, ChatMessage, ChatMessage]] = []
        self.executions: List[ScriptExecutionRecord] = []
        self.initialized = False

    async def initialize(self) -> None:
        self.initialized = True

    async def save_optimization_record(self, script: str, result: OptimizationResult) -> None:
        self.optimizations.append((script, result))

    async def save_generation_record(self, request: str, result: ScriptGenerationResult) -> None:
        self.generations.append((request, result))

    async def save_chat_history(
        self, session_id: str, user_message: ChatMessage, assistant_message: ChatMessage
    ) -> None:
        self.chats.append((session_id, user_message, assistant_message))

    async def save_execution_record(self, record: ScriptExecutionRecord) -> None:
        self.executions.append(record)

    async def get_execution_history(self, limit: int) -> List[ScriptExecutionRecord]:
        return list(reversed(self.executions))[:limit]


class InMemoryTemplateManager:
    def __init__(self, similar: Optional[List[ScriptTemplate]] = None) -> None:
        self.similar = similar or []
        self.saved: Dict[str, ScriptTemplate] = {}

    async def initialize(self) -> None:
        pass

    async def find_similar_templates(self, request: str) -> List[ScriptTemplate]:
        return list(self.similar)

    async def get_templates(
        self, category: Optional[str] = None, query: Optional[str] = None
    ) -> List[ScriptTemplate]:
        return list(self.saved.values())

    async def save_template(self, template: ScriptTemplate) -> bool:
        self.saved[template.id] = template
        return True


class FakeRegistry:
    def __init__(self, client: Any, connection_ok: bool = True) -> None:
        self.client = client
        self.connection_ok = connection_ok
        self.models: Dict[str, AIModel] = {FAKE_MODEL.id: FAKE_MODEL}
        self.created: List[Tuple[str, str]] = []

    def get_model_by_id(self, model_id: str) -> Optional[AIModel]:
        return self.models.get(model_id)

    def create_client_for_model(self, model: AIModel, api_key: str) -> Any:
        self.created.append((model.id, api_key))
        return self.client

    async def test_model_connection(self, model: AIModel, api_key: str) -> ConnectionTestResult:
        if self.connection_ok:
            return ConnectionTestResult(success=True, message="ok")
        return ConnectionTestResult(success=False, message="unreachable")


def make_backend() -> MagicMock:
    """A backend client mock whose capabilities succeed with simple values."""
    backend = MagicMock()
    backend.analyze_script = AsyncMock(
        side_effect=lambda script, context: OptimizationResult(
            original_script=script, optimized_script=script + "\n// optimized", score=70.0
        )
    )
    backend.generate_script = AsyncMock(
        return_value=ScriptGenerationResult(script='click("OK");', explanation="Clicks OK", confidence=0.9)
    )
    backend.validate_script = AsyncMock(return_value=ValidationResult(is_valid=True))
    backend.get_suggestions = AsyncMock(return_value=[])
    backend.chat_with_agent = AsyncMock(
        side_effect=lambda message, history: ChatResponse(
            message=ChatMessage(content=f"echo: {message}", role=MessageRole.ASSISTANT)
        )
    )
    backend.analyze_screen_realtime = AsyncMock(return_value=ActionSuggestion(reasoning="nothing to do"))
    return backend


@pytest.fixture
def backend() -> MagicMock:
    return make_backend()


@pytest.fixture
def screen_context() -> ScreenContext:
    return ScreenContext(
        app_package="com.example.app",
        activity=".MainActivity",
        elements=[UIElement(id="ok", text="OK", class_name="android.widget.Button", is_clickable=True)],
    )


@pytest.fixture
def registry_config() -> AgentConfig:
    return AgentConfig(selected_model_id=FAKE_MODEL.id, api_key=SecretStr("sk-test"))


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def template_manager() -> InMemoryTemplateManager:
    return InMemoryTemplateManager()


@pytest.fixture
def collector() -> EventCollector:
    return EventCollector()


@pytest.fixture
def make_service(
    backend: MagicMock,
    registry_config: AgentConfig,
    repository: InMemoryRepository,
    template_manager: InMemoryTemplateManager,
    screen_context: ScreenContext,
    collector: EventCollector,
) -> Callable[..., AgentService]:
    """Builds services like ``service`` with selected collaborators replaced."""

    def _make(**overrides: Any) -> AgentService:
        kwargs: Dict[str, Any] = {
            "screen_analyzer": StaticScreenAnalyzer(screen_context),
            "template_manager": template_manager,
            "script_repository": repository,
            "config_store": InMemoryConfigStore(registry_config),
            "factory": MagicMock(spec=BackendFactory),
            "model_registry": FakeRegistry(backend),
            "event_emitter": collector,
        }
        kwargs.update(overrides)
        return AgentService(**kwargs)

    return _make


@pytest.fixture
def service(make_service: Callable[..., AgentService]) -> AgentService:
    """An uninitialized service wired to in-memory collaborators and the ``backend`` mock."""
    return make_service()
