# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Contracts of the collaborators the agent service coordinates.

The service depends only on these protocols; default implementations live in
``script_agent.analysis``, ``script_agent.storage``, ``script_agent.backends``
and ``script_agent.sync``.
"""

from typing import Callable, List, Optional, Protocol

from script_agent.backends.base import BackendClient
from script_agent.config import AgentConfig
from script_agent.domain.chat import ChatMessage
from script_agent.domain.models import AIModel, ConnectionTestResult
from script_agent.domain.results import OptimizationResult, ScriptGenerationResult
from script_agent.domain.scm import PullResult, PushResult
from script_agent.domain.screen import ScreenContext
from script_agent.domain.storage import ScriptExecutionRecord, ScriptTemplate


class MonitoringHandle(Protocol):
    def cancel(self) -> None:
        """Stops the monitoring subscription."""
        ...  # pragma: no cover


class ScreenAnalyzer(Protocol):
    def get_screen_context(self) -> Optional[ScreenContext]:
        """Returns a snapshot of the current screen, or None when unavailable."""
        ...  # pragma: no cover

    def start_realtime_monitoring(self, on_context: Callable[[ScreenContext], None]) -> MonitoringHandle:
        """Invokes ``on_context`` for every captured screen until the handle is cancelled."""
        ...  # pragma: no cover

    def cleanup(self) -> None: ...  # pragma: no cover


class TemplateManager(Protocol):
    async def initialize(self) -> None: ...  # pragma: no cover

    async def find_similar_templates(self, request: str) -> List[ScriptTemplate]:
        """Templates matching ``request``, best match first."""
        ...  # pragma: no cover

    async def get_templates(
        self, category: Optional[str] = None, query: Optional[str] = None
    ) -> List[ScriptTemplate]: ...  # pragma: no cover

    async def save_template(self, template: ScriptTemplate) -> bool: ...  # pragma: no cover


class ConfigStore(Protocol):
    async def load(self) -> AgentConfig:
        """Returns the persisted config, or defaults when none is stored."""
        ...  # pragma: no cover

    async def save(self, config: AgentConfig) -> None: ...  # pragma: no cover


class ScriptRepository(Protocol):
    async def initialize(self) -> None: ...  # pragma: no cover

    async def save_optimization_record(self, script: str, result: OptimizationResult) -> None: ...  # pragma: no cover

    async def save_generation_record(
        self, request: str, result: ScriptGenerationResult
    ) -> None: ...  # pragma: no cover

    async def save_chat_history(
        self, session_id: str, user_message: ChatMessage, assistant_message: ChatMessage
    ) -> None: ...  # pragma: no cover

    async def save_execution_record(self, record: ScriptExecutionRecord) -> None: ...  # pragma: no cover

    async def get_execution_history(self, limit: int) -> List[ScriptExecutionRecord]:
        """Most recent first."""
        ...  # pragma: no cover


class ModelRegistry(Protocol):
    def get_model_by_id(self, model_id: str) -> Optional[AIModel]: ...  # pragma: no cover

    def create_client_for_model(self, model: AIModel, api_key: str) -> BackendClient: ...  # pragma: no cover

    async def test_model_connection(self, model: AIModel, api_key: str) -> ConnectionTestResult: ...  # pragma: no cover


class ScriptSync(Protocol):
    def is_auto_sync_enabled(self) -> bool: ...  # pragma: no cover

    async def auto_sync_if_enabled(
        self, script_name: str, content: str, original_score: float, new_score: float
    ) -> Optional[PushResult]: ...  # pragma: no cover

    async def push_script(
        self, script_name: str, script_content: str, commit_message: Optional[str] = None
    ) -> PushResult: ...  # pragma: no cover

    async def pull_script(self, file_path: str) -> PullResult: ...  # pragma: no cover
