# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
The Agent Service: entry point for every script, chat and analysis request.

Requests are routed to the resolved AI backend, combined with the local
optimizer and persisted through the injected collaborators. Interactive
operations never raise past the recovery boundary; they return a degraded
value instead. Calling any operation before ``initialize`` raises
``AgentNotInitialized``.
"""

import asyncio
import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Set, Union

from pydantic import SecretStr

from script_agent.agent.cache import OptimizationCache, fingerprint
from script_agent.agent.fusion import fuse_optimization_results, merge_suggestions
from script_agent.agent.optimizer import LocalOptimizer
from script_agent.agent.recovery import RecoveryBoundary
from script_agent.agent.resolution import resolve_backend
from script_agent.agent.sessions import SessionStore
from script_agent.backends.base import BackendClient
from script_agent.backends.factory import BackendFactory
from script_agent.config import AgentConfig
from script_agent.domain.chat import ChatMessage, ChatResponse, MessageRole
from script_agent.domain.results import (
    ActionSuggestion,
    ExecutionResult,
    OptimizationResult,
    ScriptGenerationResult,
    Suggestion,
)
from script_agent.domain.screen import ScreenContext
from script_agent.domain.storage import ScriptExecutionRecord, ScriptTemplate
from script_agent.events import AgentEvent, EventEmitter, EventType, LoguruEmitter
from script_agent.exceptions import AgentInitializationError, AgentNotInitialized, BackendUnavailable
from script_agent.interfaces.collaborators import (
    ConfigStore,
    ModelRegistry,
    MonitoringHandle,
    ScreenAnalyzer,
    ScriptRepository,
    ScriptSync,
    TemplateManager,
)
from script_agent.utils.logger import logger

TEMPLATE_CONFIDENCE = 0.8
AUTO_SYNC_ORIGINAL_SCORE = 60.0

RealtimeCallback = Callable[[ActionSuggestion], Union[None, Awaitable[None]]]


class AgentState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


@dataclass(frozen=True)
class BackendSnapshot:
    """The active config together with the client resolved from it."""

    config: AgentConfig
    client: Optional[BackendClient]


class AgentService:
    """
    Orchestrates the AI backend, the local optimizer and the storage collaborators.
    """

    def __init__(
        self,
        screen_analyzer: ScreenAnalyzer,
        template_manager: TemplateManager,
        script_repository: ScriptRepository,
        config_store: ConfigStore,
        factory: BackendFactory,
        model_registry: Optional[ModelRegistry] = None,
        script_sync: Optional[ScriptSync] = None,
        local_optimizer: Optional[LocalOptimizer] = None,
        cache: Optional[OptimizationCache] = None,
        sessions: Optional[SessionStore] = None,
        event_emitter: Optional[EventEmitter] = None,
    ) -> None:
        self.screen_analyzer = screen_analyzer
        self.template_manager = template_manager
        self.script_repository = script_repository
        self.config_store = config_store
        self.factory = factory
        self.model_registry = model_registry
        self.script_sync = script_sync
        self.local_optimizer = local_optimizer or LocalOptimizer()
        self.cache = cache or OptimizationCache()
        self.sessions = sessions or SessionStore()
        self.event_emitter = event_emitter or LoguruEmitter()
        self.recovery = RecoveryBoundary(self.event_emitter)

        self.state = AgentState.UNINITIALIZED
        self._snapshot: Optional[BackendSnapshot] = None
        self._lifecycle_lock = asyncio.Lock()
        self._config_lock = asyncio.Lock()
        self._monitoring: Optional[MonitoringHandle] = None
        self._realtime_callback: Optional[RealtimeCallback] = None
        self._realtime_tasks: Set["asyncio.Task[None]"] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Loads the config, initializes storage and resolves the backend. Idempotent.

        Raises:
            AgentInitializationError: If any step fails. The service stays uninitialized.
        """
        async with self._lifecycle_lock:
            if self.state == AgentState.READY:
                return
            self.state = AgentState.INITIALIZING
            try:
                config = await self.config_store.load()
                await self.script_repository.initialize()
                await self.template_manager.initialize()
                client = resolve_backend(config, self.model_registry, self.factory)
                await self._install(config, client)
            except Exception as e:
                self.state = AgentState.UNINITIALIZED
                self._emit(EventType.ERROR, "Agent initialization failed", error=str(e))
                raise AgentInitializationError(f"Failed to initialize agent service: {e}") from e
            self.state = AgentState.READY
            self._emit(EventType.LIFECYCLE, "Agent service ready", backend=client is not None)

    async def cleanup(self) -> None:
        """Stops realtime analysis, releases the screen analyzer and forgets all sessions."""
        async with self._lifecycle_lock:
            await self._stop_realtime()
            try:
                self.screen_analyzer.cleanup()
            except Exception as e:
                logger.warning(f"Screen analyzer cleanup failed: {e}")
            self.sessions.clear()
            self._snapshot = None
            if self.state != AgentState.UNINITIALIZED:
                self._emit(EventType.LIFECYCLE, "Agent service stopped")
            self.state = AgentState.UNINITIALIZED

    # ------------------------------------------------------------------
    # Script operations
    # ------------------------------------------------------------------

    async def optimize_script(self, script: str) -> OptimizationResult:
        self._require_ready()
        return await self.recovery.run(
            "optimize_script",
            self._optimize(script),
            lambda e: OptimizationResult.degraded(script, f"Optimization failed: {e}"),
        )

    async def _optimize(self, script: str) -> OptimizationResult:
        context = self.screen_analyzer.get_screen_context()
        key = fingerprint(script, context)

        cached = await self.cache.get(key)
        if cached is not None:
            self._emit(EventType.CACHE_HIT, "Returning cached optimization", key=key)
            return cached

        client = self._require_client()
        self._emit(EventType.BACKEND_CALL, "analyze_script")
        backend_result = await client.analyze_script(script, context)
        local_result = self.local_optimizer.optimize_script(script, context)
        result = fuse_optimization_results(backend_result, local_result)

        await self.script_repository.save_optimization_record(script, result)
        await self.cache.put(key, result)
        self._emit(EventType.OPERATION_RESULT, "Script optimized", score=result.score)
        return result

    async def generate_script(self, request: str) -> ScriptGenerationResult:
        self._require_ready()
        return await self.recovery.run(
            "generate_script",
            self._generate(request),
            lambda e: ScriptGenerationResult.degraded(str(e)),
        )

    async def _generate(self, request: str) -> ScriptGenerationResult:
        context = self.screen_analyzer.get_screen_context()

        templates = await self.template_manager.find_similar_templates(request)
        if templates:
            template = templates[0]
            logger.info(f"Generating from template '{template.name}'")
            return ScriptGenerationResult(
                script=self.local_optimizer.adapt_template(template, request, context),
                explanation=f"Generated from template '{template.name}'.",
                confidence=TEMPLATE_CONFIDENCE,
                required_permissions=list(template.required_permissions),
                is_executable=True,
            )

        client = self._require_client()
        self._emit(EventType.BACKEND_CALL, "generate_script")
        result = await client.generate_script(request, context)
        validation = await client.validate_script(result.script, context)

        script = result.script
        if not validation.is_valid:
            logger.warning(f"Generated script failed validation with {len(validation.errors)} error(s); repairing")
            script = self.local_optimizer.repair_script(script, validation.errors)
        # Executability reflects the validation before the repair pass.
        result = result.model_copy(update={"script": script, "is_executable": validation.is_valid})

        await self.script_repository.save_generation_record(request, result)
        self._emit(EventType.OPERATION_RESULT, "Script generated", executable=result.is_executable)
        return result

    async def get_script_suggestions(
        self, script: str, execution_result: Optional[ExecutionResult] = None
    ) -> List[Suggestion]:
        """Backend and local suggestions, unique by title, highest priority first."""
        self._require_ready()
        return await self.recovery.run(
            "get_script_suggestions", self._suggestions(script, execution_result), lambda e: []
        )

    async def _suggestions(self, script: str, execution_result: Optional[ExecutionResult]) -> List[Suggestion]:
        client = self._current_client()
        backend: List[Suggestion] = []
        if client is not None:
            self._emit(EventType.BACKEND_CALL, "get_suggestions")
            backend = await client.get_suggestions(script, execution_result)
        local = self.local_optimizer.analyze_suggestions(script, execution_result)
        merged = merge_suggestions(backend, local)
        return sorted(merged, key=lambda s: s.priority.rank, reverse=True)

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def chat_with_agent(self, message: str, session_id: str = "default") -> ChatResponse:
        self._require_ready()
        return await self.recovery.run(
            "chat_with_agent",
            self._chat(message, session_id),
            lambda e: ChatResponse.apology(str(e)),
        )

    async def _chat(self, message: str, session_id: str) -> ChatResponse:
        async with self.sessions.lock_for(session_id):
            history = self.sessions.history(session_id)
            client = self._require_client()
            user_message = ChatMessage(
                content=message, role=MessageRole.USER, context=self.screen_analyzer.get_screen_context()
            )
            self._emit(EventType.BACKEND_CALL, "chat_with_agent", session_id=session_id)
            response = await client.chat_with_agent(message, history)
            self.sessions.append(session_id, user_message, response.message)

        try:
            await self.script_repository.save_chat_history(session_id, user_message, response.message)
        except Exception as e:
            logger.warning(f"Failed to persist chat history for session {session_id}: {e}")
        return response

    # ------------------------------------------------------------------
    # Realtime analysis
    # ------------------------------------------------------------------

    def start_realtime_analysis(self, callback: RealtimeCallback) -> None:
        """
        Subscribes to screen updates and reports an ``ActionSuggestion`` for each one.
        Calling it while analysis is running has no effect.
        """
        self._require_ready()
        if self._monitoring is not None:
            return
        self._realtime_callback = callback
        self._monitoring = self.screen_analyzer.start_realtime_monitoring(self._on_screen_context)
        self._emit(EventType.LIFECYCLE, "Realtime analysis started")

    async def stop_realtime_analysis(self) -> None:
        self._require_ready()
        await self._stop_realtime()

    def _on_screen_context(self, context: ScreenContext) -> None:
        callback = self._realtime_callback
        if callback is None:
            return
        task = asyncio.get_running_loop().create_task(self._analyze_realtime(context, callback))
        self._realtime_tasks.add(task)
        task.add_done_callback(self._realtime_tasks.discard)

    async def _analyze_realtime(self, context: ScreenContext, callback: RealtimeCallback) -> None:
        client = self._current_client()
        if client is None:
            logger.debug("Skipping realtime analysis: no backend client")
            return
        try:
            suggestion = await client.analyze_screen_realtime(context)
            outcome = callback(suggestion)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.warning(f"Realtime analysis failed: {e}")

    async def _stop_realtime(self) -> None:
        if self._monitoring is not None:
            self._monitoring.cancel()
            self._monitoring = None
            self._emit(EventType.LIFECYCLE, "Realtime analysis stopped")
        self._realtime_callback = None

        tasks = list(self._realtime_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._realtime_tasks.clear()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def get_config(self) -> AgentConfig:
        self._require_ready()
        snapshot = self._snapshot
        if snapshot is None:
            raise AgentNotInitialized("Agent service has no installed configuration.")
        return snapshot.config

    async def update_config(self, config: AgentConfig) -> None:
        """Persists ``config`` and re-resolves the backend from it, possibly leaving none."""
        self._require_ready()
        await self.config_store.save(config)
        client = resolve_backend(config, self.model_registry, self.factory)
        await self._install(config, client)

    async def switch_model(self, model_id: str, api_key: str) -> bool:
        """
        Selects a registry model after a successful connection test.
        Returns False and keeps the current backend on any failure.
        """
        self._require_ready()
        if self.model_registry is None:
            logger.warning("Cannot switch model: no model registry configured")
            return False

        try:
            model = self.model_registry.get_model_by_id(model_id)
            if model is None:
                logger.warning(f"Cannot switch to unknown model '{model_id}'")
                return False

            test = await self.model_registry.test_model_connection(model, api_key)
            if not test.success:
                logger.warning(f"Connection test for '{model_id}' failed: {test.message}")
                return False

            config = self.get_config().model_copy(
                update={"selected_model_id": model_id, "api_key": SecretStr(api_key)}
            )
            await self.config_store.save(config)
            client = resolve_backend(config, self.model_registry, self.factory)
            await self._install(config, client)
        except Exception as e:
            logger.exception(f"Failed to switch to model '{model_id}': {e}")
            return False

        logger.info(f"Switched to model '{model_id}'")
        return True

    # ------------------------------------------------------------------
    # Templates and history
    # ------------------------------------------------------------------

    async def get_script_templates(
        self, category: Optional[str] = None, query: Optional[str] = None
    ) -> List[ScriptTemplate]:
        self._require_ready()
        return await self.recovery.run(
            "get_script_templates", self.template_manager.get_templates(category, query), lambda e: []
        )

    async def save_script_template(self, template: ScriptTemplate) -> bool:
        self._require_ready()
        return await self.recovery.run(
            "save_script_template", self.template_manager.save_template(template), lambda e: False
        )

    async def get_script_history(self, limit: int = 50) -> List[ScriptExecutionRecord]:
        self._require_ready()
        return await self.recovery.run(
            "get_script_history", self.script_repository.get_execution_history(limit), lambda e: []
        )

    # ------------------------------------------------------------------
    # GitHub sync
    # ------------------------------------------------------------------

    async def push_script_to_github(
        self, script_name: str, script_content: str, commit_message: Optional[str] = None
    ) -> bool:
        self._require_ready()
        if self.script_sync is None:
            logger.warning("GitHub sync is not configured")
            return False
        result = await self.recovery.run(
            "push_script_to_github",
            self.script_sync.push_script(script_name, script_content, commit_message),
            lambda e: None,
        )
        if result is None:
            return False
        if not result.success:
            logger.warning(f"Push of {script_name} failed: {result.message}")
        return result.success

    async def pull_script_from_github(self, file_path: str) -> Optional[str]:
        self._require_ready()
        if self.script_sync is None:
            logger.warning("GitHub sync is not configured")
            return None
        result = await self.recovery.run(
            "pull_script_from_github", self.script_sync.pull_script(file_path), lambda e: None
        )
        if result is None or not result.success:
            return None
        return result.content

    async def auto_sync_optimization_result(
        self, script_name: str, original_script: str, result: OptimizationResult
    ) -> None:
        """Pushes a successful optimization when auto sync is enabled. Failures are only logged."""
        self._require_ready()
        if self.script_sync is None or not result.is_successful:
            return
        if result.optimized_script == original_script:
            logger.debug(f"Skipping auto sync of {script_name}: script unchanged")
            return
        try:
            push = await self.script_sync.auto_sync_if_enabled(
                script_name, result.optimized_script, AUTO_SYNC_ORIGINAL_SCORE, result.score
            )
        except Exception as e:
            logger.warning(f"Auto sync of {script_name} failed: {e}")
            return
        if push is not None:
            logger.info(f"Auto sync of {script_name}: {push.message}")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_ready(self) -> None:
        if self.state != AgentState.READY:
            raise AgentNotInitialized("Agent service is not initialized; call initialize() first.")

    def _current_client(self) -> Optional[BackendClient]:
        snapshot = self._snapshot
        return snapshot.client if snapshot is not None else None

    def _require_client(self) -> BackendClient:
        client = self._current_client()
        if client is None:
            raise BackendUnavailable("No AI backend is configured.")
        return client

    async def _install(self, config: AgentConfig, client: Optional[BackendClient]) -> None:
        async with self._config_lock:
            self._snapshot = BackendSnapshot(config=config, client=client)
        self._emit(
            EventType.CONFIG_CHANGED,
            "Backend configuration installed",
            model_id=config.selected_model_id,
            model_type=config.model_type.value,
            backend=client is not None,
        )

    def _emit(self, event_type: EventType, message: str, **payload: Any) -> None:
        self.event_emitter.emit(AgentEvent(type=event_type, message=message, payload=payload))
