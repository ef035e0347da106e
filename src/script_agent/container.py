# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

from typing import List, Optional

from script_agent.agent.cache import OptimizationCache
from script_agent.agent.optimizer import LocalOptimizer
from script_agent.agent.service import AgentService
from script_agent.agent.sessions import SessionStore
from script_agent.analysis.screen import ContextProvider, PollingScreenAnalyzer, StaticScreenAnalyzer
from script_agent.backends.factory import BackendFactory
from script_agent.backends.local_models import LocalModelStore
from script_agent.backends.model_manager import ModelManager
from script_agent.backends.prompts import PromptManager
from script_agent.config import Settings, get_settings
from script_agent.events import CompositeEmitter, EventCollector, EventEmitter, LoguruEmitter
from script_agent.interfaces.collaborators import ScreenAnalyzer
from script_agent.storage.config_store import FileConfigStore
from script_agent.storage.repository import FileScriptRepository
from script_agent.storage.templates import FileTemplateManager
from script_agent.sync.github import GitHubScriptSync
from script_agent.utils.logger import configure_logging, logger
from script_agent.utils.shell import AsyncShellExecutor


class AgentContainer:
    """
    Dependency Injection Container for the Script Agent.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        capture_events: bool = False,
        screen_analyzer: Optional[ScreenAnalyzer] = None,
        screen_provider: Optional[ContextProvider] = None,
    ) -> None:
        self.settings = settings or get_settings()
        configure_logging(
            self.settings.log_level, self.settings.log_path if self.settings.log_to_file else None
        )

        # Events
        self.log_emitter = LoguruEmitter()
        self.event_collector = EventCollector()

        emitters: List[EventEmitter] = [self.log_emitter]
        if capture_events:
            emitters.append(self.event_collector)

        self.composite_emitter = CompositeEmitter(emitters)

        # Backends
        self.prompt_manager = PromptManager()
        self.model_store = LocalModelStore(cache_dir=self.settings.model_cache_dir)
        self.backend_factory = BackendFactory(prompt_manager=self.prompt_manager, model_store=self.model_store)
        self.model_manager = ModelManager(self.backend_factory, storage_path=self.settings.models_path)

        # Storage
        self.config_store = FileConfigStore(self.settings.config_path)
        self.script_repository = FileScriptRepository(self.settings.history_dir)
        self.template_manager = FileTemplateManager(self.settings.templates_path)

        # Screen
        self.screen_analyzer: ScreenAnalyzer
        if screen_analyzer is not None:
            self.screen_analyzer = screen_analyzer
        elif screen_provider is not None:
            self.screen_analyzer = PollingScreenAnalyzer(screen_provider, interval=self.settings.realtime_poll_interval)
        else:
            self.screen_analyzer = StaticScreenAnalyzer()

        # GitHub Sync
        self.shell_executor = AsyncShellExecutor()
        self.script_sync: Optional[GitHubScriptSync] = None
        if self.settings.github_repo:
            token = self.settings.GITHUB_TOKEN
            self.script_sync = GitHubScriptSync(
                repo=self.settings.github_repo,
                branch=self.settings.github_branch,
                token=token.get_secret_value() if token else None,
                auto_sync=self.settings.github_auto_sync,
                gh_executable=self.settings.gh_executable,
                shell_executor=self.shell_executor,
            )
        else:
            logger.debug("GitHub sync disabled: no repository configured")

        # Agent
        self.service = AgentService(
            screen_analyzer=self.screen_analyzer,
            template_manager=self.template_manager,
            script_repository=self.script_repository,
            config_store=self.config_store,
            factory=self.backend_factory,
            model_registry=self.model_manager,
            script_sync=self.script_sync,
            local_optimizer=LocalOptimizer(),
            cache=OptimizationCache(
                max_entries=self.settings.cache_max_entries, ttl_seconds=self.settings.cache_ttl_seconds
            ),
            sessions=SessionStore(limit=self.settings.session_history_limit),
            event_emitter=self.composite_emitter,
        )

    def get_service(self) -> AgentService:
        return self.service
