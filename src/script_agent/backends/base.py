# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

from typing import List, Optional, Protocol, runtime_checkable

from script_agent.domain.chat import ChatMessage, ChatResponse
from script_agent.domain.results import (
    ActionSuggestion,
    ExecutionResult,
    OptimizationResult,
    ScriptGenerationResult,
    Suggestion,
    ValidationResult,
)
from script_agent.domain.screen import ScreenContext


@runtime_checkable
class BackendClient(Protocol):
    """Capability set of any AI backend able to answer script, chat and analysis requests."""

    async def analyze_script(self, script: str, context: Optional[ScreenContext]) -> OptimizationResult: ...

    async def generate_script(self, request: str, context: Optional[ScreenContext]) -> ScriptGenerationResult: ...

    async def chat_with_agent(self, message: str, history: List[ChatMessage]) -> ChatResponse: ...

    async def get_suggestions(self, script: str, execution_result: Optional[ExecutionResult]) -> List[Suggestion]: ...

    async def validate_script(self, script: str, context: Optional[ScreenContext]) -> ValidationResult: ...

    async def analyze_screen_realtime(self, context: ScreenContext) -> ActionSuggestion: ...
