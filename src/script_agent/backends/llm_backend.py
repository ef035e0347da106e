# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

import re
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from script_agent.backends.llm import AsyncLLMClient
from script_agent.backends.prompts import PromptManager
from script_agent.backends.types import LLMRequest
from script_agent.domain.chat import ChatMessage, ChatResponse, MessageRole
from script_agent.domain.results import (
    ActionSuggestion,
    ActionType,
    ExecutionResult,
    Improvement,
    ImprovementType,
    OptimizationResult,
    ScriptGenerationResult,
    Suggestion,
    SuggestionType,
    ValidationResult,
)
from script_agent.domain.screen import ScreenContext
from script_agent.exceptions import BackendCallFailure
from script_agent.utils.logger import logger

T = TypeVar("T", bound=BaseModel)

_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)
_CODE_BLOCK = re.compile(r"```(?:javascript|js)?\s*\n(.*?)```", re.DOTALL)

# Chat turns forwarded to the model besides the new message.
CHAT_HISTORY_WINDOW = 10


class AnalysisReply(BaseModel):
    optimized_script: Optional[str] = None
    improvements: List[Improvement] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    score: float = Field(default=0.0, ge=0.0, le=100.0)
    suggestions: List[Suggestion] = Field(default_factory=list)


class GenerationReply(BaseModel):
    script: str
    explanation: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    required_permissions: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)


class SuggestionsReply(BaseModel):
    suggestions: List[Suggestion] = Field(default_factory=list)


def _describe(context: Optional[ScreenContext]) -> str:
    return context.describe() if context is not None else "No screen information available."


class LLMBackendClient:
    """
    Backend client that answers every agent capability through a chat-completion LLM.

    Structured capabilities ask the model for a JSON object and parse it with
    pydantic; chat replies are returned as plain text.
    """

    def __init__(
        self,
        llm: AsyncLLMClient,
        prompt_manager: Optional[PromptManager] = None,
        max_tokens: int = 2000,
        temperature: float = 0.3,
        max_attempts: int = 3,
        wait: Optional[wait_base] = None,
    ) -> None:
        self.llm = llm
        self.prompts = prompt_manager or PromptManager()
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_attempts = max_attempts
        self.wait = wait if wait is not None else wait_exponential(multiplier=1, min=1, max=8)

    @property
    def model_name(self) -> str:
        return self.llm.model_name

    async def analyze_script(self, script: str, context: Optional[ScreenContext]) -> OptimizationResult:
        reply = await self._ask_json(
            AnalysisReply,
            "analyze_script.j2",
            script=script,
            screen=_describe(context),
            improvement_types=[t.value for t in ImprovementType],
            suggestion_types=[t.value for t in SuggestionType],
        )
        return OptimizationResult(
            original_script=script,
            optimized_script=reply.optimized_script or script,
            improvements=reply.improvements,
            score=reply.score,
            suggestions=reply.suggestions,
            warnings=reply.warnings,
            is_successful=True,
        )

    async def generate_script(self, request: str, context: Optional[ScreenContext]) -> ScriptGenerationResult:
        reply = await self._ask_json(
            GenerationReply, "generate_script.j2", request=request, screen=_describe(context)
        )
        return ScriptGenerationResult(
            script=reply.script,
            explanation=reply.explanation,
            confidence=reply.confidence,
            required_permissions=reply.required_permissions,
            dependencies=reply.dependencies,
            is_executable=True,
        )

    async def chat_with_agent(self, message: str, history: List[ChatMessage]) -> ChatResponse:
        messages = [{"role": MessageRole.SYSTEM.value, "content": self.prompts.system_prompt}]
        for item in history[-CHAT_HISTORY_WINDOW:]:
            messages.append({"role": item.role.value, "content": item.content})
        messages.append({"role": MessageRole.USER.value, "content": message})

        text = await self._complete(messages)
        code = _CODE_BLOCK.search(text)
        return ChatResponse(
            message=ChatMessage(content=text, role=MessageRole.ASSISTANT),
            generated_script=code.group(1).strip() if code else None,
        )

    async def get_suggestions(self, script: str, execution_result: Optional[ExecutionResult]) -> List[Suggestion]:
        reply = await self._ask_json(
            SuggestionsReply,
            "suggestions.j2",
            script=script,
            execution=execution_result,
            suggestion_types=[t.value for t in SuggestionType],
        )
        return reply.suggestions

    async def validate_script(self, script: str, context: Optional[ScreenContext]) -> ValidationResult:
        return await self._ask_json(ValidationResult, "validate_script.j2", script=script, screen=_describe(context))

    async def analyze_screen_realtime(self, context: ScreenContext) -> ActionSuggestion:
        return await self._ask_json(
            ActionSuggestion, "realtime.j2", screen=context.describe(), action_types=[t.value for t in ActionType]
        )

    async def _ask_json(self, response_model: Type[T], template_name: str, **context: Any) -> T:
        text = await self._complete(self.prompts.messages(template_name, **context))
        return self.parse_reply(text, response_model)

    @staticmethod
    def parse_reply(text: str, response_model: Type[T]) -> T:
        """
        Parses the JSON object embedded in an LLM reply.
        Raises BackendCallFailure when no valid object can be extracted.
        """
        match = _JSON_BLOCK.search(text)
        json_str = match.group(0) if match else text
        try:
            return response_model.model_validate_json(json_str)
        except (PydanticValidationError, ValueError) as e:
            logger.warning(f"Failed to parse LLM reply as {response_model.__name__}: {e}")
            raise BackendCallFailure(f"Backend returned an unparseable {response_model.__name__} reply.") from e

    async def _complete(self, messages: List[Dict[str, str]]) -> str:
        request = LLMRequest(messages=messages, max_tokens=self.max_tokens, temperature=self.temperature)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=self.wait,
                retry=retry_if_exception_type(Exception),
                reraise=True,
            ):
                with attempt:
                    number = attempt.retry_state.attempt_number
                    if number > 1:
                        logger.info(f"Retrying {self.model_name} request (attempt {number})")
                    response = await self.llm.execute(request)
                    return response.content
        except Exception as e:
            raise BackendCallFailure(f"{self.model_name} request failed: {e}") from e

        raise BackendCallFailure(f"{self.model_name} request exited without a response")  # pragma: no cover
