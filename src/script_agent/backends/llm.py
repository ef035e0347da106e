# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

import asyncio
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from script_agent.backends.types import LLMRequest, LLMResponse


@runtime_checkable
class AsyncLLMClient(Protocol):
    """Protocol for Async LLM clients."""

    model_name: str

    async def execute(self, request: LLMRequest) -> LLMResponse: ...


class AsyncOpenAIAdapter:
    """Adapter for OpenAI-compatible clients using Async I/O."""

    def __init__(self, client: Any, model_name: str) -> None:
        self.client = client
        self.model_name = model_name

    async def execute(self, request: LLMRequest) -> LLMResponse:
        response = await self.client.chat.completions.create(
            model=self.model_name,
            messages=request.messages,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
        )
        content = response.choices[0].message.content
        if content is None:
            raise ValueError("LLM returned an empty completion.")
        return LLMResponse(content=str(content).strip())


class AsyncLlamaAdapter:
    """Adapter for local llama.cpp models; inference runs in a worker thread."""

    def __init__(self, client: Any, model_name: str = "local") -> None:
        self.client = client
        self.model_name = model_name

    async def execute(self, request: LLMRequest) -> LLMResponse:
        response: Dict[str, Any] = await asyncio.to_thread(
            self.client.create_chat_completion,
            messages=request.messages,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
        )
        content: Optional[str] = response["choices"][0]["message"]["content"]
        if content is None:
            raise ValueError("LLM returned an empty completion.")
        return LLMResponse(content=str(content).strip())
