# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

from typing import Any, Dict, Optional

from script_agent.backends.llm import AsyncLlamaAdapter, AsyncOpenAIAdapter
from script_agent.backends.llm_backend import LLMBackendClient
from script_agent.backends.local_models import LocalModelStore
from script_agent.backends.prompts import PromptManager
from script_agent.exceptions import BackendUnavailable
from script_agent.utils.logger import logger


class BackendFactory:
    """Builds LLM-backed clients for cloud endpoints and local models."""

    def __init__(
        self,
        prompt_manager: Optional[PromptManager] = None,
        model_store: Optional[LocalModelStore] = None,
    ) -> None:
        self.prompt_manager = prompt_manager or PromptManager()
        self.model_store = model_store or LocalModelStore()

    def create_cloud_client(
        self,
        api_key: str,
        base_url: str,
        model_name: str,
        max_tokens: int = 2000,
        temperature: float = 0.3,
        timeout: float = 30.0,
        max_attempts: int = 3,
        default_headers: Optional[Dict[str, str]] = None,
    ) -> LLMBackendClient:
        """
        Creates a client for an OpenAI-compatible chat completion endpoint.
        """
        try:
            from openai import AsyncOpenAI
        except ImportError as e:
            raise BackendUnavailable(
                "Cloud backends require the 'openai' package. Install with 'pip install script-agent[api]'."
            ) from e

        logger.info(f"Initializing cloud client for {model_name} at {base_url}")
        kwargs: Dict[str, Any] = {"api_key": api_key, "base_url": base_url, "timeout": timeout, "max_retries": 0}
        if default_headers:
            kwargs["default_headers"] = default_headers
        client = AsyncOpenAI(**kwargs)
        return LLMBackendClient(
            AsyncOpenAIAdapter(client, model_name=model_name),
            prompt_manager=self.prompt_manager,
            max_tokens=max_tokens,
            temperature=temperature,
            max_attempts=max_attempts,
        )

    def create_local_client(
        self,
        model_path: Optional[str] = None,
        max_tokens: int = 2000,
        temperature: float = 0.3,
        max_attempts: int = 1,
    ) -> LLMBackendClient:
        """
        Creates a client for a local llama.cpp model, downloading the default model when no path is given.
        """
        try:
            from llama_cpp import Llama
        except ImportError as e:
            raise BackendUnavailable(
                "Local backends require 'llama-cpp-python'. Install with 'pip install script-agent[local]'."
            ) from e

        if not model_path:
            try:
                model_path = self.model_store.ensure_model_downloaded()
            except RuntimeError as e:
                raise BackendUnavailable(f"Could not obtain a local model: {e}") from e

        logger.info(f"Initializing local llama.cpp client from {model_path}")
        client = Llama(model_path=model_path, verbose=False)
        return LLMBackendClient(
            AsyncLlamaAdapter(client, model_name=model_path),
            prompt_manager=self.prompt_manager,
            max_tokens=max_tokens,
            temperature=temperature,
            max_attempts=max_attempts,
        )
