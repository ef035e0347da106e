# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Registry of AI models the agent can talk to.

Predefined provider models are always available; user-defined models are
persisted as JSON and can be exported/imported between installations.
"""

import asyncio
import json
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from script_agent.backends.base import BackendClient
from script_agent.backends.factory import BackendFactory
from script_agent.domain.models import AIModel, APIType, ConnectionTestResult
from script_agent.utils.logger import logger

CONNECTION_TEST_MESSAGE = "Hello, this is a test message."

PREDEFINED_MODELS: List[AIModel] = [
    AIModel(
        id="openai-gpt-4",
        name="GPT-4",
        provider="OpenAI",
        base_url="https://api.openai.com/v1",
        api_type=APIType.OPENAI,
        model_name="gpt-4",
        max_tokens=8192,
        supports_vision=True,
        description="OpenAI GPT-4",
        is_custom=False,
    ),
    AIModel(
        id="openai-gpt-3.5-turbo",
        name="GPT-3.5 Turbo",
        provider="OpenAI",
        base_url="https://api.openai.com/v1",
        api_type=APIType.OPENAI,
        model_name="gpt-3.5-turbo",
        max_tokens=4096,
        description="OpenAI GPT-3.5 Turbo",
        is_custom=False,
    ),
    AIModel(
        id="anthropic-claude-3",
        name="Claude 3",
        provider="Anthropic",
        base_url="https://api.anthropic.com/v1/",
        api_type=APIType.ANTHROPIC,
        model_name="claude-3-opus-20240229",
        max_tokens=4096,
        supports_vision=True,
        description="Anthropic Claude 3 through the OpenAI-compatible endpoint",
        is_custom=False,
    ),
    AIModel(
        id="google-gemini-pro",
        name="Gemini Pro",
        provider="Google",
        base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
        api_type=APIType.GOOGLE,
        model_name="gemini-pro",
        max_tokens=2048,
        description="Google Gemini through the OpenAI-compatible endpoint",
        is_custom=False,
    ),
    AIModel(
        id="local-ollama",
        name="Ollama Local",
        provider="Local",
        base_url="http://localhost:11434/v1",
        api_type=APIType.OPENAI_COMPATIBLE,
        model_name="llama2",
        max_tokens=2048,
        description="Local Ollama server",
        is_custom=False,
    ),
]


class ImportResult(BaseModel):
    success: bool
    imported: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class ModelManager:
    """Manages predefined and custom AI models and builds backend clients for them."""

    def __init__(self, factory: BackendFactory, storage_path: Optional[Path] = None) -> None:
        self.factory = factory
        self.storage_path = storage_path
        self.predefined: Dict[str, AIModel] = {m.id: m for m in PREDEFINED_MODELS}
        self.custom: Dict[str, AIModel] = {}
        self._load_custom_models()

    def _load_custom_models(self) -> None:
        if self.storage_path is None or not self.storage_path.exists():
            return
        try:
            raw = json.loads(self.storage_path.read_text(encoding="utf-8"))
            for item in raw:
                model = AIModel.model_validate(item)
                self.custom[model.id] = model
        except (OSError, ValueError, PydanticValidationError) as e:
            logger.warning(f"Ignoring unreadable custom model file {self.storage_path}: {e}")

    async def _save_custom_models(self) -> None:
        path = self.storage_path
        if path is None:
            return
        payload = json.dumps([m.model_dump(mode="json") for m in self.custom.values()], indent=2)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(payload, encoding="utf-8")

        await asyncio.to_thread(_write)

    def get_all_models(self) -> List[AIModel]:
        return sorted([*self.predefined.values(), *self.custom.values()], key=lambda m: (m.provider, m.name))

    def get_models_by_provider(self, provider: str) -> List[AIModel]:
        return [m for m in self.get_all_models() if m.provider.lower() == provider.lower()]

    def get_model_by_id(self, model_id: str) -> Optional[AIModel]:
        # Custom models shadow predefined ones with the same id.
        return self.custom.get(model_id) or self.predefined.get(model_id)

    async def add_custom_model(self, model: AIModel) -> bool:
        self.custom[model.id] = model.model_copy(update={"is_custom": True})
        await self._save_custom_models()
        return True

    async def update_custom_model(self, model: AIModel) -> bool:
        if model.id not in self.custom:
            return False
        self.custom[model.id] = model
        await self._save_custom_models()
        return True

    async def delete_custom_model(self, model_id: str) -> bool:
        if self.custom.pop(model_id, None) is None:
            return False
        await self._save_custom_models()
        return True

    def create_client_for_model(self, model: AIModel, api_key: str) -> BackendClient:
        """
        Creates a backend client for a registry model.

        Every supported provider is reached through its OpenAI-compatible endpoint;
        custom models may add request headers through ``custom_config["headers"]``.
        """
        headers: Optional[Dict[str, str]] = None
        if model.api_type == APIType.CUSTOM and model.custom_config:
            headers = {str(k): str(v) for k, v in dict(model.custom_config.get("headers", {})).items()}
        return self.factory.create_cloud_client(
            api_key=api_key,
            base_url=model.base_url,
            model_name=model.model_name,
            max_tokens=model.max_tokens,
            temperature=model.temperature,
            default_headers=headers,
        )

    async def test_model_connection(self, model: AIModel, api_key: str) -> ConnectionTestResult:
        """
        Sends a short chat message to the model. Never raises.
        """
        started = time.monotonic()
        try:
            client = self.create_client_for_model(model, api_key)
            response = await client.chat_with_agent(CONNECTION_TEST_MESSAGE, [])
            return ConnectionTestResult(
                success=True,
                message="Connection succeeded",
                response_time=time.monotonic() - started,
                model_response=response.message.content,
            )
        except Exception as e:
            logger.warning(f"Connection test for {model.id} failed: {e}")
            return ConnectionTestResult(
                success=False,
                message=f"Connection failed: {e}",
                response_time=time.monotonic() - started,
            )

    def export_models(self) -> str:
        data: Dict[str, Any] = {
            "version": "1.0",
            "exported_at": time.time(),
            "custom_models": [m.model_dump(mode="json") for m in self.custom.values()],
        }
        return json.dumps(data, indent=2)

    async def import_models(self, json_data: str) -> ImportResult:
        """
        Imports custom models from ``export_models`` output; existing ids are skipped.
        """
        try:
            items = json.loads(json_data)["custom_models"]
        except (ValueError, KeyError, TypeError) as e:
            return ImportResult(success=False, error=f"Invalid export data: {e}")

        result = ImportResult(success=True)
        for item in items:
            try:
                model = AIModel.model_validate(item)
            except PydanticValidationError:
                result.skipped.append(str(item.get("id", "<invalid>")) if isinstance(item, dict) else "<invalid>")
                continue
            if model.id in self.custom:
                result.skipped.append(model.id)
                continue
            self.custom[model.id] = model
            result.imported.append(model.id)

        if result.imported:
            await self._save_custom_models()
        return result
