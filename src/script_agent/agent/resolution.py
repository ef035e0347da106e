# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Backend resolution.

``select_backend`` decides which backend a config asks for without side effects;
``build_client`` turns that decision into a client. ``resolve_backend`` runs
both and reports construction failures as "no backend".
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from script_agent.backends.base import BackendClient
from script_agent.backends.factory import BackendFactory
from script_agent.config import DEFAULT_CLOUD_BASE_URL, DEFAULT_CLOUD_MODEL, AgentConfig, ModelType
from script_agent.domain.models import AIModel
from script_agent.interfaces.collaborators import ModelRegistry
from script_agent.utils.logger import logger


class BackendKind(str, Enum):
    REGISTRY = "registry"
    CLOUD = "cloud"
    LOCAL = "local"
    CUSTOM = "custom"
    NONE = "none"


@dataclass(frozen=True)
class BackendSelection:
    kind: BackendKind
    reason: str = ""
    model: Optional[AIModel] = None
    api_key: str = ""
    base_url: Optional[str] = None
    model_name: Optional[str] = None
    model_path: Optional[str] = None


def select_backend(config: AgentConfig, registry: Optional[ModelRegistry]) -> BackendSelection:
    """
    A registry selection (model id and API key both set) takes precedence over
    the legacy ``model_type``. An unknown registry model selects nothing.
    """
    api_key = config.api_key.get_secret_value()

    if config.has_registry_selection:
        model = registry.get_model_by_id(config.selected_model_id) if registry is not None else None
        if model is None:
            return BackendSelection(
                kind=BackendKind.NONE, reason=f"Model '{config.selected_model_id}' is not registered"
            )
        return BackendSelection(
            kind=BackendKind.REGISTRY, reason=f"Registry model {model.id}", model=model, api_key=api_key
        )

    if config.model_type == ModelType.CHATGPT:
        return BackendSelection(
            kind=BackendKind.CLOUD,
            reason="Legacy cloud backend",
            api_key=api_key,
            base_url=config.base_url or DEFAULT_CLOUD_BASE_URL,
            model_name=config.model or DEFAULT_CLOUD_MODEL,
        )
    if config.model_type == ModelType.LOCAL:
        return BackendSelection(
            kind=BackendKind.LOCAL, reason="Legacy local backend", model_path=config.local_model_path
        )
    return BackendSelection(kind=BackendKind.CUSTOM, reason="Custom backends are not supported")


def build_client(
    selection: BackendSelection,
    registry: Optional[ModelRegistry],
    factory: BackendFactory,
    config: Optional[AgentConfig] = None,
) -> Optional[BackendClient]:
    """
    Builds the client for ``selection``. Returns None for CUSTOM and NONE.
    Construction errors propagate.
    """
    config = config or AgentConfig()
    if selection.kind == BackendKind.REGISTRY:
        if registry is None or selection.model is None:
            return None
        return registry.create_client_for_model(selection.model, selection.api_key)
    if selection.kind == BackendKind.CLOUD:
        return factory.create_cloud_client(
            api_key=selection.api_key,
            base_url=selection.base_url or DEFAULT_CLOUD_BASE_URL,
            model_name=selection.model_name or DEFAULT_CLOUD_MODEL,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            timeout=config.timeout,
            max_attempts=config.max_retries,
        )
    if selection.kind == BackendKind.LOCAL:
        return factory.create_local_client(
            model_path=selection.model_path,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )
    return None


def resolve_backend(
    config: AgentConfig, registry: Optional[ModelRegistry], factory: BackendFactory
) -> Optional[BackendClient]:
    selection = select_backend(config, registry)
    if selection.kind in (BackendKind.CUSTOM, BackendKind.NONE):
        logger.warning(f"No backend client: {selection.reason}")
        return None
    try:
        client = build_client(selection, registry, factory, config)
    except Exception as e:
        logger.warning(f"Failed to build {selection.kind.value} backend client: {e}")
        return None
    logger.info(f"Resolved backend: {selection.reason}")
    return client
