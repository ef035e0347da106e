# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

import time
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class APIType(str, Enum):
    OPENAI = "openai"
    OPENAI_COMPATIBLE = "openai_compatible"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    CUSTOM = "custom"


class AIModel(BaseModel):
    """An entry of the model registry."""

    id: str = Field(..., description="Registry key, e.g. 'openai-gpt-4'.")
    name: str
    provider: str
    base_url: str = Field(..., description="OpenAI-compatible endpoint of the provider.")
    api_type: APIType
    model_name: str = Field(..., description="Model identifier sent to the provider.")
    max_tokens: int = 2048
    temperature: float = 0.3
    supports_vision: bool = False
    description: str = ""
    custom_config: Optional[Dict[str, Any]] = None
    is_custom: bool = True
    created_at: float = Field(default_factory=time.time)


class ConnectionTestResult(BaseModel):
    success: bool
    message: str
    response_time: float = Field(default=0.0, description="Round trip in seconds.")
    model_response: Optional[str] = None
