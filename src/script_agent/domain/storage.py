# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

import time
from typing import List, Optional

from pydantic import BaseModel, Field

from script_agent.domain.chat import ChatMessage
from script_agent.domain.results import OptimizationResult, ScriptGenerationResult
from script_agent.domain.screen import ScreenContext


class ScriptTemplate(BaseModel):
    """A reusable script with ``{{request}}``-style placeholders."""

    id: str
    name: str
    description: str = ""
    category: str = "general"
    script: str
    author: Optional[str] = None
    version: str = "1.0"
    tags: List[str] = Field(default_factory=list)
    required_permissions: List[str] = Field(default_factory=list)
    usage_count: int = 0
    rating: float = 0.0
    updated_at: float = Field(default_factory=time.time)


class ScriptExecutionRecord(BaseModel):
    id: str
    script: str
    execution_time: int = Field(..., description="Execution time in milliseconds.")
    is_success: bool
    error: Optional[str] = None
    timestamp: float = Field(default_factory=time.time)
    context: Optional[ScreenContext] = None


class OptimizationRecord(BaseModel):
    script: str
    result: OptimizationResult
    timestamp: float = Field(default_factory=time.time)


class GenerationRecord(BaseModel):
    request: str
    result: ScriptGenerationResult
    timestamp: float = Field(default_factory=time.time)


class ChatRecord(BaseModel):
    session_id: str
    user_message: ChatMessage
    assistant_message: ChatMessage
    timestamp: float = Field(default_factory=time.time)
