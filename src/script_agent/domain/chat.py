# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

import time
import uuid
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from script_agent.domain.results import Action
from script_agent.domain.screen import ScreenContext


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    content: str
    role: MessageRole
    timestamp: float = Field(default_factory=time.time)
    context: Optional[ScreenContext] = None


class ChatResponse(BaseModel):
    message: ChatMessage
    suggested_actions: List[Action] = Field(default_factory=list)
    generated_script: Optional[str] = None
    needs_more_info: bool = False
    clarifying_questions: List[str] = Field(default_factory=list)

    @classmethod
    def apology(cls, reason: str) -> "ChatResponse":
        return cls(
            message=ChatMessage(
                content=f"Sorry, I ran into a problem: {reason}",
                role=MessageRole.ASSISTANT,
            )
        )
