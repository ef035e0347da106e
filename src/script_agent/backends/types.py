# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

from typing import Dict, List

from pydantic import BaseModel


class LLMRequest(BaseModel):
    messages: List[Dict[str, str]]
    max_tokens: int
    temperature: float = 0.3


class LLMResponse(BaseModel):
    content: str
