# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

from typing import Optional

from pydantic import BaseModel, Field


class PushResult(BaseModel):
    """Outcome of pushing a script to the sync repository."""

    success: bool = Field(..., description="Whether the file was created or updated.")
    message: str = Field(..., description="Human readable outcome.")
    commit_url: Optional[str] = Field(None, description="Browser URL of the pushed file.")


class PullResult(BaseModel):
    """Outcome of pulling a script from the sync repository."""

    success: bool
    content: Optional[str] = None
    file_name: Optional[str] = None
    message: Optional[str] = None
