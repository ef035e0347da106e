# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

import hashlib
import time
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class UIElement(BaseModel):
    """A node of the captured accessibility tree."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    text: Optional[str] = None
    class_name: Optional[str] = None
    package_name: Optional[str] = None
    bounds: Tuple[int, int, int, int] = Field(default=(0, 0, 0, 0), description="left, top, right, bottom")
    is_clickable: bool = False
    is_scrollable: bool = False
    is_checkable: bool = False
    is_checked: bool = False
    is_enabled: bool = True
    is_visible: bool = True
    description: Optional[str] = None


class ScreenContext(BaseModel):
    """
    Snapshot of the current UI surface.

    The orchestrator never interprets the fields; it uses ``identity()`` for
    cache addressing and hands the snapshot to backends as prompt context.
    """

    model_config = ConfigDict(frozen=True)

    app_package: Optional[str] = Field(default=None, description="Package of the foreground app.")
    activity: Optional[str] = Field(default=None, description="Foreground activity name.")
    elements: List[UIElement] = Field(default_factory=list)
    hierarchy: Optional[str] = Field(default=None, description="Serialized layout hierarchy.")
    screenshot: Optional[bytes] = Field(default=None, repr=False)
    timestamp: float = Field(default_factory=time.time)

    def identity(self) -> str:
        """Deterministic hash of the snapshot content, ignoring the capture time."""
        payload = self.model_dump_json(exclude={"timestamp", "screenshot"})
        digest = hashlib.sha256(payload.encode("utf-8"))
        if self.screenshot is not None:
            digest.update(self.screenshot)
        return digest.hexdigest()

    def describe(self, max_elements: int = 10) -> str:
        """Short text summary used in prompts."""
        clickable = sum(1 for e in self.elements if e.is_clickable)
        with_text = sum(1 for e in self.elements if e.text)
        lines = [
            f"App package: {self.app_package or 'unknown'}",
            f"Activity: {self.activity or 'unknown'}",
            f"Clickable elements: {clickable}",
            f"Text elements: {with_text}",
        ]
        for element in self.elements[:max_elements]:
            marker = " (clickable)" if element.is_clickable else ""
            lines.append(f"- {element.class_name} '{element.text or ''}' at {element.bounds}{marker}")
        return "\n".join(lines)
