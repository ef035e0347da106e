# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from script_agent.domain.screen import UIElement
from script_agent.exceptions import ValidationFailure


class ImprovementType(str, Enum):
    COORDINATE_OPTIMIZATION = "coordinate_optimization"
    SELECTOR_IMPROVEMENT = "selector_improvement"
    PERFORMANCE_ENHANCEMENT = "performance_enhancement"
    ERROR_HANDLING = "error_handling"
    CODE_SIMPLIFICATION = "code_simplification"
    COMPATIBILITY_FIX = "compatibility_fix"


class Impact(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Improvement(BaseModel):
    type: ImprovementType
    description: str
    impact: Impact = Impact.MEDIUM
    before: Optional[str] = None
    after: Optional[str] = None


class SuggestionType(str, Enum):
    OPTIMIZATION = "optimization"
    BUG_FIX = "bug_fix"
    FEATURE_ENHANCEMENT = "feature_enhancement"
    BEST_PRACTICE = "best_practice"
    SECURITY = "security"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.LOW: 0, Priority.MEDIUM: 1, Priority.HIGH: 2, Priority.URGENT: 3}


class Suggestion(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    description: str
    type: SuggestionType = SuggestionType.OPTIMIZATION
    priority: Priority = Priority.MEDIUM
    action_script: Optional[str] = None
    learn_more_url: Optional[str] = None


class OptimizationResult(BaseModel):
    """
    Outcome of a script optimization.

    ``warnings`` has set semantics: entries are unique and keep insertion order.
    """

    original_script: str
    optimized_script: str
    improvements: List[Improvement] = Field(default_factory=list)
    score: float = Field(default=0.0, ge=0.0, le=100.0)
    suggestions: List[Suggestion] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    is_successful: bool = True

    @field_validator("warnings")
    @classmethod
    def dedupe_warnings(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(v))

    @classmethod
    def degraded(cls, script: str, message: str) -> "OptimizationResult":
        return cls(original_script=script, optimized_script=script, is_successful=False, warnings=[message])


class ScriptGenerationResult(BaseModel):
    script: str
    explanation: str
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    required_permissions: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)
    is_executable: bool = True

    @classmethod
    def degraded(cls, message: str) -> "ScriptGenerationResult":
        return cls(
            script=f"// Script generation failed: {message}",
            explanation="Unable to generate a script. Check the network connection and the model configuration.",
            confidence=0.0,
            is_executable=False,
        )

    def ensure_executable(self) -> "ScriptGenerationResult":
        """Returns self, or raises ValidationFailure when the script did not pass validation."""
        if not self.is_executable:
            raise ValidationFailure(f"Generated script is not executable: {self.explanation}")
        return self


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ValidationError(BaseModel):
    """A single problem reported by script validation (not pydantic's ValidationError)."""

    line: Optional[int] = None
    column: Optional[int] = None
    message: str
    severity: Severity = Severity.ERROR
    code: Optional[str] = None


class ValidationResult(BaseModel):
    is_valid: bool
    errors: List[ValidationError] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ExecutionResult(BaseModel):
    is_success: bool
    execution_time: int = Field(default=0, description="Execution time in milliseconds.")
    output: Optional[str] = None
    error: Optional[str] = None
    logs: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ActionType(str, Enum):
    CLICK = "click"
    LONG_CLICK = "long_click"
    SWIPE = "swipe"
    TYPE_TEXT = "type_text"
    SCROLL = "scroll"
    WAIT = "wait"
    CAPTURE_SCREEN = "capture_screen"
    NAVIGATE_BACK = "navigate_back"


class Action(BaseModel):
    type: ActionType
    description: str
    target: Optional[UIElement] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    script: Optional[str] = None


class ActionSuggestion(BaseModel):
    actions: List[Action] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reasoning: str = ""
    alternative_actions: List[Action] = Field(default_factory=list)
