# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Zero-network script analysis used as the secondary source next to the AI backend.

Everything here is pure: results depend only on the arguments. When there is
nothing to add, the script is returned unchanged with empty suggestion lists.
"""

import re
from typing import Dict, List, Optional, Sequence, Tuple

from script_agent.domain.results import (
    ExecutionResult,
    OptimizationResult,
    Priority,
    Suggestion,
    SuggestionType,
    ValidationError,
)
from script_agent.domain.screen import ScreenContext
from script_agent.domain.storage import ScriptTemplate

LONG_SLEEP_MS = 5000
SLOW_EXECUTION_MS = 60_000

_COORDINATE_CALL = re.compile(r"\b(?:click|press|longClick)\s*\(\s*\d+\s*,\s*\d+")
_SLEEP_CALL = re.compile(r"\bsleep\s*\(\s*(\d+)\s*\)")
_ACTION_CALL = re.compile(r"\b(?:click|press|longClick|swipe|setText|input|launchApp|launch)\s*\(")
_SELECTOR_CALL = re.compile(r"\b(?:text|id|desc|className|textContains|descContains)\s*\(")
_ACCESSIBILITY_WAIT = re.compile(r"\bauto(?:\.waitFor)?\s*\(")
_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")

_PAIRS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {v: k for k, v in _PAIRS.items()}


class LocalOptimizer:
    """Heuristic optimizer and repair pass for automation scripts."""

    def optimize_script(self, script: str, context: Optional[ScreenContext] = None) -> OptimizationResult:
        suggestions, warnings = self._inspect(script)
        return OptimizationResult(
            original_script=script,
            optimized_script=script,
            score=0.0,
            suggestions=suggestions,
            warnings=warnings,
            is_successful=True,
        )

    def analyze_suggestions(self, script: str, execution_result: Optional[ExecutionResult] = None) -> List[Suggestion]:
        suggestions, _ = self._inspect(script)
        if execution_result is not None:
            if not execution_result.is_success:
                detail = execution_result.error or "the script reported a failure"
                suggestions.append(
                    Suggestion(
                        title="Fix the failing execution",
                        description=f"The last run failed: {detail}",
                        type=SuggestionType.BUG_FIX,
                        priority=Priority.URGENT,
                    )
                )
            if execution_result.execution_time > SLOW_EXECUTION_MS:
                suggestions.append(
                    Suggestion(
                        title="Shorten the execution time",
                        description=(
                            f"The last run took {execution_result.execution_time}ms; "
                            "replace fixed sleeps with element waits."
                        ),
                        type=SuggestionType.OPTIMIZATION,
                        priority=Priority.LOW,
                    )
                )
        return suggestions

    def adapt_template(self, template: ScriptTemplate, request: str, context: Optional[ScreenContext] = None) -> str:
        """
        Fills ``{{request}}``, ``{{app_package}}`` and ``{{activity}}`` placeholders.
        Unknown placeholders are left untouched.
        """
        values: Dict[str, str] = {
            "request": request,
            "app_package": (context.app_package if context else None) or "",
            "activity": (context.activity if context else None) or "",
        }

        def _substitute(match: "re.Match[str]") -> str:
            return values.get(match.group(1), match.group(0))

        return _PLACEHOLDER.sub(_substitute, template.script)

    def repair_script(self, script: str, errors: Sequence[ValidationError]) -> str:
        """
        Closes brackets left open by the script. Identity when there are no errors
        or nothing to close.
        """
        if not errors:
            return script
        unclosed = _unclosed_brackets(script)
        if not unclosed:
            return script
        closing = "".join(_PAIRS[opener] for opener in reversed(unclosed))
        separator = "" if script.endswith("\n") else "\n"
        return f"{script}{separator}{closing}\n"

    def _inspect(self, script: str) -> Tuple[List[Suggestion], List[str]]:
        suggestions: List[Suggestion] = []
        warnings: List[str] = []
        if not script.strip():
            return suggestions, warnings

        if _COORDINATE_CALL.search(script):
            warnings.append("Script relies on hard-coded screen coordinates.")
            suggestions.append(
                Suggestion(
                    title="Replace hard-coded coordinates with selectors",
                    description="Coordinates break on other resolutions; locate elements by id, text or desc.",
                    type=SuggestionType.OPTIMIZATION,
                    priority=Priority.HIGH,
                )
            )

        long_sleeps = [int(ms) for ms in _SLEEP_CALL.findall(script) if int(ms) >= LONG_SLEEP_MS]
        if long_sleeps:
            suggestions.append(
                Suggestion(
                    title="Replace long fixed sleeps with waits",
                    description=f"Found sleeps of up to {max(long_sleeps)}ms; wait for the target element instead.",
                    type=SuggestionType.OPTIMIZATION,
                    priority=Priority.MEDIUM,
                )
            )

        has_actions = bool(_ACTION_CALL.search(script))
        if has_actions and "try" not in script:
            suggestions.append(
                Suggestion(
                    title="Add error handling",
                    description="Wrap UI actions in try/catch so a missing element does not abort the script.",
                    type=SuggestionType.BEST_PRACTICE,
                    priority=Priority.MEDIUM,
                )
            )

        if (has_actions or _SELECTOR_CALL.search(script)) and not _ACCESSIBILITY_WAIT.search(script):
            suggestions.append(
                Suggestion(
                    title="Wait for the accessibility service",
                    description="Call auto.waitFor() before using selectors or gestures.",
                    type=SuggestionType.BEST_PRACTICE,
                    priority=Priority.LOW,
                )
            )

        return suggestions, warnings


def _unclosed_brackets(script: str) -> List[str]:
    """Openers without a matching closer, ignoring strings and comments."""
    stack: List[str] = []
    quote: Optional[str] = None
    i = 0
    length = len(script)
    while i < length:
        ch = script[i]
        nxt = script[i + 1] if i + 1 < length else ""
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
        elif ch == "/" and nxt == "/":
            newline = script.find("\n", i)
            i = length if newline == -1 else newline
            continue
        elif ch == "/" and nxt == "*":
            end = script.find("*/", i + 2)
            i = length if end == -1 else end + 2
            continue
        elif ch in _PAIRS:
            stack.append(ch)
        elif ch in _CLOSERS and stack and stack[-1] == _CLOSERS[ch]:
            stack.pop()
        i += 1
    return stack
