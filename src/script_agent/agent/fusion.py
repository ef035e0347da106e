# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Merging of backend and local optimization results.
"""

from typing import Iterable, List

from script_agent.domain.results import OptimizationResult, Suggestion


def merge_suggestions(*suggestion_lists: Iterable[Suggestion]) -> List[Suggestion]:
    """Concatenates the lists, keeping the first suggestion seen for each title."""
    seen = set()
    merged: List[Suggestion] = []
    for suggestions in suggestion_lists:
        for suggestion in suggestions:
            if suggestion.title in seen:
                continue
            seen.add(suggestion.title)
            merged.append(suggestion)
    return merged


def fuse_optimization_results(backend: OptimizationResult, local: OptimizationResult) -> OptimizationResult:
    """
    Combines the backend result with the local one.

    The optimized script comes from the higher-scoring side, with ties going to
    the backend. The fused result is only successful when both sides are.
    """
    best = backend if backend.score >= local.score else local
    return OptimizationResult(
        original_script=backend.original_script,
        optimized_script=best.optimized_script,
        improvements=[*backend.improvements, *local.improvements],
        score=max(backend.score, local.score),
        suggestions=merge_suggestions(backend.suggestions, local.suggestions),
        warnings=[*backend.warnings, *local.warnings],
        is_successful=backend.is_successful and local.is_successful,
    )
