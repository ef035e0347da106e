# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Single failure boundary for the interactive agent operations.
"""

from typing import Awaitable, Callable, Optional, TypeVar

from script_agent.events import AgentEvent, EventEmitter, EventType, LoguruEmitter
from script_agent.utils.logger import logger

T = TypeVar("T")


class RecoveryBoundary:
    """
    Awaits an operation and turns any failure into the operation's degraded value.

    ``asyncio.CancelledError`` is a ``BaseException`` and is never caught here.
    """

    def __init__(self, event_emitter: Optional[EventEmitter] = None) -> None:
        self.event_emitter = event_emitter or LoguruEmitter()

    async def run(self, operation: str, work: Awaitable[T], degrade: Callable[[Exception], T]) -> T:
        try:
            return await work
        except Exception as e:
            logger.exception(f"{operation} failed: {e}")
            self.event_emitter.emit(
                AgentEvent(
                    type=EventType.ERROR,
                    message=f"{operation} failed",
                    payload={"operation": operation, "error": str(e), "error_type": type(e).__name__},
                )
            )
            fallback = degrade(e)
            self.event_emitter.emit(
                AgentEvent(type=EventType.DEGRADED, message=f"{operation} returned a degraded result")
            )
            return fallback
