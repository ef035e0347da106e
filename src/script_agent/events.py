# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Protocol

from script_agent.utils.logger import logger


class EventType(Enum):
    LIFECYCLE = "lifecycle"
    OPERATION_START = "operation_start"
    CACHE_HIT = "cache_hit"
    BACKEND_CALL = "backend_call"
    OPERATION_RESULT = "operation_result"
    CONFIG_CHANGED = "config_changed"
    DEGRADED = "degraded"
    ERROR = "error"


@dataclass
class AgentEvent:
    type: EventType
    message: str
    timestamp: float = field(default_factory=time.time)
    payload: Dict[str, Any] = field(default_factory=dict)


class EventEmitter(Protocol):
    def emit(self, event: AgentEvent) -> None:
        """Emits an agent event."""
        ...  # pragma: no cover


class LoguruEmitter:
    """Adapter that logs events to Loguru."""

    def emit(self, event: AgentEvent) -> None:
        if event.type == EventType.ERROR:
            logger.error(f"[{event.type.value}] {event.message} | {event.payload}")
        elif event.type == EventType.DEGRADED:
            logger.warning(f"[{event.type.value}] {event.message} | {event.payload}")
        elif event.type in (EventType.CACHE_HIT, EventType.BACKEND_CALL):
            logger.debug(f"[{event.type.value}] {event.message} | {event.payload}")
        else:
            logger.info(f"[{event.type.value}] {event.message} | {event.payload}")


class EventCollector:
    """Collects events in memory."""

    def __init__(self) -> None:
        self.events: List[AgentEvent] = []

    def emit(self, event: AgentEvent) -> None:
        self.events.append(event)

    def get_events(self) -> List[AgentEvent]:
        return self.events

    def of_type(self, event_type: EventType) -> List[AgentEvent]:
        return [e for e in self.events if e.type == event_type]


class CompositeEmitter:
    """Broadcasts events to multiple emitters."""

    def __init__(self, emitters: List[EventEmitter]) -> None:
        self.emitters = emitters

    def emit(self, event: AgentEvent) -> None:
        for emitter in self.emitters:
            emitter.emit(event)
