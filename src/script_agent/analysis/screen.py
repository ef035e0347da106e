# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Screen analyzers producing ``ScreenContext`` snapshots for the agent.

Capturing the accessibility tree is platform specific, so analyzers are built
around a provider callable that returns the current snapshot.
"""

import asyncio
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from pydantic import BaseModel

from script_agent.domain.screen import ScreenContext, UIElement
from script_agent.utils.logger import logger

ContextProvider = Callable[[], Optional[ScreenContext]]
ContextCallback = Callable[[ScreenContext], None]

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_ERROR_BACKOFF = 5.0


class ChangeType(str, Enum):
    ELEMENT_ADDED = "element_added"
    ELEMENT_REMOVED = "element_removed"
    TEXT_CHANGED = "text_changed"
    POSITION_CHANGED = "position_changed"
    VISIBILITY_CHANGED = "visibility_changed"
    ELEMENT_MODIFIED = "element_modified"


class ScreenChange(BaseModel):
    type: ChangeType
    element: UIElement
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None


def _element_key(element: UIElement) -> str:
    return element.id or f"{element.bounds}_{element.text}"


def detect_screen_changes(current: ScreenContext, previous: Optional[ScreenContext]) -> List[ScreenChange]:
    """Element level differences between two snapshots. Empty when there is no previous one."""
    if previous is None:
        return []

    now: Dict[str, UIElement] = {_element_key(e): e for e in current.elements}
    before: Dict[str, UIElement] = {_element_key(e): e for e in previous.elements}
    changes: List[ScreenChange] = []

    for key, element in now.items():
        if key not in before:
            changes.append(ScreenChange(type=ChangeType.ELEMENT_ADDED, element=element))
    for key, element in before.items():
        if key not in now:
            changes.append(ScreenChange(type=ChangeType.ELEMENT_REMOVED, element=element))

    for key, element in now.items():
        old = before.get(key)
        if old is None or old == element:
            continue
        if old.text != element.text:
            changes.append(
                ScreenChange(type=ChangeType.TEXT_CHANGED, element=element, old_value=old.text, new_value=element.text)
            )
        elif old.bounds != element.bounds:
            changes.append(
                ScreenChange(
                    type=ChangeType.POSITION_CHANGED, element=element, old_value=old.bounds, new_value=element.bounds
                )
            )
        elif old.is_visible != element.is_visible:
            changes.append(
                ScreenChange(
                    type=ChangeType.VISIBILITY_CHANGED,
                    element=element,
                    old_value=old.is_visible,
                    new_value=element.is_visible,
                )
            )
        else:
            changes.append(ScreenChange(type=ChangeType.ELEMENT_MODIFIED, element=element))
    return changes


class TaskHandle:
    """Monitoring handle backed by an asyncio task."""

    def __init__(self, task: "asyncio.Task[None]") -> None:
        self.task = task

    def cancel(self) -> None:
        self.task.cancel()


class NullHandle:
    def cancel(self) -> None:
        pass


class StaticScreenAnalyzer:
    """Always reports the same snapshot. Realtime monitoring never fires."""

    def __init__(self, context: Optional[ScreenContext] = None) -> None:
        self.context = context

    def get_screen_context(self) -> Optional[ScreenContext]:
        return self.context

    def start_realtime_monitoring(self, on_context: ContextCallback) -> NullHandle:
        return NullHandle()

    def cleanup(self) -> None:
        pass


class PollingScreenAnalyzer:
    """
    Polls ``provider`` and reports every available snapshot.

    Each subscription runs as its own task on the running loop; provider or
    callback errors back off for ``error_backoff`` seconds before the next poll.
    """

    def __init__(
        self,
        provider: ContextProvider,
        interval: float = DEFAULT_POLL_INTERVAL,
        error_backoff: float = DEFAULT_ERROR_BACKOFF,
    ) -> None:
        self.provider = provider
        self.interval = interval
        self.error_backoff = error_backoff
        self._tasks: Set["asyncio.Task[None]"] = set()

    def get_screen_context(self) -> Optional[ScreenContext]:
        return self.provider()

    def start_realtime_monitoring(self, on_context: ContextCallback) -> TaskHandle:
        task = asyncio.get_running_loop().create_task(self._poll(on_context))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return TaskHandle(task)

    def cleanup(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    async def _poll(self, on_context: ContextCallback) -> None:
        previous: Optional[ScreenContext] = None
        while True:
            try:
                context = self.provider()
                if context is not None:
                    changes = detect_screen_changes(context, previous)
                    if changes:
                        logger.debug(f"Screen changed: {len(changes)} element change(s)")
                    on_context(context)
                    previous = context
                await asyncio.sleep(self.interval)
            except Exception as e:
                logger.warning(f"Screen polling failed: {e}")
                await asyncio.sleep(self.error_backoff)
