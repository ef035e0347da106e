# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

import asyncio
from typing import Dict, List

from script_agent.domain.chat import ChatMessage

DEFAULT_HISTORY_LIMIT = 20


class SessionStore:
    """
    Bounded chat history per session id.

    Appending is the only mutation and keeps the most recent ``limit`` messages.
    Callers serialize the read-modify-write of one session through ``lock_for``.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self.limit = limit
        self._sessions: Dict[str, List[ChatMessage]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    def history(self, session_id: str) -> List[ChatMessage]:
        return list(self._sessions.get(session_id, ()))

    def append(self, session_id: str, *messages: ChatMessage) -> List[ChatMessage]:
        updated = [*self._sessions.get(session_id, ()), *messages][-self.limit :]
        self._sessions[session_id] = updated
        return list(updated)

    def session_ids(self) -> List[str]:
        return list(self._sessions)

    def clear(self) -> None:
        # Locks survive so a chat still in flight keeps serializing its session.
        self._sessions.clear()
