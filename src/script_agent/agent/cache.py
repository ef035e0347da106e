# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

import asyncio
import hashlib
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from script_agent.domain.results import OptimizationResult
from script_agent.domain.screen import ScreenContext


def fingerprint(script: str, context: Optional[ScreenContext]) -> str:
    """
    Deterministic, order-sensitive cache key for a (script, screen context) pair.
    """
    digest = hashlib.sha256()
    digest.update(script.encode("utf-8"))
    digest.update(b"\x00")
    digest.update((context.identity() if context is not None else "none").encode("utf-8"))
    return digest.hexdigest()


class OptimizationCache:
    """
    Bounded LRU cache of optimization results with a time-to-live.

    ``put`` overwrites (last write wins); expired entries are dropped when read.
    """

    def __init__(
        self,
        max_entries: int = 100,
        ttl_seconds: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, OptimizationResult]]" = OrderedDict()
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[OptimizationResult]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, result = entry
            if self._clock() - stored_at > self.ttl_seconds:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return result

    async def put(self, key: str, result: OptimizationResult) -> None:
        async with self._lock:
            self._entries[key] = (self._clock(), result)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
