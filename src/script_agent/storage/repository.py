# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Append-only JSON-lines history of optimizations, generations, chats and executions.
"""

import asyncio
from pathlib import Path
from typing import List, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from script_agent.domain.chat import ChatMessage
from script_agent.domain.results import OptimizationResult, ScriptGenerationResult
from script_agent.domain.storage import ChatRecord, GenerationRecord, OptimizationRecord, ScriptExecutionRecord
from script_agent.utils.logger import logger

T = TypeVar("T", bound=BaseModel)

OPTIMIZATIONS_FILE = "optimizations.jsonl"
GENERATIONS_FILE = "generations.jsonl"
CHATS_FILE = "chats.jsonl"
EXECUTIONS_FILE = "executions.jsonl"


class FileScriptRepository:
    """Script history kept as one JSON document per line under ``history_dir``."""

    def __init__(self, history_dir: Path) -> None:
        self.history_dir = history_dir
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        await asyncio.to_thread(self.history_dir.mkdir, parents=True, exist_ok=True)

    async def save_optimization_record(self, script: str, result: OptimizationResult) -> None:
        await self._append(OPTIMIZATIONS_FILE, OptimizationRecord(script=script, result=result))

    async def save_generation_record(self, request: str, result: ScriptGenerationResult) -> None:
        await self._append(GENERATIONS_FILE, GenerationRecord(request=request, result=result))

    async def save_chat_history(
        self, session_id: str, user_message: ChatMessage, assistant_message: ChatMessage
    ) -> None:
        record = ChatRecord(session_id=session_id, user_message=user_message, assistant_message=assistant_message)
        await self._append(CHATS_FILE, record)

    async def save_execution_record(self, record: ScriptExecutionRecord) -> None:
        await self._append(EXECUTIONS_FILE, record)

    async def get_execution_history(self, limit: int) -> List[ScriptExecutionRecord]:
        """Most recent first."""
        records = await self._read_all(EXECUTIONS_FILE, ScriptExecutionRecord)
        records.reverse()
        return records[: max(limit, 0)]

    async def _append(self, file_name: str, record: BaseModel) -> None:
        line = record.model_dump_json() + "\n"
        path = self.history_dir / file_name

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as f:
                f.write(line)

        async with self._lock:
            await asyncio.to_thread(_write)

    async def _read_all(self, file_name: str, model: Type[T]) -> List[T]:
        path = self.history_dir / file_name

        def _read() -> List[str]:
            if not path.exists():
                return []
            return path.read_text(encoding="utf-8").splitlines()

        async with self._lock:
            lines = await asyncio.to_thread(_read)

        records: List[T] = []
        for number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                records.append(model.model_validate_json(line))
            except PydanticValidationError as e:
                logger.warning(f"Skipping corrupt record {path}:{number}: {e}")
        return records
