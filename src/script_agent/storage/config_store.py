# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
JSON persistence of the user-editable ``AgentConfig``.
"""

import asyncio
import json
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from script_agent.config import AgentConfig
from script_agent.utils.logger import logger


class FileConfigStore:
    """Stores the config as a JSON file; missing or unreadable files yield defaults."""

    def __init__(self, path: Path) -> None:
        self.path = path

    async def load(self) -> AgentConfig:
        return await asyncio.to_thread(self._read)

    async def save(self, config: AgentConfig) -> None:
        payload = json.dumps(config.to_storage(), indent=2)
        await asyncio.to_thread(self._write, payload)
        logger.debug(f"Saved agent config to {self.path}")

    def _read(self) -> AgentConfig:
        if not self.path.exists():
            return AgentConfig()
        try:
            return AgentConfig.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, PydanticValidationError) as e:
            logger.warning(f"Ignoring unreadable config file {self.path}, using defaults: {e}")
            return AgentConfig()

    def _write(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(payload, encoding="utf-8")
