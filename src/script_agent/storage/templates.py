# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
File-backed script templates with keyword matching.
"""

import asyncio
import re
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from script_agent.domain.storage import ScriptTemplate
from script_agent.utils.logger import logger

MIN_KEYWORD_OVERLAP = 2

_WORD = re.compile(r"[a-z0-9]+")
_STOP_WORDS = {"the", "and", "for", "with", "then", "that", "this", "from", "into", "script", "please"}
_TEMPLATE_LIST = TypeAdapter(List[ScriptTemplate])


def _keywords(text: str) -> Set[str]:
    return {w for w in _WORD.findall(text.lower()) if len(w) > 2 and w not in _STOP_WORDS}


class FileTemplateManager:
    """
    Keeps templates in a JSON file.

    A template matches a request when their keyword sets share at least
    ``min_overlap`` words; name, description, category and tags all count.
    """

    def __init__(self, path: Path, min_overlap: int = MIN_KEYWORD_OVERLAP) -> None:
        self.path = path
        self.min_overlap = min_overlap
        self.templates: Dict[str, ScriptTemplate] = {}

    async def initialize(self) -> None:
        templates = await asyncio.to_thread(self._read)
        self.templates = {t.id: t for t in templates}
        logger.debug(f"Loaded {len(self.templates)} script templates from {self.path}")

    async def find_similar_templates(self, request: str) -> List[ScriptTemplate]:
        wanted = _keywords(request)
        if not wanted:
            return []
        scored: List[Tuple[int, ScriptTemplate]] = []
        for template in self.templates.values():
            overlap = len(wanted & self._template_keywords(template))
            if overlap >= self.min_overlap:
                scored.append((overlap, template))
        scored.sort(key=lambda item: (item[0], item[1].usage_count, item[1].rating), reverse=True)
        return [template for _, template in scored]

    async def get_templates(self, category: Optional[str] = None, query: Optional[str] = None) -> List[ScriptTemplate]:
        templates = list(self.templates.values())
        if category:
            templates = [t for t in templates if t.category.lower() == category.lower()]
        if query:
            needle = query.lower()
            templates = [
                t
                for t in templates
                if needle in t.name.lower() or needle in t.description.lower() or needle in " ".join(t.tags).lower()
            ]
        return sorted(templates, key=lambda t: t.name.lower())

    async def save_template(self, template: ScriptTemplate) -> bool:
        self.templates[template.id] = template
        payload = _TEMPLATE_LIST.dump_json(list(self.templates.values()), indent=2).decode("utf-8")
        try:
            await asyncio.to_thread(self._write, payload)
        except OSError as e:
            logger.error(f"Failed to save template {template.id}: {e}")
            return False
        return True

    @staticmethod
    def _template_keywords(template: ScriptTemplate) -> Set[str]:
        return _keywords(" ".join([template.name, template.description, template.category, *template.tags]))

    def _read(self) -> List[ScriptTemplate]:
        if not self.path.exists():
            return []
        try:
            return _TEMPLATE_LIST.validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, PydanticValidationError) as e:
            logger.warning(f"Ignoring unreadable template file {self.path}: {e}")
            return []

    def _write(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(payload, encoding="utf-8")
