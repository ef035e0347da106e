# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Jinja2 prompt templates for the LLM-backed client.

Templates live in the package's ``templates`` directory. Rendering is strict:
a variable the caller forgot to pass is an error rather than an empty string.
"""

from functools import cached_property
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound, UndefinedError

from script_agent.utils.logger import logger

SYSTEM_TEMPLATE = "system.j2"


class PromptManager:
    """
    Loads and renders prompt templates.
    """

    def __init__(self, template_dir: Optional[Path] = None) -> None:
        if template_dir is None:
            # src/script_agent/backends/prompts.py -> src/script_agent/templates
            template_dir = Path(__file__).parent.parent / "templates"

        self.template_dir = template_dir

        if not self.template_dir.exists():
            logger.warning(f"Template directory does not exist: {self.template_dir}")

        # Prompts carry scripts verbatim, so nothing is escaped.
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=False,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )

    def render(self, template_name: str, **kwargs: Any) -> str:
        """
        Renders a template with the provided context.

        Raises:
            FileNotFoundError: If the template does not exist.
            ValueError: If the template references a variable missing from ``kwargs``.
        """
        try:
            template = self.env.get_template(template_name)
            return str(template.render(**kwargs)).strip()
        except TemplateNotFound:
            logger.error(f"Template not found: {template_name} in {self.template_dir}")
            raise FileNotFoundError(f"Template not found: {template_name}") from None
        except UndefinedError as e:
            logger.error(f"Missing variable while rendering {template_name}: {e}")
            raise ValueError(f"Template {template_name} needs a variable that was not provided: {e}") from e

    @cached_property
    def system_prompt(self) -> str:
        return self.render(SYSTEM_TEMPLATE)

    def messages(self, template_name: str, **kwargs: Any) -> List[Dict[str, str]]:
        """Returns the system prompt and the rendered template as a chat message list."""
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.render(template_name, **kwargs)},
        ]
