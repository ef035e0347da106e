# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Configuration management for the Script Agent.

``Settings`` holds process-level tunables loaded from the environment.
``AgentConfig`` is the user-editable model selection persisted by the config store.
"""

import re
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CLOUD_BASE_URL = "https://api.openai.com/v1"
DEFAULT_CLOUD_MODEL = "gpt-4"

_REPO_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


class Settings(BaseSettings):
    """
    Application configuration using environment variables.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCRIPT_AGENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    data_dir: Path = Field(
        default=Path.home() / ".script_agent", description="Directory for config, history and model files."
    )
    log_level: str = Field(default="INFO", description="Minimum level for the stderr log sink.")
    log_to_file: bool = Field(default=False, description="Also write debug logs under data_dir/logs.")

    # Tunable Settings
    cache_max_entries: int = Field(default=100, ge=1, description="Maximum number of cached optimization results.")
    cache_ttl_seconds: float = Field(default=24 * 60 * 60, gt=0, description="Lifetime of a cached result.")
    session_history_limit: int = Field(default=20, ge=2, description="Messages kept per chat session.")
    realtime_poll_interval: float = Field(default=1.0, gt=0, description="Seconds between screen polls.")

    # GitHub sync
    GITHUB_TOKEN: Optional[SecretStr] = Field(default=None, validation_alias="GITHUB_TOKEN")
    github_repo: Optional[str] = Field(default=None, description="Default repository as 'owner/name'.")
    github_branch: str = Field(default="main", description="Default branch for pushes and pulls.")
    github_auto_sync: bool = Field(default=False, description="Push successful optimizations automatically.")
    gh_executable: str = Field(default="gh", description="GitHub CLI executable.")

    @field_validator("github_repo")
    @classmethod
    def validate_repo(cls, v: Optional[str]) -> Optional[str]:
        """
        Validate that the repository, when set, has the 'owner/name' shape.
        """
        if v is None or v == "":
            return None
        if not _REPO_PATTERN.match(v):
            raise ValueError(f"github_repo must look like 'owner/name', got {v!r}.")
        return v

    @property
    def config_path(self) -> Path:
        return self.data_dir / "agent_config.json"

    @property
    def models_path(self) -> Path:
        return self.data_dir / "custom_models.json"

    @property
    def history_dir(self) -> Path:
        return self.data_dir / "history"

    @property
    def templates_path(self) -> Path:
        return self.data_dir / "templates.json"

    @property
    def log_path(self) -> Path:
        return self.data_dir / "logs" / "script_agent.log"

    @property
    def model_cache_dir(self) -> Path:
        return self.data_dir / "models"


@lru_cache
def get_settings() -> Settings:
    """
    Returns a cached instance of the Settings class.
    """
    return Settings()


class ModelType(str, Enum):
    """Legacy backend discriminator used when no registry model is selected."""

    CHATGPT = "chatgpt"
    LOCAL = "local"
    CUSTOM = "custom"


class AgentConfig(BaseModel):
    """
    Process-wide backend configuration.

    A registry selection (``selected_model_id`` + ``api_key``) takes precedence;
    the remaining fields drive the legacy ``model_type`` selection.
    """

    model_config = ConfigDict(frozen=True)

    selected_model_id: str = Field(default="", description="Id of the model in the model registry.")
    api_key: SecretStr = Field(default=SecretStr(""), description="API key for the selected model.")
    model_type: ModelType = Field(default=ModelType.CHATGPT, description="Legacy backend kind.")
    base_url: Optional[str] = Field(default=None, description="Legacy cloud endpoint.")
    model: Optional[str] = Field(default=None, description="Legacy cloud model name.")
    local_model_path: Optional[str] = Field(default=None, description="Path to a local GGUF model.")
    max_tokens: int = Field(default=2000, gt=0)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds.")
    max_retries: int = Field(default=3, ge=1, description="Attempts per backend request.")

    @property
    def has_registry_selection(self) -> bool:
        return bool(self.selected_model_id) and bool(self.api_key.get_secret_value())

    def to_storage(self) -> Dict[str, Any]:
        """Serializes the config for persistence, revealing the API key."""
        data = self.model_dump(mode="json")
        data["api_key"] = self.api_key.get_secret_value()
        return data
