# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

from pathlib import Path
from typing import Optional

from huggingface_hub import hf_hub_download

from script_agent.utils.logger import logger

DEFAULT_REPO_ID = "TheBloke/deepseek-coder-1.3b-instruct-GGUF"
DEFAULT_FILENAME = "deepseek-coder-1.3b-instruct.Q4_K_M.gguf"


class LocalModelStore:
    """Manages local GGUF model files."""

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        repo_id: str = DEFAULT_REPO_ID,
        filename: str = DEFAULT_FILENAME,
    ) -> None:
        self.cache_dir = cache_dir or Path.home() / ".cache" / "script_agent"
        self.repo_id = repo_id
        self.filename = filename

    def ensure_model_downloaded(self) -> str:
        """
        Ensures the local GGUF model is present in the cache directory.
        Returns the path to the model file.
        """
        logger.info(f"Ensuring model {self.repo_id}/{self.filename} is present in {self.cache_dir}")
        try:
            model_path = hf_hub_download(
                repo_id=self.repo_id,
                filename=self.filename,
                cache_dir=str(self.cache_dir),
                local_dir=str(self.cache_dir),
            )
            return str(model_path)
        except Exception as e:
            raise RuntimeError(f"Failed to download model: {e}") from e
