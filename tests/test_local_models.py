from pathlib import Path
from unittest.mock import patch

import pytest

from script_agent.backends.local_models import DEFAULT_FILENAME, DEFAULT_REPO_ID, LocalModelStore


def test_ensure_model_downloaded(tmp_path: Path) -> None:
    store = LocalModelStore(cache_dir=tmp_path)
    with patch("script_agent.backends.local_models.hf_hub_download") as mock_download:
        mock_download.return_value = str(tmp_path / DEFAULT_FILENAME)
        path = store.ensure_model_downloaded()

    assert path == str(tmp_path / DEFAULT_FILENAME)
    mock_download.assert_called_once_with(
        repo_id=DEFAULT_REPO_ID, filename=DEFAULT_FILENAME, cache_dir=str(tmp_path), local_dir=str(tmp_path)
    )


def test_ensure_model_downloaded_failure(tmp_path: Path) -> None:
    store = LocalModelStore(cache_dir=tmp_path, repo_id="org/repo", filename="m.gguf")
    with patch("script_agent.backends.local_models.hf_hub_download", side_effect=OSError("offline")):
        with pytest.raises(RuntimeError, match="offline"):
            store.ensure_model_downloaded()


def test_default_cache_dir() -> None:
    assert LocalModelStore().cache_dir.parts[-2:] == (".cache", "script_agent")
