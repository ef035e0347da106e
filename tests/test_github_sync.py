import base64
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from script_agent.exceptions import AuthError, NetworkError, SyncError
from script_agent.sync.github import GitHubScriptSync
from script_agent.utils.shell import CommandResult, ShellError


def _ok(payload: object) -> CommandResult:
    return CommandResult(exit_code=0, stdout=json.dumps(payload), stderr="")


def _error(stderr: str) -> ShellError:
    return ShellError("Command failed with exit code 1", CommandResult(exit_code=1, stdout="", stderr=stderr))


@pytest.fixture
def shell() -> MagicMock:
    mock = MagicMock()
    mock.run = AsyncMock()
    return mock


def _sync(shell: MagicMock, **kwargs: object) -> GitHubScriptSync:
    options = {"repo": "octo/scripts", "token": "ghp_test", "shell_executor": shell}
    options.update(kwargs)
    return GitHubScriptSync(**options)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_push_new_file(shell: MagicMock) -> None:
    shell.run.side_effect = [_error("gh: Not Found (HTTP 404)"), _ok({"content": {"path": "scripts/a.js"}})]

    result = await _sync(shell).push_script("a.js", "toast('hi');")

    assert result.success is True
    assert result.commit_url == "https://github.com/octo/scripts/blob/main/scripts/a.js"

    lookup_args = shell.run.call_args_list[0].args[0]
    assert lookup_args == ["gh", "api", "repos/octo/scripts/contents/scripts/a.js?ref=main"]

    put_call = shell.run.call_args_list[1]
    assert put_call.args[0] == ["gh", "api", "-X", "PUT", "repos/octo/scripts/contents/scripts/a.js", "--input", "-"]
    assert put_call.kwargs["env"] == {"GH_TOKEN": "ghp_test"}
    body = json.loads(put_call.kwargs["input_text"])
    assert base64.b64decode(body["content"]).decode() == "toast('hi');"
    assert body["branch"] == "main"
    assert body["message"] == "Update script via Script Agent"
    assert "sha" not in body


@pytest.mark.asyncio
async def test_push_existing_file_sends_sha(shell: MagicMock) -> None:
    shell.run.side_effect = [_ok({"sha": "abc123", "name": "a.js"}), _ok({})]

    result = await _sync(shell, branch="dev").push_script("a.js", "x", "Update a.js")

    assert result.success is True
    body = json.loads(shell.run.call_args_list[1].kwargs["input_text"])
    assert body["sha"] == "abc123"
    assert body["branch"] == "dev"
    assert body["message"] == "Update a.js"


@pytest.mark.asyncio
async def test_push_failure_returns_result(shell: MagicMock) -> None:
    shell.run.side_effect = _error("dial tcp: could not resolve host api.github.com")

    result = await _sync(shell).push_script("a.js", "x")

    assert result.success is False
    assert result.message.startswith("Push failed")
    assert result.commit_url is None


@pytest.mark.asyncio
async def test_push_requires_repository(shell: MagicMock) -> None:
    with pytest.raises(SyncError, match="No GitHub repository configured"):
        await _sync(shell, repo=None).push_script("a.js", "x")


@pytest.mark.asyncio
async def test_pull_decodes_content(shell: MagicMock) -> None:
    encoded = base64.b64encode(b"log('pulled');").decode()
    shell.run.return_value = _ok({"name": "a.js", "content": encoded[:8] + "\n" + encoded[8:]})

    result = await _sync(shell, token=None).pull_script("scripts/a.js")

    assert result.success is True
    assert result.content == "log('pulled');"
    assert result.file_name == "a.js"
    assert shell.run.call_args.kwargs["env"] is None


@pytest.mark.asyncio
async def test_pull_missing_file(shell: MagicMock) -> None:
    shell.run.side_effect = _error("gh: Not Found (HTTP 404)")

    result = await _sync(shell).pull_script("scripts/missing.js")

    assert result.success is False
    assert result.content is None


@pytest.mark.asyncio
async def test_auto_sync_disabled(shell: MagicMock) -> None:
    assert await _sync(shell).auto_sync_if_enabled("a.js", "x", 60, 85) is None
    shell.run.assert_not_awaited()


@pytest.mark.asyncio
async def test_auto_sync_commit_message(shell: MagicMock) -> None:
    shell.run.side_effect = [_error("HTTP 404"), _ok({})]

    result = await _sync(shell, auto_sync=True).auto_sync_if_enabled("a.js", "x", 60, 85)

    assert result is not None and result.success is True
    body = json.loads(shell.run.call_args_list[1].kwargs["input_text"])
    assert body["message"].startswith("Auto-optimize script: a.js (60→85 points) [")


@pytest.mark.asyncio
async def test_connection_errors_are_mapped(shell: MagicMock) -> None:
    sync = _sync(shell)

    shell.run.side_effect = _error("HTTP 401: Bad credentials")
    with pytest.raises(AuthError):
        await sync.test_connection()

    shell.run.side_effect = _error("connection refused")
    with pytest.raises(NetworkError):
        await sync.test_connection()

    shell.run.side_effect = None
    shell.run.return_value = _ok({"login": "octocat"})
    assert await sync.test_connection() == "octocat"
