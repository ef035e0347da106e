import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from script_agent.utils.shell import AsyncShellExecutor, ShellError


def _process(returncode: int, stdout: bytes = b"", stderr: bytes = b"") -> MagicMock:
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.returncode = returncode
    process.wait = AsyncMock(return_value=None)
    return process


@pytest.mark.asyncio
async def test_run_success() -> None:
    """Test successful execution with captured output."""
    executor = AsyncShellExecutor()
    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=_process(0, b"hello\n"))):
        result = await executor.run(["echo", "hello"])

    assert result.exit_code == 0
    assert result.stdout == "hello\n"


@pytest.mark.asyncio
async def test_run_passes_input_and_env() -> None:
    """Test stdin and extra environment variables reach the process."""
    executor = AsyncShellExecutor()
    process = _process(0)
    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)) as mock_exec:
        await executor.run(["gh", "api", "user"], input_text="{}", env={"GH_TOKEN": "t"})

    process.communicate.assert_awaited_once_with(b"{}")
    kwargs = mock_exec.call_args.kwargs
    assert kwargs["env"]["GH_TOKEN"] == "t"
    assert kwargs["stdin"] == asyncio.subprocess.PIPE


@pytest.mark.asyncio
async def test_run_check_raises_on_failure() -> None:
    """Test non-zero exit with check=True."""
    executor = AsyncShellExecutor()
    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=_process(1, stderr=b"HTTP 404"))):
        with pytest.raises(ShellError, match="Command failed with exit code 1: HTTP 404") as exc_info:
            await executor.run(["gh", "api", "x"], check=True)

    assert exc_info.value.result.stderr == "HTTP 404"


@pytest.mark.asyncio
async def test_run_failure_without_check() -> None:
    executor = AsyncShellExecutor()
    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=_process(2, stderr=b"bad"))):
        result = await executor.run(["false"])

    assert result.exit_code == 2


@pytest.mark.asyncio
async def test_run_timeout() -> None:
    """Test timeout kills the process."""
    executor = AsyncShellExecutor()
    process = _process(0)
    process.communicate = AsyncMock(side_effect=asyncio.TimeoutError)
    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
        with pytest.raises(ShellError, match="Command timed out"):
            await executor.run(["sleep", "10"], timeout=1, check=True)

    process.kill.assert_called_once()


@pytest.mark.asyncio
async def test_run_start_failure() -> None:
    """Test failure to start the process (e.g. command not found)."""
    executor = AsyncShellExecutor()
    with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("gh"))):
        result = await executor.run(["gh"])
        assert result.exit_code == -1
        with pytest.raises(ShellError, match="Failed to execute command"):
            await executor.run(["gh"], check=True)
