# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

import asyncio
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

from script_agent.utils.logger import logger


@dataclass
class CommandResult:
    """Result of a shell command execution."""

    exit_code: int
    stdout: str
    stderr: str


class ShellError(RuntimeError):
    """Raised when a shell command fails."""

    def __init__(self, message: str, result: CommandResult):
        super().__init__(message)
        self.result = result


class AsyncShellExecutor:
    """Executes shell commands asynchronously."""

    async def run(
        self,
        command: List[str],
        timeout: float = 60,
        check: bool = False,
        input_text: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        """
        Executes a command without a shell.

        Args:
            command: The command to execute as a list of arguments.
            timeout: Timeout in seconds.
            check: If True, raise ShellError if exit code is non-zero.
            input_text: Text written to the process stdin.
            env: Variables added to the current environment for this process.

        Returns:
            CommandResult containing exit code, stdout, and stderr.
        """
        logger.debug(f"Executing async: {' '.join(command)}")
        process_env = {**os.environ, **env} if env else None

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE if input_text is not None else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=process_env,
            )

            try:
                stdout_bytes, stderr_bytes = await asyncio.wait_for(
                    process.communicate(input_text.encode() if input_text is not None else None), timeout=timeout
                )
                stdout = stdout_bytes.decode()
                stderr = stderr_bytes.decode()
            except asyncio.TimeoutError as e:
                process.kill()
                await process.wait()
                result = CommandResult(exit_code=-1, stdout="", stderr=f"Command timed out after {timeout}s")
                if check:
                    raise ShellError(f"Command timed out: {' '.join(command)}", result) from e
                return result

        except ShellError:
            raise
        except Exception as e:
            result = CommandResult(exit_code=-1, stdout="", stderr=str(e))
            if check:
                raise ShellError(f"Failed to execute command: {e}", result) from e
            return result

        exit_code = process.returncode if process.returncode is not None else -1
        result = CommandResult(exit_code=exit_code, stdout=stdout, stderr=stderr)

        if check and result.exit_code != 0:
            error_msg = f"Command failed with exit code {result.exit_code}"
            if result.stderr:
                error_msg += f": {result.stderr.strip()}"
            elif result.stdout:
                error_msg += f": {result.stdout.strip()}"
            raise ShellError(error_msg, result)

        return result
