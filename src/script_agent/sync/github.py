# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Script synchronization with a GitHub repository through the ``gh`` CLI.

Scripts live under ``scripts/`` in the configured repository. Authentication
uses ``GITHUB_TOKEN`` when set, otherwise whatever ``gh auth`` already has.
"""

import base64
import json
import time
from typing import Any, Dict, List, NoReturn, Optional
from urllib.parse import quote

from script_agent.domain.scm import PullResult, PushResult
from script_agent.exceptions import AuthError, NetworkError, SyncError
from script_agent.utils.logger import logger
from script_agent.utils.shell import AsyncShellExecutor, ShellError

SCRIPTS_DIR = "scripts"
DEFAULT_COMMIT_MESSAGE = "Update script via Script Agent"


def _handle_shell_error(e: ShellError, context: str) -> NoReturn:
    """Maps a failed ``gh`` invocation to a sync exception."""
    msg = (str(e) + " " + e.result.stderr).lower()
    if any(x in msg for x in ["timed out", "could not resolve host", "failed to connect", "connection refused"]):
        raise NetworkError(f"{context}: {e}") from e
    if any(x in msg for x in ["http 401", "http 403", "bad credentials", "authentication", "gh auth login"]):
        raise AuthError(f"{context}: {e}") from e
    raise SyncError(f"{context}: {e}") from e


def _is_not_found(e: ShellError) -> bool:
    msg = (str(e) + " " + e.result.stderr).lower()
    return "http 404" in msg or "not found" in msg


class GitHubScriptSync:
    """
    Pushes and pulls scripts with the GitHub contents API.
    """

    def __init__(
        self,
        repo: Optional[str],
        branch: str = "main",
        token: Optional[str] = None,
        auto_sync: bool = False,
        gh_executable: str = "gh",
        shell_executor: Optional[AsyncShellExecutor] = None,
    ) -> None:
        self.repo = repo
        self.branch = branch
        self.token = token
        self.auto_sync = auto_sync
        self.gh = gh_executable
        self.shell = shell_executor or AsyncShellExecutor()

    def is_auto_sync_enabled(self) -> bool:
        return self.auto_sync and self.repo is not None

    async def test_connection(self) -> str:
        """
        Returns the login of the authenticated user.

        Raises:
            AuthError: If gh is not authenticated.
            NetworkError: If GitHub cannot be reached.
        """
        user = await self._api(["user"], context="Connection test failed")
        return str(user.get("login", ""))

    async def push_script(
        self, script_name: str, script_content: str, commit_message: Optional[str] = None
    ) -> PushResult:
        """
        Creates or updates ``scripts/<script_name>`` on the configured branch.

        Raises:
            SyncError: If no repository is configured.
        """
        repo = self._require_repo()
        path = f"{SCRIPTS_DIR}/{script_name}"
        try:
            existing = await self._get_file(repo, path)
            body: Dict[str, Any] = {
                "message": commit_message or DEFAULT_COMMIT_MESSAGE,
                "content": base64.b64encode(script_content.encode("utf-8")).decode("ascii"),
                "branch": self.branch,
            }
            if existing is not None:
                body["sha"] = existing["sha"]
            await self._api(
                ["-X", "PUT", self._contents_endpoint(repo, path), "--input", "-"],
                context=f"Push of {path} failed",
                input_text=json.dumps(body),
            )
        except SyncError as e:
            logger.error(str(e))
            return PushResult(success=False, message=f"Push failed: {e}")

        logger.info(f"Pushed {path} to {repo}@{self.branch}")
        return PushResult(
            success=True,
            message="Script pushed",
            commit_url=f"https://github.com/{repo}/blob/{self.branch}/{path}",
        )

    async def pull_script(self, file_path: str) -> PullResult:
        """
        Fetches a file from the configured branch.

        Raises:
            SyncError: If no repository is configured.
        """
        repo = self._require_repo()
        try:
            data = await self._get_file(repo, file_path)
        except SyncError as e:
            logger.error(str(e))
            return PullResult(success=False, message=f"Pull failed: {e}")
        if data is None:
            return PullResult(success=False, message=f"{file_path} does not exist")
        try:
            content = base64.b64decode(data.get("content", "")).decode("utf-8")
        except ValueError as e:
            return PullResult(success=False, message=f"Could not decode {file_path}: {e}")
        return PullResult(success=True, content=content, file_name=data.get("name"))

    async def auto_sync_if_enabled(
        self, script_name: str, content: str, original_score: float, new_score: float
    ) -> Optional[PushResult]:
        if not self.is_auto_sync_enabled():
            return None
        stamp = time.strftime("%Y-%m-%d %H:%M:%S")
        message = f"Auto-optimize script: {script_name} ({original_score:.0f}→{new_score:.0f} points) [{stamp}]"
        return await self.push_script(script_name, content, message)

    def _require_repo(self) -> str:
        if not self.repo:
            raise SyncError("No GitHub repository configured. Set SCRIPT_AGENT_GITHUB_REPO to 'owner/name'.")
        return self.repo

    def _contents_endpoint(self, repo: str, path: str) -> str:
        return f"repos/{repo}/contents/{quote(path)}"

    async def _get_file(self, repo: str, path: str) -> Optional[Dict[str, Any]]:
        """Returns the contents API entry for ``path``, or None when it does not exist."""
        try:
            result = await self.shell.run(
                [self.gh, "api", f"{self._contents_endpoint(repo, path)}?ref={quote(self.branch)}"],
                check=True,
                env=self._env(),
            )
        except ShellError as e:
            if _is_not_found(e):
                return None
            _handle_shell_error(e, f"Lookup of {path} failed")
        return self._parse(result.stdout, f"Lookup of {path} failed")

    async def _api(self, args: List[str], context: str, input_text: Optional[str] = None) -> Dict[str, Any]:
        try:
            result = await self.shell.run([self.gh, "api", *args], check=True, input_text=input_text, env=self._env())
        except ShellError as e:
            _handle_shell_error(e, context)
        return self._parse(result.stdout, context)

    def _env(self) -> Optional[Dict[str, str]]:
        return {"GH_TOKEN": self.token} if self.token else None

    @staticmethod
    def _parse(stdout: str, context: str) -> Dict[str, Any]:
        if not stdout.strip():
            return {}
        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise SyncError(f"{context}: unexpected gh output") from e
        if not isinstance(data, dict):
            raise SyncError(f"{context}: unexpected gh output")
        return data
