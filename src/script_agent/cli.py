# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

import asyncio
import sys
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

import typer

from script_agent.container import AgentContainer
from script_agent.domain.results import ExecutionResult
from script_agent.ui.console import ResultRenderer
from script_agent.utils.logger import logger

T = TypeVar("T")

app = typer.Typer(
    name="script-agent",
    help="Script Agent: AI assisted automation script optimization, generation and chat",
    add_completion=False,
)


def _run(operation: Callable[[AgentContainer], Awaitable[T]]) -> T:
    """Builds the container, runs ``operation`` against an initialized service and cleans up."""

    async def _main() -> T:
        container = AgentContainer()
        service = container.get_service()
        await service.initialize()
        try:
            return await operation(container)
        finally:
            await service.cleanup()

    return asyncio.run(_main())


def _read_script(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Cannot read {path}: {e}")
        sys.exit(1)


@app.command(name="optimize")
def optimize(
    path: Path = typer.Argument(..., help="Script file to optimize."),
    sync: bool = typer.Option(False, "--sync", help="Push the result to GitHub when auto sync is enabled."),
) -> None:
    """
    Optimizes a script with the configured AI backend.
    """
    script = _read_script(path)

    async def _op(container: AgentContainer) -> bool:
        service = container.get_service()
        result = await service.optimize_script(script)
        ResultRenderer().optimization(result)
        if sync:
            await service.auto_sync_optimization_result(path.name, script, result)
        return result.is_successful

    try:
        success = _run(_op)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)
    if not success:
        sys.exit(1)


@app.command(name="generate")
def generate(request: str = typer.Argument(..., help="What the script should do.")) -> None:
    """
    Generates a script from a natural language request.
    """

    async def _op(container: AgentContainer) -> bool:
        result = await container.get_service().generate_script(request)
        ResultRenderer().generation(result)
        return result.confidence > 0

    try:
        success = _run(_op)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)
    if not success:
        sys.exit(1)


@app.command(name="suggest")
def suggest(
    path: Path = typer.Argument(..., help="Script file to review."),
    error: Optional[str] = typer.Option(None, "--error", help="Error message of a failed run of the script."),
) -> None:
    """
    Lists improvement suggestions for a script.
    """
    script = _read_script(path)
    execution = ExecutionResult(is_success=False, error=error) if error else None

    async def _op(container: AgentContainer) -> None:
        suggestions = await container.get_service().get_script_suggestions(script, execution)
        ResultRenderer().suggestions(suggestions)

    try:
        _run(_op)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)


@app.command(name="chat")
def chat(
    message: str = typer.Argument(..., help="Message for the agent."),
    session: str = typer.Option("default", "--session", "-s", help="Chat session id."),
) -> None:
    """
    Sends one chat message to the agent.
    """

    async def _op(container: AgentContainer) -> None:
        response = await container.get_service().chat_with_agent(message, session_id=session)
        ResultRenderer().chat(response)

    try:
        _run(_op)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)


@app.command(name="models")
def models() -> None:
    """
    Lists the models of the registry.
    """

    async def _op(container: AgentContainer) -> None:
        selected = container.get_service().get_config().selected_model_id
        ResultRenderer().models(container.model_manager.get_all_models(), selected_id=selected)

    try:
        _run(_op)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)


@app.command(name="switch-model")
def switch_model(
    model_id: str = typer.Argument(..., help="Registry id of the model."),
    api_key: str = typer.Option(..., "--api-key", prompt=True, hide_input=True, help="API key for the model."),
) -> None:
    """
    Tests the connection to a model and selects it.
    """

    async def _op(container: AgentContainer) -> bool:
        return await container.get_service().switch_model(model_id, api_key)

    try:
        switched = _run(_op)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)
    if not switched:
        logger.error(f"Could not switch to model '{model_id}'.")
        sys.exit(1)
    logger.info(f"Now using model '{model_id}'.")


@app.command(name="push")
def push(
    path: Path = typer.Argument(..., help="Script file to push."),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Commit message."),
) -> None:
    """
    Pushes a script to the configured GitHub repository.
    """
    script = _read_script(path)

    async def _op(container: AgentContainer) -> bool:
        return await container.get_service().push_script_to_github(path.name, script, message)

    try:
        pushed = _run(_op)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)
    if not pushed:
        sys.exit(1)


@app.command(name="pull")
def pull(
    file_path: str = typer.Argument(..., help="Path of the file in the repository."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the script here instead of stdout."),
) -> None:
    """
    Pulls a script from the configured GitHub repository.
    """

    async def _op(container: AgentContainer) -> Optional[str]:
        return await container.get_service().pull_script_from_github(file_path)

    try:
        content = _run(_op)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)
    if content is None:
        logger.error(f"Could not pull '{file_path}'.")
        sys.exit(1)
    if output is not None:
        output.write_text(content, encoding="utf-8")
        logger.info(f"Saved {file_path} to {output}")
    else:
        typer.echo(content)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
