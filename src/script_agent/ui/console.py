# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Rich rendering of agent results for the CLI.
"""

from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from script_agent.domain.chat import ChatResponse
from script_agent.domain.models import AIModel
from script_agent.domain.results import OptimizationResult, Priority, ScriptGenerationResult, Suggestion

_PRIORITY_STYLES = {
    Priority.URGENT: "bold red",
    Priority.HIGH: "red",
    Priority.MEDIUM: "yellow",
    Priority.LOW: "dim",
}


class ResultRenderer:
    """Prints agent results to a rich console."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def optimization(self, result: OptimizationResult) -> None:
        status = "[green]success[/green]" if result.is_successful else "[red]degraded[/red]"
        self.console.print(f"Optimization {status}, score [bold]{result.score:.0f}[/bold]/100")

        if result.improvements:
            table = Table(title="Improvements", expand=True)
            table.add_column("Type", style="cyan")
            table.add_column("Impact", justify="center")
            table.add_column("Description")
            for improvement in result.improvements:
                table.add_row(improvement.type.value, improvement.impact.value, improvement.description)
            self.console.print(table)

        for warning in result.warnings:
            self.console.print(f"[yellow]⚠ {warning}[/yellow]")

        if result.suggestions:
            self.suggestions(result.suggestions)
        self.console.print(Panel(Syntax(result.optimized_script, "javascript"), title="Optimized script"))

    def generation(self, result: ScriptGenerationResult) -> None:
        executable = "[green]yes[/green]" if result.is_executable else "[red]no[/red]"
        self.console.print(f"Confidence {result.confidence:.0%}, executable: {executable}")
        self.console.print(result.explanation)
        if result.required_permissions:
            self.console.print(f"Permissions: {', '.join(result.required_permissions)}")
        self.console.print(Panel(Syntax(result.script, "javascript"), title="Generated script"))

    def suggestions(self, suggestions: List[Suggestion]) -> None:
        if not suggestions:
            self.console.print("[dim]No suggestions.[/dim]")
            return
        table = Table(title="Suggestions", expand=True)
        table.add_column("Priority", justify="center")
        table.add_column("Type", style="cyan")
        table.add_column("Title", style="bold")
        table.add_column("Description", style="dim")
        for suggestion in suggestions:
            style = _PRIORITY_STYLES.get(suggestion.priority, "")
            table.add_row(
                f"[{style}]{suggestion.priority.value}[/{style}]" if style else suggestion.priority.value,
                suggestion.type.value,
                suggestion.title,
                suggestion.description,
            )
        self.console.print(table)

    def chat(self, response: ChatResponse) -> None:
        self.console.print(Panel(response.message.content, title="Agent", border_style="blue"))
        if response.generated_script:
            self.console.print(Panel(Syntax(response.generated_script, "javascript"), title="Script"))

    def models(self, models: List[AIModel], selected_id: str = "") -> None:
        table = Table(title="Available models", expand=True)
        table.add_column("", justify="center")
        table.add_column("Id", style="cyan")
        table.add_column("Provider")
        table.add_column("Model")
        table.add_column("Endpoint", style="dim")
        for model in models:
            marker = "●" if model.id == selected_id else ""
            name = f"{model.model_name} (custom)" if model.is_custom else model.model_name
            table.add_row(marker, model.id, model.provider, name, model.base_url)
        self.console.print(table)
