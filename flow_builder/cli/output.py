"""Output formatting utilities."""

import json
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from ..config import TranscriptRole
from ..models import Block, TranscriptEntry, ValidationIssue

console = Console()

SEVERITY_STYLES = {"error": "red", "warning": "yellow", "info": "blue"}


def print_document(data: Any, format_type: str) -> None:
    """Print a machine readable document as JSON or YAML."""
    if format_type == "yaml":
        print_yaml(data)
    else:
        print_json(data)


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    json_str = json.dumps(data, indent=2, default=str, ensure_ascii=False)
    syntax = Syntax(json_str, "json", theme="monokai", line_numbers=False, word_wrap=True)
    console.print(syntax)


def print_yaml(data: Any) -> None:
    """Print data as formatted YAML."""
    yaml_str = yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
    syntax = Syntax(yaml_str, "yaml", theme="monokai", line_numbers=False, word_wrap=True)
    console.print(syntax)


def _table(title: Optional[str], *columns: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    for column in columns:
        table.add_column(column)
    return table


def _coord(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


def print_layout(blocks: List[Block], levels: Dict[str, int]) -> None:
    """Print positioned blocks with the level each one was placed at."""
    table = _table("Layout", "Id", "Type", "Status", "X", "Y", "Level")
    for block in blocks:
        level = levels.get(block.id)
        table.add_row(
            block.id,
            block.type_name,
            block.status.value,
            _coord(block.position["x"]),
            _coord(block.position["y"]),
            "-" if level is None else str(level),
        )
    console.print(table)


def print_levels(groups: Dict[int, List[str]], branch_levels: List[int]) -> None:
    """Print blocks grouped by level, marking the levels that branch."""
    if not groups:
        console.print("[dim]No blocks reachable from start[/dim]")
        return

    table = _table("Levels", "Level", "Blocks", "Branch")
    for level in sorted(groups):
        table.add_row(
            str(level),
            ", ".join(groups[level]),
            "✓" if level in branch_levels else "",
        )
    console.print(table)


def print_flow(blocks: List[Block], title: Optional[str] = None) -> None:
    """Print blocks in array order with their outgoing connections."""
    table = _table(title, "Id", "Type", "Status", "Next")
    for block in blocks:
        table.add_row(
            block.id,
            block.type_name,
            block.status.value,
            ", ".join(block.target_ids) or "-",
        )
    console.print(table)


def print_issues(issues: List[ValidationIssue]) -> None:
    """Print validation issues, coloured by severity."""
    table = _table("Issues", "Severity", "Message", "Block")
    for issue in issues:
        style = SEVERITY_STYLES.get(issue.severity, "white")
        table.add_row(
            f"[{style}]{issue.severity}[/{style}]",
            issue.message,
            issue.block_id or "-",
        )
    console.print(table)


def print_templates(templates: List[Dict[str, Any]]) -> None:
    """Print the template catalogue."""
    table = _table("Templates", "Id", "Name", "Category", "Description")
    for item in templates:
        table.add_row(item["id"], item["name"], item.get("category", "-"), item.get("description", ""))
    console.print(table)


def print_variables(variables: Dict[str, str]) -> None:
    """Print the answers collected during a preview."""
    table = _table("Collected variables", "Variable", "Value")
    for name, value in variables.items():
        table.add_row(name, value)
    console.print(table)


def print_entry(entry: TranscriptEntry) -> None:
    """Print one preview transcript line."""
    if entry.role == TranscriptRole.BOT:
        console.print(f"[bold cyan]Bot:[/bold cyan] {entry.content}", highlight=False)
    else:
        console.print(f"[bold green]You:[/bold green] {entry.content}", highlight=False)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]i[/blue] {message}")
