"""UI module for rich terminal formatting of rebate lookups."""

import os
import sys
from typing import Optional, Dict, Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from config import UI_NO_COLOR


class RebateUI:
    """Handles all terminal UI rendering and feedback."""

    def __init__(self, no_color: bool = False, console: Optional[Console] = None):
        """Initialize UI with optional no-color mode."""
        self.no_color = no_color or UI_NO_COLOR or os.getenv('NO_COLOR') is not None
        self.console = console or Console(
            force_terminal=sys.stdout.isatty() and not self.no_color,
            no_color=self.no_color
        )

    def display_programs(self, answer):
        """Display a RebateAnswer as a table of programs."""
        where = f"{answer.county} County" if answer.county else answer.category
        origin = "cache" if answer.cached else "live search"

        if not answer.programs:
            self.console.print(f"[yellow]No {answer.category.lower()} programs found for {where}[/yellow] [dim]({origin})[/dim]")
            return

        table = Table(title=f"{answer.category} rebate programs: {where}", show_lines=True)
        table.add_column("Program", style="bold cyan")
        table.add_column("Type", style="magenta")
        table.add_column("Amount", style="green")
        table.add_column("Summary")
        table.add_column("Link", style="dim", overflow="fold")

        for program in answer.programs:
            table.add_row(
                program.get("programName", "Not Available"),
                program.get("programType", ""),
                program.get("amount", ""),
                program.get("collapsedSummary") or program.get("summary", ""),
                program.get("websiteLink", "#"),
            )

        self.console.print(table)
        source = answer.source.to_dict()
        self.console.print(
            f"[dim]{len(answer.programs)} programs from {origin} "
            f"(search: {source['search']}, analysis: {source['analysis']})[/dim]"
        )

    def display_lookup(self, lookup, category: str, county: Optional[str] = None):
        """Display the result of a cache-only check."""
        where = f"{category} / {county}" if county else category
        if not lookup.found:
            self.console.print(f"[yellow]✗ Not cached:[/yellow] {where}")
            return

        entry = lookup.entry
        age = entry.age_hours()
        self.console.print(
            f"[green]✓ Cached:[/green] {where} "
            f"[dim]({len(entry.programs)} programs, {len(entry.search_results)} search results, {age:.1f}h old)[/dim]"
        )

    def display_status(self, status: Dict[str, Any]):
        """Display cache status as a key/value table."""
        table = Table(show_header=False, box=None)
        table.add_column("Key", style="dim")
        table.add_column("Value", style="cyan")
        for key, value in status.items():
            table.add_row(key.replace("_", " "), str(value))
        self.console.print(Panel(table, title="Cache status", border_style="blue"))

    def display_message(self, message: str, style: str = "green"):
        self.console.print(f"[{style}]{message}[/{style}]")

    def display_error(self, error_type: str, message: str, details: Optional[str] = None):
        """Display errors with color coding."""
        colors = {'error': 'red', 'warning': 'yellow', 'info': 'blue'}
        icons = {'error': '✗', 'warning': '⚠', 'info': 'ℹ'}

        color = colors.get(error_type, 'red')
        icon = icons.get(error_type, '!')

        text = Text()
        text.append(f"{icon} {error_type.upper()}: ", style=f"bold {color}")
        text.append(message, style=color)

        if details:
            text.append("\n\n", style=color)
            text.append(details, style=f"dim {color}")

        self.console.print(Panel(text, border_style=color, padding=(1, 2)))
