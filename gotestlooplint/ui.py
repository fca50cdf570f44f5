"""Central UI handler for gotestlooplint.

Single source of truth for Rich console styling. Import this instead of
instantiating Console() in every command file.

Usage:
    from gotestlooplint.ui import console, print_error

    console.print("[success]No loop variable captures found[/success]")
    print_error("no Go files matched")
"""

import sys

from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

LINT_THEME = Theme({
    "info": "bold cyan",
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    "high": "bold yellow",
    "low": "cyan",
    "path": "bold cyan",
    "dim": "dim white",
})

# Single console instance - import this, don't create your own
console = Console(
    theme=LINT_THEME,
    force_terminal=sys.stdout.isatty(),
    highlight=False,
    soft_wrap=True,
)

err_console = Console(
    theme=LINT_THEME,
    stderr=True,
    highlight=False,
    soft_wrap=True,
)


def print_header(title: str) -> None:
    """Print a styled section header with horizontal rules."""
    console.rule(f"[bold]{escape(title)}[/bold]", characters="-")


def print_error(msg: str) -> None:
    """Print an error message in red, on stderr."""
    err_console.print(f"[error]ERROR:[/error] {escape(msg)}")


def print_warning(msg: str) -> None:
    """Print a warning message in yellow, on stderr."""
    err_console.print(f"[warning]WARNING:[/warning] {escape(msg)}")


def print_diagnostic(location: str, message: str, level: str = "high") -> None:
    """Print one `path:line:col: message` line."""
    console.print(f"[path]{escape(location)}[/path]: [{level}]{escape(message)}[/{level}]")
