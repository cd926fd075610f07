"""Rich-based logging helpers shared across console commands."""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.theme import Theme
from rich.traceback import install

install(show_locals=False)

_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "debug": "dim",
    }
)

# Log chatter goes to stderr; stdout carries rendered results only.
# Server messages and table names are printed verbatim: no markup, no highlighting.
_stderr_console = Console(stderr=True, theme=_THEME, highlight=False)
_verbose_console = Console(stderr=True, theme=_THEME, highlight=False)


@dataclass(slots=True)
class Logger:
    """Status and error reporting for one console invocation."""

    verbose: bool = False

    def info(self, message: str) -> None:
        _stderr_console.print(message, style="info", markup=False)

    def success(self, message: str) -> None:
        _stderr_console.print(message, style="success", markup=False)

    def warning(self, message: str) -> None:
        _stderr_console.print(message, style="warning", markup=False)

    def error(self, message: str) -> None:
        _stderr_console.print(message, style="error", markup=False)

    def debug(self, message: str) -> None:
        if self.verbose:
            _verbose_console.print(message, style="debug", markup=False)

    def request(self, method: str, path: str, status: int | None) -> None:
        """Trace one HTTP exchange with the service (verbose mode only)."""
        outcome = "no response" if status is None else f"HTTP {status}"
        self.debug(f"{method.upper()} {path} -> {outcome}")


def get_logger(verbose: bool = False) -> Logger:
    return Logger(verbose=verbose)
