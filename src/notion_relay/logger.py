import os
import threading
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table


class LogLevel(Enum):
    """Log levels, ordered by severity."""
    DEBUG = 0
    INFO = 1
    SUCCESS = 2
    WARNING = 3
    ERROR = 4


_STYLE_MAP = {
    LogLevel.DEBUG: "dim",
    LogLevel.INFO: "blue",
    LogLevel.SUCCESS: "green",
    LogLevel.WARNING: "yellow",
    LogLevel.ERROR: "red bold",
}


class Logger:
    """
    Console logger for relay runs (thread safe).

    Supports:
    - colored output through rich
    - summary tables for sync passes and outbox batches
    - level control through NOTION_RELAY_LOG_LEVEL
    """

    def __init__(self, name: str = "NotionRelay", level: LogLevel = LogLevel.INFO,
                 console: Optional[Console] = None):
        self.name = name
        self.level = level
        self._lock = threading.Lock()
        self.console = console or Console(stderr=True)

        env_level = os.getenv("NOTION_RELAY_LOG_LEVEL", "").upper()
        if env_level in LogLevel.__members__:
            self.level = LogLevel[env_level]

    def set_level(self, level: LogLevel):
        self.level = level

    def _should_log(self, level: LogLevel) -> bool:
        return level.value >= self.level.value

    def _log(self, level: LogLevel, icon: str, message: str):
        if not self._should_log(level):
            return

        timestamp = datetime.now().strftime("%H:%M:%S")
        style = _STYLE_MAP[level]
        with self._lock:
            # markup=False on the message part keeps record names with brackets intact
            self.console.print(f"[cyan][{timestamp}][/cyan] ", end="")
            self.console.print(f"{icon} {message}", style=style, markup=False, highlight=False)

    def debug(self, message, icon="🔧"):
        """Only shown in DEBUG mode."""
        self._log(LogLevel.DEBUG, icon, message)

    def info(self, message, icon="ℹ️ "):
        self._log(LogLevel.INFO, icon, message)

    def success(self, message, icon="✅"):
        self._log(LogLevel.SUCCESS, icon, message)

    def warning(self, message, icon="⚠️ "):
        self._log(LogLevel.WARNING, icon, message)

    def error(self, message, icon="❌"):
        self._log(LogLevel.ERROR, icon, message)

    def header(self, message, icon=""):
        if not self._should_log(LogLevel.INFO):
            return

        with self._lock:
            title = f"{icon} {message}" if icon else message
            self.console.print(Panel(title, style="bold magenta", width=60))

    def rule(self, message=""):
        if not self._should_log(LogLevel.INFO):
            return

        with self._lock:
            self.console.rule(message)

    def summary_table(self, title: str, data: Dict[str, object]):
        """Print a two-column summary table.

        Args:
            title: Table title
            data: Mapping of row label to value. Labels containing
                  "succeeded"/"sent", "failed" or "skipped" are colored.
        """
        if not self._should_log(LogLevel.INFO):
            return

        with self._lock:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            table.add_column("Status", style="dim")
            table.add_column("Count", justify="right")

            for key, value in data.items():
                label = key.lower()
                if "succeeded" in label or "sent" in label:
                    table.add_row(key, f"[green]{value}[/green]")
                elif "failed" in label:
                    table.add_row(key, f"[red]{value}[/red]")
                elif "skipped" in label:
                    table.add_row(key, f"[yellow]{value}[/yellow]")
                else:
                    table.add_row(key, str(value))

            self.console.print(table)


# Global logger instance
logger = Logger()
