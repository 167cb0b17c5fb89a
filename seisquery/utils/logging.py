"""
Logging configuration for seisquery.

Engine modules log through `get_logger(__name__)`; the CLI calls
`setup_logging` once and prints results with the console helpers below.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

import numpy as np
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.theme import Theme

ROOT_LOGGER = "seisquery"

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

SEISQUERY_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "red bold",
        "kind": "red",
        "success": "green",
        "metric": "magenta",
        "header": "bold cyan",
    }
)

console = Console(theme=SEISQUERY_THEME)


def _console_handler(level: int, rich_tracebacks: bool, show_time: bool) -> logging.Handler:
    handler = RichHandler(
        console=console,
        show_time=show_time,
        show_path=False,
        rich_tracebacks=rich_tracebacks,
        markup=True,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _file_handler(log_file: Path | str) -> logging.Handler:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, mode="a")
    # Files keep chunk-level detail regardless of the console level
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
    return handler


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    log_file: Path | str | None = None,
    rich_tracebacks: bool = True,
    show_time: bool = True,
) -> logging.Logger:
    """
    Configure the `seisquery` logger with a Rich console handler.

    Args:
        level: Console logging level
        log_file: Optional path of a log file receiving every record
        rich_tracebacks: Use Rich for traceback formatting
        show_time: Show timestamp in console output

    Returns:
        The `seisquery` logger
    """
    console_level = getattr(logging, level)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers.clear()
    logger.addHandler(_console_handler(console_level, rich_tracebacks, show_time))

    if log_file is not None:
        logger.addHandler(_file_handler(log_file))
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(console_level)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the `seisquery` hierarchy for a module `__name__`."""
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


class _RecordHandler(logging.Handler):
    def __init__(self, records: list[logging.LogRecord], level: int):
        super().__init__(level)
        self.records = records

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


class LogCapture:
    """
    Context manager collecting records of a logger and its children.

    The logger level is lowered to `level` for the duration so that engine
    debug messages (chunk plans, squeezed windows) are captured too.
    """

    def __init__(self, logger_name: str = ROOT_LOGGER, level: int = logging.DEBUG):
        self.logger_name = logger_name
        self.level = level
        self.messages: list[logging.LogRecord] = []
        self._handler: logging.Handler | None = None
        self._previous_level: int | None = None

    def __enter__(self) -> "LogCapture":
        logger = logging.getLogger(self.logger_name)
        self._previous_level = logger.level
        if logger.level == logging.NOTSET or logger.level > self.level:
            logger.setLevel(self.level)
        self._handler = _RecordHandler(self.messages, self.level)
        logger.addHandler(self._handler)
        return self

    def __exit__(self, *args) -> None:
        if self._handler is None:
            return
        logger = logging.getLogger(self.logger_name)
        logger.removeHandler(self._handler)
        if self._previous_level is not None:
            logger.setLevel(self._previous_level)

    def get_messages(self, level: int | None = None) -> list[str]:
        """Captured message strings, optionally only those at `level` or above."""
        records = self.messages
        if level is not None:
            records = [r for r in records if r.levelno >= level]
        return [r.getMessage() for r in records]


# =============================================================================
# Console output
# =============================================================================


def print_section(title: str) -> None:
    console.print(f"\n[header]{title}[/header]")
    console.print(f"[header]{'─' * max(len(title), 20)}[/header]")


def print_metric(name: str, value: str | float | int, unit: str = "") -> None:
    """Print one `name: value unit` line; floats get two decimals."""
    value_str = f"{value:.2f}" if isinstance(value, float) else str(value)
    suffix = f" {unit}" if unit else ""
    console.print(f"  [dim]{name}:[/dim] [metric]{value_str}[/metric]{suffix}")


def print_array_summary(data: np.ndarray) -> None:
    """Shape and value range of a result array, ignoring NaNs."""
    print_metric("Shape", str(list(data.shape)))
    if data.size:
        print_metric("Min", float(np.nanmin(data)))
        print_metric("Max", float(np.nanmax(data)))


def print_written(path: Path | str, what: str) -> None:
    console.print(f"[success]✓[/success] Wrote {what} to {path}")


def print_request_error(kind: str, message: str) -> None:
    """Print a failed request as `✗ kind: message`."""
    console.print(f"[error]✗[/error] [kind]{kind}[/kind]: {escape(message)}", highlight=False)


def print_info(message: str) -> None:
    console.print(f"[info]ℹ[/info] {message}")
