"""
Logging for the ``forge`` process, configured once by the CLI group.

Progress is printed with ``click.echo``; log records are diagnostics
and go to stderr through the same click stream, one whole line per
record, so they never split a line streamed from a child process.

Console level, highest precedence first:
    --debug > --verbose > --quiet > FORGE_LOG_LEVEL > WARNING

FORGE_LOG_FILE adds a file handler at FORGE_LOG_FILE_LEVEL (or the
console level when unset).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

import click

LEVEL_ENV = "FORGE_LOG_LEVEL"
FILE_ENV = "FORGE_LOG_FILE"
FILE_LEVEL_ENV = "FORGE_LOG_FILE_LEVEL"

_FMT_CONSOLE = "%(message)s"
_FMT_DETAIL = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d %(message)s"

_LEVEL_COLORS = {
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}


class ClickHandler(logging.Handler):
    """Write records to stderr with ``click.echo``, coloured by level."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
            color = _LEVEL_COLORS.get(record.levelno)
            if color:
                line = click.style(line, fg=color)
            click.echo(line, err=True)
        except Exception:
            self.handleError(record)


def configure_logging(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env: Mapping[str, str] | None = None,
) -> int:
    """Install the console (and optional file) handler on the root logger.

    Returns:
        The numeric console level.
    """
    env = os.environ if env is None else env

    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    elif quiet:
        level = logging.ERROR
    else:
        level = _parse_level(env.get(LEVEL_ENV))

    console = ClickHandler(level)
    console.setFormatter(logging.Formatter(_FMT_DETAIL if debug else _FMT_CONSOLE))

    root = logging.getLogger()
    for handler in root.handlers:
        handler.close()
    root.handlers = [console]
    effective = level

    log_file = env.get(FILE_ENV)
    if log_file:
        file_level = _parse_level(env.get(FILE_LEVEL_ENV)) if env.get(FILE_LEVEL_ENV) else level
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_DETAIL))
        root.addHandler(fh)
        effective = min(effective, file_level)

    root.setLevel(effective)
    logging.raiseExceptions = False
    return level


def _parse_level(name: str | None) -> int:
    """Level constant for ``name``; WARNING when empty or unknown."""
    numeric = getattr(logging, (name or "").upper(), None)
    return numeric if isinstance(numeric, int) else logging.WARNING
