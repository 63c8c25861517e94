"""Application logging setup.

Library modules only call ``logging.getLogger(__name__)``; applications
(the CLI included) call ``configure_logging`` once at startup.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(
    *,
    level: int = logging.WARNING,
    log_file: Path | None = None,
    file_level: int = logging.DEBUG,
    max_bytes: int = 5_000_000,
    backup_count: int = 3,
    console: Console | None = None,
) -> None:
    """Configure the root logger with a rich console handler.

    Calling it again replaces the handlers installed previously.

    Args:
        level: Minimum level printed to the console.
        log_file: Optional path of a rotating log file.
        file_level: Minimum level written to the log file.
        max_bytes: Max log file size before rotation.
        backup_count: Number of rotated files to keep.
        console: Console to log to (defaults to stderr).
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)  # handlers enforce their own levels

    ch = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    ch.setLevel(level)
    ch.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root.addHandler(ch)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root.addHandler(fh)

    logging.getLogger(__name__).debug(
        "Logging configured (level=%s, file=%s)",
        logging.getLevelName(level),
        str(log_file) if log_file is not None else "None",
    )
