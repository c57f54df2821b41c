# src/chime/logging_setup.py

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from pathlib import Path

# Console thresholds by top-level logger name. Anything unlisted outside
# "chime" is shown at ERROR+ only.
CONSOLE_THRESHOLDS: dict[str, int] = {
    "nio": logging.WARNING,
    "aiohttp": logging.ERROR,
    "py.warnings": logging.ERROR,
}

# Loggers whose own level is raised so their DEBUG chatter never reaches the file either.
LIBRARY_LEVELS: dict[str, int] = {
    "nio": logging.INFO,
    "aiohttp": logging.WARNING,
    "asyncio": logging.INFO,
}


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console filter for the interactive REPL.

    The notifier thread logs under chime.notify.* and its alerts are already
    printed by the console capability, so only its warnings get through.
    """

    def __init__(self, thresholds: Mapping[str, int] | None = None) -> None:
        super().__init__()
        self._thresholds = dict(CONSOLE_THRESHOLDS if thresholds is None else thresholds)

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name == "chime" or name.startswith("chime."):
            if name.startswith("chime.notify."):
                return record.levelno >= logging.WARNING
            return True

        if name in self._thresholds:
            return record.levelno >= self._thresholds[name]
        top = name.split(".", 1)[0]
        return record.levelno >= self._thresholds.get(top, logging.ERROR)


def setup_logging(
    *,
    log_dir: str | Path = ".local/chime",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Console handler (filtered) plus a full log file at <log_dir>/chime.log.

    Call once from main() before anything logs. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "chime.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s [%(threadName)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    for name, level in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(level)

    logging.captureWarnings(True)
    return log_file
