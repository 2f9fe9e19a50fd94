from __future__ import annotations

import logging
import os
import sys
from datetime import date
from pathlib import Path

DEFAULT_STATE_DIR = "~/.acordos"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


class Settings:
    def __init__(self) -> None:
        self.state_dir: Path = Path(os.getenv("ACORDOS_STATE_DIR", DEFAULT_STATE_DIR)).expanduser()
        self.log_level: str = os.getenv("ACORDOS_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
        self.today_override: str = os.getenv("ACORDOS_TODAY", "").strip()

    def today(self) -> date:
        """Reference day for classification; ACORDOS_TODAY pins it for reproducible runs."""
        if self.today_override:
            return parse_iso_day(self.today_override)
        return date.today()


def parse_iso_day(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid date '{value}'. Use YYYY-MM-DD.") from exc


def setup_logging(level: "str | int" = DEFAULT_LOG_LEVEL) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    root = logging.getLogger("acordos")
    root.setLevel(level)
    if not any(getattr(handler, "_acordos", False) for handler in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._acordos = True
        root.addHandler(handler)


settings = Settings()
