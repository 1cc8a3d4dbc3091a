"""Runtime configuration for OrgChart-MCP, read from the environment."""

from __future__ import annotations

import logging
import os
from pathlib import Path

OUTPUT_DIR = Path(os.environ.get("ORGCHART_OUTPUT_DIR", Path.home() / ".orgchart"))

# Rank direction used until the user picks one ("TB" or "LR").
DEFAULT_DIRECTION = os.environ.get("ORGCHART_DIRECTION", "TB")

THEME = os.environ.get("ORGCHART_THEME", "light")
RENDER_SCALE = float(os.environ.get("ORGCHART_RENDER_SCALE", "2.0"))

LOG_LEVEL = os.environ.get("ORGCHART_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

HOST = os.environ.get("ORGCHART_HOST", "127.0.0.1")
PORT = int(os.environ.get("ORGCHART_PORT", "8766"))


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging for the command-line entry points."""
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


def ensure_output_dir() -> Path:
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    return OUTPUT_DIR
