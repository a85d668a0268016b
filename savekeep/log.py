"""Logging setup and the audit log.

Engine modules log through the standard logging module; the CLI renders
those records with rich. Snapshot and restore events are also appended as
JSON lines to ~/.savekeep/logs.jsonl, shown by `savekeep logs`.
"""

import json
import logging
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOGS_FILE = Path.home() / ".savekeep" / "logs.jsonl"


def setup_logging(verbose=False, console=None):
    """Route savekeep log records to a rich handler. Safe to call twice."""
    logger = logging.getLogger("savekeep")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=console or Console(stderr=True), show_path=False, markup=False)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
    return logger


def write_log(entry):
    """Append an audit log entry."""
    LOGS_FILE.parent.mkdir(parents=True, exist_ok=True)
    entry["timestamp"] = datetime.now().isoformat()
    with open(LOGS_FILE, "a") as f:
        f.write(json.dumps(entry) + "\n")


def read_logs(tracked_file=None):
    """Return audit entries oldest-first, optionally only those for one tracked file."""
    if not LOGS_FILE.exists():
        return []
    entries = []
    for line in LOGS_FILE.read_text().splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if tracked_file and entry.get("tracked_file") != tracked_file:
            continue
        entries.append(entry)
    return entries
