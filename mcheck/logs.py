from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def configure_logging(args: argparse.Namespace, *, logs_dir: Optional[Path] = None) -> Path:
    """Set up logging to stdout and a log file; returns the file path."""

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if args.log_file:
        log_path = Path(args.log_file).expanduser()
    else:
        logs_dir = logs_dir or Path.cwd() / "logs"
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = logs_dir / f"run_{timestamp}_t{args.threads}_b{args.batch}.log"

    log_path.parent.mkdir(parents=True, exist_ok=True)
    handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    # Server selection and heartbeat chatter would drown out the phase lines.
    logging.getLogger("pymongo").setLevel(logging.WARNING)

    return log_path


def flush_handlers() -> None:
    for handler in logging.getLogger().handlers:
        try:
            handler.flush()
        except (OSError, ValueError):
            pass
