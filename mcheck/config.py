"""Command line options and the settings object built from them."""
from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass
from typing import List, Optional, Sequence

DEFAULTS = {
    "uri": "mongodb://localhost",
    "batch": 512,
    "threads": 1,
    "size": 4096,
    "cycles": 0,
    "sleep": 0.1,
    "teardown_delay": 1.0,
}


@dataclass(frozen=True)
class WorkloadSettings:
    uri: str
    batch_size: int
    threads: int
    document_size: int
    seed: bool = False
    info: bool = False
    cycles: int = 0
    sleep_seconds: float = 0.1
    teardown_delay: float = 1.0

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "WorkloadSettings":
        return cls(
            uri=args.uri,
            batch_size=args.batch,
            threads=args.threads,
            document_size=args.size,
            seed=args.seed,
            info=args.info,
            cycles=args.cycles,
            sleep_seconds=args.sleep,
            teardown_delay=args.teardown_delay,
        )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Insert/find/update workload against MongoDB, comparing indexed and unindexed finds.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    g_conn = parser.add_argument_group("Connection options")
    g_shape = parser.add_argument_group("Workload shape")
    g_flow = parser.add_argument_group("Workflow control")
    g_out = parser.add_argument_group("Logging & output")

    g_conn.add_argument(
        "--uri",
        "--mongoURI",
        dest="uri",
        default=os.getenv("MCHECK_URI", DEFAULTS["uri"]),
        help="MongoDB URI (defaults to MCHECK_URI env variable)",
    )
    g_shape.add_argument(
        "--batch",
        type=int,
        default=int(os.getenv("MCHECK_BATCH", DEFAULTS["batch"])),
        help="Documents per phase per cycle",
    )
    g_shape.add_argument(
        "-t",
        "--threads",
        type=int,
        default=int(os.getenv("MCHECK_THREADS", DEFAULTS["threads"])),
        help="Number of concurrent worker threads",
    )
    g_shape.add_argument(
        "--size",
        type=int,
        default=int(os.getenv("MCHECK_SIZE", DEFAULTS["size"])),
        help="Filler bytes in each document's description",
    )
    g_flow.add_argument(
        "--seed",
        action="store_true",
        help="Seed the fixed demo database once (robots + brands) and exit",
    )
    g_flow.add_argument(
        "--info",
        action="store_true",
        help="Print cluster info and exit",
    )
    g_flow.add_argument(
        "--cycles",
        type=int,
        default=DEFAULTS["cycles"],
        help="Cycles per worker (0 means no limit)",
    )
    g_flow.add_argument(
        "--sleep",
        type=float,
        default=DEFAULTS["sleep"],
        help="Seconds each worker sleeps between cycles",
    )
    g_flow.add_argument(
        "--teardown-delay",
        type=float,
        default=DEFAULTS["teardown_delay"],
        help="Seconds to wait before dropping the database on shutdown",
    )
    g_out.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    g_out.add_argument(
        "--log-file",
        default=os.getenv("MCHECK_LOG_FILE"),
        help="Optional path to a log file; default is logs/run_<timestamp>_t<threads>_b<batch>.log",
    )
    return parser.parse_args(argv)


def validate(args: argparse.Namespace) -> List[str]:
    """Return one message per invalid option; empty when all are usable."""

    problems: List[str] = []
    if args.batch < 1:
        problems.append(f"batch must be >= 1 (got {args.batch})")
    if args.threads < 1:
        problems.append(f"threads must be >= 1 (got {args.threads})")
    if args.size < 0:
        problems.append(f"size must be >= 0 (got {args.size})")
    if args.cycles < 0:
        problems.append(f"cycles must be >= 0 (got {args.cycles})")
    if args.sleep < 0:
        problems.append(f"sleep must be >= 0 (got {args.sleep})")
    if args.teardown_delay < 0:
        problems.append(f"teardown-delay must be >= 0 (got {args.teardown_delay})")
    return problems


def log_summary(settings: WorkloadSettings) -> None:
    logging.info("info: %s", settings.info)
    logging.info("MongoDB URI: %s", settings.uri)
    logging.info("seed: %s", settings.seed)
    logging.info(
        "threads: %d batch: %d size: %d cycles: %s",
        settings.threads,
        settings.batch_size,
        settings.document_size,
        settings.cycles or "unlimited",
    )
