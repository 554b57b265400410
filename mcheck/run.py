#!/usr/bin/env python3
"""Drive MongoDB with insert/find/update batches from concurrent workers.

Every run writes into its own ``_MCHECK_<hex>`` database, which is dropped on
Ctrl-C. ``--seed`` loads the fixed ``_MCHECK_`` database once and exits;
``--info`` only prints the server's isMaster reply. Run
``python3 -m mcheck.run --help`` for the available options.
"""
from __future__ import annotations

import logging
import sys
from typing import Callable, Optional, Sequence, TextIO

from pymongo.errors import PyMongoError

from .config import WorkloadSettings, log_summary, parse_args, validate
from .diagnostics import probe
from .logs import configure_logging
from .namespace import NamespaceManager, resolve_workspace
from .shutdown import ShutdownCoordinator, terminate
from .store import ClientFactory, open_client
from .worker import launch_workers


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    client_factory: ClientFactory = open_client,
    exit_fn: Callable[[int], None] = terminate,
    stdin: Optional[TextIO] = None,
) -> int:
    args = parse_args(argv)
    log_path = configure_logging(args)
    logging.info("Logging to %s", log_path)

    problems = validate(args)
    for problem in problems:
        logging.error(problem)
    if problems:
        return 1

    settings = WorkloadSettings.from_args(args)
    log_summary(settings)

    client = None
    try:
        client = client_factory(settings.uri)
        probe(client)
    except PyMongoError as exc:
        logging.error("Unable to reach %s: %s", settings.uri, exc)
        return 1
    finally:
        if client is not None:
            client.close()

    if settings.info:
        return 0

    workspace = resolve_workspace(settings.seed)
    logging.info("Populate data under database %s", workspace.name)

    manager = NamespaceManager(
        settings.uri,
        workspace,
        client_factory=client_factory,
        teardown_delay=settings.teardown_delay,
    )
    coordinator = ShutdownCoordinator(manager, exit_fn=exit_fn)
    coordinator.install()
    coordinator.start()

    manager.provision_index()
    threads = launch_workers(settings, workspace, client_factory=client_factory, exit_fn=exit_fn)
    logging.info("Launched %d worker(s)", len(threads))

    coordinator.wait_for_quit(stdin or sys.stdin)
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
