"""Workspace naming plus index provisioning and teardown."""
from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from .store import ClientFactory, open_client

WORKSPACE_PREFIX = "_MCHECK_"
ROBOTS_COLLECTION = "robots"
BRANDS_COLLECTION = "brands"
INDEX_FIELD = "name"


@dataclass(frozen=True)
class Workspace:
    name: str
    robots: str = ROBOTS_COLLECTION
    brands: str = BRANDS_COLLECTION


def resolve_workspace(seed: bool, *, token: Optional[Callable[[int], bytes]] = None) -> Workspace:
    """Seed runs share the fixed name; every other run gets a random suffix."""

    if seed:
        return Workspace(WORKSPACE_PREFIX)
    suffix = (token or os.urandom)(4).hex().upper()
    return Workspace(f"{WORKSPACE_PREFIX}{suffix}")


class NamespaceManager:
    def __init__(
        self,
        uri: str,
        workspace: Workspace,
        *,
        client_factory: ClientFactory = open_client,
        teardown_delay: float = 1.0,
    ) -> None:
        self.uri = uri
        self.workspace = workspace
        self._client_factory = client_factory
        self._teardown_delay = teardown_delay
        self._teardown_lock = threading.Lock()
        self._torn_down = False

    def provision_index(self) -> bool:
        """Create ``{name: 1}`` on the robots collection; failures are logged only."""

        logging.info("createIndex %s on %s.%s", self.uri, self.workspace.name, self.workspace.robots)
        client = self._client_factory(self.uri)
        try:
            client[self.workspace.name][self.workspace.robots].create_index([(INDEX_FIELD, ASCENDING)])
            return True
        except PyMongoError as exc:
            logging.error(
                "Index creation on %s.%s failed; indexed/unindexed comparison is unreliable: %s",
                self.workspace.name,
                self.workspace.robots,
                exc,
            )
            return False
        finally:
            client.close()

    def teardown(self) -> bool:
        """Drop the whole workspace database. Only the first call does anything."""

        with self._teardown_lock:
            if self._torn_down:
                return False
            self._torn_down = True

            logging.info("cleanup %s", self.uri)
            logging.info("dropping database %s", self.workspace.name)
            if self._teardown_delay:
                time.sleep(self._teardown_delay)
            try:
                client = self._client_factory(self.uri)
            except PyMongoError as exc:
                logging.error("Unable to connect for cleanup of %s: %s", self.workspace.name, exc)
                return False
            try:
                client.drop_database(self.workspace.name)
            except PyMongoError as exc:
                logging.error("Dropping database %s failed: %s", self.workspace.name, exc)
                return False
            finally:
                client.close()
            return True
