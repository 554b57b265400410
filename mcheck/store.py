"""MongoDB client setup."""
from __future__ import annotations

from typing import Any, Callable

from pymongo import MongoClient

ClientFactory = Callable[[str], Any]

APP_NAME = "mcheck"


def open_client(uri: str) -> MongoClient:
    """Open a client for ``uri``; connecting happens lazily on first use."""

    return MongoClient(uri, appname=APP_NAME)
