import copy
import logging
import threading
from types import SimpleNamespace

import pytest
from pymongo.errors import OperationFailure

from mcheck.config import WorkloadSettings


class FakeCollection:
    """In-memory stand-in for the subset of Collection the workload calls."""

    def __init__(self, server, name):
        self.server = server
        self.name = name
        self.documents = []
        self.indexes = []
        self.fail_on = set()
        self.insert_gate = None
        self.queries = []

    def _check(self, operation):
        if operation in self.fail_on:
            raise OperationFailure(f"{operation} failed on {self.name}")

    @staticmethod
    def _matches(document, query):
        return all(document.get(field) == value for field, value in query.items())

    def insert_one(self, document):
        if self.insert_gate is not None:
            self.insert_gate(self)
        self._check("insert_one")
        stored = copy.deepcopy(document)
        with self.server.lock:
            self.documents.append(stored)
        return SimpleNamespace(inserted_id=len(self.documents))

    def find_one(self, query):
        self._check("find_one")
        self.queries.append(("find_one", query))
        for document in self.documents:
            if self._matches(document, query):
                return copy.deepcopy(document)
        return None

    def aggregate(self, pipeline):
        self._check("aggregate")
        self.queries.append(("aggregate", pipeline))
        results = list(self.documents)
        for stage in pipeline:
            results = [d for d in results if self._matches(d, stage["$match"])]
        return iter(copy.deepcopy(results))

    def update_one(self, query, change):
        self._check("update_one")
        for document in self.documents:
            if self._matches(document, query):
                for path, amount in change.get("$inc", {}).items():
                    target = document
                    *parents, leaf = path.split(".")
                    for part in parents:
                        target = target[part]
                    target[leaf] = target.get(leaf, 0) + amount
                document.update(change.get("$set", {}))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    def count_documents(self, query):
        self._check("count_documents")
        return sum(1 for d in self.documents if self._matches(d, query))

    def create_index(self, keys):
        self._check("create_index")
        if keys not in self.indexes:
            self.indexes.append(keys)
        return "_".join(f"{field}_{direction}" for field, direction in keys)


class FakeDatabase:
    def __init__(self, server, name):
        self.server = server
        self.name = name
        self.collections = {}

    def __getitem__(self, name):
        with self.server.lock:
            if name not in self.collections:
                self.collections[name] = FakeCollection(self.server, name)
            return self.collections[name]


class FakeServer:
    def __init__(self):
        self.lock = threading.RLock()
        self.databases = {}
        self.hello = {"isWritablePrimary": True, "maxWireVersion": 21, "ok": 1.0}
        self.hello_error = None
        self.drop_error = None
        self.dropped = []
        self.clients = []

    def database(self, name):
        with self.lock:
            if name not in self.databases:
                self.databases[name] = FakeDatabase(self, name)
            return self.databases[name]


class FakeAdmin:
    def __init__(self, server):
        self.server = server

    def command(self, name):
        if self.server.hello_error is not None:
            raise self.server.hello_error
        assert name == "isMaster"
        return dict(self.server.hello)


class FakeClient:
    def __init__(self, server, uri):
        self.server = server
        self.uri = uri
        self.closed = False
        self.admin = FakeAdmin(server)

    def __getitem__(self, name):
        return self.server.database(name)

    def drop_database(self, name):
        if self.server.drop_error is not None:
            raise self.server.drop_error
        with self.server.lock:
            self.server.databases.pop(name, None)
            self.server.dropped.append(name)

    def close(self):
        self.closed = True


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def client_factory(server):
    def factory(uri):
        client = FakeClient(server, uri)
        server.clients.append(client)
        return client

    return factory


class ExitRecorder:
    def __init__(self):
        self.codes = []
        self.called = threading.Event()

    def __call__(self, code):
        self.codes.append(code)
        self.called.set()


@pytest.fixture
def exit_recorder():
    return ExitRecorder()


@pytest.fixture
def make_settings():
    def build(**overrides):
        values = dict(
            uri="mongodb://fake",
            batch_size=10,
            threads=1,
            document_size=16,
            seed=False,
            info=False,
            cycles=1,
            sleep_seconds=0.0,
            teardown_delay=0.0,
        )
        values.update(overrides)
        return WorkloadSettings(**values)

    return build


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
