"""Workload workers: key ranges, timed phases and the per-worker loop.

Each worker owns a disjoint slice of the key space and runs, per cycle:

    INSERT -> (seed mode: brands, then exit)
           -> MATCH -> FIND by name -> FIND by nickname
           -> UPDATE $inc -> UPDATE $set -> sleep

Any store failure aborts the whole process; a half-written batch leaves the
range in a state the next cycle cannot build on.
"""
from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, List, Optional

from pymongo.errors import PyMongoError

from .config import WorkloadSettings
from .namespace import INDEX_FIELD, Workspace
from .records import (
    INSERT_FILLER_TOKEN,
    UPDATE_FILLER_TOKEN,
    Brand,
    Robot,
    filler,
    placeholder_sku,
    robot_name,
)
from .shutdown import terminate
from .store import ClientFactory, open_client

KEY_BLOCK = 100_000
UNINDEXED_FIELD = "nickname"


class WorkloadError(RuntimeError):
    """A phase finished without the outcome the next phase depends on."""


# Key ranges


@dataclass(frozen=True)
class KeyRange:
    """``size`` consecutive logical keys starting at ``offset`` for one worker.

    Logical keys are laid out in blocks of ``KEY_BLOCK``; block ``b`` of worker
    ``t`` starts at ``(b * workers + t) * KEY_BLOCK``. The first block is
    therefore ``[t * KEY_BLOCK, (t + 1) * KEY_BLOCK)`` and later blocks
    interleave with the other workers' instead of overlapping them.
    """

    worker_index: int
    workers: int
    offset: int
    size: int

    def key_at(self, position: int) -> int:
        block, within = divmod(self.offset + position, KEY_BLOCK)
        return (block * self.workers + self.worker_index) * KEY_BLOCK + within

    def keys(self) -> List[int]:
        return [self.key_at(position) for position in range(self.size)]

    @property
    def start(self) -> int:
        return self.key_at(0)

    @property
    def midpoint(self) -> int:
        return self.key_at(self.size // 2)

    def advance(self) -> "KeyRange":
        return replace(self, offset=self.offset + self.size)


def first_range(worker_index: int, workers: int, batch_size: int) -> KeyRange:
    return KeyRange(worker_index=worker_index, workers=workers, offset=0, size=batch_size)


# Timing


@dataclass(frozen=True)
class PhaseTiming:
    phase: str
    operations: int
    elapsed_ns: int

    @property
    def average_ns(self) -> int:
        return self.elapsed_ns // max(self.operations, 1)


def format_duration(ns: int) -> str:
    if ns < 1_000:
        return f"{ns}ns"
    if ns < 1_000_000:
        return f"{ns / 1_000:.3f}µs"
    if ns < 1_000_000_000:
        return f"{ns / 1_000_000:.3f}ms"
    return f"{ns / 1_000_000_000:.3f}s"


def speedup(indexed: PhaseTiming, unindexed: PhaseTiming) -> int:
    if indexed.elapsed_ns <= 0:
        return 0
    return unindexed.elapsed_ns // indexed.elapsed_ns


# Phases


def insert_robots(robots: Any, key_range: KeyRange, description: str, rng: random.Random) -> PhaseTiming:
    start = time.perf_counter_ns()
    for key in key_range.keys():
        robots.insert_one(Robot.build(key, description, rng).to_document())
    return PhaseTiming("INSERT", key_range.size, time.perf_counter_ns() - start)


def insert_brands(brands: Any, key_range: KeyRange) -> PhaseTiming:
    sku = placeholder_sku()
    start = time.perf_counter_ns()
    for key in key_range.keys():
        brands.insert_one(Brand(robot_name(key), sku).to_document())
    return PhaseTiming("BRANDS", key_range.size, time.perf_counter_ns() - start)


def match_by_name(robots: Any, name: str) -> PhaseTiming:
    start = time.perf_counter_ns()
    list(robots.aggregate([{"$match": {INDEX_FIELD: name}}]))
    return PhaseTiming("MATCH", 1, time.perf_counter_ns() - start)


def find_one_by(robots: Any, field: str, name: str) -> PhaseTiming:
    start = time.perf_counter_ns()
    document = robots.find_one({field: name})
    elapsed = time.perf_counter_ns() - start
    if document is None:
        raise WorkloadError(f"{name} not found by {field}")
    return PhaseTiming("FIND", 1, elapsed)


def _update_each(robots: Any, phase: str, key_range: KeyRange, change: dict) -> PhaseTiming:
    start = time.perf_counter_ns()
    for key in key_range.keys():
        name = robot_name(key)
        result = robots.update_one({INDEX_FIELD: name}, change)
        if result.matched_count == 0:
            raise WorkloadError(f"{phase}: {name} not found")
    return PhaseTiming(phase, key_range.size, time.perf_counter_ns() - start)


def increment_tasked(robots: Any, key_range: KeyRange) -> PhaseTiming:
    return _update_each(robots, "UPDATE", key_range, {"$inc": {"stats.tasked": 1}})


def replace_description(robots: Any, key_range: KeyRange, description: str) -> PhaseTiming:
    return _update_each(robots, "UPDATE", key_range, {"$set": {"description": description}})


@dataclass(frozen=True)
class CycleReport:
    key_range: KeyRange
    insert: PhaseTiming
    match: PhaseTiming
    find_indexed: PhaseTiming
    find_unindexed: PhaseTiming
    speedup: int
    total_documents: int
    increment: PhaseTiming
    replace: PhaseTiming


def measure_cycle(
    robots: Any,
    key_range: KeyRange,
    insert: PhaseTiming,
    replacement: str,
    *,
    label: str,
    document_size: int,
) -> CycleReport:
    """Run the read and update phases for a range whose inserts are done."""

    target = robot_name(key_range.midpoint)

    match = match_by_name(robots, target)
    logging.info("[%s] MATCH  %s with index {name: 1}", label, format_duration(match.elapsed_ns))
    indexed = find_one_by(robots, INDEX_FIELD, target)
    logging.info("[%s] FIND   %s with index {name: 1}", label, format_duration(indexed.elapsed_ns))
    unindexed = find_one_by(robots, UNINDEXED_FIELD, target)
    logging.info("[%s] FIND   %s without index", label, format_duration(unindexed.elapsed_ns))

    ratio = speedup(indexed, unindexed)
    total = robots.count_documents({})
    logging.info("[%s] %d times faster with index from %d documents", label, ratio, total)

    increment = increment_tasked(robots, key_range)
    logging.info(
        "[%s] UPDATE %d %s %s $inc stats.tasked by 1",
        label,
        increment.operations,
        format_duration(increment.average_ns),
        format_duration(increment.elapsed_ns),
    )
    replaced = replace_description(robots, key_range, replacement)
    logging.info(
        "[%s] UPDATE %d %s %s $set description string size of %d",
        label,
        replaced.operations,
        format_duration(replaced.average_ns),
        format_duration(replaced.elapsed_ns),
        document_size,
    )

    return CycleReport(
        key_range=key_range,
        insert=insert,
        match=match,
        find_indexed=indexed,
        find_unindexed=unindexed,
        speedup=ratio,
        total_documents=total,
        increment=increment,
        replace=replaced,
    )


# Worker loop


def run_worker(
    worker_index: int,
    settings: WorkloadSettings,
    workspace: Workspace,
    *,
    client_factory: ClientFactory = open_client,
    exit_fn: Callable[[int], None] = terminate,
    rng: Optional[random.Random] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    label = f"W{worker_index:02d}"
    rng = rng or random.Random(time.time() + worker_index)
    description = filler(INSERT_FILLER_TOKEN, settings.document_size)
    replacement = filler(UPDATE_FILLER_TOKEN, settings.document_size)

    client = None
    try:
        client = client_factory(settings.uri)
        database = client[workspace.name]
        robots = database[workspace.robots]

        key_range = first_range(worker_index, settings.threads, settings.batch_size)
        max_cycles = settings.cycles if settings.cycles > 0 else None
        cycle = 0
        while max_cycles is None or cycle < max_cycles:
            cycle += 1
            logging.debug("[%s][%03d] keys from %s", label, cycle, robot_name(key_range.start))

            insert = insert_robots(robots, key_range, description, rng)
            logging.info(
                "[%s] INSERT %d %s %s size %d",
                label,
                insert.operations,
                format_duration(insert.average_ns),
                format_duration(insert.elapsed_ns),
                settings.document_size,
            )

            if settings.seed:
                brands = insert_brands(database[workspace.brands], key_range)
                logging.info(
                    "[%s] seeded %d brands into %s.%s in %s",
                    label,
                    brands.operations,
                    workspace.name,
                    workspace.brands,
                    format_duration(brands.elapsed_ns),
                )
                exit_fn(0)
                return

            measure_cycle(
                robots,
                key_range,
                insert,
                replacement,
                label=label,
                document_size=settings.document_size,
            )
            print(flush=True)

            key_range = key_range.advance()
            if settings.sleep_seconds:
                sleep(settings.sleep_seconds)
        logging.info("[%s] finished %d cycle(s)", label, cycle)
    except (PyMongoError, WorkloadError):
        logging.critical("[%s] store operation failed; aborting", label, exc_info=True)
        exit_fn(1)
    except Exception:  # pragma: no cover - unexpected bug, still fatal
        logging.critical("[%s] worker aborted", label, exc_info=True)
        exit_fn(1)
    finally:
        if client is not None:
            client.close()


def launch_workers(
    settings: WorkloadSettings,
    workspace: Workspace,
    *,
    client_factory: ClientFactory = open_client,
    exit_fn: Callable[[int], None] = terminate,
) -> List[threading.Thread]:
    threads: List[threading.Thread] = []
    for worker_index in range(settings.threads):
        thread = threading.Thread(
            target=run_worker,
            args=(worker_index, settings, workspace),
            kwargs={"client_factory": client_factory, "exit_fn": exit_fn},
            name=f"worker-{worker_index:02d}",
            daemon=True,
        )
        threads.append(thread)
        thread.start()
    return threads
