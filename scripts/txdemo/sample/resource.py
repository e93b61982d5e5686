"""A Resource backed by the in-process VersionedStore."""

from __future__ import annotations

import logging
import threading

from txdemo.config import STEP_DELAY
from txdemo.providers import Context, Task, TaskRegistry
from txdemo.sample.scenarios import (
    DirtyReadScenario,
    ReadCommittedScenario,
    SnapshotIsolationScenario,
    WriteConflictScenario,
)
from txdemo.sample.store import VersionedStore

logger = logging.getLogger(__name__)

# Steps shown while "booting"; each one takes a pacing delay
STARTUP_STEPS = (
    "allocating store",
    "replaying empty log",
    "accepting transactions",
)


class SimulatedDatabase:
    """In-memory multi-version store standing in for a real database."""

    name = "Simulated MVCC"
    description = "In-process multi-version store with snapshot and read-committed transactions"

    def __init__(self, step_delay: float = STEP_DELAY, startup_delay: float | None = None) -> None:
        self._step_delay = step_delay
        self._startup_delay = step_delay if startup_delay is None else startup_delay
        self._lock = threading.Lock()
        self._store: VersionedStore | None = None
        self._tasks = TaskRegistry()

    def start(self, ctx: Context) -> None:
        with self._lock:
            if self._store is not None:
                return
        for step in STARTUP_STEPS:
            logger.debug("%s: %s", self.name, step)
            if not ctx.sleep(self._startup_delay):
                raise RuntimeError("start cancelled")
        store = VersionedStore()
        with self._lock:
            self._store = store
            self._tasks.clear()
            for task in self._build_tasks(store):
                self._tasks.register(task)

    def stop(self, ctx: Context) -> None:
        with self._lock:
            self._store = None
            self._tasks.clear()

    def is_running(self) -> bool:
        with self._lock:
            return self._store is not None

    def connection_info(self) -> str:
        with self._lock:
            if self._store is None:
                return "Not connected"
            return f"in-process store at version {self._store.version}"

    def list_tasks(self) -> tuple[Task, ...]:
        with self._lock:
            return self._tasks.all()

    def _build_tasks(self, store: VersionedStore) -> list[Task]:
        delay = self._step_delay
        return [
            DirtyReadScenario(store, delay),
            ReadCommittedScenario(store, delay),
            SnapshotIsolationScenario(store, delay),
            WriteConflictScenario(store, delay),
        ]
