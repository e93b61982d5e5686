"""
Capabilities the demo is driven by.

Protocols define the interface; implementations can be swapped
for testing or alternative resources.
"""

from __future__ import annotations

import queue
import threading
import weakref
from dataclasses import dataclass
from typing import Generic, Iterator, Protocol, Sequence, TypeVar


@dataclass(frozen=True)
class StepResult:
    """Immutable record of one step of a demonstration."""

    session: str = ""
    step: int = 0
    description: str = ""
    query: str = ""
    result: str = ""
    success: bool = True
    is_header: bool = False


def header(description: str) -> StepResult:
    """Build a section header record."""
    return StepResult(description=description, is_header=True)


class Context:
    """Cooperative cancellation token handed to resources and tasks.

    Cancelling only signals interest; nothing in flight is interrupted.
    Cancelling a context also cancels every child made from it.
    """

    def __init__(self) -> None:
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._children: weakref.WeakSet[Context] = weakref.WeakSet()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        with self._lock:
            self._cancelled.set()
            children = list(self._children)
        for child in children:
            child.cancel()

    def child(self) -> "Context":
        """A context cancelled with this one, or on its own."""
        child = Context()
        with self._lock:
            if self._cancelled.is_set():
                child._cancelled.set()
            else:
                self._children.add(child)
        return child

    def sleep(self, seconds: float) -> bool:
        """Pause for up to `seconds`. Returns False if cancelled meanwhile."""
        return not self._cancelled.wait(seconds)


class SinkClosed(RuntimeError):
    """Raised when a record is pushed into a closed sink."""


_CLOSED = object()


class StepSink:
    """Ordered channel of StepResults from a running task to its runner."""

    def __init__(self, maxsize: int = 100) -> None:
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, record: StepResult) -> None:
        # Checked and enqueued under the lock so nothing lands after the sentinel
        with self._lock:
            if self._closed:
                raise SinkClosed("sink already closed")
            self._queue.put(record)

    def close(self) -> None:
        """Signal that no more records follow. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[StepResult]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item


class Task(Protocol):
    """Protocol for one scripted demonstration."""

    name: str
    description: str
    category: str

    def setup(self, ctx: Context) -> None:
        """Prepare data before the run."""
        ...

    def run(self, ctx: Context, sink: StepSink) -> None:
        """Execute, pushing records into `sink`; close it exactly once on return."""
        ...

    def cleanup(self, ctx: Context) -> None:
        """Remove anything created by setup or run."""
        ...


class Resource(Protocol):
    """Protocol for the external stateful system being demonstrated against."""

    name: str
    description: str

    def start(self, ctx: Context) -> None:
        """Bring the resource up. Raises on failure."""
        ...

    def stop(self, ctx: Context) -> None:
        """Tear the resource down. Safe on a never-started or stopped resource."""
        ...

    def is_running(self) -> bool:
        ...

    def connection_info(self) -> str:
        ...

    def list_tasks(self) -> Sequence[Task]:
        """Demonstrations available while the resource is running."""
        ...


T = TypeVar("T", Resource, Task)


class Registry(Generic[T]):
    """Ordered name -> implementation mapping resolved at composition time."""

    def __init__(self) -> None:
        self._items: list[T] = []

    def register(self, item: T) -> None:
        if self.get(item.name) is not None:
            raise ValueError(f"{item.name!r} is already registered")
        self._items.append(item)

    def all(self) -> tuple[T, ...]:
        return tuple(self._items)

    def get(self, name: str) -> T | None:
        for item in self._items:
            if item.name == name:
                return item
        return None

    def clear(self) -> None:
        self._items = []

    def __len__(self) -> int:
        return len(self._items)


class ResourceRegistry(Registry[Resource]):
    """Resources offered on the selection view."""


class TaskRegistry(Registry[Task]):
    """Demonstrations a resource exposes."""
