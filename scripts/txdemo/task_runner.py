"""
Task execution pipeline.

A run is set up on the host's worker thread, then the task itself runs on
one more thread that pushes records into a StepSink. The host worker drains
the sink and emits one TaskStep per record, so the UI keeps ticking and
redrawing between steps.
"""

from __future__ import annotations

import logging
import threading
import weakref
from dataclasses import replace

from txdemo.commands import Emit, Stream
from txdemo.errors import InvariantViolation, TaskRunError, TaskSetupError
from txdemo.messages import TaskComplete, TaskStep
from txdemo.providers import Context, StepSink, Task

logger = logging.getLogger(__name__)

# One lock per task; a run holds it from setup through cleanup so two runs
# of the same task never touch its data at once
_locks_guard = threading.Lock()
_task_locks: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()


def _run_lock(task: Task) -> threading.Lock:
    with _locks_guard:
        lock = _task_locks.get(task)
        if lock is None:
            lock = _task_locks[task] = threading.Lock()
        return lock


class RunHandle:
    """One task run: its generation plus a single-shot completion signal."""

    def __init__(self, task: Task, generation: int, ctx: Context) -> None:
        self.task = task
        self.generation = generation
        self._ctx = ctx
        self._completed = threading.Event()
        self._lock = threading.Lock()
        self._run_error: BaseException | None = None
        self.error: BaseException | None = None
        self.steps_emitted = 0
        self.worker: threading.Thread | None = None

    @property
    def completed(self) -> bool:
        return self._completed.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._completed.wait(timeout)

    def __call__(self, emit: Emit) -> None:
        lock = _run_lock(self.task)
        if not lock.acquire(blocking=False):
            logger.info("run %d of %r waits for the previous run to finish", self.generation, self.task.name)
            lock.acquire()
        try:
            self._execute(emit)
        finally:
            lock.release()

    def _execute(self, emit: Emit) -> None:
        name = self.task.name
        logger.info("setting up %r (run %d)", name, self.generation)
        try:
            self.task.setup(self._ctx)
        except Exception as exc:
            logger.warning("setup of %r failed: %s", name, exc)
            self._complete(emit, TaskSetupError(name, exc))
            return

        sink = StepSink()
        self.worker = threading.Thread(
            target=self._run,
            args=(sink,),
            name=f"task-{self.generation}",
            daemon=True,
        )
        self.worker.start()

        for record in sink:
            self.steps_emitted += 1
            emit(TaskStep(self.generation, replace(record, step=self.steps_emitted)))

        self.worker.join()

        try:
            self.task.cleanup(self._ctx)
        except Exception as exc:
            logger.warning("cleanup of %r failed: %s", name, exc)

        self._complete(emit, self._run_error)

    def _run(self, sink: StepSink) -> None:
        try:
            self.task.run(self._ctx, sink)
        except Exception as exc:
            logger.warning("%r failed: %s", self.task.name, exc)
            self._run_error = TaskRunError(self.task.name, exc)
        finally:
            sink.close()

    def _complete(self, emit: Emit, error: BaseException | None) -> None:
        with self._lock:
            if self._completed.is_set():
                raise InvariantViolation(f"run {self.generation} completed twice")
            self.error = error
            self._completed.set()
        logger.info(
            "%r finished (run %d, %d steps)%s",
            self.task.name,
            self.generation,
            self.steps_emitted,
            f": {error}" if error else "",
        )
        emit(TaskComplete(self.generation, error))


def start(task: Task, generation: int, ctx: Context) -> Stream:
    """Command that runs `task` and streams its records back."""
    return Stream(RunHandle(task, generation, ctx), label=f"run:{generation}")
