"""Test doubles for the Resource and Task protocols, plus a synchronous host."""

from __future__ import annotations

import threading
from collections import deque

from txdemo.commands import Cancel, Command, Delay, Perform, Stream, Terminate, flatten
from txdemo.dispatcher import Dispatcher
from txdemo.messages import KeyInput, Message
from txdemo.providers import Context, StepResult, StepSink
from txdemo.state import AppState


class FakeTask:
    def __init__(
        self,
        name: str,
        steps: list[str] | None = None,
        setup_error: Exception | None = None,
        run_error: Exception | None = None,
        cleanup_error: Exception | None = None,
        category: str = "Fake Level",
    ) -> None:
        self.name = name
        self.description = f"{name} description\nsecond line"
        self.category = category
        self.steps = steps or []
        self.setup_error = setup_error
        self.run_error = run_error
        self.cleanup_error = cleanup_error
        self.calls: list[str] = []
        # Set to hold run() open until the test releases it
        self.release: threading.Event | None = None

    def setup(self, ctx: Context) -> None:
        self.calls.append("setup")
        if self.setup_error is not None:
            raise self.setup_error

    def run(self, ctx: Context, sink: StepSink) -> None:
        self.calls.append("run")
        try:
            for description in self.steps:
                sink.put(StepResult(session="Session A", description=description))
            if self.release is not None:
                self.release.wait(5)
            if self.run_error is not None:
                raise self.run_error
        finally:
            sink.close()

    def cleanup(self, ctx: Context) -> None:
        self.calls.append("cleanup")
        if self.cleanup_error is not None:
            raise self.cleanup_error


class FakeResource:
    def __init__(
        self,
        name: str,
        tasks: list[FakeTask] | None = None,
        start_error: Exception | None = None,
        stop_error: Exception | None = None,
    ) -> None:
        self.name = name
        self.description = f"{name} for tests"
        self.tasks = tasks or []
        self.start_error = start_error
        self.stop_error = stop_error
        self.starts = 0
        self.stops = 0
        self.running = False

    def start(self, ctx: Context) -> None:
        self.starts += 1
        if self.start_error is not None:
            raise self.start_error
        self.running = True

    def stop(self, ctx: Context) -> None:
        self.stops += 1
        self.running = False
        if self.stop_error is not None:
            raise self.stop_error

    def is_running(self) -> bool:
        return self.running

    def connection_info(self) -> str:
        return "fake://localhost"

    def list_tasks(self) -> list[FakeTask]:
        return list(self.tasks)


class Harness:
    """Runs the dispatcher's commands synchronously.

    Perform/Stream operations run at once and their messages queue up until
    drain(). Delays collect in `timers` until fire_timers().
    """

    def __init__(self, dispatcher: Dispatcher) -> None:
        self.dispatcher = dispatcher
        self.inbox: deque[Message] = deque()
        self.timers: list[Delay] = []
        self.executed: list[Command] = []
        self.terminated = False

    @property
    def state(self) -> AppState:
        return self.dispatcher.state

    def send(self, message: Message) -> AppState:
        state, command = self.dispatcher.update(message)
        self.execute(command)
        return state

    def press(self, *keys: str) -> AppState:
        for key in keys:
            self.send(KeyInput(key))
        return self.state

    def execute(self, command: Command | None) -> None:
        for leaf in flatten(command):
            self.executed.append(leaf)
            if isinstance(leaf, Delay):
                self.timers.append(leaf)
            elif isinstance(leaf, Perform):
                self.inbox.append(leaf.operation())
            elif isinstance(leaf, Stream):
                leaf.operation(self.inbox.append)
            elif isinstance(leaf, Cancel):
                leaf.context.cancel()
            elif isinstance(leaf, Terminate):
                self.terminated = True

    def drain(self) -> AppState:
        while self.inbox:
            self.send(self.inbox.popleft())
        return self.state

    def fire_timers(self) -> AppState:
        timers, self.timers = self.timers, []
        for timer in timers:
            self.send(timer.message)
        return self.state

    def labelled(self, prefix: str) -> list[Command]:
        return [
            c for c in self.executed
            if isinstance(c, (Perform, Stream)) and c.label.startswith(prefix)
        ]

    @property
    def stop_commands(self) -> int:
        return len(self.labelled("stop:"))

    @property
    def start_commands(self) -> int:
        return len(self.labelled("start:"))
