"""Messages consumed by the dispatcher.

Input events and async results are all immutable values. Results of async
work carry the generation of the attempt or session that spawned them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from txdemo.providers import Resource, StepResult, Task


@dataclass(frozen=True)
class KeyInput:
    key: str


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class Tick:
    generation: int


@dataclass(frozen=True)
class ResourceStarted:
    generation: int
    resource: Resource
    error: BaseException | None = None
    # Demonstrations listed by the resource once it was up
    tasks: tuple[Task, ...] = ()
    connection_info: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ResourceStopped:
    # Generation of the start this stop undoes
    generation: int
    resource_name: str
    error: BaseException | None = None


@dataclass(frozen=True)
class TaskStep:
    generation: int
    record: StepResult


@dataclass(frozen=True)
class TaskComplete:
    generation: int
    error: BaseException | None = None


@dataclass(frozen=True)
class TaskSelected:
    task: Task


@dataclass(frozen=True)
class Quit:
    forced: bool = False


Message = Union[
    KeyInput,
    Resize,
    Tick,
    ResourceStarted,
    ResourceStopped,
    TaskStep,
    TaskComplete,
    TaskSelected,
    Quit,
]
