"""
View state owned by the dispatcher.

Every value here is immutable; transitions build new values with
dataclasses.replace().
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Union

from txdemo.errors import InvariantViolation
from txdemo.lifecycle import ResourceGate
from txdemo.providers import Context, StepResult, Task

MENU_RESOURCES = "resources"
MENU_HELP = "help"
MENU_QUIT = "quit"

MENU_ITEMS: tuple[tuple[str, str], ...] = (
    (MENU_RESOURCES, "🗄️  Select Database Provider"),
    (MENU_HELP, "❓ Help & About"),
    (MENU_QUIT, "🚪 Quit"),
)


def move_cursor(cursor: int, delta: int, length: int) -> int:
    """Clamp a list cursor to [0, length)."""
    if length <= 0:
        return 0
    return max(0, min(length - 1, cursor + delta))


@dataclass(frozen=True)
class Session:
    """Live state of one task run."""

    generation: int
    task: Task
    results: tuple[StepResult, ...] = ()
    running: bool = True
    done: bool = False
    error: BaseException | None = None
    frame: int = 0
    # Cancelled when the run is left or the app quits
    context: Context | None = field(default=None, compare=False)

    def append(self, record: StepResult) -> "Session":
        if not self.running:
            raise InvariantViolation(
                f"step {record.step} arrived after run {self.generation} finished"
            )
        last = self.results[-1].step if self.results else 0
        if record.step <= last:
            raise InvariantViolation(
                f"step index {record.step} does not follow {last} in run {self.generation}"
            )
        return replace(self, results=self.results + (record,))

    def finish(self, error: BaseException | None = None) -> "Session":
        if not self.running:
            raise InvariantViolation(f"run {self.generation} completed twice")
        return replace(self, running=False, done=True, error=error)

    @property
    def steps(self) -> tuple[StepResult, ...]:
        """Records that are not section headers."""
        return tuple(r for r in self.results if not r.is_header)


@dataclass(frozen=True)
class MenuView:
    cursor: int = 0


@dataclass(frozen=True)
class ResourceSelectView:
    cursor: int = 0
    error: str | None = None


@dataclass(frozen=True)
class LoadingView:
    generation: int
    resource_name: str
    title: str
    messages: tuple[str, ...] = ()
    frame: int = 0
    # Where back/failure returns to
    resource_cursor: int = 0


@dataclass(frozen=True)
class TaskListView:
    tasks: tuple[Task, ...] = ()
    cursor: int = 0
    # Captured when the resource came up
    resource_name: str = ""
    connection_info: str = ""

    def selected(self) -> Task | None:
        if 0 <= self.cursor < len(self.tasks):
            return self.tasks[self.cursor]
        return None


@dataclass(frozen=True)
class RunnerView:
    session: Session
    # Task list to return to
    origin: TaskListView


@dataclass(frozen=True)
class HelpView:
    pass


@dataclass(frozen=True)
class TerminatedView:
    forced: bool = False


ViewState = Union[
    MenuView,
    ResourceSelectView,
    LoadingView,
    TaskListView,
    RunnerView,
    HelpView,
    TerminatedView,
]


@dataclass(frozen=True)
class AppState:
    """Everything the dispatcher owns.

    `width` and `height` track the terminal. The renderer wraps scenario
    descriptions to the width; the height is recorded but the stage scrolls,
    so nothing is cut to it.
    """

    view: ViewState = field(default_factory=MenuView)
    gate: ResourceGate = field(default_factory=ResourceGate)
    # Last generation handed out; shared by start attempts and task runs
    generation: int = 0
    width: int = 80
    height: int = 24

    def next_generation(self) -> tuple["AppState", int]:
        generation = self.generation + 1
        return replace(self, generation=generation), generation

    @property
    def terminated(self) -> bool:
        return isinstance(self.view, TerminatedView)
