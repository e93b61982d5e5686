"""
The state machine at the heart of the app.

`Dispatcher.update` takes one message and returns the new state plus an
optional command for the host to carry out. It never blocks and never does
I/O itself; everything slow comes back later as another message.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from txdemo import animation, task_runner
from txdemo.commands import Cancel, Command, Terminate, batch
from txdemo.config import Settings
from txdemo.errors import InvariantViolation
from txdemo.messages import (
    KeyInput,
    Message,
    Quit,
    Resize,
    ResourceStarted,
    ResourceStopped,
    TaskComplete,
    TaskSelected,
    TaskStep,
    Tick,
)
from txdemo.providers import Context, Resource, ResourceRegistry, Task
from txdemo.state import (
    MENU_HELP,
    MENU_ITEMS,
    MENU_QUIT,
    MENU_RESOURCES,
    AppState,
    HelpView,
    LoadingView,
    MenuView,
    ResourceSelectView,
    RunnerView,
    Session,
    TaskListView,
    TerminatedView,
    move_cursor,
)

logger = logging.getLogger(__name__)

UP_KEYS = frozenset({"up", "k"})
DOWN_KEYS = frozenset({"down", "j"})
SELECT_KEYS = frozenset({"enter"})
BACK_KEYS = frozenset({"escape", "esc"})
QUIT_KEY = "q"
FORCE_QUIT_KEYS = frozenset({"ctrl+c"})

Result = tuple[AppState, Command | None]


class Dispatcher:
    """Sole owner of the app state."""

    def __init__(
        self,
        resources: ResourceRegistry,
        settings: Settings | None = None,
        context: Context | None = None,
    ) -> None:
        self._resources = resources
        self._settings = settings or Settings()
        self.context = context or Context()
        self._state = AppState()

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def resources(self) -> ResourceRegistry:
        return self._resources

    def init(self) -> Command | None:
        return None

    def update(self, message: Message) -> Result:
        state, command = self._transition(self._state, message)
        self._state = state
        return state, command

    def _transition(self, state: AppState, message: Message) -> Result:
        if isinstance(message, KeyInput):
            return self._on_key(state, message.key)
        if isinstance(message, Tick):
            return animation.advance(state, message, self._settings)
        if isinstance(message, TaskStep):
            return self._on_step(state, message)
        if isinstance(message, TaskComplete):
            return self._on_complete(state, message)
        if isinstance(message, ResourceStarted):
            return self._on_started(state, message)
        if isinstance(message, ResourceStopped):
            return self._on_stopped(state, message)
        if isinstance(message, TaskSelected):
            if isinstance(state.view, TaskListView):
                return self._run_task(state, state.view, message.task)
            return state, None
        if isinstance(message, Resize):
            return replace(state, width=message.width, height=message.height), None
        if isinstance(message, Quit):
            return self._quit(state, message.forced)
        raise InvariantViolation(f"unhandled message {message!r}")

    # Input

    def _on_key(self, state: AppState, key: str) -> Result:
        view = state.view
        if isinstance(view, TerminatedView):
            return state, None
        if key in FORCE_QUIT_KEYS:
            return self._quit(state, forced=True)
        if key == QUIT_KEY:
            if isinstance(view, MenuView):
                return self._quit(state, forced=False)
            return self._back(state)
        if key in BACK_KEYS:
            return self._back(state)

        if isinstance(view, MenuView):
            return self._menu_key(state, view, key)
        if isinstance(view, ResourceSelectView):
            return self._resource_key(state, view, key)
        if isinstance(view, TaskListView):
            return self._task_list_key(state, view, key)
        return state, None

    def _menu_key(self, state: AppState, view: MenuView, key: str) -> Result:
        if key in UP_KEYS or key in DOWN_KEYS:
            delta = -1 if key in UP_KEYS else 1
            cursor = move_cursor(view.cursor, delta, len(MENU_ITEMS))
            return replace(state, view=MenuView(cursor)), None
        if key not in SELECT_KEYS:
            return state, None

        item = MENU_ITEMS[view.cursor][0]
        if item == MENU_RESOURCES:
            return replace(state, view=ResourceSelectView()), None
        if item == MENU_HELP:
            return replace(state, view=HelpView()), None
        if item == MENU_QUIT:
            return self._quit(state, forced=False)
        raise InvariantViolation(f"unknown menu item {item!r}")

    def _resource_key(self, state: AppState, view: ResourceSelectView, key: str) -> Result:
        resources = self._resources.all()
        if key in UP_KEYS or key in DOWN_KEYS:
            delta = -1 if key in UP_KEYS else 1
            cursor = move_cursor(view.cursor, delta, len(resources))
            return replace(state, view=replace(view, cursor=cursor)), None
        if key not in SELECT_KEYS or not resources:
            return state, None
        if not state.gate.idle:
            logger.info("start requested while a previous resource is still shutting down")
            return state, None
        return self._start_resource(state, view, resources[view.cursor])

    def _task_list_key(self, state: AppState, view: TaskListView, key: str) -> Result:
        if key in UP_KEYS or key in DOWN_KEYS:
            delta = -1 if key in UP_KEYS else 1
            cursor = move_cursor(view.cursor, delta, len(view.tasks))
            return replace(state, view=replace(view, cursor=cursor)), None
        if key in SELECT_KEYS:
            task = view.selected()
            if task is not None:
                return self._run_task(state, view, task)
        return state, None

    # Navigation

    def _back(self, state: AppState) -> Result:
        view = state.view
        if isinstance(view, ResourceSelectView):
            return replace(state, view=MenuView(self._menu_index(MENU_RESOURCES))), None
        if isinstance(view, HelpView):
            return replace(state, view=MenuView(self._menu_index(MENU_HELP))), None
        if isinstance(view, LoadingView):
            return (
                replace(
                    state,
                    view=ResourceSelectView(cursor=view.resource_cursor),
                    gate=state.gate.abandon(),
                ),
                None,
            )
        if isinstance(view, TaskListView):
            cursor = self._resource_index(state.gate.active)
            gate, stop = state.gate.release(self.context)
            return replace(state, view=ResourceSelectView(cursor=cursor), gate=gate), stop
        if isinstance(view, RunnerView):
            cancel = self._cancel_run(view)
            if cancel is not None:
                logger.info(
                    "leaving run %d before it finished; cancelling it and dropping its results",
                    view.session.generation,
                )
            return replace(state, view=view.origin), cancel
        return state, None

    def _menu_index(self, item: str) -> int:
        for i, (key, _label) in enumerate(MENU_ITEMS):
            if key == item:
                return i
        return 0

    def _resource_index(self, resource: Resource | None) -> int:
        for i, candidate in enumerate(self._resources.all()):
            if candidate is resource:
                return i
        return 0

    # Resource lifecycle

    def _start_resource(
        self, state: AppState, view: ResourceSelectView, resource: Resource
    ) -> Result:
        state, generation = state.next_generation()
        gate, start = state.gate.begin(resource, generation, self.context)
        loading = LoadingView(
            generation=generation,
            resource_name=resource.name,
            title=f"Starting {resource.name}...",
            messages=(f"Initializing {resource.name}...",),
            resource_cursor=view.cursor,
        )
        tick = animation.schedule(generation, self._settings.loading_interval)
        return replace(state, view=loading, gate=gate), batch(tick, start)

    def _on_started(self, state: AppState, message: ResourceStarted) -> Result:
        gate, command, current = state.gate.resolve(message, self.context)
        if gate is not state.gate:
            state = replace(state, gate=gate)
        if state.terminated:
            return self._finish_quit(state, command)
        if not current:
            return state, command

        view = state.view
        if not isinstance(view, LoadingView) or view.generation != message.generation:
            raise InvariantViolation(
                f"start result {message.generation} arrived outside its loading view"
            )
        if message.ok:
            task_list = TaskListView(
                tasks=message.tasks,
                resource_name=message.resource.name,
                connection_info=message.connection_info,
            )
            return replace(state, view=task_list), command
        select = ResourceSelectView(cursor=view.resource_cursor, error=str(message.error))
        return replace(state, view=select), command

    def _on_stopped(self, state: AppState, message: ResourceStopped) -> Result:
        state = replace(state, gate=state.gate.stopped(message))
        if state.terminated:
            return self._finish_quit(state, None)
        return state, None

    # Task runs

    def _run_task(self, state: AppState, view: TaskListView, task: Task) -> Result:
        state, generation = state.next_generation()
        run_context = self.context.child()
        session = Session(generation=generation, task=task, context=run_context)
        runner = RunnerView(session=session, origin=view)
        logger.info("running %r as run %d", task.name, generation)
        command = batch(
            task_runner.start(task, generation, run_context),
            animation.schedule(generation, self._settings.runner_interval),
        )
        return replace(state, view=runner), command

    def _cancel_run(self, view: RunnerView) -> Cancel | None:
        session = view.session
        if not session.running or session.context is None:
            return None
        return Cancel(session.context)

    def _current_session(self, state: AppState, generation: int) -> Session | None:
        view = state.view
        if not isinstance(view, RunnerView):
            return None
        session = view.session
        if session.generation != generation or not session.running:
            return None
        return session

    def _on_step(self, state: AppState, message: TaskStep) -> Result:
        session = self._current_session(state, message.generation)
        if session is None:
            logger.debug("dropping step from stale run %d", message.generation)
            return state, None
        view = replace(state.view, session=session.append(message.record))
        return replace(state, view=view), None

    def _on_complete(self, state: AppState, message: TaskComplete) -> Result:
        session = self._current_session(state, message.generation)
        if session is None:
            logger.debug("dropping completion of stale run %d", message.generation)
            return state, None
        view = replace(state.view, session=session.finish(message.error))
        return replace(state, view=view), None

    # Shutdown

    def _quit(self, state: AppState, forced: bool) -> Result:
        if state.terminated:
            return state, None
        logger.info("quit requested%s", " (forced)" if forced else "")
        cancel = self._cancel_run(state.view) if isinstance(state.view, RunnerView) else None
        gate, stop = state.gate.abandon().release(self.context)
        state = replace(state, view=TerminatedView(forced=forced), gate=gate)
        return self._finish_quit(state, batch(cancel, stop))

    def _finish_quit(self, state: AppState, command: Command | None) -> Result:
        if state.gate.settled:
            logger.info("all resources released; exiting")
            return state, batch(command, Terminate())
        return state, command
