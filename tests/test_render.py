"""Tests for rendering state to Rich markup."""

from dataclasses import replace

import pytest
from rich.text import Text

from txdemo.config import Settings, Theme
from txdemo.dispatcher import Dispatcher
from txdemo.lifecycle import ResourceGate
from txdemo.providers import ResourceRegistry, StepResult, header
from txdemo.render import description_width, render, render_step
from txdemo.state import (
    AppState,
    HelpView,
    LoadingView,
    ResourceSelectView,
    RunnerView,
    Session,
    TaskListView,
    TerminatedView,
)

from fakes import FakeResource, FakeTask, Harness


def plain(markup: str) -> str:
    return Text.from_markup(markup).plain


class TestRender:
    """Tests for render()."""

    def test_menu(self, registry: ResourceRegistry) -> None:
        text = plain(render(AppState(), registry))
        assert "Transaction Isolation Levels Demo" in text
        assert "▸" in text
        assert "Quit" in text

    def test_resource_select_lists_resources(self, registry: ResourceRegistry) -> None:
        text = plain(render(AppState(view=ResourceSelectView()), registry))
        assert "Fake DB" in text
        assert "Fake DB for tests" in text
        assert "Error" not in text

    def test_resource_select_shows_error(self, registry: ResourceRegistry) -> None:
        state = AppState(view=ResourceSelectView(error="failed to start Fake DB: [boom]"))
        assert "Error: failed to start Fake DB: [boom]" in plain(render(state, registry))

    def test_resource_select_notes_pending_shutdown(
        self, registry: ResourceRegistry
    ) -> None:
        state = AppState(view=ResourceSelectView(), gate=ResourceGate(pending_stops=frozenset({1})))
        assert "Waiting for the previous resource" in plain(render(state, registry))

    def test_empty_registry(self) -> None:
        text = plain(render(AppState(view=ResourceSelectView()), ResourceRegistry()))
        assert "No providers registered" in text

    def test_loading_rotates_tips(self, registry: ResourceRegistry) -> None:
        settings = Settings(loading_tips=("tip one", "tip two"))
        view = LoadingView(generation=1, resource_name="Fake DB", title="Starting Fake DB...",
                           messages=("first", "second"))
        first = plain(render(AppState(view=view), registry, settings=settings))
        later = plain(render(AppState(view=replace(view, frame=30)), registry, settings=settings))
        assert "Starting Fake DB..." in first
        assert "✓ first" in first
        assert "tip one" in first
        assert "tip two" in later

    def test_task_list(self, registry: ResourceRegistry, resource: FakeResource) -> None:
        view = TaskListView(
            tasks=tuple(resource.tasks),
            cursor=1,
            resource_name="Fake DB",
            connection_info="fake://localhost",
        )
        text = plain(render(AppState(view=view), registry))
        assert "Fake DB" in text
        assert "Connected: fake://localhost" in text
        assert "Second description" in text
        assert "First description" not in text

    def test_task_list_does_not_query_resource(self, registry: ResourceRegistry) -> None:
        resource = FakeResource("Fake DB")
        resource.connection_info = None  # calling it would raise TypeError
        state = AppState(view=TaskListView(), gate=ResourceGate(active=resource))
        assert "Connected: Not connected" in plain(render(state, registry))

    def test_task_list_wraps_description_to_width(self, registry: ResourceRegistry) -> None:
        task = FakeTask("Long")
        task.description = " ".join(["isolation"] * 30) + "\nshort tail"
        for width in (40, 200):
            state = AppState(view=TaskListView(tasks=(task,)), width=width)
            lines = plain(render(state, registry)).splitlines()
            described = [line for line in lines if "isolation" in line]
            assert len(described) > 1
            assert all(len(line) <= 4 + description_width(width) for line in described)
            assert any(line.strip() == "short tail" for line in lines)

    def test_description_width_bounds(self) -> None:
        assert description_width(200) == 70
        assert description_width(50) == 42
        assert description_width(10) == 20

    def test_runner_shows_progress_and_errors(self, registry: ResourceRegistry) -> None:
        task = FakeTask("[weird] name")
        session = Session(generation=1, task=task)
        runner = RunnerView(session=session, origin=TaskListView())
        text = plain(render(AppState(view=runner), registry))
        assert "[weird] name" in text
        assert "Preparing scenario" in text

        session = session.append(StepResult(session="Session A", step=1, description="did it"))
        session = session.finish(RuntimeError("gone"))
        text = plain(render(AppState(view=replace(runner, session=session)), registry))
        assert "[1]" in text
        assert "did it" in text
        assert "Error: gone" in text

    def test_help(self, registry: ResourceRegistry) -> None:
        assert "Dirty Reads" in plain(render(AppState(view=HelpView()), registry))

    def test_terminated(self, registry: ResourceRegistry, resource: FakeResource) -> None:
        settled = AppState(view=TerminatedView())
        assert "Goodbye!" in plain(render(settled, registry))
        busy = replace(settled, gate=ResourceGate(pending_stops=frozenset({1})))
        assert "Cleaning up resources" in plain(render(busy, registry))


class TestRenderStep:
    """Tests for render_step()."""

    def test_header(self) -> None:
        lines = render_step(header("Section"), Theme())
        assert "Section" in plain("\n".join(lines))

    def test_failed_result_lines(self) -> None:
        record = StepResult("Session B", 3, "commit", "db.commit()", "line 1\nline 2", False)
        text = plain("\n".join(render_step(record, Theme())))
        assert "→ db.commit()" in text
        assert "line 1" in text and "line 2" in text


@pytest.mark.parametrize(
    "keys",
    [(), ("enter",), ("enter", "enter"), ("enter", "enter", "drain"),
     ("enter", "enter", "drain", "enter"), ("enter", "enter", "drain", "enter", "drain"),
     ("down", "enter"), ("q",)],
)
def test_every_reachable_state_is_valid_markup(
    dispatcher: Dispatcher, registry: ResourceRegistry, keys: tuple[str, ...]
) -> None:
    harness = Harness(dispatcher)
    for key in keys:
        if key == "drain":
            harness.drain()
        else:
            harness.press(key)
    Text.from_markup(render(harness.state, registry))
