"""Tests for the Textual host, driven headless through run_test()."""

import asyncio
from typing import Callable

from txdemo.app import TxDemoApp
from txdemo.config import Settings
from txdemo.providers import ResourceRegistry
from txdemo.state import HelpView, MenuView, ResourceSelectView, RunnerView, TaskListView
from txdemo.views.stage import StagePanel

from fakes import FakeResource


async def wait_for(condition: Callable[[], bool], timeout: float = 5.0) -> None:
    """Poll without touching the pilot, which may be gone once the app exits."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() >= deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.02)


def make_app(registry: ResourceRegistry, settings: Settings) -> TxDemoApp:
    return TxDemoApp(registry, settings=settings)


class TestTxDemoApp:
    """Tests for TxDemoApp."""

    def test_menu_navigation(self, registry: ResourceRegistry, settings: Settings) -> None:
        app = make_app(registry, settings)

        async def scenario() -> None:
            async with app.run_test(size=(100, 40)) as pilot:
                assert app.screen.query_one(StagePanel) is not None
                assert isinstance(app.dispatcher.state.view, MenuView)
                await pilot.press("down", "enter")
                assert isinstance(app.dispatcher.state.view, HelpView)
                await pilot.press("escape", "up", "enter")
                assert isinstance(app.dispatcher.state.view, ResourceSelectView)
                await pilot.press("escape", "q")
                await wait_for(lambda: app.dispatcher.state.terminated)

        asyncio.run(scenario())
        assert app.dispatcher.context.cancelled

    def test_run_then_quit_releases_resource(
        self, registry: ResourceRegistry, resource: FakeResource, settings: Settings
    ) -> None:
        app = make_app(registry, settings)
        view = lambda: app.dispatcher.state.view  # noqa: E731

        async def scenario() -> None:
            async with app.run_test(size=(100, 40)) as pilot:
                await pilot.press("enter", "enter")
                await wait_for(lambda: isinstance(view(), TaskListView))

                await pilot.press("enter")
                assert isinstance(view(), RunnerView)
                await wait_for(lambda: view().session.done)
                assert [r.description for r in view().session.results] == ["one", "two"]

                await pilot.press("ctrl+c")
                await wait_for(lambda: app.dispatcher.state.gate.settled)

        asyncio.run(scenario())
        assert resource.starts == 1
        assert resource.stops == 1
        assert app.dispatcher.state.terminated

    def test_failed_start_returns_to_selection(
        self, registry: ResourceRegistry, resource: FakeResource, settings: Settings
    ) -> None:
        resource.start_error = RuntimeError("daemon not running")
        app = make_app(registry, settings)

        async def scenario() -> None:
            async with app.run_test(size=(100, 40)) as pilot:
                await pilot.press("enter", "enter")
                await wait_for(lambda: getattr(app.dispatcher.state.view, "error", None) is not None)
                assert "daemon not running" in app.dispatcher.state.view.error
                await pilot.press("ctrl+c")

        asyncio.run(scenario())
        assert resource.stops == 0
