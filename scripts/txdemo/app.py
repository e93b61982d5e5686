"""
TxDemo TUI Application.

Hosts the dispatcher: turns terminal events into messages, carries out the
commands it returns, and redraws the stage after every message.
"""

from __future__ import annotations

import logging
from functools import partial

from textual import events
from textual.app import App
from textual.binding import Binding
from textual.message import Message as TextualMessage

from txdemo.commands import Batch, Cancel, Command, Delay, Perform, Stream, Terminate, flatten
from txdemo.config import Settings, Theme
from txdemo.dispatcher import Dispatcher
from txdemo.messages import KeyInput, Message, Quit, Resize
from txdemo.providers import ResourceRegistry
from txdemo.render import render
from txdemo.state import RunnerView
from txdemo.views.stage import StageScreen

logger = logging.getLogger(__name__)


class _Inbound(TextualMessage, bubble=False):
    """Thread-safe bridge: worker result -> app message pump."""

    def __init__(self, message: Message) -> None:
        self.message = message
        super().__init__()


class TxDemoApp(App):
    """Main TxDemo application."""

    TITLE = "TxDemo"
    SUB_TITLE = "Transaction Isolation Levels"

    CSS = """
    Screen {
        background: $surface;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", show=True, priority=True),
        Binding("ctrl+q", "quit", "Quit", show=False, priority=True),
    ]

    def __init__(
        self,
        resources: ResourceRegistry,
        settings: Settings | None = None,
        theme: Theme | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._settings = settings or Settings()
        self._palette = theme or Theme()
        self._dispatcher = Dispatcher(resources, self._settings)
        self._stage: StageScreen | None = None

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    def on_mount(self) -> None:
        """Called when app is mounted."""
        self._stage = StageScreen(self._markup())
        self.push_screen(self._stage)
        self._execute(self._dispatcher.init())

    def on_key(self, event: events.Key) -> None:
        self._deliver(KeyInput(event.key))

    def on_resize(self, event: events.Resize) -> None:
        self._deliver(Resize(event.size.width, event.size.height))

    def on__inbound(self, event: _Inbound) -> None:
        self._deliver(event.message)

    def action_quit(self) -> None:
        """Route every quit through cleanup."""
        self._deliver(Quit(forced=True))

    def _deliver(self, message: Message) -> None:
        state, command = self._dispatcher.update(message)
        self._execute(command)
        if self._stage is not None and self._stage.is_mounted:
            self._stage.show(self._markup(), follow=isinstance(state.view, RunnerView))

    def _markup(self) -> str:
        return render(
            self._dispatcher.state,
            self._dispatcher.resources,
            self._palette,
            self._settings,
        )

    def _post(self, message: Message) -> None:
        self.post_message(_Inbound(message))

    def _perform(self, operation) -> None:
        self._post(operation())

    def _execute(self, command: Command | None) -> None:
        for leaf in flatten(command):
            if isinstance(leaf, Delay):
                self.set_timer(leaf.seconds, partial(self._deliver, leaf.message))
            elif isinstance(leaf, Perform):
                self.run_worker(
                    partial(self._perform, leaf.operation),
                    name=leaf.label,
                    group="perform",
                    thread=True,
                )
            elif isinstance(leaf, Stream):
                self.run_worker(
                    partial(leaf.operation, self._post),
                    name=leaf.label,
                    group="stream",
                    thread=True,
                )
            elif isinstance(leaf, Cancel):
                leaf.context.cancel()
            elif isinstance(leaf, Terminate):
                logger.info("exiting")
                self._dispatcher.context.cancel()
                self.exit()
            elif isinstance(leaf, Batch):
                raise TypeError("flatten() left a batch behind")


def run(resources: ResourceRegistry, settings: Settings | None = None) -> None:
    """Run the TUI application."""
    app = TxDemoApp(resources, settings=settings)
    app.run()
