"""The single screen the dispatcher's views are drawn onto."""

from textual.app import ComposeResult
from textual.containers import VerticalScroll
from textual.screen import Screen
from textual.widgets import Footer, Header, Static


class StageScroll(VerticalScroll, can_focus=False):
    """Scroll area that leaves the arrow keys to the app."""


class StagePanel(Static):
    """Shows the rendered markup of the current view."""

    DEFAULT_CSS = """
    StagePanel {
        height: auto;
        padding: 0 2;
    }
    """


class StageScreen(Screen):
    """Main screen: header, scrolling stage, footer."""

    DEFAULT_CSS = """
    StageScreen {
        layout: vertical;
    }

    #stage-scroll {
        height: 1fr;
    }
    """

    def __init__(self, markup: str = "", **kwargs) -> None:
        super().__init__(**kwargs)
        self._markup = markup

    def compose(self) -> ComposeResult:
        yield Header()
        with StageScroll(id="stage-scroll"):
            yield StagePanel(self._markup, id="stage")
        yield Footer()

    def show(self, markup: str, follow: bool = False) -> None:
        """Replace the stage content; optionally keep the newest lines in view."""
        self.query_one(StagePanel).update(markup)
        if follow:
            self.query_one(StageScroll).scroll_end(animate=False)
