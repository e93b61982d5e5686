"""Pure rendering of app state to Rich markup."""

from __future__ import annotations

import textwrap

from rich.markup import escape

from txdemo.config import TIP_ROTATION_FRAMES, Settings, Theme
from txdemo.providers import ResourceRegistry, StepResult
from txdemo.state import (
    MENU_ITEMS,
    AppState,
    HelpView,
    LoadingView,
    MenuView,
    ResourceSelectView,
    RunnerView,
    TaskListView,
    TerminatedView,
)

CURSOR = "▸ "
NO_CURSOR = "  "

# Widest a scenario description wraps to, and the narrowest
DESCRIPTION_WIDTH = 70
MIN_DESCRIPTION_WIDTH = 20

PROVIDER_ICONS = {
    "MongoDB": "🍃",
    "PostgreSQL": "🐘",
    "MySQL": "🐬",
}

HELP_TEXT = """\
TxDemo is an interactive CLI tool for demonstrating database transaction isolation levels.

It helps developers visualize and understand:
• Dirty Reads
• Non-Repeatable Reads
• Phantom Reads
• Serialization Anomalies

Navigation:
• Use ↑/↓ to navigate menus
• Press Enter to select items
• Press Esc to go back
• Press q to quit

Created for educational purposes."""


def _style(text: str, style: str) -> str:
    return f"[{style}]{escape(text)}[/]"


def _title(text: str, theme: Theme) -> str:
    return _style(text, f"bold {theme.primary}")


def _help(text: str, theme: Theme) -> str:
    return _style(text, theme.muted)


def _wrap(paragraphs: list[str], width: int) -> list[str]:
    lines = []
    for paragraph in paragraphs:
        lines += textwrap.wrap(paragraph, width) or [""]
    return lines


def description_width(terminal_width: int) -> int:
    """Column budget for a description indented under a list item."""
    return max(MIN_DESCRIPTION_WIDTH, min(terminal_width - 8, DESCRIPTION_WIDTH))


def _badge(text: str, color: str) -> str:
    return _style(f" {text} ", f"bold #FFFFFF on {color}")


def _item(label: str, selected: bool, theme: Theme) -> str:
    if selected:
        return _style(CURSOR, f"bold {theme.secondary}") + _style(
            f" {label} ", f"bold {theme.text} on {theme.primary}"
        )
    return NO_CURSOR + _style(f" {label} ", theme.text)


def render_menu(view: MenuView, theme: Theme) -> str:
    lines = [
        "",
        _title("🔄 Transaction Isolation Levels Demo", theme),
        _style("Learn how database isolation levels work with live demonstrations", theme.muted),
        "",
    ]
    for i, (_key, label) in enumerate(MENU_ITEMS):
        lines.append(_item(label, i == view.cursor, theme))
    lines += ["", _help("↑/↓ navigate • enter select • q quit", theme)]
    return "\n".join(lines)


def render_resource_select(
    view: ResourceSelectView,
    resources: ResourceRegistry,
    state: AppState,
    theme: Theme,
) -> str:
    lines = [
        "",
        _title("🗄️ Select Database Provider", theme),
        _style("Choose a database to explore its isolation levels", theme.muted),
        "",
    ]
    if view.error:
        lines += [_style(f"Error: {view.error}", f"bold {theme.error}"), ""]

    if not len(resources):
        lines.append(_style("  No providers registered", f"bold {theme.warning}"))
        return "\n".join(lines)

    for i, resource in enumerate(resources.all()):
        icon = PROVIDER_ICONS.get(resource.name, "📦")
        lines.append(_item(f"{icon} {resource.name}", i == view.cursor, theme))
        lines.append("    " + _style(resource.description, theme.muted))
        lines.append("")

    if not state.gate.idle:
        lines += [_style("⏳ Waiting for the previous resource to shut down...", f"italic {theme.warning}"), ""]

    lines.append(_help("↑/↓ navigate • enter select • esc/q back", theme))
    return "\n".join(lines)


def render_loading(view: LoadingView, theme: Theme, tips: tuple[str, ...], rotation: int) -> str:
    spinner = theme.spinner(view.frame)
    lines = [
        "",
        _style(spinner, theme.warning) + " " + _title(view.title, theme),
        "",
    ]
    for i, message in enumerate(view.messages):
        if i < len(view.messages) - 1:
            mark = _style("  ✓ ", theme.secondary)
        else:
            mark = _style(f"  {spinner} ", theme.warning)
        lines.append(mark + _style(message, theme.muted))
    lines.append("")
    if tips:
        tip = tips[(view.frame // max(rotation, 1)) % len(tips)]
        lines.append(_style(tip, f"italic {theme.muted}"))
    lines += ["", _help("esc back", theme)]
    return "\n".join(lines)


def render_task_list(view: TaskListView, state: AppState, theme: Theme) -> str:
    name = view.resource_name or "?"
    info = view.connection_info or "Not connected"
    lines = [
        "",
        _title("📚 Select Demonstration Scenario", theme) + "  " + _badge(name, theme.secondary),
        "",
        _style(f"Connected: {info}", f"italic {theme.muted}"),
        "",
    ]
    if not view.tasks:
        lines.append(_style("  No scenarios available", f"bold {theme.warning}"))
        return "\n".join(lines)

    for i, task in enumerate(view.tasks):
        selected = i == view.cursor
        lines.append(_item(task.name, selected, theme) + "  " + _badge(task.category, theme.primary))
        if selected:
            for desc_line in _wrap(task.description.splitlines()[:3], description_width(state.width)):
                lines.append("    " + _style(desc_line, "#9CA3AF"))
        lines.append("")

    lines.append(_help("↑/↓ navigate • enter run scenario • esc/q back", theme))
    return "\n".join(lines)


def render_step(record: StepResult, theme: Theme) -> list[str]:
    if record.is_header:
        return ["", _style(f" {record.description} ", f"bold {theme.text} on {theme.header_bg}"), ""]

    lines = [
        "{} {}  {}".format(
            _style(f"[{record.step}]", theme.muted),
            _style(f"{record.session:<10}", f"bold {theme.session_color(record.session)}"),
            _style(record.description, theme.text),
        )
    ]
    if record.query:
        lines.append("    " + _style(f"→ {record.query}", f"italic {theme.query}"))
    if record.result:
        color = theme.secondary if record.success else theme.error
        for line in record.result.splitlines():
            lines.append("    " + _style(f"  {line}", color))
    lines.append("")
    return lines


def render_runner(view: RunnerView, theme: Theme) -> str:
    session = view.session
    task = session.task
    status = ""
    if session.running:
        status = _style(f"  {theme.spinner(session.frame)} Running...", theme.warning)
    elif session.done:
        if session.error is not None:
            status = _style("  ❌ Error", theme.error)
        else:
            status = _style("  ✓ Complete", theme.secondary)

    lines = ["", _title(f"🎬 {task.name}", theme) + status, _badge(task.category, theme.primary), ""]

    if not session.results and session.running:
        lines.append(_style("  Preparing scenario...", f"italic {theme.muted}"))

    for record in session.results:
        lines += render_step(record, theme)

    if session.error is not None:
        lines += ["", _style(f"Error: {session.error}", f"bold {theme.error}")]

    lines.append("")
    if session.done:
        lines.append(_help("esc/q back to scenarios", theme))
    else:
        lines.append(_help("Running... esc/q abandons the run", theme))
    return "\n".join(lines)


def render_help(theme: Theme) -> str:
    lines = ["", _title("❓ Help & About", theme), ""]
    for line in HELP_TEXT.splitlines():
        lines.append(f"  {escape(line)}" if line.strip() else "")
    lines += ["", _help("esc back • q quit", theme)]
    return "\n".join(lines)


def render_terminated(view: TerminatedView, state: AppState, theme: Theme) -> str:
    if state.gate.settled:
        return "\n  Goodbye!\n"
    return "\n  " + _style("Cleaning up resources...", theme.warning) + "\n"


def render(
    state: AppState,
    resources: ResourceRegistry,
    theme: Theme | None = None,
    settings: Settings | None = None,
) -> str:
    """Render `state` to Rich markup."""
    theme = theme or Theme()
    settings = settings or Settings()
    view = state.view
    if isinstance(view, MenuView):
        return render_menu(view, theme)
    if isinstance(view, ResourceSelectView):
        return render_resource_select(view, resources, state, theme)
    if isinstance(view, LoadingView):
        return render_loading(view, theme, settings.loading_tips, TIP_ROTATION_FRAMES)
    if isinstance(view, TaskListView):
        return render_task_list(view, state, theme)
    if isinstance(view, RunnerView):
        return render_runner(view, theme)
    if isinstance(view, HelpView):
        return render_help(theme)
    if isinstance(view, TerminatedView):
        return render_terminated(view, state, theme)
    raise TypeError(f"no renderer for {view!r}")
