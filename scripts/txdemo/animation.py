"""Spinner ticks.

A tick only reschedules itself while the view it was scheduled for is still
animating, so the timer chain dies within one interval of the work ending.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from txdemo.commands import Command, Delay
from txdemo.config import Settings
from txdemo.messages import Tick
from txdemo.state import AppState, LoadingView, RunnerView

logger = logging.getLogger(__name__)


def schedule(generation: int, interval: float) -> Delay:
    return Delay(interval, Tick(generation))


def animating_generation(state: AppState) -> int | None:
    """Generation that currently wants ticks, if any."""
    view = state.view
    if isinstance(view, LoadingView):
        return view.generation
    if isinstance(view, RunnerView) and view.session.running:
        return view.session.generation
    return None


def advance(state: AppState, tick: Tick, settings: Settings) -> tuple[AppState, Command | None]:
    if animating_generation(state) != tick.generation:
        logger.debug("dropping tick for generation %d", tick.generation)
        return state, None

    view = state.view
    if isinstance(view, LoadingView):
        view = replace(view, frame=view.frame + 1)
        interval = settings.loading_interval
    else:
        session = replace(view.session, frame=view.session.frame + 1)
        view = replace(view, session=session)
        interval = settings.runner_interval
    return replace(state, view=view), schedule(tick.generation, interval)
