"""Declarative descriptions of deferred effects.

The dispatcher never performs I/O. It returns one of these and the host
runtime carries it out, feeding any resulting messages back in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, Union

from txdemo.messages import Message
from txdemo.providers import Context

Emit = Callable[[Message], None]


@dataclass(frozen=True)
class Delay:
    """Deliver `message` after `seconds`."""

    seconds: float
    message: Message


@dataclass(frozen=True)
class Perform:
    """Run a blocking operation off the owner thread; deliver its result."""

    operation: Callable[[], Message]
    label: str = ""


@dataclass(frozen=True)
class Stream:
    """Run a blocking operation that emits messages in order as it goes."""

    operation: Callable[[Emit], None]
    label: str = ""


@dataclass(frozen=True)
class Batch:
    commands: tuple[Command, ...]


@dataclass(frozen=True)
class Cancel:
    """Signal `context` to stop cooperatively. Delivers nothing back."""

    context: Context


@dataclass(frozen=True)
class Terminate:
    """Let the process exit."""


Command = Union[Delay, Perform, Stream, Cancel, Batch, Terminate]


def batch(*commands: Command | None) -> Command | None:
    """Combine commands, dropping empty ones."""
    present = tuple(c for c in commands if c is not None)
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return Batch(present)


def flatten(command: Command | None) -> Iterator[Command]:
    """Yield the leaf commands of a (possibly nested) batch."""
    if command is None:
        return
    if isinstance(command, Batch):
        for child in command.commands:
            yield from flatten(child)
    else:
        yield command
