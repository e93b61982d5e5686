"""
Resource lifecycle gate.

Tracks the one active resource plus every start and stop still in flight,
so that each successful start is matched by exactly one stop and the
process only exits once nothing is left running.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from txdemo.commands import Command, Perform
from txdemo.errors import InvariantViolation, ResourceStartError, ResourceStopError
from txdemo.messages import ResourceStarted, ResourceStopped
from txdemo.providers import Context, Resource

logger = logging.getLogger(__name__)


def _stop_quietly(resource: Resource, ctx: Context) -> None:
    try:
        resource.stop(ctx)
    except Exception as exc:
        logger.warning("%s", ResourceStopError(resource.name, exc))


def start_command(resource: Resource, generation: int, ctx: Context) -> Perform:
    """Start `resource` on a worker; the result carries `generation`."""

    def operation() -> ResourceStarted:
        logger.info("starting %s (attempt %d)", resource.name, generation)
        try:
            resource.start(ctx)
        except Exception as exc:
            logger.warning("start of %s failed: %s", resource.name, exc)
            return ResourceStarted(generation, resource, ResourceStartError(resource.name, exc))
        try:
            tasks = tuple(resource.list_tasks())
            info = resource.connection_info()
        except Exception as exc:
            logger.warning("%s started but could not be inspected: %s", resource.name, exc)
            _stop_quietly(resource, ctx)
            return ResourceStarted(generation, resource, ResourceStartError(resource.name, exc))
        logger.info("%s is up with %d task(s)", resource.name, len(tasks))
        return ResourceStarted(generation, resource, tasks=tasks, connection_info=info)

    return Perform(operation, label=f"start:{resource.name}")


def stop_command(resource: Resource, generation: int, ctx: Context) -> Perform:
    """Stop `resource`, started by attempt `generation`, on a worker.

    Failures are logged, never raised.
    """

    def operation() -> ResourceStopped:
        logger.info("stopping %s (attempt %d)", resource.name, generation)
        try:
            resource.stop(ctx)
        except Exception as exc:
            error = ResourceStopError(resource.name, exc)
            logger.warning("%s", error)
            return ResourceStopped(generation, resource.name, error)
        logger.info("%s stopped", resource.name)
        return ResourceStopped(generation, resource.name)

    return Perform(operation, label=f"stop:{resource.name}")


@dataclass(frozen=True)
class ResourceGate:
    active: Resource | None = None
    # Generation of the start that produced `active`
    active_generation: int | None = None
    # Generation of the start attempt the UI is waiting on
    attempt: int | None = None
    pending_starts: frozenset[int] = frozenset()
    # Stops in flight, keyed by the generation of the start they undo
    pending_stops: frozenset[int] = frozenset()

    @property
    def idle(self) -> bool:
        """Nothing active and nothing in flight; a new start may be issued."""
        return (
            self.active is None
            and self.attempt is None
            and not self.pending_starts
            and not self.pending_stops
        )

    @property
    def settled(self) -> bool:
        """Safe to exit: no resource can be left running."""
        return self.active is None and not self.pending_starts and not self.pending_stops

    def begin(
        self, resource: Resource, generation: int, ctx: Context
    ) -> tuple["ResourceGate", Command]:
        if not self.idle:
            raise InvariantViolation(
                f"cannot start {resource.name} while another resource is held or in flight"
            )
        gate = replace(
            self,
            attempt=generation,
            pending_starts=self.pending_starts | {generation},
        )
        return gate, start_command(resource, generation, ctx)

    def abandon(self) -> "ResourceGate":
        """Stop waiting for the current attempt. Its result becomes stale."""
        if self.attempt is None:
            return self
        logger.info("abandoning start attempt %d", self.attempt)
        return replace(self, attempt=None)

    def resolve(
        self, message: ResourceStarted, ctx: Context
    ) -> tuple["ResourceGate", Command | None, bool]:
        """Account for a start result.

        Returns the new gate, any command, and whether the result belongs to
        the attempt the UI is waiting on.
        """
        pending = self.pending_starts - {message.generation}
        if message.generation == self.attempt:
            if message.ok:
                gate = replace(
                    self,
                    active=message.resource,
                    active_generation=message.generation,
                    attempt=None,
                    pending_starts=pending,
                )
            else:
                gate = replace(self, attempt=None, pending_starts=pending)
            return gate, None, True

        if message.generation not in self.pending_starts:
            logger.debug("ignoring unknown start result %d", message.generation)
            return self, None, False

        if not message.ok:
            logger.debug("stale start %d failed; nothing to reap", message.generation)
            return replace(self, pending_starts=pending), None, False

        logger.info("reaping %s from abandoned attempt %d", message.resource.name, message.generation)
        gate = replace(
            self,
            pending_starts=pending,
            pending_stops=self.pending_stops | {message.generation},
        )
        return gate, stop_command(message.resource, message.generation, ctx), False

    def release(self, ctx: Context) -> tuple["ResourceGate", Command | None]:
        """Stop the active resource, if any. Idempotent."""
        if self.active is None:
            return self, None
        generation = self.active_generation
        gate = replace(
            self,
            active=None,
            active_generation=None,
            pending_stops=self.pending_stops | {generation},
        )
        return gate, stop_command(self.active, generation, ctx)

    def stopped(self, message: ResourceStopped) -> "ResourceGate":
        if message.generation not in self.pending_stops:
            logger.debug("stop result %d with no such stop outstanding", message.generation)
            return self
        return replace(self, pending_stops=self.pending_stops - {message.generation})
