"""Error taxonomy."""

from __future__ import annotations


class TxDemoError(Exception):
    """Base class for errors raised by txdemo."""


class ResourceStartError(TxDemoError):
    """A resource failed to start. Recoverable: shown on the selection view."""

    def __init__(self, resource: str, cause: BaseException) -> None:
        super().__init__(f"failed to start {resource}: {cause}")
        self.resource = resource
        self.__cause__ = cause


class ResourceStopError(TxDemoError):
    """A resource failed to stop. Best effort: logged, never shown."""

    def __init__(self, resource: str, cause: BaseException) -> None:
        super().__init__(f"failed to stop {resource}: {cause}")
        self.resource = resource
        self.__cause__ = cause


class TaskSetupError(TxDemoError):
    """A task's setup failed; the run never started."""

    def __init__(self, task: str, cause: BaseException) -> None:
        super().__init__(f"setup of {task!r} failed: {cause}")
        self.task = task
        self.__cause__ = cause


class TaskRunError(TxDemoError):
    """A task's run ended with an error."""

    def __init__(self, task: str, cause: BaseException) -> None:
        super().__init__(f"{task!r} failed: {cause}")
        self.task = task
        self.__cause__ = cause


class InvariantViolation(TxDemoError):
    """Internal state would be corrupted. Never caught: the host halts."""
