"""Shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add scripts to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))

from txdemo.config import Settings  # noqa: E402
from txdemo.dispatcher import Dispatcher  # noqa: E402
from txdemo.providers import ResourceRegistry  # noqa: E402

from fakes import FakeResource, FakeTask, Harness  # noqa: E402


@pytest.fixture
def tasks() -> list[FakeTask]:
    return [
        FakeTask("First", steps=["one", "two"]),
        FakeTask("Second", steps=["alpha"]),
    ]


@pytest.fixture
def resource(tasks: list[FakeTask]) -> FakeResource:
    return FakeResource("Fake DB", tasks=tasks)


@pytest.fixture
def registry(resource: FakeResource) -> ResourceRegistry:
    registry = ResourceRegistry()
    registry.register(resource)
    return registry


@pytest.fixture
def settings() -> Settings:
    return Settings(loading_interval=0.01, runner_interval=0.01, step_delay=0.0)


@pytest.fixture
def dispatcher(registry: ResourceRegistry, settings: Settings) -> Dispatcher:
    return Dispatcher(registry, settings)


@pytest.fixture
def harness(dispatcher: Dispatcher) -> Harness:
    return Harness(dispatcher)
