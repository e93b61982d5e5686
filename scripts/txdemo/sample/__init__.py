"""Bundled in-process resource and its demonstrations."""

from txdemo.providers import ResourceRegistry
from txdemo.sample.resource import SimulatedDatabase


def default_registry(step_delay: float | None = None) -> ResourceRegistry:
    """Registry holding the bundled resources."""
    registry = ResourceRegistry()
    if step_delay is None:
        registry.register(SimulatedDatabase())
    else:
        registry.register(SimulatedDatabase(step_delay=step_delay))
    return registry
