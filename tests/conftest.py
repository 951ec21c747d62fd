"""Shared test fixtures for the modkernel test suite."""

import os
import sys
import pytest

# Add parent directory to path so we can import modkernel
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from modkernel import config
from modkernel.core import MappingResolver, ModuleRuntime

from .helpers import LIFECYCLE_HOOKS, make_module


@pytest.fixture(autouse=True)
def clean_config():
    """Never pick up a config file from the working directory."""
    config.reset_config()
    yield
    config.reset_config()


@pytest.fixture
def calls():
    return []


@pytest.fixture
def events():
    return []


@pytest.fixture
def resolver():
    return MappingResolver()


@pytest.fixture
def runtime(resolver, events):
    """Runtime on a MappingResolver with a listener collecting (operation, key)."""
    rt = ModuleRuntime(resolver=resolver)
    rt.add_listener(lambda event: events.append((event.operation.value, event.key)))
    return rt


@pytest.fixture
def load(runtime, resolver, calls):
    """Register a fake module, request its load and drain the queue."""

    def _load(key, context="app", hooks=LIFECYCLE_HOOKS, returns=None, pump=True, **attrs):
        resolver.register(key, lambda: make_module(key, calls, hooks, returns, **attrs))
        runtime.request_load(key, context)
        if pump:
            runtime.pump()
        return runtime.registry.get(key)

    return _load
