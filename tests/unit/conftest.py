"""Conftest for unit tests - mark every test as unit and reset process-wide observability state."""

import pytest

from vectordb_text.observability import tracing as tracing_module
from vectordb_text.observability.context import reset_log_context


def pytest_collection_modifyitems(config, items):
    """Automatically mark all tests in the unit directory as unit tests."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def reset_observability_state():
    saved_tracer = tracing_module._tracer_holder["tracer"]
    reset_log_context()
    yield
    reset_log_context()
    tracing_module._tracer_holder["tracer"] = saved_tracer
