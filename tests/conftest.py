"""pytest configuration and fixtures for the future runtime tests."""

import pytest

from futureflow.core import DefaultExecutor, bounded_executor


@pytest.fixture
def pool():
    """Caller-owned pool of 4 workers, shut down after the test."""
    executor = bounded_executor(4, name="test-pool")
    yield executor
    executor.shutdown(wait=True)


@pytest.fixture
def small_default():
    """Replace the shared default executor with a 2-worker pool."""
    executor = bounded_executor(2, name="test-default")
    DefaultExecutor.install(executor)
    yield executor
    DefaultExecutor.reset()
    executor.shutdown(wait=True)
