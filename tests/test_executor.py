"""
Executor and Runtime Settings Tests

Tests worker pool lifecycle, the shared default executor and
environment-driven configuration.
"""

import logging
import os
import threading

import pytest
from pydantic import ValidationError

from futureflow.core import (
    DefaultExecutor,
    ExecutorClosedError,
    RuntimeSettings,
    WorkerPool,
    bounded_executor,
    configure_logging,
    default_executor,
    submit,
)
from futureflow.core.config import ENV_DEFAULT_WORKERS, ENV_LOG_LEVEL, ENV_THREAD_PREFIX


@pytest.fixture
def fresh_default():
    """Make sure each test sees a lazily created default executor."""
    DefaultExecutor.reset()
    yield
    DefaultExecutor.reset()


class TestWorkerPool:
    """Test caller-owned worker pools."""

    def test_runs_work_on_named_threads(self, pool):
        done = threading.Event()
        names = []

        def work():
            names.append(threading.current_thread().name)
            done.set()

        pool.submit(work)
        assert done.wait(5)
        assert names[0].startswith("test-pool")

    def test_stats(self):
        executor = WorkerPool(2, name="stats-pool")

        def boom():
            raise RuntimeError("escaped")

        executor.submit(lambda: None)
        executor.submit(boom)
        executor.shutdown(wait=True)

        assert executor.stats == {
            'tasks_submitted': 2,
            'tasks_completed': 1,
            'tasks_failed': 1,
        }

    def test_submit_after_shutdown(self):
        executor = bounded_executor(2)
        executor.shutdown()
        assert executor.is_shutdown()
        with pytest.raises(ExecutorClosedError):
            executor.submit(lambda: None)

    def test_shutdown_is_idempotent(self):
        executor = bounded_executor(1)
        executor.shutdown()
        executor.shutdown()
        assert executor.is_shutdown()

    def test_context_manager(self):
        with bounded_executor(2) as executor:
            assert submit(lambda: 7, executor).get(timeout=5) == 7
        assert executor.is_shutdown()

    @pytest.mark.parametrize("size", [0, -1])
    def test_invalid_size(self, size):
        with pytest.raises(ValueError):
            bounded_executor(size)

    def test_repr(self):
        executor = bounded_executor(3, name="repr-pool")
        assert repr(executor) == "<WorkerPool 'repr-pool' workers=3 open>"
        executor.shutdown()
        assert "closed" in repr(executor)


class TestDefaultExecutor:
    """Test the process-wide default executor."""

    def test_lazy_initialization(self, fresh_default):
        assert not DefaultExecutor.is_initialized()
        executor = default_executor()
        assert DefaultExecutor.is_initialized()
        assert default_executor() is executor

    def test_sized_from_settings(self, fresh_default, monkeypatch):
        monkeypatch.setenv(ENV_DEFAULT_WORKERS, "3")
        monkeypatch.setenv(ENV_THREAD_PREFIX, "envpool")
        executor = default_executor()
        assert executor.max_workers == 3
        assert executor.name == "envpool-default"

    def test_default_size_is_cpu_count(self, fresh_default, monkeypatch):
        monkeypatch.delenv(ENV_DEFAULT_WORKERS, raising=False)
        assert default_executor().max_workers == (os.cpu_count() or 1)

    def test_shared_pool_ignores_shutdown(self, fresh_default, caplog):
        executor = default_executor()
        with caplog.at_level(logging.WARNING, logger="futureflow.core.executor"):
            executor.shutdown()
        assert not executor.is_shutdown()
        assert "Ignoring shutdown()" in caplog.text
        assert submit(lambda: "still running").get(timeout=5) == "still running"

    def test_install_substitutes_pool(self, small_default):
        assert default_executor() is small_default

    def test_install_closes_runtime_pool(self, fresh_default):
        shared = default_executor()
        replacement = bounded_executor(1)
        try:
            DefaultExecutor.install(replacement)
            assert shared.is_shutdown()
            assert default_executor() is replacement
        finally:
            DefaultExecutor.reset()
            replacement.shutdown()

    def test_reset_keeps_caller_pool_open(self):
        replacement = bounded_executor(1)
        DefaultExecutor.install(replacement)
        DefaultExecutor.reset()
        assert not replacement.is_shutdown()
        assert not DefaultExecutor.is_initialized()
        replacement.shutdown()


class TestRuntimeSettings:
    """Test configuration parsing."""

    def test_defaults(self):
        settings = RuntimeSettings()
        assert settings.default_workers is None
        assert settings.thread_name_prefix == "futureflow"
        assert settings.log_level == "WARNING"
        assert settings.resolved_workers() == (os.cpu_count() or 1)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv(ENV_DEFAULT_WORKERS, "6")
        monkeypatch.setenv(ENV_THREAD_PREFIX, "svc")
        monkeypatch.setenv(ENV_LOG_LEVEL, "debug")
        settings = RuntimeSettings.from_env()
        assert settings.default_workers == 6
        assert settings.thread_name_prefix == "svc"
        assert settings.log_level == "DEBUG"
        assert settings.resolved_workers() == 6

    def test_from_env_unset(self, monkeypatch):
        for name in (ENV_DEFAULT_WORKERS, ENV_THREAD_PREFIX, ENV_LOG_LEVEL):
            monkeypatch.delenv(name, raising=False)
        assert RuntimeSettings.from_env() == RuntimeSettings()

    @pytest.mark.parametrize("workers", ["0", "-2", "many"])
    def test_invalid_workers(self, monkeypatch, workers):
        monkeypatch.setenv(ENV_DEFAULT_WORKERS, workers)
        with pytest.raises(ValidationError):
            RuntimeSettings.from_env()

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            RuntimeSettings(log_level="chatty")

    def test_configure_logging(self, monkeypatch):
        calls = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
        monkeypatch.setenv(ENV_LOG_LEVEL, "info")

        configure_logging()
        configure_logging("debug")

        assert calls[0]["level"] == "INFO"
        assert calls[1]["level"] == "DEBUG"
        assert "%(threadName)s" in calls[0]["format"]
