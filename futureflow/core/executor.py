"""
Executors

Worker pools that run producers and continuations, plus the lazily created
process-wide default pool.
"""

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional

from .config import RuntimeSettings
from .exceptions import ExecutorClosedError


logger = logging.getLogger(__name__)


class Executor(ABC):
    """
    Run context for producers and continuations.

    Executors own their worker threads; futures never own an executor.
    """

    @abstractmethod
    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        """
        Schedule fn(*args) on a worker.

        Raises:
            ExecutorClosedError: If the executor has been shut down
        """

    @abstractmethod
    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work and release worker threads."""

    @abstractmethod
    def is_shutdown(self) -> bool:
        """Check if the executor has been shut down."""

    def __enter__(self) -> "Executor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True)


class WorkerPool(Executor):
    """Fixed-size pool of worker threads."""

    def __init__(self, max_workers: int, name: str = "futureflow"):
        """
        Create a worker pool.

        Args:
            max_workers: Number of worker threads (must be >= 1)
            name: Thread name prefix, visible in thread diagnostics

        Raises:
            ValueError: If max_workers < 1
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")

        self.name = name
        self.max_workers = max_workers
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)
        self._lock = threading.Lock()
        self._closed = False
        self.stats = {
            'tasks_submitted': 0,
            'tasks_completed': 0,
            'tasks_failed': 0,
        }
        logger.debug(f"Worker pool '{name}' created with {max_workers} workers")

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        with self._lock:
            if self._closed:
                raise ExecutorClosedError(f"Worker pool '{self.name}' is shut down")
            self.stats['tasks_submitted'] += 1
            self._pool.submit(self._run, fn, args)

    def _run(self, fn: Callable[..., Any], args: tuple) -> None:
        try:
            fn(*args)
        except Exception:
            # Producers settle their own futures; anything reaching here escaped user glue
            logger.exception(f"Unhandled error in worker pool '{self.name}'")
            with self._lock:
                self.stats['tasks_failed'] += 1
            return
        except BaseException:
            with self._lock:
                self.stats['tasks_failed'] += 1
            raise

        with self._lock:
            self.stats['tasks_completed'] += 1

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True

        logger.debug(f"Worker pool '{self.name}' shutting down. Stats: {self.stats}")
        self._pool.shutdown(wait=wait)

    def is_shutdown(self) -> bool:
        return self._closed

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<WorkerPool {self.name!r} workers={self.max_workers} {state}>"


class _SharedWorkerPool(WorkerPool):
    """The default pool. Lives for the whole process."""

    def shutdown(self, wait: bool = True) -> None:
        logger.warning("Ignoring shutdown() on the shared default executor")

    def _close(self, wait: bool) -> None:
        super().shutdown(wait=wait)


class DefaultExecutor:
    """
    Process-wide default executor.

    Created lazily on first use and sized from RuntimeSettings. Tests can
    substitute their own executor with install() and drop it with reset().
    """

    _executor: Optional[Executor] = None
    _owned = False
    _lock = threading.Lock()

    @classmethod
    def get(cls) -> Executor:
        """Get the default executor, creating the shared pool if needed."""
        executor = cls._executor
        if executor is not None:
            return executor

        with cls._lock:
            if cls._executor is None:
                settings = RuntimeSettings.from_env()
                cls._executor = _SharedWorkerPool(
                    settings.resolved_workers(),
                    name=f"{settings.thread_name_prefix}-default",
                )
                cls._owned = True
            return cls._executor

    @classmethod
    def install(cls, executor: Executor) -> None:
        """
        Replace the default executor.

        The previous shared pool, if the runtime created one, is shut down.
        A caller-installed executor stays owned by the caller.
        """
        with cls._lock:
            previous, owned = cls._executor, cls._owned
            cls._executor = executor
            cls._owned = False
        if owned:
            previous._close(wait=False)

    @classmethod
    def reset(cls) -> None:
        """Forget the current default; the next get() creates a fresh shared pool."""
        with cls._lock:
            previous, owned = cls._executor, cls._owned
            cls._executor = None
            cls._owned = False
        if owned:
            previous._close(wait=False)

    @classmethod
    def is_initialized(cls) -> bool:
        """Check if a default executor exists."""
        return cls._executor is not None


def default_executor() -> Executor:
    """Get the process-wide shared executor."""
    return DefaultExecutor.get()


def bounded_executor(n: int, name: str = "futureflow-bounded") -> WorkerPool:
    """
    Create a caller-owned pool of n workers.

    The caller must shut it down (or use it as a context manager).

    Example:
        with bounded_executor(4) as pool:
            submit(load_rows, pool).get()
    """
    return WorkerPool(n, name=name)
