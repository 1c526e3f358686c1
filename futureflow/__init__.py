"""
futureflow - Composable Futures for Python Threads

An in-process future/promise runtime for chaining computations, combining
results of concurrent tasks and handling failures inside asynchronous stages.

Features:
- Futures that settle exactly once, safe across worker threads
- map / and_then / recover / observe / handle chaining
- race, race_all and when_all combinators
- Pluggable executors (shared default pool or caller-owned pools)
- Blocking get() and async/await support
"""

from .core import (
    Future,
    FutureState,
    submit,
    run_async,
    race,
    race_all,
    when_all,
    wait_for_all,
    Executor,
    WorkerPool,
    DefaultExecutor,
    default_executor,
    bounded_executor,
    FutureError,
    ProducerError,
    EmptyInputError,
    ExecutorClosedError,
    FutureTimeoutError,
    SecondaryObserverError,
    RuntimeSettings,
    configure_logging,
)

__version__ = "0.1.0"

__all__ = [
    'Future',
    'FutureState',
    'submit',
    'run_async',
    'race',
    'race_all',
    'when_all',
    'wait_for_all',
    'Executor',
    'WorkerPool',
    'DefaultExecutor',
    'default_executor',
    'bounded_executor',
    'FutureError',
    'ProducerError',
    'EmptyInputError',
    'ExecutorClosedError',
    'FutureTimeoutError',
    'SecondaryObserverError',
    'RuntimeSettings',
    'configure_logging',
]
