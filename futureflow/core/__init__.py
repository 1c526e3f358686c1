"""
futureflow Core

Composable thread-based futures, combinators and worker pools.
"""

from .future import Future, FutureState, submit, run_async
from .combinators import race, race_all, when_all, wait_for_all
from .executor import (
    Executor,
    WorkerPool,
    DefaultExecutor,
    default_executor,
    bounded_executor,
)
from .exceptions import (
    FutureError,
    ProducerError,
    EmptyInputError,
    ExecutorClosedError,
    FutureTimeoutError,
    SecondaryObserverError,
)
from .config import RuntimeSettings, configure_logging

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
