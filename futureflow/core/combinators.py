"""
Future Combinators

Utilities for combining the outcomes of several futures.
"""

import logging
import threading
import time
from typing import Any, Iterable, List, Optional, TypeVar

from .exceptions import EmptyInputError, FutureTimeoutError
from .future import Future, FutureState


logger = logging.getLogger(__name__)

T = TypeVar('T')


def race(a: Future[T], b: Future[T]) -> Future[T]:
    """
    Adopt the outcome of whichever future settles first.

    The loser keeps running; its outcome is discarded.

    Example:
        price = race(
            submit(cache_lookup),
            submit(db_lookup),
        ).get()
    """
    return race_all([a, b])


def race_all(futures: Iterable[Future[Any]]) -> Future[Any]:
    """
    Adopt the outcome of the first future to settle, success or failure.

    Args:
        futures: Futures to race

    Returns:
        Future settled by the winner

    Raises:
        EmptyInputError: If futures is empty
    """
    futures = list(futures)
    if not futures:
        raise EmptyInputError("race_all() requires at least one future")

    winner: Future[Any] = Future()
    count = len(futures)

    def on_settle(settled: Future[Any]) -> None:
        # The winner's own lock serializes simultaneous finishers
        if winner._adopt(settled):
            logger.debug(f"Race of {count} futures won by {settled!r}")

    for f in futures:
        f.add_done_callback(on_settle)
    return winner


def when_all(futures: Iterable[Future[T]]) -> Future[List[T]]:
    """
    Wait for all futures to succeed.

    Parallel execution of multiple async operations.

    Args:
        futures: Futures to wait for

    Returns:
        Future for the list of results in input order. Fails with the first
        failure observed without waiting for the rest.

    Example:
        users, products = when_all([
            submit(load_users),
            submit(load_products),
        ]).get()
    """
    futures = list(futures)
    if not futures:
        return Future.make_ready([])

    combined: Future[List[T]] = Future()
    results: List[Any] = [None] * len(futures)
    remaining = [len(futures)]
    lock = threading.Lock()

    def collect(index: int, settled: Future[T]) -> None:
        if settled.state is FutureState.FAILED:
            combined.fail(settled.exception())
            return
        with lock:
            results[index] = settled.get()
            remaining[0] -= 1
            done = remaining[0] == 0
        if done:
            combined.complete(list(results))

    for index, f in enumerate(futures):
        f.add_done_callback(lambda settled, i=index: collect(i, settled))
    return combined


def wait_for_all(futures: Iterable[Future[Any]], timeout: Optional[float] = None) -> None:
    """
    Block until every future has settled, successfully or not.

    Args:
        futures: Futures to wait for
        timeout: Seconds for the whole batch (None = forever)

    Raises:
        FutureTimeoutError: If any future is still pending at the deadline
    """
    deadline = None if timeout is None else time.monotonic() + timeout

    for f in futures:
        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        if not f.wait(remaining):
            raise FutureTimeoutError(f"Futures not settled after {timeout}s")
