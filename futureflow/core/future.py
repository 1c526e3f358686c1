"""
Composable Futures

Thread-safe futures that settle exactly once, with continuation chaining
on worker pools and an asyncio bridge.
"""

import asyncio
import collections
import functools
import logging
import threading
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, TypeVar

from .exceptions import (
    ExecutorClosedError,
    FutureTimeoutError,
    ProducerError,
    SecondaryObserverError,
)
from .executor import Executor, default_executor


logger = logging.getLogger(__name__)

T = TypeVar('T')
U = TypeVar('U')

# Per-thread queue of (future, callback) pairs waiting to fire
_local = threading.local()


class FutureState(Enum):
    """Lifecycle of a future. PENDING moves to exactly one terminal state."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Future(Generic[T]):
    """
    Handle to the eventual value or error of one unit of work.

    Supports blocking waits (get), explicit chaining (map, and_then, recover,
    observe, handle) and async/await from a running event loop.

    Examples:
        # Blocking
        price = submit(fetch_price).map(lambda p: p * 2).get()

        # From a coroutine
        price = await submit(fetch_price)
    """

    def __init__(self):
        """Create a pending future. Producers settle it via complete()/fail()."""
        self._lock = threading.Lock()
        self._settled = threading.Event()
        self._state = FutureState.PENDING
        self._value: Optional[T] = None
        self._error: Optional[BaseException] = None
        self._callbacks: List[Callable[['Future[T]'], None]] = []

    @staticmethod
    def make_ready(value: T) -> 'Future[T]':
        """Create a future that's already succeeded."""
        f: Future[T] = Future()
        f.complete(value)
        return f

    @staticmethod
    def make_exception(error: BaseException) -> 'Future[T]':
        """Create a future that's already failed."""
        f: Future[T] = Future()
        f.fail(error)
        return f

    # -- settlement ---------------------------------------------------------

    def complete(self, value: T) -> bool:
        """
        Settle successfully with value.

        Returns:
            True if this call settled the future, False if it was already
            settled (the call then has no effect)
        """
        return self._settle(FutureState.SUCCEEDED, value, None)

    def fail(self, error: BaseException) -> bool:
        """
        Settle with a failure.

        Returns:
            True if this call settled the future, False if it was already settled
        """
        return self._settle(FutureState.FAILED, None, error)

    def _settle(self, state: FutureState, value: Any, error: Optional[BaseException]) -> bool:
        with self._lock:
            if self._state is not FutureState.PENDING:
                return False
            self._state = state
            self._value = value
            self._error = error
            # Released here so settled futures don't keep their continuations alive
            callbacks, self._callbacks = self._callbacks, []

        self._settled.set()
        _fire(self, callbacks)
        return True

    def _adopt(self, source: 'Future[T]') -> bool:
        """Copy the outcome of a settled future."""
        if source._state is FutureState.SUCCEEDED:
            return self.complete(source._value)
        return self.fail(source._error)

    # -- continuations ------------------------------------------------------

    def add_done_callback(
        self,
        fn: Callable[['Future[T]'], Any],
        executor: Optional[Executor] = None
    ) -> None:
        """
        Register fn(future) to run once this future settles.

        Without an executor, fn runs on the thread that settles the future,
        or right away on the calling thread if it already settled. Errors
        raised by fn are logged and never reach the settling thread.

        With an executor that is shut down by the time this future settles,
        fn is skipped and the ExecutorClosedError is logged. Unlike the
        chaining methods there is no dependent future to fail.

        Args:
            fn: Callback receiving this future
            executor: Worker pool to run fn on

        Raises:
            ExecutorClosedError: If this future already settled and executor
                is shut down
        """
        with self._lock:
            if self._state is FutureState.PENDING:
                if executor is not None:
                    self._callbacks.append(functools.partial(_hop, executor, fn))
                else:
                    self._callbacks.append(fn)
                return

        if executor is not None:
            executor.submit(self._invoke, fn)
        else:
            self._invoke(fn)

    def _invoke(self, fn: Callable[['Future[T]'], Any]) -> None:
        try:
            fn(self)
        except Exception:
            logger.exception(f"Error in callback {fn!r} for {self!r}")

    def map(self, fn: Callable[[T], U], executor: Optional[Executor] = None) -> 'Future[U]':
        """
        Transform the value once this future succeeds.

        A failure short-circuits: the new future fails with the same error
        and fn is never called.

        Args:
            fn: Function that receives the value
            executor: Worker pool for fn (default: the settling thread)

        Returns:
            New future for fn's result

        Example:
            submit(load).map(lambda rows: len(rows)).map(str)
        """
        downstream: Future[U] = Future()

        def on_settle(upstream: Future[T]) -> None:
            if upstream._state is FutureState.FAILED:
                downstream.fail(upstream._error)
            else:
                _dispatch(executor, downstream, _settle_with, downstream, fn, upstream._value)

        self.add_done_callback(on_settle)
        return downstream

    def and_then(
        self,
        fn: Callable[[T], 'Future[U]'],
        executor: Optional[Executor] = None
    ) -> 'Future[U]':
        """
        Chain an asynchronous step: fn returns a Future, which is flattened.

        Args:
            fn: Function that receives the value and returns a Future
            executor: Worker pool for fn (default: the settling thread)

        Returns:
            New future adopting the outcome of the future fn returns
        """
        downstream: Future[U] = Future()

        def step(value: T) -> None:
            try:
                inner = fn(value)
                if not isinstance(inner, Future):
                    raise TypeError(
                        f"and_then() callback must return a Future, got {type(inner).__name__}"
                    )
            except Exception as e:
                downstream.fail(e)
                return
            inner.add_done_callback(downstream._adopt)

        def on_settle(upstream: Future[T]) -> None:
            if upstream._state is FutureState.FAILED:
                downstream.fail(upstream._error)
            else:
                _dispatch(executor, downstream, step, upstream._value)

        self.add_done_callback(on_settle)
        return downstream

    def recover(
        self,
        handler: Callable[[BaseException], T],
        executor: Optional[Executor] = None
    ) -> 'Future[T]':
        """
        Turn a failure into a success.

        Successful values pass through untouched. If handler raises, the new
        future fails with that error.

        Args:
            handler: Error handler that receives the exception
            executor: Worker pool for handler (default: the settling thread)

        Returns:
            New future with error handling
        """
        downstream: Future[T] = Future()

        def on_settle(upstream: Future[T]) -> None:
            if upstream._state is FutureState.SUCCEEDED:
                downstream.complete(upstream._value)
            else:
                _dispatch(executor, downstream, _settle_with, downstream, handler, upstream._error)

        self.add_done_callback(on_settle)
        return downstream

    def handle(
        self,
        fn: Callable[[Optional[T], Optional[BaseException]], U],
        executor: Optional[Executor] = None
    ) -> 'Future[U]':
        """
        Map either outcome: fn(value, error) settles the new future.

        Exactly one of value/error is meaningful; error is None on success.
        """
        downstream: Future[U] = Future()

        def on_settle(upstream: Future[T]) -> None:
            _dispatch(
                executor, downstream, _settle_with, downstream, fn,
                upstream._value, upstream._error
            )

        self.add_done_callback(on_settle)
        return downstream

    def observe(
        self,
        on_settle: Callable[[Optional[T], Optional[BaseException]], Any],
        executor: Optional[Executor] = None
    ) -> 'Future[T]':
        """
        Run on_settle(value, error) for side effects only.

        The outcome passes through unchanged. If on_settle raises, the error
        is logged as a SecondaryObserverError and the original value or
        error still flows downstream.

        Args:
            on_settle: Callback receiving (value, error)
            executor: Worker pool for on_settle (default: the settling thread)

        Returns:
            New future with the same outcome
        """
        downstream: Future[T] = Future()

        def step(upstream: Future[T]) -> None:
            try:
                on_settle(upstream._value, upstream._error)
            except Exception as e:
                secondary = SecondaryObserverError(e, upstream._value, upstream._error)
                logger.error(secondary.message, exc_info=e)
            downstream._adopt(upstream)

        def relay(upstream: Future[T]) -> None:
            if executor is None:
                step(upstream)
                return
            try:
                executor.submit(step, upstream)
            except ExecutorClosedError:
                logger.error(f"Observer skipped, {executor!r} is shut down")
                downstream._adopt(upstream)

        self.add_done_callback(relay)
        return downstream

    def then_accept(
        self,
        consumer: Callable[[T], Any],
        executor: Optional[Executor] = None
    ) -> 'Future[None]':
        """Consume the value; the new future succeeds with None."""
        def accept(value: T) -> None:
            consumer(value)
        return self.map(accept, executor)

    def then_run(
        self,
        action: Callable[[], Any],
        executor: Optional[Executor] = None
    ) -> 'Future[None]':
        """Run action after this future succeeds, ignoring its value."""
        def run(_value: T) -> None:
            action()
        return self.map(run, executor)

    # -- waiting ------------------------------------------------------------

    def get(self, timeout: Optional[float] = None) -> T:
        """
        Get the value (blocking).

        Don't call this from a worker of a small pool that also has to run
        the producer: the pool can deadlock on itself. Likewise, a callback
        must not block on a future whose settlement it just triggered on its
        own thread; those continuations run after the callback returns.

        Args:
            timeout: Seconds to wait (None = forever)

        Returns:
            The future's value

        Raises:
            ProducerError: If the future failed (original error in .cause)
            FutureTimeoutError: If timeout elapsed first
        """
        if not self._settled.wait(timeout):
            raise FutureTimeoutError(f"Future not settled after {timeout}s")

        if self._state is FutureState.FAILED:
            raise ProducerError(self._error) from self._error

        return self._value

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until settled, either way. Returns False if timeout elapsed."""
        return self._settled.wait(timeout)

    def __await__(self):
        """
        Make future awaitable.

        Suspends the awaiting coroutine, not the event loop thread.
        """
        async def _await_impl():
            if not self.is_ready():
                loop = asyncio.get_running_loop()
                waiter = loop.create_future()

                def wake(_settled: 'Future[T]') -> None:
                    loop.call_soon_threadsafe(_release, waiter)

                self.add_done_callback(wake)
                await waiter

            return self.get()

        return _await_impl().__await__()

    # -- introspection ------------------------------------------------------

    @property
    def state(self) -> FutureState:
        return self._state

    def is_ready(self) -> bool:
        """Check if future has settled, either way."""
        return self._state is not FutureState.PENDING

    def succeeded(self) -> bool:
        return self._state is FutureState.SUCCEEDED

    def failed(self) -> bool:
        """Check if future has failed."""
        return self._state is FutureState.FAILED

    def exception(self) -> Optional[BaseException]:
        """Get the stored error without blocking (None unless failed)."""
        return self._error

    def __repr__(self) -> str:
        if self._state is FutureState.SUCCEEDED:
            return f"<Future succeeded value={self._value!r}>"
        if self._state is FutureState.FAILED:
            return f"<Future failed error={self._error!r}>"
        return "<Future pending>"


def _settle_with(target: Future, fn: Callable[..., Any], *args: Any) -> None:
    """Settle target with fn(*args), or with the error it raises."""
    try:
        result = fn(*args)
    except BaseException as e:
        target.fail(e)
        # SystemExit, KeyboardInterrupt and friends still unwind the worker
        if not isinstance(e, Exception):
            raise
    else:
        target.complete(result)


def _fire(settled: Future, callbacks: List[Callable[[Future], Any]]) -> None:
    """
    Run callbacks of a just-settled future.

    A callback that settles another future (every chaining stage does) would
    otherwise recurse into that future's callbacks. Instead, settlements on a
    thread that is already firing are queued and drained by the outermost
    call, so chain depth never grows the stack.
    """
    queue = getattr(_local, 'queue', None)
    if queue is not None:
        queue.extend((settled, callback) for callback in callbacks)
        return

    queue = _local.queue = collections.deque((settled, callback) for callback in callbacks)
    try:
        while queue:
            future, callback = queue.popleft()
            future._invoke(callback)
    finally:
        _local.queue = None


def _dispatch(
    executor: Optional[Executor],
    target: Future,
    step: Callable[..., None],
    *args: Any
) -> None:
    """Run step inline or on executor. A shut-down executor fails target."""
    if executor is None:
        step(*args)
        return
    try:
        executor.submit(step, *args)
    except ExecutorClosedError as e:
        target.fail(e)


def _hop(executor: Executor, fn: Callable[[Future], Any], settled: Future) -> None:
    executor.submit(settled._invoke, fn)


def _release(waiter: asyncio.Future) -> None:
    if not waiter.done():
        waiter.set_result(None)


def submit(producer: Callable[[], T], executor: Optional[Executor] = None) -> Future[T]:
    """
    Run producer on a worker and return a future for its result.

    Args:
        producer: Zero-argument callable
        executor: Worker pool (default: the shared default executor)

    Returns:
        Pending future settled with producer's return value or raised error

    Raises:
        ExecutorClosedError: If executor has been shut down

    Example:
        total = submit(lambda: sum(range(10))).get()
    """
    future: Future[T] = Future()
    (executor or default_executor()).submit(_settle_with, future, producer)
    return future


def run_async(action: Callable[[], Any], executor: Optional[Executor] = None) -> Future[None]:
    """Fire-and-forget flavour of submit(); the future succeeds with None."""
    def run() -> None:
        action()
    return submit(run, executor)
