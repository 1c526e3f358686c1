"""Future runtime exception hierarchy."""

from typing import Any, Optional


class FutureError(Exception):
    """Base exception for all future runtime errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ProducerError(FutureError):
    """Raised by Future.get() when the future failed.

    The original exception raised by the producer or a combinator callback is
    kept in ``cause`` (and chained as ``__cause__``).
    """

    def __init__(self, cause: BaseException, message: Optional[str] = None):
        self.cause = cause
        super().__init__(message or f"{type(cause).__name__}: {cause}")


class EmptyInputError(FutureError, ValueError):
    """race_all() was called without any futures."""
    pass


class ExecutorClosedError(FutureError, RuntimeError):
    """Work was submitted to an executor that has been shut down."""
    pass


class FutureTimeoutError(FutureError, TimeoutError):
    """Waiting for a future exceeded the caller's timeout."""
    pass


class SecondaryObserverError(FutureError):
    """An observe() callback raised while handling a settled future.

    Never raised to callers: the primary outcome has no slot for it, so it is
    logged and the original value or error keeps flowing downstream.
    """

    def __init__(
        self,
        cause: BaseException,
        value: Any = None,
        error: Optional[BaseException] = None,
    ):
        self.cause = cause
        self.value = value
        self.error = error
        outcome = f"error {error!r}" if error is not None else f"value {value!r}"
        super().__init__(f"Observer raised {type(cause).__name__}: {cause} (primary {outcome})")
