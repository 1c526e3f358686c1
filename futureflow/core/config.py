"""
Runtime Settings

Environment-driven configuration for the shared worker pool and logging.
"""

import logging
import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator


ENV_DEFAULT_WORKERS = "FUTUREFLOW_DEFAULT_WORKERS"
ENV_THREAD_PREFIX = "FUTUREFLOW_THREAD_PREFIX"
ENV_LOG_LEVEL = "FUTUREFLOW_LOG_LEVEL"

LOG_FORMAT = '[futureflow %(threadName)s] %(levelname)s: %(message)s'


class RuntimeSettings(BaseModel):
    """
    Settings for the process-wide runtime.

    Attributes:
        default_workers: Size of the shared pool (None = one per CPU)
        thread_name_prefix: Prefix for worker thread names
        log_level: Level used by configure_logging()
    """

    default_workers: Optional[int] = Field(default=None, ge=1)
    thread_name_prefix: str = "futureflow"
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def from_env(cls) -> "RuntimeSettings":
        """
        Build settings from FUTUREFLOW_* environment variables.

        Unset variables fall back to the field defaults.

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value
        """
        values = {}
        workers = os.getenv(ENV_DEFAULT_WORKERS)
        if workers:
            values["default_workers"] = workers
        prefix = os.getenv(ENV_THREAD_PREFIX)
        if prefix:
            values["thread_name_prefix"] = prefix
        level = os.getenv(ENV_LOG_LEVEL)
        if level:
            values["log_level"] = level
        return cls(**values)

    def resolved_workers(self) -> int:
        """Get the shared pool size, auto-detecting CPUs when unset."""
        return self.default_workers or os.cpu_count() or 1


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for applications using the runtime.

    The library itself never configures logging on import.

    Args:
        level: Log level name (default: RuntimeSettings.from_env().log_level)
    """
    if level is None:
        level = RuntimeSettings.from_env().log_level
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
