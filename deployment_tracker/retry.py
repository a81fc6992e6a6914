"""
Retry policy for table store writes.

The record APIs take a RetryPolicy instead of retrying on their own, so the
policy is explicit and tests can swap in one that does not sleep.

Defaults: 3 attempts in total, 1s before the first retry, delay doubling
after each retry (1s, 2s). Only errors the classifier calls transient are
retried; anything else propagates on the first attempt.
"""

import logging
import time
from typing import Callable, Optional, TypeVar

from .config import TrackerConfig
from .exceptions import DeploymentTrackerError, RetryableError

T = TypeVar('T')

logger = logging.getLogger(__name__)


def is_transient_error(error: BaseException) -> bool:
    """Default classifier: throttling, service, network and timeout errors."""
    return isinstance(error, RetryableError)


class RetryPolicy:
    """Bounded exponential-backoff retry around a single operation."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay_seconds: float = 1.0,
        backoff_multiplier: float = 2.0,
        is_transient: Callable[[BaseException], bool] = is_transient_error,
        sleep: Callable[[float], None] = time.sleep
    ):
        """Initialize retry policy.

        Args:
            max_attempts: Total attempts, including the first
            base_delay_seconds: Delay before the first retry
            backoff_multiplier: Factor applied to the delay after each retry
            is_transient: Classifier deciding whether an error is retried
            sleep: Function used to wait between attempts
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay_seconds = base_delay_seconds
        self.backoff_multiplier = backoff_multiplier
        self.is_transient = is_transient
        self.sleep = sleep

    @classmethod
    def from_config(cls, config: TrackerConfig, **kwargs) -> 'RetryPolicy':
        """Build the policy described by the configuration."""
        return cls(
            max_attempts=config.retry_max_attempts,
            base_delay_seconds=config.retry_base_delay_seconds,
            backoff_multiplier=config.retry_backoff_multiplier,
            **kwargs
        )

    @classmethod
    def no_retry(cls) -> 'RetryPolicy':
        """Single-attempt policy."""
        return cls(max_attempts=1, base_delay_seconds=0.0)

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given (1-based) failed attempt."""
        return self.base_delay_seconds * (self.backoff_multiplier ** (attempt - 1))

    def execute(self, operation: Callable[[], T], description: Optional[str] = None) -> T:
        """
        Run an operation under this policy.

        Args:
            operation: Zero-argument callable to run
            description: Label used in log messages

        Returns:
            The operation's result

        Raises:
            The last error raised by the operation. Tracker errors carry the
            number of attempts made in their ``attempts`` attribute.
        """
        label = description or getattr(operation, '__name__', 'operation')
        attempt = 1
        while True:
            try:
                return operation()
            except Exception as e:
                if isinstance(e, DeploymentTrackerError):
                    e.attempts = attempt

                if not self.is_transient(e):
                    raise

                if attempt >= self.max_attempts:
                    logger.error(f"{label} failed after {attempt} attempts: {e}")
                    raise

                delay = self.delay_for(attempt)
                logger.warning(
                    f"{label} failed with a transient error, retrying in {delay:.2f}s "
                    f"(attempt {attempt}/{self.max_attempts}): {e}"
                )
                self.sleep(delay)
                attempt += 1
