# Base exception class
from .base import DeploymentTrackerError

# Domain-specific exceptions
from .domain_exceptions import (
    ValidationError,
    ConflictError,
    ConnectionError,
    RetryableError,
    StoreTimeoutError,
    RecordOperationError,
)

__all__ = [
    # Base exception
    "DeploymentTrackerError",

    # Domain exceptions (alphabetically ordered)
    "ConflictError",
    "ConnectionError",
    "RecordOperationError",
    "RetryableError",
    "StoreTimeoutError",
    "ValidationError",
]
