"""
Domain-Specific Exceptions for the Deployment Tracker

This module consolidates the exceptions that extend the base
DeploymentTrackerError.

Organized by category:
1. Data Validation Errors
2. Conflict and Conditional Errors
3. Infrastructure and Retry Errors
4. Record Operation Errors
"""

from typing import Any, Dict, Optional

from .base import DeploymentTrackerError


# =============================================================================
# Data Validation Errors
# =============================================================================

class ValidationError(DeploymentTrackerError):
    """Raised when data validation fails.

    Used for:
    - Missing customerId/environmentId in a submission
    - Pydantic model validation failures
    - Extension attributes that are malformed or collide with reserved names
    """

    def __init__(self, message: str, errors: Optional[Dict[str, Any]] = None, original_error: Optional[Exception] = None):
        """Initialize validation error.

        Args:
            message: Human-readable error message
            errors: Dictionary of field-level validation errors
            original_error: The original exception that caused this error
        """
        self.errors = errors or {}
        context = {}
        if self.errors:
            context['validation_errors'] = self.errors
        super().__init__(message, original_error, context)


# =============================================================================
# Conflict and Conditional Errors
# =============================================================================

class ConflictError(DeploymentTrackerError):
    """Raised when a conditional write fails due to existing (or missing) data.

    Used for:
    - Row key collisions on append-only records
    - Merge updates against rows that do not exist
    """

    def __init__(self, message: str, resource_id: Optional[str] = None, original_error: Optional[Exception] = None):
        """Initialize conflict error.

        Args:
            message: Human-readable error message
            resource_id: Key of the conflicting row
            original_error: The original exception that caused this error
        """
        self.resource_id = resource_id
        context = {}
        if resource_id:
            context['resource_id'] = resource_id
        super().__init__(message, original_error, context)


# =============================================================================
# Infrastructure and Retry Errors
# =============================================================================

class ConnectionError(DeploymentTrackerError):
    """Raised when the table store rejects or cannot serve a request permanently.

    Used for:
    - Authentication/authorization failures
    - Missing tables or invalid endpoint configurations
    - Unknown store error codes
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, original_error, context)


class RetryableError(DeploymentTrackerError):
    """Raised when an operation fails for a temporary reason and can be retried.

    Used for:
    - ProvisionedThroughputExceededException and other throttling
    - Temporary service unavailability
    - Dropped or refused network connections
    """

    def __init__(self, message: str, retry_after_seconds: Optional[int] = None, original_error: Optional[Exception] = None):
        """Initialize retryable error.

        Args:
            message: Human-readable error message
            retry_after_seconds: Suggested retry delay in seconds
            original_error: The original exception that caused this error
        """
        self.retry_after_seconds = retry_after_seconds
        context = {}
        if retry_after_seconds:
            context['retry_after_seconds'] = retry_after_seconds
        super().__init__(message, original_error, context)


class StoreTimeoutError(RetryableError):
    """Raised when a table store call times out (connect, read, or request expiry)."""


# =============================================================================
# Record Operation Errors
# =============================================================================

class RecordOperationError(DeploymentTrackerError):
    """Raised by the record store when writing one record kind fails.

    Wraps the underlying domain error with the record kind so the request
    handler can attribute and classify the failure.
    """

    def __init__(self, record_kind: str, original_error: Exception):
        """Initialize record operation error.

        Args:
            record_kind: Kind of record being written (e.g. 'Customer')
            original_error: The domain error raised by the gateway or model
        """
        self.record_kind = record_kind
        cause = getattr(original_error, 'message', None) or str(original_error)
        super().__init__(
            f"{record_kind} operation failed: {cause}",
            original_error,
            {'record_kind': record_kind}
        )
        self.attempts = getattr(original_error, 'attempts', 1)

    @property
    def transient(self) -> bool:
        """Whether the underlying failure is of a retryable class."""
        return isinstance(self.original_error, RetryableError)

    @property
    def timed_out(self) -> bool:
        """Whether the underlying failure is timeout-classified."""
        return isinstance(self.original_error, StoreTimeoutError)
