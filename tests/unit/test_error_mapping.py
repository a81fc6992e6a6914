"""
Tests for mapping boto3/botocore failures onto tracker exceptions.

The retry policy and the request handler classify on these exception
types, so each family of store failures must land on the right one.
"""

import pytest
from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    ReadTimeoutError,
)

from deployment_tracker.core.table_gateway import map_botocore_error, map_dynamodb_error
from deployment_tracker.exceptions import (
    ConflictError,
    ConnectionError,
    RecordOperationError,
    RetryableError,
    StoreTimeoutError,
    ValidationError,
)


def create_client_error(error_code: str, message: str = "Test error") -> ClientError:
    """Helper to create ClientError for testing."""
    return ClientError(
        error_response={
            'Error': {
                'Code': error_code,
                'Message': message
            }
        },
        operation_name='TestOperation'
    )


class TestClientErrorMapping:
    """Test mapping of DynamoDB ClientError codes."""

    def test_conditional_check_failed(self):
        error = create_client_error('ConditionalCheckFailedException', 'The conditional request failed')

        result = map_dynamodb_error(error, 'PutItem', 'DeploymentHistory', 'C1/123_E1')

        assert isinstance(result, ConflictError)
        assert result.resource_id == 'C1/123_E1'
        assert 'conditional request failed' in str(result).lower()
        assert result.original_error is error

    def test_resource_in_use_is_conflict(self):
        error = create_client_error('ResourceInUseException', 'Table already exists')

        result = map_dynamodb_error(error, 'CreateTable', 'Customers')

        assert isinstance(result, ConflictError)

    def test_missing_table(self):
        error = create_client_error('ResourceNotFoundException', 'Requested resource not found')

        result = map_dynamodb_error(error, 'PutItem', 'Customers')

        assert isinstance(result, ConnectionError)
        assert 'Table not found' in str(result)

    def test_validation_exception(self):
        error = create_client_error('ValidationException', 'One or more parameter values were invalid')

        result = map_dynamodb_error(error, 'PutItem', 'Customers')

        assert isinstance(result, ValidationError)

    @pytest.mark.parametrize('code', [
        'ProvisionedThroughputExceededException',
        'RequestLimitExceeded',
        'ThrottlingException',
        'InternalServerError',
        'ServiceUnavailable',
    ])
    def test_transient_codes_are_retryable(self, code):
        result = map_dynamodb_error(create_client_error(code), 'PutItem', 'Customers')

        assert isinstance(result, RetryableError)
        assert not isinstance(result, StoreTimeoutError)

    @pytest.mark.parametrize('code', ['RequestTimeoutException', 'RequestExpiredException'])
    def test_timeout_codes(self, code):
        result = map_dynamodb_error(create_client_error(code), 'PutItem', 'Customers')

        assert isinstance(result, StoreTimeoutError)
        assert isinstance(result, RetryableError)

    @pytest.mark.parametrize('code', ['AccessDeniedException', 'UnrecognizedClientException', 'ExpiredTokenException'])
    def test_auth_failures_are_permanent(self, code):
        result = map_dynamodb_error(create_client_error(code), 'PutItem', 'Customers')

        assert isinstance(result, ConnectionError)
        assert 'Authentication/authorization failed' in str(result)

    def test_unknown_code_defaults_to_connection_error(self):
        result = map_dynamodb_error(create_client_error('SomethingNew'), 'PutItem', 'Customers')

        assert isinstance(result, ConnectionError)
        assert 'DynamoDB operation failed' in str(result)

    def test_message_includes_operation_and_table(self):
        result = map_dynamodb_error(create_client_error('ValidationException', 'bad'), 'PutItem', 'Customers', 'C1/C1')

        assert 'PutItem on Customers (resource: C1/C1): bad' in result.message


class TestBotocoreErrorMapping:
    """Test mapping of transport-level botocore errors."""

    def test_connect_timeout(self):
        result = map_botocore_error(ConnectTimeoutError(endpoint_url='https://dynamodb'), 'PutItem', 'Customers')

        assert isinstance(result, StoreTimeoutError)

    def test_read_timeout(self):
        result = map_botocore_error(ReadTimeoutError(endpoint_url='https://dynamodb'), 'PutItem', 'Customers')

        assert isinstance(result, StoreTimeoutError)

    def test_endpoint_connection_error(self):
        result = map_botocore_error(EndpointConnectionError(endpoint_url='https://dynamodb'), 'PutItem', 'Customers')

        assert isinstance(result, RetryableError)
        assert not isinstance(result, StoreTimeoutError)

    def test_connection_closed(self):
        result = map_botocore_error(ConnectionClosedError(endpoint_url='https://dynamodb'), 'PutItem', 'Customers')

        assert isinstance(result, RetryableError)

    def test_missing_credentials_are_permanent(self):
        result = map_botocore_error(NoCredentialsError(), 'PutItem', 'Customers')

        assert isinstance(result, ConnectionError)
        assert not isinstance(result, RetryableError)


class TestRecordOperationError:
    """Test the record-kind wrapper raised by the record store."""

    def test_message_names_record_kind(self):
        cause = ConflictError("Conditional check failed - PutItem on DeploymentHistory: exists")

        error = RecordOperationError("Deployment", cause)

        assert error.message == "Deployment operation failed: Conditional check failed - PutItem on DeploymentHistory: exists"
        assert error.record_kind == "Deployment"
        assert error.original_error is cause

    def test_transient_and_timeout_flags(self):
        assert RecordOperationError("Customer", RetryableError("throttled")).transient is True
        assert RecordOperationError("Customer", RetryableError("throttled")).timed_out is False
        assert RecordOperationError("Customer", StoreTimeoutError("timeout")).timed_out is True
        assert RecordOperationError("Customer", ConflictError("exists")).transient is False

    def test_attempts_copied_from_cause(self):
        cause = RetryableError("throttled")
        cause.attempts = 3

        assert RecordOperationError("Endpoint", cause).attempts == 3

    def test_wraps_non_tracker_errors(self):
        error = RecordOperationError("Resource", TypeError("Unsupported type"))

        assert error.message == "Resource operation failed: Unsupported type"
        assert error.attempts == 1
        assert error.transient is False
