"""
Thin DynamoDB Table Gateway

This module provides a lightweight wrapper around boto3 DynamoDB operations
for the deployment tracking tables. Every table shares one key schema:

    partition_key (HASH, S) + row_key (RANGE, S)

The gateway focuses on:
- Creating boto3 Table handles lazily
- One-time table provisioning (ensure_table)
- Put/update/query wrappers with error mapping
- Mapping boto3/botocore failures onto the tracker's exception hierarchy,
  which is what the retry policy classifies on

Record-level concerns (key derivation, upsert vs. create, retries) live in
the record APIs built on top of it.
"""

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    ReadTimeoutError,
)

from ..config import TrackerConfig
from ..exceptions import (
    ConnectionError,
    ConflictError,
    RetryableError,
    StoreTimeoutError,
    ValidationError,
)

logger = logging.getLogger(__name__)

PARTITION_KEY = 'partition_key'
ROW_KEY = 'row_key'

KEY_SCHEMA = [
    {'AttributeName': PARTITION_KEY, 'KeyType': 'HASH'},
    {'AttributeName': ROW_KEY, 'KeyType': 'RANGE'},
]
ATTRIBUTE_DEFINITIONS = [
    {'AttributeName': PARTITION_KEY, 'AttributeType': 'S'},
    {'AttributeName': ROW_KEY, 'AttributeType': 'S'},
]


def _resource_id(key: Optional[Dict[str, Any]]) -> Optional[str]:
    if not key or PARTITION_KEY not in key:
        return None
    if ROW_KEY in key:
        return f"{key[PARTITION_KEY]}/{key[ROW_KEY]}"
    return str(key[PARTITION_KEY])


def map_dynamodb_error(
    error: ClientError,
    operation: str,
    table_name: str,
    resource_id: Optional[str] = None
) -> Exception:
    """Map DynamoDB ClientError to domain-specific exceptions.

    Args:
        error: The boto3 ClientError
        operation: The operation that failed (e.g., "PutItem", "CreateTable")
        table_name: The DynamoDB table name
        resource_id: Optional row identifier for context

    Returns:
        Appropriate domain exception:
        ConflictError for conditional/collision failures,
        ValidationError for rejected items,
        RetryableError for throttling/capacity/service issues,
        StoreTimeoutError for request timeouts,
        ConnectionError for everything else
    """
    error_code = error.response['Error']['Code']
    error_message = error.response['Error']['Message']

    context = f"{operation} on {table_name}"
    if resource_id:
        context += f" (resource: {resource_id})"

    full_message = f"{context}: {error_message}"

    if error_code == 'ConditionalCheckFailedException':
        return ConflictError(f"Conditional check failed - {full_message}", resource_id, original_error=error)

    elif error_code in ['TransactionConflictException', 'ResourceInUseException']:
        return ConflictError(f"Resource conflict - {full_message}", resource_id, original_error=error)

    elif error_code == 'ResourceNotFoundException':
        return ConnectionError(f"Table not found - {full_message}", original_error=error)

    elif error_code in ['ValidationException', 'ItemCollectionSizeLimitExceededException', 'LimitExceededException']:
        return ValidationError(f"Validation failed - {full_message}", original_error=error)

    elif error_code in ['RequestTimeoutException', 'RequestExpiredException', 'ServiceTimeout']:
        return StoreTimeoutError(f"Request timeout - {full_message}", original_error=error)

    elif error_code in [
        'ProvisionedThroughputExceededException', 'RequestLimitExceeded',
        'ThrottlingException', 'SlowDown', 'RequestThrottledException', 'TooManyRequestsException'
    ]:
        return RetryableError(f"Throttling - {full_message}", original_error=error)

    elif error_code in [
        'InternalServerError', 'ServiceUnavailable', 'ServiceUnavailableException',
        'InternalFailure', 'ServiceException'
    ]:
        return RetryableError(f"Service unavailable - {full_message}", original_error=error)

    elif error_code in [
        'UnrecognizedClientException', 'AccessDeniedException', 'InvalidSignatureException',
        'IncompleteSignatureException', 'ExpiredTokenException'
    ]:
        return ConnectionError(f"Authentication/authorization failed - {full_message}", original_error=error)

    logger.warning(f"Unknown DynamoDB error code '{error_code}' mapped to ConnectionError")
    return ConnectionError(f"DynamoDB operation failed - {full_message}", original_error=error)


def map_botocore_error(error: BotoCoreError, operation: str, table_name: str) -> Exception:
    """Map botocore transport errors (no HTTP response) to domain exceptions.

    Args:
        error: The botocore exception
        operation: The operation that failed
        table_name: The DynamoDB table name

    Returns:
        StoreTimeoutError for connect/read timeouts,
        RetryableError for refused or dropped connections,
        ConnectionError otherwise (missing credentials, bad configuration)
    """
    full_message = f"{operation} on {table_name}: {error}"

    if isinstance(error, (ConnectTimeoutError, ReadTimeoutError)):
        return StoreTimeoutError(f"Network timeout - {full_message}", original_error=error)

    if isinstance(error, (EndpointConnectionError, ConnectionClosedError)):
        return RetryableError(f"Network failure - {full_message}", original_error=error)

    if isinstance(error, NoCredentialsError):
        return ConnectionError(f"No AWS credentials available - {full_message}", original_error=error)

    return ConnectionError(f"DynamoDB client failure - {full_message}", original_error=error)


class TableGateway:
    """
    Thin gateway for one deployment tracking table.

    Provides minimal, composable DynamoDB operations. Designed to be used by
    the record read/write APIs rather than directly by request handlers.
    """

    def __init__(self, config: TrackerConfig, table_name: str):
        """Initialize table gateway.

        Args:
            config: Tracker configuration
            table_name: Full name of the DynamoDB table
        """
        self.config = config
        self.table_name = table_name
        self._dynamodb = None
        self._table = None
        self._table_ready = False

    @property
    def dynamodb(self):
        """Lazy initialization of DynamoDB resource."""
        if self._dynamodb is None:
            try:
                session = boto3.Session(
                    aws_access_key_id=self.config.aws_access_key_id,
                    aws_secret_access_key=self.config.aws_secret_access_key,
                    region_name=self.config.region_name
                )

                dynamodb_config = {
                    'region_name': self.config.region_name
                }

                if self.config.endpoint_url:
                    dynamodb_config['endpoint_url'] = self.config.endpoint_url

                # Client-level retries stay off by default; RetryPolicy owns retrying
                boto_config = Config(
                    retries={'total_max_attempts': self.config.client_max_attempts, 'mode': 'standard'},
                    max_pool_connections=self.config.max_pool_connections,
                    read_timeout=self.config.timeout_seconds,
                    connect_timeout=self.config.timeout_seconds
                )
                dynamodb_config['config'] = boto_config

                self._dynamodb = session.resource('dynamodb', **dynamodb_config)
            except Exception as e:
                logger.error(f"Failed to create DynamoDB resource: {e}")
                raise ConnectionError(f"Failed to connect to DynamoDB: {e}", e) from e
        return self._dynamodb

    @property
    def table(self):
        """Get boto3 DynamoDB Table resource."""
        if self._table is None:
            try:
                self._table = self.dynamodb.Table(self.table_name)
            except Exception as e:
                logger.error(f"Failed to access table '{self.table_name}': {e}")
                raise ConnectionError(f"Failed to access table '{self.table_name}': {e}", e) from e
        return self._table

    @property
    def table_ready(self) -> bool:
        """Whether ensure_table() has already succeeded for this gateway."""
        return self._table_ready

    def ensure_table(self) -> None:
        """
        Create the table if it does not exist yet.

        "Already exists" (ResourceInUseException) counts as success. The
        outcome is remembered, so later calls return without touching
        DynamoDB.

        Raises:
            ConnectionError, RetryableError, StoreTimeoutError: Provisioning failed
        """
        if self._table_ready:
            return

        try:
            self.dynamodb.create_table(
                TableName=self.table_name,
                KeySchema=KEY_SCHEMA,
                AttributeDefinitions=ATTRIBUTE_DEFINITIONS,
                BillingMode='PAY_PER_REQUEST'
            )
            logger.info(f"Created table {self.table_name}")
        except ClientError as e:
            if e.response['Error']['Code'] != 'ResourceInUseException':
                raise map_dynamodb_error(e, "CreateTable", self.table_name) from e
            logger.debug(f"Table {self.table_name} already exists")
        except BotoCoreError as e:
            raise map_botocore_error(e, "CreateTable", self.table_name) from e

        try:
            self.table.wait_until_exists()
        except ClientError as e:
            raise map_dynamodb_error(e, "DescribeTable", self.table_name) from e
        except BotoCoreError as e:
            raise map_botocore_error(e, "DescribeTable", self.table_name) from e

        self._table_ready = True

    def put_item(self, item: Dict[str, Any], condition_expression=None) -> None:
        """
        Put item into DynamoDB table.

        Args:
            item: Item to store
            condition_expression: Optional condition for put operation

        Example:
            gateway.put_item(
                item={'partition_key': 'C1', 'row_key': 'C1', 'name': 'Acme'},
                condition_expression=Attr('partition_key').not_exists()
            )
        """
        resource_id = _resource_id(item)
        try:
            put_kwargs = {'Item': item}
            if condition_expression is not None:
                put_kwargs['ConditionExpression'] = condition_expression

            self.table.put_item(**put_kwargs)
            logger.info(f"Put item in {self.table_name}: {resource_id}")
            logger.debug(f"Item written to {self.table_name}: {item}")
        except ClientError as e:
            raise map_dynamodb_error(e, "PutItem", self.table_name, resource_id) from e
        except BotoCoreError as e:
            raise map_botocore_error(e, "PutItem", self.table_name) from e

    def update_item(
        self,
        key: Dict[str, Any],
        update_expression: str,
        expression_attribute_values: Optional[Dict[str, Any]] = None,
        expression_attribute_names: Optional[Dict[str, str]] = None,
        condition_expression=None,
        return_values: str = 'NONE'
    ) -> Optional[Dict[str, Any]]:
        """
        Update item in DynamoDB table.

        Args:
            key: Primary key of item to update
            update_expression: UPDATE expression
            expression_attribute_values: Values for update expression
            expression_attribute_names: Names for update expression
            condition_expression: Optional condition for update
            return_values: What to return after update

        Returns:
            Updated attributes if return_values != 'NONE'
        """
        resource_id = _resource_id(key)
        try:
            update_kwargs = {
                'Key': key,
                'UpdateExpression': update_expression,
                'ReturnValues': return_values
            }

            if expression_attribute_values:
                update_kwargs['ExpressionAttributeValues'] = expression_attribute_values
            if expression_attribute_names:
                update_kwargs['ExpressionAttributeNames'] = expression_attribute_names
            if condition_expression is not None:
                update_kwargs['ConditionExpression'] = condition_expression

            response = self.table.update_item(**update_kwargs)
            logger.info(f"Updated item in {self.table_name}: {resource_id}")

            return response.get('Attributes') if return_values != 'NONE' else None

        except ClientError as e:
            raise map_dynamodb_error(e, "UpdateItem", self.table_name, resource_id) from e
        except BotoCoreError as e:
            raise map_botocore_error(e, "UpdateItem", self.table_name) from e

    def get_item(self, key: Dict[str, Any], consistent_read: bool = False) -> Optional[Dict[str, Any]]:
        """
        Fetch one item by primary key.

        Args:
            key: Primary key of the item
            consistent_read: Use a strongly consistent read

        Returns:
            The stored item, or None when no item has that key
        """
        try:
            response = self.table.get_item(Key=key, ConsistentRead=consistent_read)
            return response.get('Item')
        except ClientError as e:
            raise map_dynamodb_error(e, "GetItem", self.table_name, _resource_id(key)) from e
        except BotoCoreError as e:
            raise map_botocore_error(e, "GetItem", self.table_name) from e

    def query(self, **kwargs) -> Dict[str, Any]:
        """
        Execute DynamoDB Query operation.

        Raw pass-through to boto3 with error handling.

        Args:
            **kwargs: All boto3 query parameters

        Returns:
            Raw DynamoDB response
        """
        try:
            return self.table.query(**kwargs)
        except ClientError as e:
            raise map_dynamodb_error(e, "Query", self.table_name) from e
        except BotoCoreError as e:
            raise map_botocore_error(e, "Query", self.table_name) from e


def create_table_gateway(config: TrackerConfig, table_name: str) -> TableGateway:
    """
    Factory function to create a TableGateway instance.

    Args:
        config: Tracker configuration
        table_name: Base table name (prefixed via config.get_table_name())

    Returns:
        Configured TableGateway instance
    """
    full_table_name = config.get_table_name(table_name)
    return TableGateway(config, full_table_name)
