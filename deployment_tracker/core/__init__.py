"""
Core infrastructure components for DynamoDB operations.

- TableGateway: Thin wrapper over boto3 DynamoDB operations
- Error mapping from boto3/botocore failures to tracker exceptions
- Factory functions for creating gateways
"""

from .table_gateway import (
    TableGateway,
    create_table_gateway,
    map_botocore_error,
    map_dynamodb_error,
)

__all__ = [
    "TableGateway",
    "create_table_gateway",
    "map_botocore_error",
    "map_dynamodb_error",
]
