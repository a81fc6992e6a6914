# Base mixins and utilities
from .base import (
    DynamoDBMixin,
    TrackedRecord,
    RecordKind,
    build_record,
    convert_for_dynamodb,
    MAX_EXTENSION_ATTRIBUTES,
    RESERVED_ATTRIBUTES,
)

# Record models, one per table
from .domain_models import (
    CustomerRecord,
    EnvironmentRecord,
    DeploymentRecord,
    ResourceRecord,
    EndpointRecord,
)

# Inbound request DTOs
from .dtos import (
    DeploymentSubmission,
    with_keys,
)

__all__ = [
    # Base mixins and utilities
    "DynamoDBMixin",
    "TrackedRecord",
    "RecordKind",
    "build_record",
    "convert_for_dynamodb",
    "MAX_EXTENSION_ATTRIBUTES",
    "RESERVED_ATTRIBUTES",

    # Record models
    "CustomerRecord",
    "EnvironmentRecord",
    "DeploymentRecord",
    "ResourceRecord",
    "EndpointRecord",

    # Request DTOs
    "DeploymentSubmission",
    "with_keys",
]
