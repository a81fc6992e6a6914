"""
Deployment Tracker

Records deployment events posted over HTTP as rows in five DynamoDB tables
(customers, customer environments, deployment history, deployed resources,
integration endpoints), using boto3 and Pydantic.
"""

from .config import TrackerConfig
from .exceptions import (
    ConflictError,
    ConnectionError,
    DeploymentTrackerError,
    RecordOperationError,
    RetryableError,
    StoreTimeoutError,
    ValidationError,
)
from .models import (
    RecordKind,
    CustomerRecord,
    EnvironmentRecord,
    DeploymentRecord,
    ResourceRecord,
    EndpointRecord,
    DeploymentSubmission,
)
from .core import (
    TableGateway,
    create_table_gateway,
)
from .retry import RetryPolicy
from .utils import RowKeyGenerator
from .handlers.records import (
    DeploymentRecordsReadApi,
    DeploymentRecordsWriteApi,
)
from .api import (
    HttpResponse,
    RecordDeploymentHandler,
    lambda_handler,
)

__version__ = "1.0.0"
__all__ = [
    # Configuration
    "TrackerConfig",

    # Exceptions
    "ConflictError",
    "ConnectionError",
    "DeploymentTrackerError",
    "RecordOperationError",
    "RetryableError",
    "StoreTimeoutError",
    "ValidationError",

    # Record models
    "RecordKind",
    "CustomerRecord",
    "EnvironmentRecord",
    "DeploymentRecord",
    "ResourceRecord",
    "EndpointRecord",
    "DeploymentSubmission",

    # Store infrastructure
    "TableGateway",
    "create_table_gateway",
    "RetryPolicy",
    "RowKeyGenerator",

    # Record store
    "DeploymentRecordsReadApi",
    "DeploymentRecordsWriteApi",

    # Request handling
    "HttpResponse",
    "RecordDeploymentHandler",
    "lambda_handler",
]
