import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file if it exists
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class TrackerConfig(BaseModel):
    """Configuration for the deployment tracker's table store and write policy."""

    aws_access_key_id: Optional[str] = Field(
        default_factory=lambda: os.getenv("AWS_ACCESS_KEY_ID"),
        description="AWS access key ID"
    )

    aws_secret_access_key: Optional[str] = Field(
        default_factory=lambda: os.getenv("AWS_SECRET_ACCESS_KEY"),
        description="AWS secret access key"
    )

    region_name: str = Field(
        default_factory=lambda: os.getenv("AWS_REGION", "us-east-1"),
        description="AWS region name"
    )

    endpoint_url: Optional[str] = Field(
        default_factory=lambda: os.getenv("DYNAMODB_ENDPOINT_URL"),
        description="DynamoDB endpoint URL (for local development)"
    )

    # Table configuration
    table_prefix: str = Field(
        default_factory=lambda: os.getenv("DYNAMODB_TABLE_PREFIX", ""),
        description="Prefix to add to all table names"
    )

    customers_table: str = Field(
        default_factory=lambda: os.getenv("DEPLOYMENT_TRACKER_CUSTOMERS_TABLE", "Customers"),
        description="Base name of the customers table"
    )

    environments_table: str = Field(
        default_factory=lambda: os.getenv("DEPLOYMENT_TRACKER_ENVIRONMENTS_TABLE", "CustomerEnvironments"),
        description="Base name of the customer environments table"
    )

    deployments_table: str = Field(
        default_factory=lambda: os.getenv("DEPLOYMENT_TRACKER_DEPLOYMENTS_TABLE", "DeploymentHistory"),
        description="Base name of the deployment history table"
    )

    resources_table: str = Field(
        default_factory=lambda: os.getenv("DEPLOYMENT_TRACKER_RESOURCES_TABLE", "DeployedResources"),
        description="Base name of the deployed resources table"
    )

    endpoints_table: str = Field(
        default_factory=lambda: os.getenv("DEPLOYMENT_TRACKER_ENDPOINTS_TABLE", "IntegrationEndpoints"),
        description="Base name of the integration endpoints table"
    )

    auto_create_tables: bool = Field(
        default_factory=lambda: _env_bool("DEPLOYMENT_TRACKER_AUTO_CREATE_TABLES", "true"),
        description="Create missing tables on first use"
    )

    # Connection settings
    max_pool_connections: int = Field(
        default=50,
        description="Maximum number of connections in the connection pool"
    )

    client_max_attempts: int = Field(
        default=1,
        description="Total attempts made by the boto3 client itself (1 leaves retries to RetryPolicy)"
    )

    timeout_seconds: float = Field(
        default=10.0,
        description="Connect/read timeout in seconds"
    )

    # Retry policy applied around every record write
    retry_max_attempts: int = Field(
        default_factory=lambda: int(os.getenv("DEPLOYMENT_TRACKER_RETRY_MAX_ATTEMPTS", "3")),
        description="Maximum attempts for a record write, including the first"
    )

    retry_base_delay_seconds: float = Field(
        default_factory=lambda: float(os.getenv("DEPLOYMENT_TRACKER_RETRY_BASE_DELAY_SECONDS", "1.0")),
        description="Delay before the first retry"
    )

    retry_backoff_multiplier: float = Field(
        default_factory=lambda: float(os.getenv("DEPLOYMENT_TRACKER_RETRY_BACKOFF_MULTIPLIER", "2.0")),
        description="Factor applied to the delay after each retry"
    )

    # Environment settings
    environment: str = Field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "dev"),
        description="Current environment (dev, test, staging, prod)"
    )

    enable_debug_logging: bool = Field(
        default_factory=lambda: _env_bool("DEPLOYMENT_TRACKER_DEBUG_LOGGING", "false"),
        description="Enable debug logging, including request payloads"
    )

    @field_validator('region_name')
    @classmethod
    def validate_region(cls, v):
        """Validate AWS region name."""
        if not v:
            raise ValueError("AWS region name is required")
        return v

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value."""
        valid_environments = ['dev', 'test', 'staging', 'prod']
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v

    @field_validator('retry_max_attempts', 'client_max_attempts')
    @classmethod
    def validate_attempts(cls, v):
        if v < 1:
            raise ValueError("Attempt counts must be at least 1")
        return v

    @field_validator('retry_base_delay_seconds')
    @classmethod
    def validate_delay(cls, v):
        if v < 0:
            raise ValueError("Retry delay cannot be negative")
        return v

    @field_validator('retry_backoff_multiplier')
    @classmethod
    def validate_multiplier(cls, v):
        if v < 1:
            raise ValueError("Backoff multiplier must be at least 1")
        return v

    def get_table_name(self, base_name: str) -> str:
        """Get the full table name with prefix and environment.

        Args:
            base_name: Base table name

        Returns:
            Full table name with prefix and environment
        """
        parts = []

        if self.table_prefix:
            parts.append(self.table_prefix)

        if self.environment != "prod":
            parts.append(self.environment)

        parts.append(base_name)

        return "_".join(parts)

    def base_table_name(self, kind) -> str:
        """Get the configured base table name for a record kind.

        Args:
            kind: RecordKind member or its value (e.g. 'Customer')
        """
        base_names = {
            "Customer": self.customers_table,
            "Environment": self.environments_table,
            "Deployment": self.deployments_table,
            "Resource": self.resources_table,
            "Endpoint": self.endpoints_table,
        }
        return base_names[getattr(kind, "value", kind)]

    def table_name_for(self, kind) -> str:
        """Get the full table name for a record kind."""
        return self.get_table_name(self.base_table_name(kind))

    @classmethod
    def from_env(cls) -> 'TrackerConfig':
        """Create configuration from environment variables.

        Returns:
            TrackerConfig instance
        """
        return cls()

    @classmethod
    def for_local_development(cls) -> 'TrackerConfig':
        """Create configuration for local DynamoDB development.

        Returns:
            TrackerConfig instance configured for local development
        """
        return cls(
            aws_access_key_id="local",
            aws_secret_access_key="local",
            region_name="us-east-1",
            endpoint_url="http://localhost:8000",
            environment="dev",
            enable_debug_logging=True
        )

    model_config = ConfigDict(
        validate_assignment=True,
        use_enum_values=True
    )
