"""
Domain Models for the Deployment Tracker

One model per record kind. Each declares its core schema and how its
partition and row keys are derived:

| Kind        | partition_key  | row_key                        |
|-------------|----------------|--------------------------------|
| Customer    | customer_id    | customer_id                    |
| Environment | customer_id    | environment_id                 |
| Deployment  | customer_id    | {stamp}_{environment_id}       |
| Resource    | deployment_id  | {resource_type}_{stamp}        |
| Endpoint    | customer_id    | {service_type}_{stamp}         |

Customer and Environment rows are upserted in place. The other kinds are
append-only and carry a stamp from RowKeyGenerator in their row key.
"""

from typing import ClassVar, Optional

from pydantic import Field

from ..exceptions import ValidationError
from ..utils.keys import deployment_row_key, endpoint_row_key, resource_row_key
from .base import RecordKind, TrackedRecord


def _require_stamp(kind: RecordKind, stamp: Optional[str]) -> str:
    if not stamp:
        raise ValidationError(f"{kind.value} row key requires a creation stamp")
    return stamp


# =============================================================================
# Upserted records
# =============================================================================

class CustomerRecord(TrackedRecord):
    """One row per customer; later submissions replace it."""

    kind: ClassVar[RecordKind] = RecordKind.CUSTOMER
    append_only: ClassVar[bool] = False

    customer_id: str = Field(..., alias='customerId', min_length=1, description="Customer identifier")

    def build_partition_key(self) -> str:
        return self.customer_id

    def build_row_key(self, stamp: Optional[str] = None) -> str:
        return self.customer_id


class EnvironmentRecord(TrackedRecord):
    """One row per (customer, environment); later submissions replace it."""

    kind: ClassVar[RecordKind] = RecordKind.ENVIRONMENT
    append_only: ClassVar[bool] = False

    customer_id: str = Field(..., alias='customerId', min_length=1, description="Owning customer")
    environment_id: str = Field(..., alias='environmentId', min_length=1, description="Environment identifier")

    def build_partition_key(self) -> str:
        return self.customer_id

    def build_row_key(self, stamp: Optional[str] = None) -> str:
        return self.environment_id


# =============================================================================
# Append-only records
# =============================================================================

class DeploymentRecord(TrackedRecord):
    """A single deployment event; the anchor for its resource rows."""

    kind: ClassVar[RecordKind] = RecordKind.DEPLOYMENT

    customer_id: str = Field(..., alias='customerId', min_length=1, description="Owning customer")
    environment_id: str = Field(..., alias='environmentId', min_length=1, description="Target environment")
    deployment_type: str = Field("Initial", alias='deploymentType', min_length=1, description="Kind of deployment")
    status: str = Field("InProgress", description="Deployment status")

    def build_partition_key(self) -> str:
        return self.customer_id

    def build_row_key(self, stamp: Optional[str] = None) -> str:
        return deployment_row_key(_require_stamp(self.kind, stamp), self.environment_id)


class ResourceRecord(TrackedRecord):
    """A resource deployed as part of a deployment.

    ``deployment_id`` is the row key of the parent deployment. It is optional
    at validation time because the parent key only exists once the
    deployment row has been written.
    """

    kind: ClassVar[RecordKind] = RecordKind.RESOURCE

    resource_type: str = Field(..., alias='resourceType', min_length=1, description="Resource type discriminator")
    deployment_id: Optional[str] = Field(None, alias='deploymentId', description="Parent deployment row key")
    customer_id: Optional[str] = Field(None, alias='customerId', description="Owning customer")
    status: str = Field("Deployed", description="Resource status")

    def build_partition_key(self) -> str:
        if not self.deployment_id:
            raise ValidationError(
                "Resource record requires the parent deployment key",
                {'deploymentId': "Field required"}
            )
        return self.deployment_id

    def build_row_key(self, stamp: Optional[str] = None) -> str:
        return resource_row_key(self.resource_type, _require_stamp(self.kind, stamp))


class EndpointRecord(TrackedRecord):
    """An integration endpoint registered for a customer."""

    kind: ClassVar[RecordKind] = RecordKind.ENDPOINT

    customer_id: str = Field(..., alias='customerId', min_length=1, description="Owning customer")
    service_type: str = Field(..., alias='serviceType', min_length=1, description="Service type discriminator")
    status: str = Field("Active", description="Endpoint status")

    def build_partition_key(self) -> str:
        return self.customer_id

    def build_row_key(self, stamp: Optional[str] = None) -> str:
        return endpoint_row_key(self.service_type, _require_stamp(self.kind, stamp))

