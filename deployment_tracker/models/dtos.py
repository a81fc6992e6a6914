"""
Inbound DTOs

DeploymentSubmission is the validated form of a RecordDeployment request
body. It checks the envelope (required ids, object/array shapes) and turns
the nested attribute bags into record models, so every record a request
will write has been validated before the first write happens.

Top-level ids always win over ids repeated inside a details object.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import build_record
from .domain_models import (
    CustomerRecord,
    DeploymentRecord,
    EndpointRecord,
    EnvironmentRecord,
    ResourceRecord,
)

# snake_case spellings of the aliased key fields, dropped from details bags
_KEY_SPELLINGS = {
    'customerId': 'customer_id',
    'environmentId': 'environment_id',
    'deploymentId': 'deployment_id',
    'deploymentType': 'deployment_type',
}


def with_keys(attributes: Optional[Dict[str, Any]], **keys: Any) -> Dict[str, Any]:
    """Copy an attribute bag and force the given (camelCase) key fields onto it."""
    merged = dict(attributes or {})
    for name, value in keys.items():
        merged.pop(_KEY_SPELLINGS.get(name, name), None)
        merged[name] = value
    return merged


class DeploymentSubmission(BaseModel):
    """Validated RecordDeployment request body."""

    customer_id: str = Field(..., alias='customerId', min_length=1)
    environment_id: str = Field(..., alias='environmentId', min_length=1)
    deployment_type: str = Field("Initial", alias='deploymentType')

    deployment_details: Optional[Dict[str, Any]] = Field(None, alias='deploymentDetails')
    customer_details: Optional[Dict[str, Any]] = Field(None, alias='customerDetails')
    environment_details: Optional[Dict[str, Any]] = Field(None, alias='environmentDetails')

    resources: List[Dict[str, Any]] = Field(default_factory=list)
    endpoints: List[Dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(
        populate_by_name=True,
        extra='ignore',
        str_strip_whitespace=True,
    )

    @field_validator('deployment_type', mode='before')
    @classmethod
    def default_deployment_type(cls, v):
        """Missing, null, or empty deploymentType means an initial deployment."""
        return v or "Initial"

    @field_validator('resources', 'endpoints', mode='before')
    @classmethod
    def default_empty_list(cls, v):
        return [] if v is None else v

    def deployment_record(self) -> DeploymentRecord:
        return build_record(
            DeploymentRecord,
            with_keys(
                self.deployment_details,
                customerId=self.customer_id,
                environmentId=self.environment_id,
                deploymentType=self.deployment_type,
            ),
            'deploymentDetails'
        )

    def customer_record(self) -> Optional[CustomerRecord]:
        if self.customer_details is None:
            return None
        return build_record(
            CustomerRecord,
            with_keys(self.customer_details, customerId=self.customer_id),
            'customerDetails'
        )

    def environment_record(self) -> Optional[EnvironmentRecord]:
        if self.environment_details is None:
            return None
        return build_record(
            EnvironmentRecord,
            with_keys(
                self.environment_details,
                customerId=self.customer_id,
                environmentId=self.environment_id,
            ),
            'environmentDetails'
        )

    def resource_records(self) -> List[ResourceRecord]:
        """Resource records without their parent deployment key."""
        return [
            build_record(
                ResourceRecord,
                with_keys(resource, customerId=self.customer_id),
                f'resources[{index}]'
            )
            for index, resource in enumerate(self.resources)
        ]

    def endpoint_records(self) -> List[EndpointRecord]:
        return [
            build_record(
                EndpointRecord,
                with_keys(endpoint, customerId=self.customer_id),
                f'endpoints[{index}]'
            )
            for index, endpoint in enumerate(self.endpoints)
        ]
