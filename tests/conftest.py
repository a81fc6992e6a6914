"""
Test configuration and fixtures for the deployment tracker.

Provides configuration, a moto-backed DynamoDB, and record store/handler
fixtures wired with a retry policy that records its delays instead of
sleeping.
"""

import pytest
from moto import mock_aws

from deployment_tracker import (
    DeploymentRecordsReadApi,
    DeploymentRecordsWriteApi,
    RecordDeploymentHandler,
    RetryPolicy,
    TrackerConfig,
)


class RecordingSleep:
    """Stand-in for time.sleep that remembers requested delays."""

    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def tracker_config():
    """Tracker configuration for mocked testing."""
    return TrackerConfig(
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        region_name="us-east-1",
        endpoint_url=None,  # Use default AWS endpoint for moto
        environment="test",
        table_prefix="",
        auto_create_tables=True
    )


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def retry_policy(recording_sleep):
    """Default 3-attempt policy that does not actually sleep."""
    return RetryPolicy(max_attempts=3, base_delay_seconds=1.0, backoff_multiplier=2.0, sleep=recording_sleep)


@pytest.fixture
def mocked_aws():
    """Activate moto for the duration of a test."""
    with mock_aws():
        yield


@pytest.fixture
def write_api(tracker_config, retry_policy, mocked_aws):
    """Record store write API against mocked DynamoDB."""
    return DeploymentRecordsWriteApi(tracker_config, retry_policy=retry_policy)


@pytest.fixture
def read_api(tracker_config, write_api):
    """Record store read API sharing the write API's gateways."""
    return DeploymentRecordsReadApi(tracker_config, gateways=write_api.gateways)


@pytest.fixture
def handler(write_api):
    """Request handler over the mocked record store."""
    return RecordDeploymentHandler(write_api)


# Sample Data Fixtures

@pytest.fixture
def full_submission():
    """Submission exercising every optional section."""
    return {
        "customerId": "C1",
        "environmentId": "E1",
        "deploymentType": "Upgrade",
        "deploymentDetails": {"version": "2.4.0", "triggeredBy": "pipeline"},
        "customerDetails": {"name": "Acme Corp", "tier": "gold"},
        "environmentDetails": {"region": "eastus", "stage": "prod"},
        "resources": [
            {"resourceType": "vm", "sku": "Standard_D2s"},
            {"resourceType": "db", "sizeGb": 128},
        ],
        "endpoints": [
            {"serviceType": "crm", "url": "https://crm.example.com"},
        ],
    }
