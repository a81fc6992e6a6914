"""
Record store handlers for the deployment tracking tables.
"""

from .records import (
    DeploymentRecordsReadApi,
    DeploymentRecordsWriteApi,
    create_record_gateways,
)

__all__ = [
    "DeploymentRecordsReadApi",
    "DeploymentRecordsWriteApi",
    "create_record_gateways",
]
