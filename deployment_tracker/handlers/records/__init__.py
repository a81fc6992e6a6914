"""
Deployment Records Handlers

This module provides the record store for the deployment tracking tables:
- DeploymentRecordsWriteApi: put/merge operations per record kind
- DeploymentRecordsReadApi: partition listing
"""

from .commands import DeploymentRecordsWriteApi, create_record_gateways
from .queries import DeploymentRecordsReadApi

__all__ = [
    "DeploymentRecordsWriteApi",
    "DeploymentRecordsReadApi",
    "create_record_gateways",
]
