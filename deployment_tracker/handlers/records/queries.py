"""
Deployment Records Read API

A single read path: list the rows of one partition, e.g. every deployment of
a customer or every resource of a deployment. Rows come back in row key
order, which for append-only kinds is creation order.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from boto3.dynamodb.conditions import Key

from ...config import TrackerConfig
from ...core import TableGateway
from ...core.table_gateway import PARTITION_KEY
from ...models import RecordKind
from .commands import create_record_gateways

logger = logging.getLogger(__name__)


class DeploymentRecordsReadApi:
    """Read-only API over the deployment tracking tables."""

    def __init__(self, config: TrackerConfig, gateways: Optional[Dict[RecordKind, TableGateway]] = None):
        """Initialize read API.

        Args:
            config: Tracker configuration
            gateways: Gateways per record kind; pass the write API's gateways
                to share its boto3 resource
        """
        self.config = config
        self.gateways = gateways or create_record_gateways(config)

    def list_partition(
        self,
        kind: Union[RecordKind, str],
        partition_key: str,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        List the rows stored under one partition key.

        DynamoDB Operation: Query on partition_key, following LastEvaluatedKey

        Args:
            kind: Record kind (table) to read
            partition_key: Partition to list
            limit: Maximum number of rows to return

        Returns:
            Raw items in ascending row key order
        """
        kind = RecordKind(kind)
        gateway = self.gateways[kind]

        query_kwargs = {'KeyConditionExpression': Key(PARTITION_KEY).eq(partition_key)}
        items: List[Dict[str, Any]] = []

        while True:
            if limit is not None:
                query_kwargs['Limit'] = limit - len(items)
            response = gateway.query(**query_kwargs)
            items.extend(response.get('Items', []))

            if 'LastEvaluatedKey' not in response:
                break
            if limit is not None and len(items) >= limit:
                break
            query_kwargs['ExclusiveStartKey'] = response['LastEvaluatedKey']

        logger.info(f"Listed {len(items)} {kind.value} rows for partition {partition_key}")
        return items
