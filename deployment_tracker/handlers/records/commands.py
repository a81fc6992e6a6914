"""
Deployment Records Write API

This module owns the five deployment tracking tables and writes one record
at a time:

- Customer and Environment rows are upserted (unconditional PutItem), so a
  repeated submission replaces the row in place
- Deployment, Resource and Endpoint rows are append-only: PutItem with
  attribute_not_exists(partition_key), and a stamp from RowKeyGenerator in
  the row key. A collision surfaces as ConflictError and is not retried,
  unless an earlier attempt of the same write ended in a transient error and
  a consistent read shows that attempt stored the item
- Every write runs through the injected RetryPolicy; failures that survive
  it are wrapped in RecordOperationError naming the record kind

Tables are provisioned on first use of each gateway when
config.auto_create_tables is set.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Type, Union

from boto3.dynamodb.conditions import Attr

from ...config import TrackerConfig
from ...core import TableGateway, create_table_gateway
from ...core.table_gateway import PARTITION_KEY, ROW_KEY
from ...exceptions import ConflictError, RecordOperationError, RetryableError, ValidationError
from ...models import (
    CustomerRecord,
    DeploymentRecord,
    EndpointRecord,
    EnvironmentRecord,
    RecordKind,
    ResourceRecord,
    TrackedRecord,
    build_record,
    convert_for_dynamodb,
)
from ...models.base import EXTENSION_KEY_PATTERN, RESERVED_ATTRIBUTES, find_unstorable_numbers
from ...retry import RetryPolicy
from ...utils import RowKeyGenerator

logger = logging.getLogger(__name__)

Attributes = Union[Dict[str, Any], TrackedRecord]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def create_record_gateways(config: TrackerConfig) -> Dict[RecordKind, TableGateway]:
    """Create one gateway per record kind, named from the configuration."""
    return {
        kind: create_table_gateway(config, config.base_table_name(kind))
        for kind in RecordKind
    }


class DeploymentRecordsWriteApi:
    """
    Write-only API for the deployment tracking tables.

    One instance is meant to live for the whole process: its gateways hold
    the boto3 resource and remember which tables have been provisioned.
    """

    def __init__(
        self,
        config: TrackerConfig,
        retry_policy: Optional[RetryPolicy] = None,
        key_generator: Optional[RowKeyGenerator] = None,
        gateways: Optional[Dict[RecordKind, TableGateway]] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """Initialize write API.

        Args:
            config: Tracker configuration
            retry_policy: Policy applied around each write (defaults from config)
            key_generator: Stamp source for append-only row keys
            gateways: Gateways per record kind (defaults from config)
            clock: Returns the write-time UTC timestamp
        """
        self.config = config
        self.retry_policy = retry_policy or RetryPolicy.from_config(config)
        self.key_generator = key_generator or RowKeyGenerator()
        self.gateways = gateways or create_record_gateways(config)
        self._clock = clock or _utc_now

    # -------------------------------------------------------------------------
    # Record operations
    # -------------------------------------------------------------------------

    def put_customer(self, attributes: Attributes) -> bool:
        """
        Upsert a customer row.

        DynamoDB Operation: PutItem (replace)
        Keys: partition_key = row_key = customer_id

        Returns:
            True once written

        Raises:
            ValidationError: Attributes do not form a valid customer record
            RecordOperationError: The write failed
        """
        self._write(self._coerce(CustomerRecord, attributes))
        return True

    def put_environment(self, attributes: Attributes) -> bool:
        """
        Upsert a customer environment row.

        DynamoDB Operation: PutItem (replace)
        Keys: partition_key = customer_id, row_key = environment_id
        """
        self._write(self._coerce(EnvironmentRecord, attributes))
        return True

    def put_deployment(self, attributes: Attributes) -> str:
        """
        Create a deployment row.

        DynamoDB Operation: PutItem with attribute_not_exists(partition_key)
        Keys: partition_key = customer_id, row_key = {stamp}_{environment_id}

        Returns:
            The generated row key, used as deployment_id by resource rows
        """
        item = self._write(self._coerce(DeploymentRecord, attributes))
        return item[ROW_KEY]

    def put_resource(self, attributes: Attributes) -> bool:
        """
        Create a resource row under its parent deployment.

        DynamoDB Operation: PutItem with attribute_not_exists(partition_key)
        Keys: partition_key = deployment_id, row_key = {resource_type}_{stamp}
        """
        self._write(self._coerce(ResourceRecord, attributes))
        return True

    def put_endpoint(self, attributes: Attributes) -> bool:
        """
        Create an integration endpoint row.

        DynamoDB Operation: PutItem with attribute_not_exists(partition_key)
        Keys: partition_key = customer_id, row_key = {service_type}_{stamp}
        """
        self._write(self._coerce(EndpointRecord, attributes))
        return True

    def merge_record(
        self,
        kind: Union[RecordKind, str],
        partition_key: str,
        row_key: str,
        attributes: Dict[str, Any]
    ) -> bool:
        """
        Merge attributes into an existing row, leaving other attributes alone.

        DynamoDB Operation: UpdateItem SET with attribute_exists(partition_key)

        Args:
            kind: Record kind (table) to update
            partition_key: Partition key of the row
            row_key: Row key of the row
            attributes: Attributes to set

        Returns:
            True once written

        Raises:
            ValidationError: No attributes, reserved/malformed names, or unstorable numbers
            RecordOperationError: Row missing (ConflictError) or write failed
        """
        kind = RecordKind(kind)
        errors = {}
        for name, value in attributes.items():
            if name in RESERVED_ATTRIBUTES:
                errors[name] = "reserved attribute name"
            elif not EXTENSION_KEY_PATTERN.match(name):
                errors[name] = "invalid attribute name"
            else:
                errors.update(find_unstorable_numbers(value, name))
        if not attributes:
            errors['attributes'] = "at least one attribute is required"
        if errors:
            raise ValidationError(f"Invalid {kind.value} merge update", errors)

        names = {}
        values = {}
        assignments = []
        for index, (name, value) in enumerate(attributes.items()):
            names[f"#a{index}"] = name
            values[f":v{index}"] = convert_for_dynamodb(value)
            assignments.append(f"#a{index} = :v{index}")

        gateway = self.gateways[kind]
        key = {PARTITION_KEY: partition_key, ROW_KEY: row_key}

        def merge():
            gateway.update_item(
                key=key,
                update_expression="SET " + ", ".join(assignments),
                expression_attribute_values=values,
                expression_attribute_names=names,
                condition_expression=Attr(PARTITION_KEY).exists()
            )

        self._run(kind, gateway, merge, f"{kind.value} merge on {gateway.table_name}")
        logger.info(f"Merged {len(attributes)} attributes into {kind.value} {partition_key}/{row_key}")
        return True

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _coerce(self, model_class: Type[TrackedRecord], attributes: Attributes) -> TrackedRecord:
        if isinstance(attributes, model_class):
            return attributes
        return build_record(model_class, attributes)

    def _write(self, record: TrackedRecord) -> Dict[str, Any]:
        """Derive keys, stamp, and write one record under the retry policy."""
        kind = record.kind
        gateway = self.gateways[kind]

        stamp = self.key_generator.next_stamp() if record.append_only else None
        item = record.to_table_item(stamp, self._clock())
        condition = Attr(PARTITION_KEY).not_exists() if record.append_only else None
        unconfirmed = []

        def write():
            if self.config.auto_create_tables:
                gateway.ensure_table()
            try:
                gateway.put_item(item, condition_expression=condition)
            except RetryableError:
                # The put may still have been applied
                unconfirmed.append(True)
                raise
            except ConflictError:
                if not (unconfirmed and self._already_stored(gateway, item)):
                    raise
                logger.warning(
                    f"{kind.value} write to {gateway.table_name} was applied by an earlier attempt: "
                    f"{item[PARTITION_KEY]}/{item[ROW_KEY]}"
                )

        self._run(kind, gateway, write, f"{kind.value} write to {gateway.table_name}")
        logger.info(f"{kind.value} record written: {item[PARTITION_KEY]}/{item[ROW_KEY]}")
        return item

    def _already_stored(self, gateway: TableGateway, item: Dict[str, Any]) -> bool:
        """Whether the row under item's key is this item, written by an earlier attempt."""
        stored = gateway.get_item({PARTITION_KEY: item[PARTITION_KEY], ROW_KEY: item[ROW_KEY]}, consistent_read=True)
        return (
            stored is not None
            and stored.get('created_at') == item['created_at']
            and stored.get('record_kind') == item['record_kind']
        )

    def _run(self, kind: RecordKind, gateway: TableGateway, operation: Callable[[], None], description: str) -> None:
        try:
            self.retry_policy.execute(operation, description)
        except Exception as e:
            logger.error(f"{kind.value} operation failed on {gateway.table_name}: {e}")
            raise RecordOperationError(kind.value, e) from e
