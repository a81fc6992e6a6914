"""
Base Model Components and Mixins

Every record written by the deployment tracker is a pydantic model with a
fixed core schema and a bounded extension map. The extension map is the
model's pydantic "extra" data: attributes the caller sent that are not part
of the core schema. They are stored unchanged next to the core fields, so
they are validated before anything is written:

- at most MAX_EXTENSION_ATTRIBUTES per record
- names must look like identifiers (EXTENSION_KEY_PATTERN)
- names may not shadow the attributes the store derives itself
  (RESERVED_ATTRIBUTES) or repeat a core field under its other spelling
- numbers must be storable as DynamoDB Numbers: finite, at most 38
  significant digits, within the Number exponent range

## Components

- DynamoDBMixin: conversion of a model into a DynamoDB item
- TrackedRecord: base for the five record kinds, with key derivation hooks
- build_record: validate an attribute bag into a record, mapping pydantic
  errors onto the tracker's ValidationError
"""

import logging
import re
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError

logger = logging.getLogger(__name__)

MAX_EXTENSION_ATTRIBUTES = 50
EXTENSION_KEY_PATTERN = re.compile(r'^[A-Za-z][A-Za-z0-9_]{0,63}$')
RESERVED_ATTRIBUTES = frozenset({
    'partition_key', 'partitionKey',
    'row_key', 'rowKey',
    'created_at', 'createdAt',
    'record_kind', 'recordKind',
})

# DynamoDB Number limits
MAX_NUMBER_DIGITS = 38
MIN_NUMBER_EXPONENT = -130
MAX_NUMBER_EXPONENT = 125

R = TypeVar('R', bound='TrackedRecord')


class RecordKind(str, Enum):
    """The five record kinds, one table each."""
    CUSTOMER = "Customer"
    ENVIRONMENT = "Environment"
    DEPLOYMENT = "Deployment"
    RESOURCE = "Resource"
    ENDPOINT = "Endpoint"


def convert_for_dynamodb(obj: Any) -> Any:
    """Recursively convert Python values to types boto3 accepts.

    - float → Decimal (boto3 rejects float for the Number type)
    - datetime → ISO string
    - Enum → its value
    - dict/list → converted element-wise
    """
    if isinstance(obj, dict):
        return {k: convert_for_dynamodb(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_for_dynamodb(item) for item in obj]
    elif isinstance(obj, bool):
        return obj
    elif isinstance(obj, float):
        return Decimal(str(obj))
    elif isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, Enum):
        return obj.value
    return obj


def find_unstorable_numbers(value: Any, path: str) -> Dict[str, str]:
    """Locate numbers DynamoDB cannot store (NaN, infinity, over 38 digits, out of range)."""
    if isinstance(value, dict):
        errors = {}
        for k, v in value.items():
            errors.update(find_unstorable_numbers(v, f"{path}.{k}"))
        return errors
    if isinstance(value, (list, tuple)):
        errors = {}
        for index, v in enumerate(value):
            errors.update(find_unstorable_numbers(v, f"{path}[{index}]"))
        return errors
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return {}

    number = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    if not number.is_finite():
        return {path: "NaN and infinite numbers cannot be stored"}
    if number.is_zero():
        return {}
    if len(number.as_tuple().digits) > MAX_NUMBER_DIGITS:
        return {path: f"numbers are limited to {MAX_NUMBER_DIGITS} significant digits"}
    if not MIN_NUMBER_EXPONENT <= number.adjusted() <= MAX_NUMBER_EXPONENT:
        return {path: "number magnitude is outside the storable range"}
    return {}


class DynamoDBMixin(BaseModel):
    """Mixin providing DynamoDB serialization for record models."""

    def to_dynamodb_item(self) -> Dict[str, Any]:
        """
        Convert model to a DynamoDB-compatible item.

        Core fields are dumped under their field names; extension attributes
        keep the names the caller gave them. None values are dropped.

        Returns:
            DynamoDB-compatible dictionary ready for storage
        """
        return convert_for_dynamodb(self.model_dump(exclude_none=True))


class TrackedRecord(DynamoDBMixin, BaseModel):
    """
    Base class for records written to the deployment tracking tables.

    Subclasses declare their core fields and implement build_partition_key()
    and build_row_key(). Append-only kinds set ``append_only`` and use the
    stamp handed to build_row_key(); upserted kinds ignore it.
    """

    kind: ClassVar[RecordKind]
    append_only: ClassVar[bool] = True

    model_config = ConfigDict(
        extra='allow',
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    @model_validator(mode='after')
    def validate_extensions(self):
        """Reject extension maps that are oversized, use unusable names, or hold unstorable numbers."""
        extras = self.model_extra or {}
        errors = {}

        if len(extras) > MAX_EXTENSION_ATTRIBUTES:
            errors['extensions'] = (
                f"{len(extras)} extension attributes given, at most {MAX_EXTENSION_ATTRIBUTES} allowed"
            )

        core_names = set()
        for name, field in type(self).model_fields.items():
            core_names.add(name)
            if field.alias:
                core_names.add(field.alias)

        for key, value in extras.items():
            if key in RESERVED_ATTRIBUTES:
                errors[key] = "reserved attribute name"
            elif key in core_names:
                errors[key] = "duplicates a core field"
            elif not EXTENSION_KEY_PATTERN.match(key):
                errors[key] = "attribute names must start with a letter and contain only letters, digits and underscores"
            else:
                errors.update(find_unstorable_numbers(value, key))

        if errors:
            detail = "; ".join(f"{k}: {v}" for k, v in errors.items())
            raise ValueError(f"Invalid extension attributes - {detail}")
        return self

    @property
    def extensions(self) -> Dict[str, Any]:
        """Attributes beyond the core schema."""
        return dict(self.model_extra or {})

    def build_partition_key(self) -> str:
        raise NotImplementedError

    def build_row_key(self, stamp: Optional[str] = None) -> str:
        raise NotImplementedError

    def to_table_item(self, stamp: Optional[str], created_at: datetime) -> Dict[str, Any]:
        """Build the full stored item: derived keys, creation timestamp, and attributes.

        Args:
            stamp: Row key stamp for append-only kinds
            created_at: Write-time timestamp (UTC)

        Returns:
            Item ready for PutItem
        """
        item = self.to_dynamodb_item()
        item.update({
            'partition_key': self.build_partition_key(),
            'row_key': self.build_row_key(stamp),
            'created_at': created_at.isoformat(),
            'record_kind': self.kind.value,
        })
        return item


def build_record(model_class: Type[R], attributes: Dict[str, Any], location: str = "") -> R:
    """Validate an attribute bag into a record model.

    Args:
        model_class: TrackedRecord subclass to build
        attributes: Caller-supplied attributes (camelCase or snake_case core fields)
        location: Prefix for error locations, e.g. 'resources[1]'

    Returns:
        Validated record

    Raises:
        ValidationError: With field-level errors keyed by location
    """
    if not isinstance(attributes, dict):
        where = location or model_class.kind.value
        raise ValidationError(f"{where} must be an object", {where: "expected an object"})

    try:
        return model_class.model_validate(attributes)
    except PydanticValidationError as e:
        errors = {}
        for error in e.errors():
            loc = ".".join(str(part) for part in error['loc'])
            key = ".".join(part for part in (location, loc) if part) or model_class.kind.value
            errors[key] = error['msg']
        logger.debug(f"Rejected {model_class.kind.value} attributes: {errors}")
        raise ValidationError(
            f"Invalid {model_class.kind.value} record: "
            + "; ".join(f"{k}: {v}" for k, v in errors.items()),
            errors,
            original_error=e
        ) from e
