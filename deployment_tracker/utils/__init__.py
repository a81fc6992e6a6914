from .keys import (
    RowKeyGenerator,
    deployment_row_key,
    endpoint_row_key,
    resource_row_key,
    stamp_millis,
)

__all__ = [
    "RowKeyGenerator",
    "deployment_row_key",
    "endpoint_row_key",
    "resource_row_key",
    "stamp_millis",
]
