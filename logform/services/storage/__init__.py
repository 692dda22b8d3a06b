"""
Schema-driven storage.

This module provides:
- Mapping of inferred fields to storage columns and DDL
- Idempotent table provisioning on a per-request store
- Type coercion and insertion of single data records
"""

from .backends import BackendError, StoreCoordinates, open_backend
from .ingestor import coerce_record, save_record
from .mapper import StorageColumn, StorageSchema, map_fields_to_schema, render_create_table
from .provisioner import ProvisionResult, check_store, provision_table

__all__ = [
    "BackendError",
    "ProvisionResult",
    "StorageColumn",
    "StorageSchema",
    "StoreCoordinates",
    "check_store",
    "coerce_record",
    "map_fields_to_schema",
    "open_backend",
    "provision_table",
    "render_create_table",
    "save_record",
]
