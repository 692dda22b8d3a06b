"""Idempotent creation of the table behind an inferred schema."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ...config import AppSettings
from ...errors import StorageProvisioningError, StoreConnectionError
from .backends import BackendError, StoreCoordinates, open_backend
from .mapper import StorageSchema, check_identifier, render_create_table

logger = logging.getLogger(__name__)

MANUAL_HINT = (
    "The store does not allow creating tables from this service "
    "(no DDL privilege or exec_sql function). Create table '{table}' manually "
    "in the database console with the SQL below."
)


@dataclass(frozen=True)
class ProvisionResult:
    success: bool
    sql: str
    created: bool


async def provision_table(
    coords: StoreCoordinates,
    schema: StorageSchema,
    settings: AppSettings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProvisionResult:
    """
    Create the table for ``schema`` if it does not exist yet.

    Stores declared without DDL support are only checked for the table; a
    missing table then needs manual creation and the error carries the SQL.
    Concurrent callers are safe only as far as ``if not exists`` makes them.
    """
    table = check_identifier(schema.table_name, "table name")
    backend = open_backend(coords, settings, transport=transport)
    sql = render_create_table(schema, backend.dialect)
    logger.info("Provisioning table %s on %s store:\n%s", table, coords.provider, sql)

    if not backend.supports_ddl:
        try:
            exists = await backend.table_exists(table)
        except BackendError as exc:
            logger.warning("Existence check for %s failed: %s", table, exc.message)
            raise _generic_failure(exc, sql) from exc
        if exists:
            logger.info("Table %s already exists; nothing to create", table)
            return ProvisionResult(success=True, sql=sql, created=False)
        raise StorageProvisioningError(
            MANUAL_HINT.format(table=table),
            sql=sql,
            manual_required=True,
        )

    try:
        await backend.execute_ddl(sql)
    except BackendError as exc:
        if exc.missing_function or exc.missing_privilege:
            logger.warning("DDL rejected for %s: %s", table, exc.message)
            raise StorageProvisioningError(
                MANUAL_HINT.format(table=table),
                detail=exc.message,
                sql=sql,
                manual_required=True,
            ) from exc
        logger.warning("DDL failed for %s: %s", table, exc.message)
        raise _generic_failure(exc, sql) from exc

    return ProvisionResult(success=True, sql=sql, created=True)


def _generic_failure(exc: BackendError, sql: str) -> StorageProvisioningError:
    return StorageProvisioningError("Schema creation failed", detail=exc.message, sql=sql)


async def check_store(
    coords: StoreCoordinates,
    settings: AppSettings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """Connectivity check; returns whether the target table already exists."""
    table = check_identifier(coords.table_name, "table name")
    backend = open_backend(coords, settings, transport=transport)
    try:
        return await backend.table_exists(table)
    except BackendError as exc:
        logger.warning("Store connection check failed for %s: %s", coords.provider, exc.message)
        raise StoreConnectionError("Database connection failed", detail=exc.message) from exc
