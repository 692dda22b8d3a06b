"""
API routes for the schema-driven store.

Provides endpoints to:
- Check connectivity and whether the target table exists
- Map an inferred field list onto storage columns
- Create the table for a storage schema
- Save one data record
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from fastapi import APIRouter, Depends

from ..config import AppSettings
from ..dependencies import get_settings
from ..schemas import (
    CreateSchemaRequest,
    CreateSchemaResponse,
    DatabaseTestResponse,
    MapSchemaRequest,
    MapSchemaResponse,
    SaveDataRequest,
    SaveDataResponse,
    StoreConfig,
)
from ..services.storage import (
    check_store,
    map_fields_to_schema,
    provision_table,
    render_create_table,
    save_record,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/database", tags=["database"])


def get_store_transport() -> Optional[httpx.AsyncBaseTransport]:
    """HTTP transport for store calls; ``None`` means the default network transport."""
    return None


@router.post("/test", response_model=DatabaseTestResponse)
async def test_connection(
    config: StoreConfig,
    settings: AppSettings = Depends(get_settings),
    transport: Any = Depends(get_store_transport),
) -> DatabaseTestResponse:
    coords = config.to_coordinates(settings.default_table_name)
    exists = await check_store(coords, settings, transport=transport)
    return DatabaseTestResponse(
        success=True,
        schema_exists=exists,
        message="Database connection succeeded.",
    )


@router.post("/map-schema", response_model=MapSchemaResponse)
async def map_schema(
    request: MapSchemaRequest,
    settings: AppSettings = Depends(get_settings),
) -> MapSchemaResponse:
    schema = map_fields_to_schema(request.fields, request.table_name or settings.default_table_name)
    payload = schema.to_dict()
    return MapSchemaResponse(
        table_name=schema.table_name,
        columns=payload["columns"],
        primary_key=schema.primary_key,
        sql=render_create_table(schema, request.dialect),
    )


@router.post("/create-schema", response_model=CreateSchemaResponse)
async def create_schema(
    request: CreateSchemaRequest,
    settings: AppSettings = Depends(get_settings),
    transport: Any = Depends(get_store_transport),
) -> CreateSchemaResponse:
    schema = request.storage_schema.to_storage_schema()
    coords = request.config.to_coordinates(schema.table_name)
    result = await provision_table(coords, schema, settings, transport=transport)
    message = "Database schema created." if result.created else "Table already exists."
    return CreateSchemaResponse(success=result.success, sql=result.sql, created=result.created, message=message)


@router.post("/save-data", response_model=SaveDataResponse)
async def save_data(
    request: SaveDataRequest,
    settings: AppSettings = Depends(get_settings),
    transport: Any = Depends(get_store_transport),
) -> SaveDataResponse:
    coords = request.config.to_coordinates(settings.default_table_name)
    row = await save_record(coords, request.fields, request.data, settings, transport=transport)
    return SaveDataResponse(success=True, data=row, message="Record saved.")
