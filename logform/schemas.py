from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .services.analysis.models import FieldDefinition
from .services.storage.backends import StoreCoordinates
from .services.storage.mapper import StorageColumn, StorageSchema

StorageType = Literal["uuid", "timestamp", "numeric", "date", "boolean", "text", "varchar"]


class _Camel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class AnalyzeRequest(_Camel):
    mime_type: str = Field(..., alias="mimeType", min_length=1, max_length=100)
    data: str = Field(..., min_length=1)
    model: Optional[str] = Field(default=None, max_length=100)
    user_tier: Optional[str] = Field(default=None, alias="userTier", max_length=50)


class StoreConfig(_Camel):
    """Backend coordinates supplied with every database request."""

    provider: Literal["supabase", "sqlite"] = Field(default="supabase")
    api_url: Optional[str] = Field(default=None, alias="apiUrl", max_length=500)
    api_key: Optional[str] = Field(default=None, alias="apiKey", max_length=2000)
    table_name: Optional[str] = Field(default=None, alias="tableName", max_length=63)
    connection_string: Optional[str] = Field(default=None, alias="connectionString", max_length=200)
    supports_ddl: Optional[bool] = Field(default=None, alias="supportsDdl")

    @model_validator(mode="after")
    def _check_provider_fields(self) -> "StoreConfig":
        if self.provider == "supabase":
            if not self.api_url or not self.api_key:
                raise ValueError("apiUrl and apiKey are required")
            if not self.api_url.startswith(("https://", "http://")):
                raise ValueError("apiUrl must be an http(s) URL")
        return self

    def to_coordinates(self, default_table: str) -> StoreCoordinates:
        supports_ddl = self.supports_ddl
        if supports_ddl is None:
            supports_ddl = self.provider == "sqlite"
        return StoreCoordinates(
            provider=self.provider,
            table_name=self.table_name or default_table,
            api_url=self.api_url,
            api_key=self.api_key,
            database=self.connection_string,
            supports_ddl=supports_ddl,
        )


class StorageColumnModel(_Camel):
    name: str = Field(..., min_length=1, max_length=63)
    type: StorageType
    nullable: bool = True
    default_value: Optional[str] = Field(default=None, alias="defaultValue")


class StorageSchemaModel(_Camel):
    table_name: str = Field(..., alias="tableName", min_length=1, max_length=63)
    columns: List[StorageColumnModel] = Field(..., min_length=1)
    primary_key: Optional[str] = Field(default="id", alias="primaryKey")

    @model_validator(mode="after")
    def _check_columns(self) -> "StorageSchemaModel":
        names = [c.name for c in self.columns]
        if len(names) != len(set(names)):
            raise ValueError("column names must be unique")
        if self.primary_key and self.primary_key not in names:
            raise ValueError("primaryKey must name one of the columns")
        return self

    def to_storage_schema(self) -> StorageSchema:
        return StorageSchema(
            table_name=self.table_name,
            columns=tuple(
                StorageColumn(name=c.name, type=c.type, nullable=c.nullable, default=c.default_value)
                for c in self.columns
            ),
            primary_key=self.primary_key or "",
        )


class CreateSchemaRequest(_Camel):
    config: StoreConfig
    storage_schema: StorageSchemaModel = Field(..., alias="schema")


class SaveDataRequest(_Camel):
    config: StoreConfig
    data: Dict[str, Optional[Union[str, float, int, bool]]] = Field(default_factory=dict)
    fields: List[FieldDefinition] = Field(..., alias="schema", min_length=1)


class MapSchemaRequest(_Camel):
    table_name: Optional[str] = Field(default=None, alias="tableName", max_length=63)
    fields: List[FieldDefinition] = Field(..., min_length=1)
    dialect: Literal["postgres", "sqlite"] = Field(default="postgres")


class DatabaseTestResponse(_Camel):
    success: bool
    schema_exists: bool = Field(..., alias="schemaExists")
    message: str


class CreateSchemaResponse(_Camel):
    success: bool
    sql: str
    created: bool
    message: str


class SaveDataResponse(_Camel):
    success: bool
    data: Dict[str, Any]
    message: str


class MapSchemaResponse(_Camel):
    table_name: str = Field(..., alias="tableName")
    columns: List[Dict[str, Any]]
    primary_key: str = Field(..., alias="primaryKey")
    sql: str
