"""
Schema-to-storage mapping.

Turns an inferred field list into the column layout of the backing table and
renders the matching ``create table if not exists`` statement. Everything
here is pure: the same fields always give the same schema and the same SQL.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ...errors import InputValidationError
from ..analysis.models import FieldDefinition

STORAGE_TYPES = ("uuid", "timestamp", "numeric", "date", "boolean", "text", "varchar")

ID_COLUMN = "id"
CREATED_AT_COLUMN = "created_at"
VARCHAR_LENGTH = 255

IDENTIFIER_RE = re.compile(r"^\w{1,63}$")

FIELD_TO_STORAGE: Dict[str, str] = {
    "number": "numeric",
    "date": "date",
    "datetime": "timestamp",
    "time": "timestamp",
    "boolean": "boolean",
    "textarea": "text",
}

POSTGRES_TYPES: Dict[str, str] = {
    "uuid": "uuid",
    "timestamp": "timestamp with time zone",
    "numeric": "numeric",
    "date": "date",
    "boolean": "boolean",
    "text": "text",
    "varchar": f"varchar({VARCHAR_LENGTH})",
}

SQLITE_TYPES: Dict[str, str] = {
    "uuid": "TEXT",
    "timestamp": "TEXT",
    "numeric": "REAL",
    "date": "TEXT",
    "boolean": "INTEGER",
    "text": "TEXT",
    "varchar": f"VARCHAR({VARCHAR_LENGTH})",
}

# generated values for the two leading columns, per dialect
GENERATED_DEFAULTS: Dict[str, Dict[str, str]] = {
    "postgres": {
        "uuid": "gen_random_uuid()",
        "timestamp": "now()",
    },
    "sqlite": {
        "uuid": "(lower(hex(randomblob(16))))",
        "timestamp": "(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))",
    },
}

DIALECT_TYPES = {"postgres": POSTGRES_TYPES, "sqlite": SQLITE_TYPES}


@dataclass(frozen=True)
class StorageColumn:
    name: str
    type: str
    nullable: bool = True
    default: Optional[str] = None


@dataclass(frozen=True)
class StorageSchema:
    table_name: str
    columns: Tuple[StorageColumn, ...]
    primary_key: str = ID_COLUMN

    @property
    def field_columns(self) -> Tuple[StorageColumn, ...]:
        return tuple(c for c in self.columns if c.name not in (ID_COLUMN, CREATED_AT_COLUMN))

    def to_dict(self) -> Dict[str, object]:
        return {
            "tableName": self.table_name,
            "columns": [
                {"name": c.name, "type": c.type, "nullable": c.nullable, "defaultValue": c.default}
                for c in self.columns
            ],
            "primaryKey": self.primary_key,
        }


def storage_type_for(field_type: str) -> str:
    return FIELD_TO_STORAGE.get(field_type, "varchar")


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def check_identifier(name: str, what: str = "identifier") -> str:
    value = (name or "").strip()
    if not IDENTIFIER_RE.fullmatch(value):
        raise InputValidationError(f"Invalid {what}", detail=repr(name))
    return value


def generated_columns() -> List[StorageColumn]:
    return [
        StorageColumn(name=ID_COLUMN, type="uuid", nullable=False, default="gen_random_uuid()"),
        StorageColumn(name=CREATED_AT_COLUMN, type="timestamp", nullable=False, default="now()"),
    ]


def map_fields_to_schema(fields: Sequence[FieldDefinition], table_name: str) -> StorageSchema:
    """Storage layout for ``fields``: id, created_at, then one nullable column per field in order."""
    table = check_identifier(table_name, "table name")
    columns = generated_columns()
    reserved = {c.name for c in columns}
    seen = set()
    for field in sorted(fields, key=lambda f: f.order):
        name = check_identifier(field.key, "field key")
        if name in reserved or name in seen:
            raise InputValidationError("Field key collides with another column", detail=name)
        seen.add(name)
        columns.append(StorageColumn(name=name, type=storage_type_for(field.type), nullable=True))
    return StorageSchema(table_name=table, columns=tuple(columns))


def _column_sql(column: StorageColumn, dialect: str) -> str:
    try:
        sql_type = DIALECT_TYPES[dialect][column.type]
    except KeyError as exc:
        raise InputValidationError("Unsupported column type", detail=f"{column.name}: {column.type}") from exc
    # defaults are named by their postgres generator and rendered per dialect
    if column.default is not None and column.default != GENERATED_DEFAULTS["postgres"].get(column.type):
        raise InputValidationError("Unsupported column default", detail=f"{column.name}: {column.default}")
    parts = [quote_identifier(check_identifier(column.name, "column name")), sql_type]
    if column.default is not None or not column.nullable:
        generated = GENERATED_DEFAULTS[dialect].get(column.type)
        if generated:
            parts.append(f"default {generated}")
    if not column.nullable:
        parts.append("not null")
    return " ".join(parts)


def render_create_table(schema: StorageSchema, dialect: str = "postgres") -> str:
    """Single idempotent DDL statement for ``schema``."""
    if dialect not in DIALECT_TYPES:
        raise InputValidationError("Unsupported SQL dialect", detail=dialect)
    table = check_identifier(schema.table_name, "table name")
    lines = [_column_sql(c, dialect) for c in schema.columns]
    if schema.primary_key:
        lines.append(f"primary key ({quote_identifier(check_identifier(schema.primary_key, 'primary key'))})")
    body = ",\n  ".join(lines)
    return f"create table if not exists {quote_identifier(table)} (\n  {body}\n);"
