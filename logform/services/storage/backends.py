"""
Backing-store adapters.

Each request brings its own store coordinates; a backend instance is built
for that request only and opens (and closes) its own HTTP client or SQLite
connection per operation. Nothing is pooled or cached across requests.

Backends report failures as ``BackendError`` so the provisioner and the
ingestor can translate them into the error each of them owns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiosqlite
import httpx

from ...config import AppSettings
from ...errors import InputValidationError
from .mapper import quote_identifier

logger = logging.getLogger(__name__)

PROVIDERS = ("supabase", "sqlite")

# PostgREST / Postgres error codes
MISSING_RELATION_CODES = {"42P01", "PGRST205"}
MISSING_FUNCTION_CODES = {"42883", "PGRST202"}
MISSING_COLUMN_CODES = {"42703", "PGRST204"}
PRIVILEGE_CODES = {"42501"}


@dataclass(frozen=True)
class StoreCoordinates:
    """Where one request's data lives and what that store is allowed to do."""

    provider: str
    table_name: str
    api_url: Optional[str] = None
    api_key: Optional[str] = None
    database: Optional[str] = None
    supports_ddl: bool = False


class BackendError(Exception):
    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status: Optional[int] = None,
        unreachable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.unreachable = unreachable

    @property
    def missing_relation(self) -> bool:
        return self.code in MISSING_RELATION_CODES

    @property
    def missing_function(self) -> bool:
        return self.code in MISSING_FUNCTION_CODES

    @property
    def missing_column(self) -> bool:
        return self.code in MISSING_COLUMN_CODES

    @property
    def missing_privilege(self) -> bool:
        return self.code in PRIVILEGE_CODES or self.status in (401, 403)


class PostgrestBackend:
    """Supabase (PostgREST) store reached over HTTPS with the project's API key."""

    dialect = "postgres"

    def __init__(
        self,
        coords: StoreCoordinates,
        *,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not coords.api_url or not coords.api_key:
            raise InputValidationError("API URL and API key are required")
        self.coords = coords
        self.supports_ddl = coords.supports_ddl
        self._base_url = coords.api_url.rstrip("/") + "/rest/v1"
        self._timeout = httpx.Timeout(timeout, connect=min(5.0, timeout))
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.coords.api_key or "",
            "Authorization": f"Bearer {self.coords.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = self._headers()
        headers.update(kwargs.pop("headers", {}))
        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.request(method, path, headers=headers, **kwargs)
            except httpx.RequestError as exc:
                raise BackendError(f"Store request failed: {exc}", unreachable=True) from exc
        if response.status_code >= 400:
            raise _postgrest_error(response)
        return response

    async def table_exists(self, table_name: str) -> bool:
        try:
            await self._request("GET", f"/{table_name}", params={"select": "*", "limit": "1"})
        except BackendError as exc:
            if exc.missing_relation:
                return False
            raise
        return True

    async def execute_ddl(self, sql: str) -> None:
        await self._request("POST", "/rpc/exec_sql", json={"sql": sql})

    async def insert(self, table_name: str, record: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._request(
            "POST",
            f"/{table_name}",
            json=record,
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        if isinstance(rows, list):
            return rows[0] if rows else {}
        return rows


def _postgrest_error(response: httpx.Response) -> BackendError:
    code = None
    message = response.text or f"HTTP {response.status_code}"
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        code = payload.get("code")
        message = payload.get("message") or payload.get("error") or message
        if payload.get("hint"):
            message = f"{message} ({payload['hint']})"
    return BackendError(str(message), code=code, status=response.status_code)


class SqliteBackend:
    """Local SQLite file under the configured store directory."""

    dialect = "sqlite"

    def __init__(self, coords: StoreCoordinates, *, base_dir: Path) -> None:
        name = safe_database_name(coords.database or "logform")
        self.coords = coords
        self.supports_ddl = coords.supports_ddl
        self.db_path = Path(base_dir) / f"{name}.db"

    async def _conn(self) -> aiosqlite.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(self.db_path)
        conn.row_factory = aiosqlite.Row
        return conn

    async def table_exists(self, table_name: str) -> bool:
        if not self.db_path.exists():
            return False
        try:
            conn = await self._conn()
        except (OSError, aiosqlite.Error) as exc:
            raise BackendError(f"Cannot open database: {exc}", unreachable=True) from exc
        try:
            cur = await conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
                (table_name,),
            )
            row = await cur.fetchone()
            await cur.close()
            return row is not None
        except aiosqlite.Error as exc:
            raise _sqlite_error(exc) from exc
        finally:
            await conn.close()

    async def execute_ddl(self, sql: str) -> None:
        try:
            conn = await self._conn()
        except (OSError, aiosqlite.Error) as exc:
            raise BackendError(f"Cannot open database: {exc}", unreachable=True) from exc
        try:
            await conn.execute(sql)
            await conn.commit()
        except aiosqlite.Error as exc:
            raise _sqlite_error(exc) from exc
        finally:
            await conn.close()

    async def insert(self, table_name: str, record: Dict[str, Any]) -> Dict[str, Any]:
        columns: List[str] = list(record.keys())
        if columns:
            col_list = ", ".join(quote_identifier(c) for c in columns)
            placeholders = ", ".join("?" for _ in columns)
            sql = f"INSERT INTO {quote_identifier(table_name)} ({col_list}) VALUES ({placeholders}) RETURNING *"
        else:
            sql = f"INSERT INTO {quote_identifier(table_name)} DEFAULT VALUES RETURNING *"

        try:
            conn = await self._conn()
        except (OSError, aiosqlite.Error) as exc:
            raise BackendError(f"Cannot open database: {exc}", unreachable=True) from exc
        try:
            cur = await conn.execute(sql, tuple(record[c] for c in columns))
            row = await cur.fetchone()
            await cur.close()
            await conn.commit()
            return dict(row) if row else {}
        except aiosqlite.Error as exc:
            raise _sqlite_error(exc) from exc
        finally:
            await conn.close()


def _sqlite_error(exc: Exception) -> BackendError:
    message = str(exc)
    lowered = message.lower()
    code = None
    if "no such table" in lowered:
        code = "42P01"
    elif "has no column named" in lowered or "no such column" in lowered:
        code = "42703"
    elif isinstance(exc, aiosqlite.IntegrityError):
        code = "23000"
    return BackendError(message, code=code)


def safe_database_name(name: str) -> str:
    cleaned = "".join(c for c in name if c.isalnum() or c in ("_", "-"))
    cleaned = cleaned.strip("-_")
    if not cleaned:
        raise InputValidationError("Invalid database name", detail=repr(name))
    return cleaned[:64]


def open_backend(
    coords: StoreCoordinates,
    settings: AppSettings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
):
    if coords.provider == "supabase":
        return PostgrestBackend(coords, timeout=settings.store_timeout, transport=transport)
    if coords.provider == "sqlite":
        return SqliteBackend(coords, base_dir=settings.sqlite_dir)
    raise InputValidationError("Unsupported database provider", detail=coords.provider)
