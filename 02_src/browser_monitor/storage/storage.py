"""SQLite request store."""

import json
import re
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, Protocol

import aiosqlite

from ..config import resolve_db_path
from ..errors import StorageNotInitializedError
from ..logging_config import get_logger
from ..models import NetworkRequest, RequestQuery, RequestStats

logger = get_logger(__name__)

SORT_COLUMNS = {
    "timestamp": "timestamp",
    "response_size": "response_size",
    "status": "status",
}

_COLUMNS = (
    "id, timestamp, type, method, url, status, headers, response_headers, "
    "response_size, encoded_data_length, response_body, body, error"
)


class IRequestStore(Protocol):
    """Durable, queryable storage of request snapshots (SQLite)."""

    async def init(self) -> None:
        """Open the database and create tables."""
        ...

    async def close(self) -> None:
        """Close the database connection."""
        ...

    async def save(self, request: NetworkRequest) -> None:
        """Upsert a full request record by id (last write wins)."""
        ...

    async def query(self, query: RequestQuery) -> list[NetworkRequest]:
        """Return records matching every set predicate of the query."""
        ...

    async def stats(self) -> RequestStats:
        """Total count plus counts grouped by type and by status."""
        ...

    async def prune(self, older_than_days: float) -> int:
        """Delete records older than the given age. Return rows removed."""
        ...

    async def clear(self) -> None:
        """Delete every record."""
        ...


@lru_cache(maxsize=64)
def _compile(pattern: str) -> re.Pattern | None:
    try:
        return re.compile(pattern)
    except re.error:
        logger.warning("Invalid url pattern in query: %r", pattern)
        return None


def _sql_regexp(pattern: str | None, value: str | None) -> int:
    """SQLite REGEXP(pattern, value). Invalid patterns match nothing."""
    if pattern is None or value is None:
        return 0
    compiled = _compile(pattern)
    return int(compiled is not None and compiled.search(value) is not None)


def _sql_header_value(headers_json: str | None, name: str) -> str | None:
    """Case-insensitive header lookup on a JSON-encoded header map."""
    if not headers_json:
        return None
    try:
        headers = json.loads(headers_json)
    except ValueError:
        return None
    if not isinstance(headers, dict):
        return None
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return str(value)
    return None


def _like(fragment: str) -> str:
    escaped = fragment.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _to_db_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db_time(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _row_to_request(row: Any) -> NetworkRequest:
    return NetworkRequest(
        id=row[0],
        timestamp=_from_db_time(row[1]),
        type=row[2] or "",
        method=row[3] or "",
        url=row[4] or "",
        status=row[5] or 0,
        headers=json.loads(row[6]) if row[6] else {},
        response_headers=json.loads(row[7]) if row[7] else {},
        response_size=row[8] or 0,
        encoded_data_length=row[9],
        response_body=row[10],
        body=row[11],
        error=row[12],
    )


def build_where(query: RequestQuery) -> tuple[str, list[Any]]:
    """Translate the set fields of a query into an ANDed WHERE clause."""
    conditions: list[str] = []
    params: list[Any] = []

    if query.type and query.type != "all":
        conditions.append("type = ?")
        params.append(query.type)
    if query.method:
        conditions.append("method = ?")
        params.append(query.method)
    if query.status is not None:
        conditions.append("status = ?")
        params.append(query.status)
    if query.url:
        conditions.append("url LIKE ? ESCAPE '\\'")
        params.append(_like(query.url))
    if query.start_time:
        conditions.append("timestamp >= ?")
        params.append(_to_db_time(query.start_time))
    if query.end_time:
        conditions.append("timestamp <= ?")
        params.append(_to_db_time(query.end_time))
    if query.min_response_size is not None:
        conditions.append("response_size >= ?")
        params.append(query.min_response_size)
    if query.max_response_size is not None:
        conditions.append("response_size <= ?")
        params.append(query.max_response_size)
    # Never-responded requests have a NULL status and fail both bounds
    if query.min_status is not None:
        conditions.append("CAST(status AS INTEGER) >= ?")
        params.append(query.min_status)
    if query.max_status is not None:
        conditions.append("CAST(status AS INTEGER) <= ?")
        params.append(query.max_status)
    if query.url_pattern:
        conditions.append("url REGEXP ?")
        params.append(query.url_pattern)
    if query.response_content_type:
        conditions.append(
            "header_value(response_headers, 'content-type') LIKE ? ESCAPE '\\'"
        )
        params.append(_like(query.response_content_type))
    if query.error:
        conditions.append("error LIKE ? ESCAPE '\\'")
        params.append(_like(query.error))
    if query.has_error is True:
        conditions.append("error IS NOT NULL AND error != ''")
    elif query.has_error is False:
        conditions.append("(error IS NULL OR error = '')")

    where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    return where_clause, params


class RequestStore:
    """SQLite request store implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def __aenter__(self) -> "RequestStore":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def init(self) -> None:
        """Open the database, register SQL helpers and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)
        await self._conn.create_function("REGEXP", 2, _sql_regexp, deterministic=True)
        await self._conn.create_function(
            "header_value", 2, _sql_header_value, deterministic=True
        )

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()
        logger.info("Request store opened at %s", self._db_path)

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def save(self, request: NetworkRequest) -> None:
        """Upsert a full request record by id (last write wins)."""
        if not self._conn:
            raise StorageNotInitializedError()

        await self._conn.execute(
            f"""
            INSERT OR REPLACE INTO network_requests ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                request.id,
                _to_db_time(request.timestamp),
                request.type,
                request.method,
                request.url,
                request.status or None,
                json.dumps(request.headers),
                json.dumps(request.response_headers),
                request.response_size,
                request.encoded_data_length,
                request.response_body,
                request.body,
                request.error,
            ),
        )
        await self._conn.commit()

    async def query(self, query: RequestQuery) -> list[NetworkRequest]:
        """Return records matching every set predicate, sorted and paginated."""
        if not self._conn:
            raise StorageNotInitializedError()

        sort_column = SORT_COLUMNS.get(query.sort_by)
        if sort_column is None:
            raise ValueError(f"Unsupported sort field: {query.sort_by!r}")
        sort_order = query.sort_order.upper()
        if sort_order not in ("ASC", "DESC"):
            raise ValueError(f"Unsupported sort order: {query.sort_order!r}")
        if query.limit < 0 or query.offset < 0:
            raise ValueError("limit and offset must not be negative")

        where_clause, params = build_where(query)
        sql = f"""
            SELECT {_COLUMNS}
            FROM network_requests
            {where_clause}
            ORDER BY {sort_column} {sort_order}, id {sort_order}
            LIMIT ? OFFSET ?
        """
        params.extend([query.limit, query.offset])
        logger.debug("Request query: %s params=%s", " ".join(sql.split()), params)

        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [_row_to_request(row) for row in rows]

    async def stats(self) -> RequestStats:
        """Total count plus counts grouped by type and by status."""
        if not self._conn:
            raise StorageNotInitializedError()

        cursor = await self._conn.execute("SELECT COUNT(*) FROM network_requests")
        row = await cursor.fetchone()
        total_count = row[0] if row else 0

        cursor = await self._conn.execute(
            """
            SELECT type, COUNT(*)
            FROM network_requests
            GROUP BY type
            """
        )
        type_stats = {(r[0] or ""): r[1] for r in await cursor.fetchall()}

        cursor = await self._conn.execute(
            """
            SELECT COALESCE(status, 0), COUNT(*)
            FROM network_requests
            GROUP BY COALESCE(status, 0)
            """
        )
        status_stats = {int(r[0]): r[1] for r in await cursor.fetchall()}

        return RequestStats(
            total_count=total_count,
            type_stats=type_stats,
            status_stats=status_stats,
        )

    async def prune(self, older_than_days: float) -> int:
        """Delete records strictly older than now - older_than_days."""
        if not self._conn:
            raise StorageNotInitializedError()
        if older_than_days < 0:
            raise ValueError("older_than_days must not be negative")

        cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
        cursor = await self._conn.execute(
            "DELETE FROM network_requests WHERE timestamp < ?",
            (_to_db_time(cutoff),),
        )
        await self._conn.commit()
        removed = cursor.rowcount
        logger.info("Pruned %s requests older than %s days", removed, older_than_days)
        return removed

    async def clear(self) -> None:
        """Delete every record."""
        if not self._conn:
            raise StorageNotInitializedError()

        await self._conn.execute("DELETE FROM network_requests")
        await self._conn.commit()
