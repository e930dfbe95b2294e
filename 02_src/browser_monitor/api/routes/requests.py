"""Request read routes: live snapshot, live feed, history, stats."""

from datetime import datetime
from typing import Any, Literal

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from ...config import DEFAULT_QUERY_LIMIT
from ...models import NetworkRequest, RequestQuery
from ...monitor import IMonitor


class NetworkRequestResponse(BaseModel):
    """Response model for a network request."""

    id: str
    timestamp: datetime
    method: str
    url: str
    headers: dict[str, str]
    type: str
    status: int
    response_headers: dict[str, str]
    response_size: int
    encoded_data_length: int | None = None
    response_body: str | None = None
    body: str | None = None
    error: str | None = None


class StatsResponse(BaseModel):
    """Response model for request stats."""

    total_count: int
    type_stats: dict[str, int]
    status_stats: dict[int, int]


class PruneResponse(BaseModel):
    """Response model for pruning."""

    deleted: int


def _to_response(request: NetworkRequest) -> dict[str, Any]:
    return {
        "id": request.id,
        "timestamp": request.timestamp.isoformat(),
        "method": request.method,
        "url": request.url,
        "headers": request.headers,
        "type": request.type,
        "status": request.status,
        "response_headers": request.response_headers,
        "response_size": request.response_size,
        "encoded_data_length": request.encoded_data_length,
        "response_body": request.response_body,
        "body": request.body,
        "error": request.error,
    }


def _parse_time(value: str | None, name: str) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name} timestamp format")


def create_requests_router(monitor: IMonitor) -> APIRouter:
    """Create requests router."""
    router = APIRouter(prefix="/api/requests", tags=["requests"])

    @router.get("/active", response_model=list[NetworkRequestResponse])
    async def list_active() -> list[dict]:
        """All in-flight requests of the current session, unfiltered."""
        return [_to_response(r) for r in monitor.list_active()]

    @router.get("/stream", response_model=list[NetworkRequestResponse])
    async def read_stream() -> list[dict]:
        """Recently published filter-passing requests, oldest first."""
        return [_to_response(r) for r in monitor.recent()]

    @router.get("", response_model=list[NetworkRequestResponse])
    async def query_requests(
        type: str | None = Query(None, description="Resource type, or 'all'"),
        method: str | None = Query(None),
        status: int | None = Query(None),
        url: str | None = Query(None, description="URL substring"),
        start_time: str | None = Query(None, description="ISO timestamp, inclusive"),
        end_time: str | None = Query(None, description="ISO timestamp, inclusive"),
        min_response_size: int | None = Query(None, ge=0),
        max_response_size: int | None = Query(None, ge=0),
        min_status: int | None = Query(None),
        max_status: int | None = Query(None),
        url_pattern: str | None = Query(None, description="Regular expression"),
        response_content_type: str | None = Query(None),
        error: str | None = Query(None, description="Error substring"),
        has_error: bool | None = Query(None),
        sort_by: Literal["timestamp", "response_size", "status"] = Query("timestamp"),
        sort_order: Literal["asc", "desc"] = Query("desc"),
        limit: int = Query(DEFAULT_QUERY_LIMIT, ge=1, le=1000),
        offset: int = Query(0, ge=0),
    ) -> list[dict]:
        """Query stored requests; every given filter must match."""
        query = RequestQuery(
            type=type,
            method=method,
            status=status,
            url=url,
            start_time=_parse_time(start_time, "start_time"),
            end_time=_parse_time(end_time, "end_time"),
            min_response_size=min_response_size,
            max_response_size=max_response_size,
            min_status=min_status,
            max_status=max_status,
            url_pattern=url_pattern,
            response_content_type=response_content_type,
            error=error,
            has_error=has_error,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )
        try:
            requests = await monitor.query(query)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return [_to_response(r) for r in requests]

    @router.get("/stats", response_model=StatsResponse)
    async def get_stats() -> dict:
        """Total count plus counts by type and by status."""
        try:
            stats = await monitor.stats()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {
            "total_count": stats.total_count,
            "type_stats": stats.type_stats,
            "status_stats": stats.status_stats,
        }

    @router.delete("", response_model=PruneResponse)
    async def prune_requests(
        older_than_days: float = Query(..., ge=0),
    ) -> dict:
        """Delete stored requests older than the given number of days."""
        try:
            deleted = await monitor.prune(older_than_days)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"deleted": deleted}

    return router
