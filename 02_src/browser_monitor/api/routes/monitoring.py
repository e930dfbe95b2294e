"""Monitoring control routes."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ...errors import CDPConnectionError, NoTargetError
from ...models import RequestFilter
from ...monitor import IMonitor


class StartRequest(BaseModel):
    """Request model for starting a tracking session."""

    host: str | None = None
    port: int | None = None
    url_pattern: str | None = None
    types: list[str] | None = None


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str
    tracking: bool


def create_monitoring_router(monitor: IMonitor) -> APIRouter:
    """Create monitoring router."""
    router = APIRouter(prefix="/api/monitoring", tags=["monitoring"])

    @router.post("/start", response_model=StatusResponse)
    async def start_monitoring(request: StartRequest) -> dict:
        """Attach to the browser and start tracking requests."""
        request_filter = RequestFilter(url_pattern=request.url_pattern, types=request.types)
        try:
            await monitor.start_tracking(
                host=request.host, port=request.port, request_filter=request_filter
            )
            return {"status": "ok", "tracking": True}
        except NoTargetError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except CDPConnectionError as e:
            raise HTTPException(status_code=502, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/stop", response_model=StatusResponse)
    async def stop_monitoring() -> dict:
        """Stop tracking. Safe when not tracking."""
        try:
            await monitor.stop_tracking()
            return {"status": "ok", "tracking": False}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    return router
