from __future__ import annotations

import hmac

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..schemas import CollectResponse
from ..service import CollectorService

router = APIRouter(prefix="/api/cron", tags=["cron"])


def _get_service(request: Request) -> CollectorService:
    return request.app.state.collector_service


@router.api_route("/collect-trending", methods=["GET", "POST"], response_model=CollectResponse)
async def collect_trending(request: Request):
    """Run one collection pass; the caller authenticates with the cron secret."""
    service = _get_service(request)
    missing = service.missing_configuration()
    if not service.settings.cron_secret:
        missing.append("CRON_SECRET")
    if missing:
        return JSONResponse(
            status_code=500,
            content={"error": f"Server configuration error: missing {', '.join(missing)}"},
        )

    auth_header = request.headers.get("authorization", "")
    expected = f"Bearer {service.settings.cron_secret}"
    if not hmac.compare_digest(auth_header.encode(), expected.encode()):
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    report = await service.collect()
    body = CollectResponse.model_validate(report.as_dict())
    return JSONResponse(
        status_code=200 if report.success else 500,
        content=body.model_dump(exclude_none=True),
    )
