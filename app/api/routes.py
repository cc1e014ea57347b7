from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse
from typing import Optional
import logging

from app.api.dependencies import get_daily_quota, get_pass_store, get_redis, get_scanner
from app.api.schemas import QuotaStatus, ScanRequest, ScanResponse
from app.core.exceptions import QuotaError, ScanError
from app.services.quota import quota_identity
from app.services.scan_service import authorize_scan, build_response, summarize_batch

router = APIRouter()


def client_host(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def error_response(error: ScanError) -> JSONResponse:
    """JSON body for a request refused before scanning started."""
    if isinstance(error, QuotaError):
        return JSONResponse(
            status_code=error.http_status,
            content={
                "error": "Payment required" if error.payment_required else "Quota exceeded",
                "message": error.message,
                "paymentRequired": error.payment_required,
                "reason": error.reason,
                "urlCount": error.requirement.get("urlCount"),
                "requirement": error.requirement,
            },
        )
    return JSONResponse(
        status_code=error.http_status,
        content={"error": "Invalid URL", "message": error.message},
    )


@router.get("/health")
async def health_check(redis_client=Depends(get_redis)):
    """Health check endpoint for Render."""
    # Try Redis connection but don't fail if it's not available
    try:
        redis_client.ping()
    except Exception as e:
        logging.warning(f"Redis health check failed: {str(e)}")
    return {"status": "healthy"}


@router.post("/scan", response_model=ScanResponse, response_model_by_alias=True)
async def start_scan(
    data: ScanRequest,
    request: Request,
    scanner=Depends(get_scanner),
    passes=Depends(get_pass_store),
    quota=Depends(get_daily_quota),
):
    """Check every link on each submitted page and return the full report."""
    try:
        targets, plan = authorize_scan(
            data.target_urls(), data.session_id, client_host(request), scanner, passes, quota
        )
    except ScanError as e:
        return error_response(e)

    results = await scanner.run(targets, plan)
    return build_response(results)


@router.post("/scan/stream")
async def stream_scan(
    data: ScanRequest,
    request: Request,
    scanner=Depends(get_scanner),
    passes=Depends(get_pass_store),
    quota=Depends(get_daily_quota),
):
    """Same as /scan, but stream each page's result as a Server-Sent Event."""
    try:
        targets, plan = authorize_scan(
            data.target_urls(), data.session_id, client_host(request), scanner, passes, quota
        )
    except ScanError as e:
        return error_response(e)

    return EventSourceResponse(scan_events(scanner, targets, plan))


async def scan_events(scanner, targets, plan):
    """`result` event per page in input order, then a closing `summary` event."""
    results = []
    async for result in scanner.iter_scan(targets, plan):
        results.append(result)
        yield {"event": "result", "data": result.model_dump_json(by_alias=True)}
    yield {"event": "summary", "data": summarize_batch(results).model_dump_json(by_alias=True)}


@router.get("/quota", response_model=QuotaStatus, response_model_by_alias=True)
async def get_quota(
    request: Request,
    session_id: Optional[str] = Query(None, alias="sessionId"),
    passes=Depends(get_pass_store),
    quota=Depends(get_daily_quota),
):
    """Limits of the caller's plan and how many checks are left today."""
    plan = passes.resolve_plan(session_id)
    identity = quota_identity(plan, session_id, client_host(request))
    used = quota.used(identity)
    return QuotaStatus(
        plan=plan.tier,
        batch_allowed=plan.batch_allowed,
        max_urls=plan.max_urls_per_request,
        link_cap=plan.link_cap,
        daily_limit=plan.daily_limit,
        daily_used=used,
        daily_remaining=quota.remaining(identity, plan.daily_limit),
    )
