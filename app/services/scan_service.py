import logging
from typing import List, Optional, Tuple

from app.api.schemas import BatchSummary, ScanResponse, ScanResult
from app.core.exceptions import QuotaError
from app.core.pricing import Plan
from app.services.entitlement import check_entitlement
from app.services.passes import ProcessingPassStore
from app.services.quota import DailyQuota, quota_identity
from app.services.scanner import LinkScanner


def authorize_scan(
    urls: List[str],
    session_id: Optional[str],
    client_host: Optional[str],
    scanner: LinkScanner,
    passes: ProcessingPassStore,
    quota: DailyQuota,
) -> Tuple[List[str], Plan]:
    """Validate, gate and charge a scan request before anything is fetched.

    Raises ValidationError or QuotaError; on either, nothing has been fetched
    and the caller's daily counter is unchanged.
    """
    plan = passes.resolve_plan(session_id)
    identity = quota_identity(plan, session_id, client_host)
    targets = scanner.authorize(urls, plan, daily_used=quota.used(identity))

    # A parallel request may have taken the last check since the read above
    if not quota.consume(identity, plan.daily_limit):
        raise QuotaError.from_decision(check_entitlement(plan, len(targets), plan.daily_limit))

    logging.info(f"Authorized scan of {len(targets)} URL(s) for {identity} on plan {plan.tier}")
    return targets, plan


def summarize_batch(results: List[ScanResult]) -> BatchSummary:
    return BatchSummary(
        total=len(results),
        total_links=sum(r.total_links for r in results),
        total_working=sum(r.summary.working for r in results),
        total_broken=sum(r.summary.broken for r in results),
        total_redirects=sum(r.summary.redirects for r in results),
    )


def build_response(results: List[ScanResult]) -> ScanResponse:
    return ScanResponse(
        results=results,
        count=len(results),
        summary=summarize_batch(results),
        message=f"Broken link check completed for {len(results)} URL(s)",
    )
