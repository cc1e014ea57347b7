"""
Single entitlement check run before any scan side effect.

``check_entitlement`` is a pure function of the caller's plan, the number of
URLs requested and how many checks the caller already used today. Everything
that gates a scan (batch size, the daily ceiling, whether buying a processing
pass would help) is decided here.
"""
from typing import Optional

from pydantic import BaseModel

from app.core.pricing import Plan, get_plan, FREE

BATCH = "batch"
BATCH_LIMIT = "batch_limit"
RATE_LIMIT = "rate_limit"


class EntitlementDecision(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    payment_required: bool = False
    message: str = ""
    plan: str
    url_count: int
    max_urls: int
    daily_used: int
    daily_limit: int

    def requirement(self) -> dict:
        """Payload describing the shortfall, returned to the client with a 402/429."""
        return {
            "requiresPayment": self.payment_required,
            "reason": self.reason,
            "urlCount": self.url_count,
            "maxUrls": self.max_urls,
            "maxFreeBatch": get_plan(FREE).max_urls_per_request,
            "dailyLimit": self.daily_limit,
            "dailyUsed": self.daily_used,
            "plan": self.plan,
        }


def check_entitlement(plan: Plan, requested_url_count: int, daily_used: int) -> EntitlementDecision:
    decision = dict(
        plan=plan.tier,
        url_count=requested_url_count,
        max_urls=plan.max_urls_per_request,
        daily_used=daily_used,
        daily_limit=plan.daily_limit,
    )

    if requested_url_count > plan.max_urls_per_request:
        if not plan.batch_allowed:
            return EntitlementDecision(
                allowed=False,
                reason=BATCH,
                payment_required=True,
                message=(
                    f"Batch processing ({requested_url_count} URLs) requires a Processing Pass. "
                    f"Free tier allows up to {plan.max_urls_per_request} URLs at a time."
                ),
                **decision,
            )
        return EntitlementDecision(
            allowed=False,
            reason=BATCH_LIMIT,
            message=(
                f"Too many URLs ({requested_url_count}). "
                f"Up to {plan.max_urls_per_request} URLs can be checked per request."
            ),
            **decision,
        )

    if daily_used >= plan.daily_limit:
        if not plan.is_paid:
            return EntitlementDecision(
                allowed=False,
                reason=RATE_LIMIT,
                payment_required=True,
                message=(
                    f"Daily rate limit exceeded ({plan.daily_limit} checks per day). "
                    "A Processing Pass is required for more broken link checks."
                ),
                **decision,
            )
        return EntitlementDecision(
            allowed=False,
            reason=RATE_LIMIT,
            message=f"Daily limit of {plan.daily_limit} checks reached. Try again tomorrow.",
            **decision,
        )

    return EntitlementDecision(allowed=True, **decision)
