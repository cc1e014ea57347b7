"""Plan tiers and broken link checker limits."""
from datetime import timedelta

from pydantic import BaseModel, ConfigDict

TOOL_NAME = "broken-link-checker"

FREE = "free"
DAY_PASS = "day_pass"
PRO = "pro"

TIERS = (FREE, DAY_PASS, PRO)

TOOL_LIMITS = {
    "free": {
        "max_urls_per_request": 3,  # 4+ URLs requires a processing pass
        "max_links_per_url": 50,
        "max_checks_per_day": 5,
        "batch": False,
    },
    "paid": {
        "max_urls_per_request": 20,
        "max_links_per_url": 500,
        "max_checks_per_day": 200,
        "batch": True,
    },
}

# Pass type (as granted by the payment flow) -> (plan tier, lifetime)
PASS_TYPES = {
    "processing-pass": (DAY_PASS, timedelta(hours=24)),
    "day_pass": (DAY_PASS, timedelta(hours=24)),
    "single-file": (DAY_PASS, timedelta(hours=1)),
    "pro": (PRO, timedelta(days=30)),
}


class Plan(BaseModel):
    model_config = ConfigDict(frozen=True)

    tier: str
    batch_allowed: bool
    max_urls_per_request: int
    link_cap: int
    daily_limit: int

    @property
    def is_paid(self) -> bool:
        return self.tier != FREE


def get_plan(tier: str = FREE) -> Plan:
    """Build the Plan for a tier; unknown tiers fall back to free."""
    if tier not in TIERS:
        tier = FREE
    limits = TOOL_LIMITS["free" if tier == FREE else "paid"]
    return Plan(
        tier=tier,
        batch_allowed=limits["batch"],
        max_urls_per_request=limits["max_urls_per_request"],
        link_cap=limits["max_links_per_url"],
        daily_limit=limits["max_checks_per_day"],
    )
