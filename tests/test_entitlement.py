from app.core.pricing import DAY_PASS, FREE, PRO, get_plan
from app.services.entitlement import check_entitlement


def test_free_plan_limits():
    plan = get_plan(FREE)
    assert plan.link_cap == 50
    assert plan.max_urls_per_request == 3
    assert plan.daily_limit == 5
    assert not plan.batch_allowed
    assert not plan.is_paid


def test_paid_plan_limits():
    for tier in (DAY_PASS, PRO):
        plan = get_plan(tier)
        assert plan.link_cap == 500
        assert plan.max_urls_per_request == 20
        assert plan.batch_allowed
        assert plan.is_paid


def test_unknown_tier_is_free():
    assert get_plan("platinum").tier == FREE


def test_free_plan_allows_up_to_three_urls():
    decision = check_entitlement(get_plan(FREE), 3, 0)
    assert decision.allowed
    assert decision.reason is None


def test_free_batch_requires_payment():
    decision = check_entitlement(get_plan(FREE), 4, 0)
    assert not decision.allowed
    assert decision.reason == "batch"
    assert decision.payment_required
    assert "Processing Pass" in decision.message
    requirement = decision.requirement()
    assert requirement["urlCount"] == 4
    assert requirement["maxFreeBatch"] == 3
    assert requirement["requiresPayment"] is True


def test_paid_batch_has_an_upper_bound():
    plan = get_plan(DAY_PASS)
    assert check_entitlement(plan, 20, 0).allowed
    decision = check_entitlement(plan, 21, 0)
    assert not decision.allowed
    assert decision.reason == "batch_limit"
    assert not decision.payment_required


def test_free_daily_ceiling():
    plan = get_plan(FREE)
    assert check_entitlement(plan, 1, 4).allowed
    decision = check_entitlement(plan, 1, 5)
    assert not decision.allowed
    assert decision.reason == "rate_limit"
    assert decision.payment_required


def test_batch_is_checked_before_daily_count():
    decision = check_entitlement(get_plan(FREE), 5, 5)
    assert decision.reason == "batch"


def test_paid_daily_ceiling_does_not_ask_for_payment():
    decision = check_entitlement(get_plan(PRO), 1, 200)
    assert decision.reason == "rate_limit"
    assert not decision.payment_required
