"""
Property-based tests for the pure engines.

Verifies, over generated inputs:
- Auto-approval is exactly ``value <= ceiling`` for every configured type
- Price changes are judged on magnitude (sign never matters)
- Flash sales never auto-approve and are always URGENT
- Priority is total: every valid payload gets a tier
- Malformed numeric strings are rejected, never crash
"""

from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from approval_config import get_threshold_registry
from approval_engines import calculate_priority, can_auto_approve, evaluate_auto_approval
from approval_kernel.domain.approval import ApprovalPriority
from approval_kernel.domain.payloads import parse_payload
from approval_kernel.exceptions import InvalidArgumentError
from tests.factories import (
    bulk_discount_payload,
    coupon_payload,
    flash_sale_payload,
    price_change_payload,
    promotion_payload,
)

REGISTRY = get_threshold_registry()

percentages = st.decimals(
    min_value=Decimal("0"), max_value=Decimal("100"), places=2,
    allow_nan=False, allow_infinity=False,
)
signed_percentages = st.decimals(
    min_value=Decimal("-100"), max_value=Decimal("500"), places=2,
    allow_nan=False, allow_infinity=False,
)
amounts = st.decimals(
    min_value=Decimal("0"), max_value=Decimal("100000"), places=2,
    allow_nan=False, allow_infinity=False,
)

FAST = settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])


class TestAutoApprovalIsCeilingComparison:
    @given(value=percentages)
    @FAST
    def test_percentage_coupon(self, value):
        payload = coupon_payload(value=str(value))
        assert can_auto_approve(REGISTRY, "COUPON_CREATION", payload) == (value <= 15)

    @given(value=amounts)
    @FAST
    def test_fixed_coupon(self, value):
        payload = coupon_payload(value=str(value), discount_type="fixed")
        assert can_auto_approve(REGISTRY, "COUPON_CREATION", payload) == (value <= 500)

    @given(change=signed_percentages)
    @FAST
    def test_price_change_magnitude(self, change):
        up = can_auto_approve(REGISTRY, "PRICE_CHANGE", price_change_payload(change=str(change)))
        down = can_auto_approve(REGISTRY, "PRICE_CHANGE", price_change_payload(change=str(-change)))
        assert up == down == (abs(change) <= 10)

    @given(discount=percentages)
    @FAST
    def test_bulk_and_promotion(self, discount):
        bulk = bulk_discount_payload(discount=str(discount))
        promo = promotion_payload(discount=str(discount))
        assert can_auto_approve(REGISTRY, "BULK_DISCOUNT", bulk) == (discount <= 10)
        assert can_auto_approve(REGISTRY, "PROMOTION_CREATION", promo) == (discount <= 20)

    @given(value=percentages)
    @FAST
    def test_evaluation_reports_what_it_compared(self, value):
        result = evaluate_auto_approval(REGISTRY, "COUPON_CREATION", coupon_payload(value=str(value)))
        assert result.evaluated_value == value
        assert result.ceiling == Decimal("15")


class TestFlashSale:
    @given(discount=percentages)
    @FAST
    def test_never_auto_approves_always_urgent(self, discount):
        payload = flash_sale_payload(discount=str(discount))
        assert not can_auto_approve(REGISTRY, "FLASH_SALE", payload)
        assert calculate_priority("FLASH_SALE", payload) is ApprovalPriority.URGENT


class TestPriorityTotality:
    @given(discount=percentages, count=st.integers(min_value=1, max_value=500))
    @FAST
    def test_bulk_priority(self, discount, count):
        payload = bulk_discount_payload(discount=str(discount), count=count)
        expected = (
            ApprovalPriority.HIGH if count > 50 or discount > 20 else ApprovalPriority.NORMAL
        )
        assert calculate_priority("BULK_DISCOUNT", payload) is expected

    @given(change=signed_percentages)
    @FAST
    def test_price_change_priority(self, change):
        result = calculate_priority("PRICE_CHANGE", price_change_payload(change=str(change)))
        assert result is (ApprovalPriority.HIGH if abs(change) > 25 else ApprovalPriority.NORMAL)


class TestMalformedNumbers:
    @given(text=st.text(max_size=20))
    @FAST
    def test_any_string_parses_or_is_rejected(self, text):
        try:
            payload = parse_payload("PRICE_CHANGE", price_change_payload(change=text))
        except InvalidArgumentError as exc:
            assert exc.field == "changePercentage"
        else:
            assert payload.change_percentage.is_finite()
