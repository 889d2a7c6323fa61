"""
Tests for auto-approval rule evaluation against the default thresholds
and against hand-built registries.
"""

from decimal import Decimal

import pytest

from approval_config.registry import ThresholdRegistry
from approval_engines import can_auto_approve, evaluate_auto_approval
from approval_kernel.domain.approval import (
    ApprovalRequestType,
    ApprovalThreshold,
    AutoApproveConditions,
)
from approval_kernel.exceptions import InvalidArgumentError
from tests.factories import (
    bulk_discount_payload,
    coupon_payload,
    flash_sale_payload,
    price_change_payload,
    promotion_payload,
)


class TestDefaultThresholds:
    """Boundary behaviour of the packaged policy: equality passes."""

    @pytest.mark.parametrize(
        "value, expected",
        [("0", True), ("14.99", True), ("15", True), ("15.01", False), ("16", False)],
    )
    def test_percentage_coupon(self, registry, value, expected):
        assert can_auto_approve(registry, "COUPON_CREATION", coupon_payload(value=value)) is expected

    @pytest.mark.parametrize("value, expected", [("500", True), ("500.01", False)])
    def test_fixed_coupon(self, registry, value, expected):
        payload = coupon_payload(value=value, discount_type="fixed")
        assert can_auto_approve(registry, "COUPON_CREATION", payload) is expected

    @pytest.mark.parametrize(
        "change, expected",
        [("8", True), ("10", True), ("-10", True), ("-10.5", False), ("40", False)],
    )
    def test_price_change_uses_magnitude(self, registry, change, expected):
        payload = price_change_payload(change=change)
        assert can_auto_approve(registry, "PRICE_CHANGE", payload) is expected

    @pytest.mark.parametrize("discount, expected", [("10", True), ("11", False)])
    def test_bulk_discount(self, registry, discount, expected):
        payload = bulk_discount_payload(discount=discount)
        assert can_auto_approve(registry, "BULK_DISCOUNT", payload) is expected

    @pytest.mark.parametrize("discount, expected", [("20", True), ("20.5", False)])
    def test_promotion(self, registry, discount, expected):
        payload = promotion_payload(discount=discount)
        assert can_auto_approve(registry, "PROMOTION_CREATION", payload) is expected

    def test_flash_sale_never(self, registry):
        assert not can_auto_approve(registry, "FLASH_SALE", flash_sale_payload(discount="0"))

    def test_evaluation_reports_ceiling(self, registry):
        result = evaluate_auto_approval(registry, "COUPON_CREATION", coupon_payload(value="20"))
        assert not result.auto_approved
        assert result.ceiling == Decimal("15")
        assert result.evaluated_value == Decimal("20")
        assert "20 > 15" in result.reason


def _registry(request_type, conditions=None, requires_approval=True) -> ThresholdRegistry:
    return ThresholdRegistry.from_thresholds(
        ApprovalThreshold(
            request_type=request_type,
            auto_approve_conditions=conditions,
            requires_approval=requires_approval,
        )
    )


class TestConfiguredVariants:
    def test_unconfigured_type(self):
        registry = _registry(ApprovalRequestType.FLASH_SALE)
        result = evaluate_auto_approval(registry, "PRICE_CHANGE", price_change_payload(change="0"))
        assert not result.auto_approved
        assert "no threshold" in result.reason

    def test_type_without_conditions(self):
        registry = _registry(ApprovalRequestType.PRICE_CHANGE)
        assert not can_auto_approve(registry, "PRICE_CHANGE", price_change_payload(change="0"))

    def test_unset_ceiling_counts_as_zero(self):
        registry = _registry(
            ApprovalRequestType.COUPON_CREATION,
            AutoApproveConditions(max_discount_percentage=Decimal("15")),
        )
        fixed = coupon_payload(discount_type="fixed", value="1")
        free = coupon_payload(discount_type="fixed", value="0")
        assert not can_auto_approve(registry, "COUPON_CREATION", fixed)
        assert can_auto_approve(registry, "COUPON_CREATION", free)

    def test_requires_approval_false_without_conditions_still_reviewed(self):
        registry = _registry(ApprovalRequestType.PROMOTION_CREATION, requires_approval=False)
        result = evaluate_auto_approval(
            registry, "PROMOTION_CREATION", {"discountPercentage": "90"},
        )
        assert not result.auto_approved
        assert "no auto-approve conditions" in result.reason

    def test_requires_approval_false_keeps_ceiling(self):
        registry = _registry(
            ApprovalRequestType.PROMOTION_CREATION,
            AutoApproveConditions(max_discount_percentage=Decimal("20")),
            requires_approval=False,
        )
        assert can_auto_approve(registry, "PROMOTION_CREATION", {"discountPercentage": 20})
        assert not can_auto_approve(registry, "PROMOTION_CREATION", {"discountPercentage": 21})

    def test_flash_sale_ignores_permissive_configuration(self):
        registry = _registry(
            ApprovalRequestType.FLASH_SALE,
            AutoApproveConditions(max_discount_percentage=Decimal("100")),
            requires_approval=False,
        )
        assert not can_auto_approve(registry, "FLASH_SALE", flash_sale_payload(discount="1"))


class TestMinimalPayloads:
    """Only the inspected number is needed; descriptive fields are optional."""

    def test_percentage_coupon_over_ceiling(self, registry):
        payload = {"value": 35, "discountType": "percentage"}
        assert not can_auto_approve(registry, "COUPON_CREATION", payload)

    def test_untyped_coupon_is_fixed_amount(self, registry):
        result = evaluate_auto_approval(registry, "COUPON_CREATION", {"value": 20})
        assert result.auto_approved
        assert result.ceiling == Decimal("500")

    def test_price_change(self, registry):
        assert can_auto_approve(registry, "PRICE_CHANGE", {"changePercentage": 8})
        assert not can_auto_approve(registry, "PRICE_CHANGE", {"changePercentage": 40})

    def test_bulk_discount(self, registry):
        payload = {"discountPercentage": 5, "productCount": 3}
        assert can_auto_approve(registry, "BULK_DISCOUNT", payload)

    def test_flash_sale_needs_no_fields(self, registry):
        assert not can_auto_approve(registry, "FLASH_SALE", {})


class TestInvalidInput:
    def test_unknown_type(self, registry):
        with pytest.raises(InvalidArgumentError):
            can_auto_approve(registry, "GIFT_CARD", {})

    def test_malformed_payload(self, registry):
        with pytest.raises(InvalidArgumentError):
            can_auto_approve(registry, "COUPON_CREATION", {"code": "X"})
