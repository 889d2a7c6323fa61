"""
approval_engines.priority -- Priority Calculator.

Responsibility:
    Assign the urgency tier of a new approval request from its type and
    payload.  The tier is computed once at creation and never recomputed.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Rules:
    FLASH_SALE       URGENT, always.
    COUPON_CREATION  HIGH for a percentage coupon above 30, else NORMAL.
    PRICE_CHANGE     HIGH when |changePercentage| is above 25, else NORMAL.
    BULK_DISCOUNT    HIGH when productCount is above 50 or
                     discountPercentage is above 20, else NORMAL.
    anything else    NORMAL.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from approval_engines.tracer import traced_engine
from approval_kernel.domain.approval import ApprovalPriority, ApprovalRequestType
from approval_kernel.domain.payloads import (
    ApprovalPayload,
    BulkDiscountData,
    CouponApprovalData,
    PriceChangeData,
    parse_payload,
)

COUPON_HIGH_PERCENTAGE = Decimal("30")
PRICE_CHANGE_HIGH_PERCENTAGE = Decimal("25")
BULK_HIGH_PRODUCT_COUNT = 50
BULK_HIGH_DISCOUNT_PERCENTAGE = Decimal("20")


@traced_engine("priority", "1.0", fingerprint_fields=("request_type", "data"))
def calculate_priority(
    request_type: ApprovalRequestType | str,
    data: ApprovalPayload | Mapping[str, Any],
) -> ApprovalPriority:
    """Deterministic priority for a request of ``request_type``."""
    payload = parse_payload(request_type, data)

    if payload.request_type is ApprovalRequestType.FLASH_SALE:
        return ApprovalPriority.URGENT

    if isinstance(payload, CouponApprovalData):
        if payload.is_percentage and payload.value > COUPON_HIGH_PERCENTAGE:
            return ApprovalPriority.HIGH
        return ApprovalPriority.NORMAL

    if isinstance(payload, PriceChangeData):
        if abs(payload.change_percentage) > PRICE_CHANGE_HIGH_PERCENTAGE:
            return ApprovalPriority.HIGH
        return ApprovalPriority.NORMAL

    if isinstance(payload, BulkDiscountData):
        if (
            payload.product_count > BULK_HIGH_PRODUCT_COUNT
            or payload.discount_percentage > BULK_HIGH_DISCOUNT_PERCENTAGE
        ):
            return ApprovalPriority.HIGH
        return ApprovalPriority.NORMAL

    return ApprovalPriority.NORMAL
