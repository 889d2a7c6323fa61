"""
approval_engines.messages -- Notification text composition.

Pure functions that produce the titles and bodies sent to reviewers and
requesters.  No I/O; the notification dispatcher decides who receives
them and delivers them.
"""

from __future__ import annotations

from approval_kernel.domain.approval import ApprovalRequest, ApprovalRequestType
from approval_kernel.domain.payloads import CouponApprovalData, PriceChangeData

REQUEST_TYPE_LABELS: dict[ApprovalRequestType, str] = {
    ApprovalRequestType.COUPON_CREATION: "Coupon Creation",
    ApprovalRequestType.PROMOTION_CREATION: "Promotion Creation",
    ApprovalRequestType.PRICE_CHANGE: "Price Change",
    ApprovalRequestType.BULK_DISCOUNT: "Bulk Discount",
    ApprovalRequestType.FLASH_SALE: "Flash Sale",
}


def request_type_label(request_type: ApprovalRequestType | str) -> str:
    request_type = ApprovalRequestType(request_type)
    return REQUEST_TYPE_LABELS.get(request_type, request_type.value)


def describe_request(request: ApprovalRequest) -> str:
    """One-line summary of what the request would do."""
    data = request.data
    if isinstance(data, CouponApprovalData):
        subject = data.code or "Coupon"
        if data.is_percentage:
            return f"{subject} - {data.value}% discount"
        return f"{subject} - ${data.value} discount"
    if isinstance(data, PriceChangeData):
        sign = "+" if data.change_percentage > 0 else ""
        subject = data.product_name or data.product_id or "Product"
        return f"{subject} - {sign}{data.change_percentage:.1f}% price change"
    return "Review required"


def new_request_title(request: ApprovalRequest) -> str:
    return f"New {request_type_label(request.request_type)} Request"


def new_request_message(request: ApprovalRequest) -> str:
    return describe_request(request)


def auto_approved_title(request: ApprovalRequest) -> str:
    return f"{request_type_label(request.request_type)} Auto-Approved"


def auto_approved_message(request: ApprovalRequest) -> str:
    label = request_type_label(request.request_type).lower()
    return f"A {label} was automatically approved based on threshold rules."


def decision_title(request: ApprovalRequest, approved: bool) -> str:
    outcome = "Approved" if approved else "Rejected"
    return f"{request_type_label(request.request_type)} {outcome}"


def decision_message(request: ApprovalRequest, approved: bool) -> str:
    label = request_type_label(request.request_type).lower()
    if approved:
        return f"Your {label} request has been approved."
    return f"Your {label} request has been rejected. Reason: {request.rejection_reason}"
