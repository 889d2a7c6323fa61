"""
Type-tagged request payloads (``approval_kernel.domain.payloads``).

Responsibility
--------------
One frozen dataclass per ``ApprovalRequestType``.  The class carries its
tag in the ``request_type`` ClassVar, so the threshold evaluation and the
priority rules dispatch on the payload class rather than on a
subclass hierarchy of requests.

Stored shape
------------
Field names are persisted in camelCase exactly as the console's document
store held them (``value``, ``changePercentage``, ``discountPercentage``,
``productCount`` ...).  The Action Executor and the threshold rules look
fields up by these names.  Each dataclass field declares its stored key
and kind in ``metadata``; ``from_dict`` / ``to_dict`` are generic over
that metadata.

Only the fields the threshold and priority rules read are required
(``value``, ``changePercentage``, ``discountPercentage``, ``productCount``);
everything else is carried through untouched when absent.

Numbers are ``Decimal`` and are stored as strings.  Timestamps are
timezone-aware ``datetime`` and are stored as ISO-8601.

Architecture position
---------------------
Kernel > Domain.  Pure value objects, zero I/O.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import MISSING, dataclass, field, fields
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar

from approval_kernel.domain.approval import ApprovalRequestType
from approval_kernel.exceptions import InvalidArgumentError

_REQUIRED = MISSING


def _spec(
    key: str,
    kind: str,
    *,
    default: Any = _REQUIRED,
    aliases: tuple[str, ...] = (),
    choices: tuple[str, ...] = (),
) -> Any:
    """Declare a payload field with its stored key and value kind."""
    metadata = {"key": key, "kind": kind, "aliases": aliases, "choices": choices}
    if default is _REQUIRED:
        return field(metadata=metadata)
    return field(default=default, metadata=metadata)


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------


def _to_decimal(key: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidArgumentError(key, "expected a number, got a boolean")
    if isinstance(value, Decimal):
        return value
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidArgumentError(key, f"not a number: {value!r}") from None
    if not result.is_finite():
        raise InvalidArgumentError(key, f"not a finite number: {value!r}")
    return result


def _to_int(key: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    number = _to_decimal(key, value)
    if number != number.to_integral_value():
        raise InvalidArgumentError(key, f"expected an integer, got {value!r}")
    return int(number)


def _to_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            raise InvalidArgumentError(key, f"not an ISO timestamp: {value!r}") from None
    else:
        raise InvalidArgumentError(key, f"expected a timestamp, got {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _to_str_tuple(key: str, value: Any) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise InvalidArgumentError(key, "expected a list of strings")
    return tuple(str(v) for v in value)


def _coerce(key: str, kind: str, choices: tuple[str, ...], value: Any) -> Any:
    if kind == "decimal":
        return _to_decimal(key, value)
    if kind == "int":
        return _to_int(key, value)
    if kind == "datetime":
        return _to_datetime(key, value)
    if kind == "str_list":
        return _to_str_tuple(key, value)
    text = str(value)
    if choices and text not in choices:
        raise InvalidArgumentError(key, f"must be one of {', '.join(choices)}")
    return text


def _dump(kind: str, value: Any) -> Any:
    if kind == "decimal":
        return str(value)
    if kind == "datetime":
        return value.isoformat()
    if kind == "str_list":
        return list(value)
    return value


# ---------------------------------------------------------------------------
# Payload base
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApprovalPayload:
    """Base for all type-tagged payloads."""

    request_type: ClassVar[ApprovalRequestType]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ApprovalPayload:
        """Build the payload from its camelCase mapping.

        Unknown keys are ignored.  Raises InvalidArgumentError when a
        required key is missing or a value cannot be coerced.
        """
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            key = f.metadata["key"]
            raw = None
            for candidate in (key, *f.metadata["aliases"]):
                if data.get(candidate) is not None:
                    raw = data[candidate]
                    break
            if raw is None:
                if f.default is MISSING:
                    raise InvalidArgumentError(key, "is required")
                continue
            kwargs[f.name] = _coerce(key, f.metadata["kind"], f.metadata["choices"], raw)
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-safe stored shape (None fields omitted)."""
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                out[f.metadata["key"]] = _dump(f.metadata["kind"], value)
        return out


@dataclass(frozen=True)
class CouponApprovalData(ApprovalPayload):
    """Coupon creation payload.  Only ``value`` and the type are inspected."""

    request_type: ClassVar[ApprovalRequestType] = ApprovalRequestType.COUPON_CREATION

    value: Decimal = _spec("value", "decimal")
    # absent type reads as a fixed-amount coupon
    discount_type: str | None = _spec(
        "type", "str", default=None,
        aliases=("discountType",), choices=("percentage", "fixed"),
    )
    code: str | None = _spec("code", "str", default=None)
    description: str | None = _spec("description", "str", default=None)
    usage_limit: int | None = _spec("usageLimit", "int", default=None)
    start_date: datetime | None = _spec("startDate", "datetime", default=None)
    end_date: datetime | None = _spec("endDate", "datetime", default=None)
    min_purchase_amount: Decimal | None = _spec("minPurchaseAmount", "decimal", default=None)
    applicable_products: tuple[str, ...] | None = _spec(
        "applicableProducts", "str_list", default=None,
    )
    applicable_categories: tuple[str, ...] | None = _spec(
        "applicableCategories", "str_list", default=None,
    )

    @property
    def is_percentage(self) -> bool:
        return self.discount_type == "percentage"


@dataclass(frozen=True)
class PromotionApprovalData(ApprovalPayload):
    """Promotion creation payload."""

    request_type: ClassVar[ApprovalRequestType] = ApprovalRequestType.PROMOTION_CREATION

    discount_percentage: Decimal = _spec("discountPercentage", "decimal")
    name: str | None = _spec("name", "str", default=None)
    promotion_type: str | None = _spec(
        "type", "str", default=None, choices=("CATEGORY_SALE", "PRODUCT_DISCOUNT"),
    )
    target_products: tuple[str, ...] | None = _spec("targetProducts", "str_list", default=None)
    target_categories: tuple[str, ...] | None = _spec(
        "targetCategories", "str_list", default=None,
    )
    start_date: datetime | None = _spec("startDate", "datetime", default=None)
    end_date: datetime | None = _spec("endDate", "datetime", default=None)
    max_quantity: int | None = _spec("maxQuantity", "int", default=None)


@dataclass(frozen=True)
class PriceChangeData(ApprovalPayload):
    """Single-product price change payload."""

    request_type: ClassVar[ApprovalRequestType] = ApprovalRequestType.PRICE_CHANGE

    change_percentage: Decimal = _spec("changePercentage", "decimal")
    product_id: str | None = _spec("productId", "str", default=None)
    product_name: str | None = _spec("productName", "str", default=None)
    product_sku: str | None = _spec("productSku", "str", default=None)
    current_price: Decimal | None = _spec("currentPrice", "decimal", default=None)
    new_price: Decimal | None = _spec("newPrice", "decimal", default=None)
    reason: str | None = _spec("reason", "str", default=None)


@dataclass(frozen=True)
class BulkDiscountData(ApprovalPayload):
    """Discount applied to many products at once."""

    request_type: ClassVar[ApprovalRequestType] = ApprovalRequestType.BULK_DISCOUNT

    product_count: int = _spec("productCount", "int")
    discount_percentage: Decimal = _spec("discountPercentage", "decimal")
    product_ids: tuple[str, ...] | None = _spec("productIds", "str_list", default=None)
    duration: int | None = _spec("duration", "int", default=None)  # days
    reason: str | None = _spec("reason", "str", default=None)
    affected_categories: tuple[str, ...] | None = _spec(
        "affectedCategories", "str_list", default=None,
    )


@dataclass(frozen=True)
class FlashSaleData(ApprovalPayload):
    """Time-boxed flash sale payload.  Always reviewed; no field is inspected."""

    request_type: ClassVar[ApprovalRequestType] = ApprovalRequestType.FLASH_SALE

    name: str | None = _spec("name", "str", default=None)
    discount_percentage: Decimal | None = _spec("discountPercentage", "decimal", default=None)
    target_products: tuple[str, ...] | None = _spec("targetProducts", "str_list", default=None)
    start_date: datetime | None = _spec("startDate", "datetime", default=None)
    end_date: datetime | None = _spec("endDate", "datetime", default=None)
    max_quantity_per_customer: int | None = _spec(
        "maxQuantityPerCustomer", "int", default=None,
    )
    total_quantity_limit: int | None = _spec("totalQuantityLimit", "int", default=None)


PAYLOAD_TYPES: dict[ApprovalRequestType, type[ApprovalPayload]] = {
    cls.request_type: cls
    for cls in (
        CouponApprovalData,
        PromotionApprovalData,
        PriceChangeData,
        BulkDiscountData,
        FlashSaleData,
    )
}


def parse_payload(
    request_type: ApprovalRequestType | str,
    data: ApprovalPayload | Mapping[str, Any],
) -> ApprovalPayload:
    """Return the typed payload for ``request_type``.

    Accepts an already-typed payload (its tag must match) or a camelCase
    mapping.
    """
    try:
        request_type = ApprovalRequestType(request_type)
    except ValueError:
        raise InvalidArgumentError("type", f"unknown request type {request_type!r}") from None

    if isinstance(data, ApprovalPayload):
        if data.request_type is not request_type:
            raise InvalidArgumentError(
                "data",
                f"{type(data).__name__} payload does not match type {request_type.value}",
            )
        return data
    if not isinstance(data, Mapping):
        raise InvalidArgumentError("data", "expected a mapping or a typed payload")
    return PAYLOAD_TYPES[request_type].from_dict(data)
