"""
Order aggregate - the booking order as stored in the ``orders`` collection.

Orders are created outside this service in ``pending`` status. This service
only ever adds payment-link fields and performs the pending -> paid
transition; it never moves an order backwards and never deletes one.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from domain.common.money import try_money


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class Currency(str, Enum):
    USD = "USD"
    CAD = "CAD"


DEFAULT_CURRENCY = Currency.USD

# Where the gateway payment id is written going forward.
CANONICAL_PAYMENT_ID_FIELD = ("deluxe", "paymentId")

# Older documents recorded the id under other names; these are read once when
# resolving refunds and never written.
LEGACY_PAYMENT_ID_FIELDS: tuple[tuple[str, ...], ...] = (
    ("deluxe", "PaymentId"),
    ("deluxe", "payment_id"),
    ("deluxe", "transactionId"),
    ("paymentId",),
    ("PaymentId",),
    ("deluxe", "lastEvent", "paymentId"),
    ("deluxe", "lastEvent", "PaymentId"),
)


def _dig(data: Any, path: tuple[str, ...]) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


@dataclass
class BillingAddress:
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country_code: Optional[str] = None

    @classmethod
    def from_document(cls, data: Any) -> Optional["BillingAddress"]:
        if not isinstance(data, dict):
            return None
        return cls(
            address=data.get("address") or data.get("line1"),
            city=data.get("city"),
            state=data.get("state"),
            zip_code=data.get("zipCode") or data.get("postalCode"),
            country_code=data.get("countryCode") or data.get("country"),
        )


@dataclass
class Customer:
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    billing_address: Optional[BillingAddress] = None

    @classmethod
    def from_document(cls, data: Any) -> "Customer":
        if not isinstance(data, dict):
            return cls()
        return cls(
            first_name=data.get("firstName"),
            last_name=data.get("lastName"),
            name=data.get("name"),
            email=data.get("email"),
            phone=data.get("phone"),
            billing_address=BillingAddress.from_document(data.get("billingAddress")),
        )


@dataclass
class Booking:
    """Booked calendar dates (ISO strings) and the hunter count."""

    dates: list[str] = field(default_factory=list)
    number_of_hunters: int = 0
    party_deck_dates: list[str] = field(default_factory=list)

    @classmethod
    def from_document(cls, data: Any) -> Optional["Booking"]:
        if not isinstance(data, dict):
            return None
        dates = [str(d) for d in (data.get("dates") or []) if d]
        party = [str(d) for d in (data.get("partyDeckDates") or []) if d]
        try:
            hunters = int(data.get("numberOfHunters") or 0)
        except (TypeError, ValueError):
            hunters = 0
        return cls(dates=dates, number_of_hunters=hunters, party_deck_dates=party)

    def unique_dates(self) -> list[str]:
        """Booking dates in order, each once."""
        return list(dict.fromkeys(self.dates))

    def consumes_capacity(self) -> bool:
        return bool(self.dates) and self.number_of_hunters > 0


@dataclass
class Level3Item:
    sku_code: Optional[str]
    quantity: int
    price: Decimal
    description: Optional[str] = None
    unit_of_measure: Optional[str] = None
    item_discount_amount: Optional[Decimal] = None
    item_discount_rate: Optional[float] = None

    @classmethod
    def from_document(cls, data: Any) -> Optional["Level3Item"]:
        if not isinstance(data, dict):
            return None
        price = try_money(data.get("price"))
        if price is None:
            return None
        try:
            quantity = int(data.get("quantity") or 0)
        except (TypeError, ValueError):
            return None
        rate = data.get("itemDiscountRate")
        return cls(
            sku_code=data.get("skuCode"),
            quantity=quantity,
            price=price,
            description=data.get("description"),
            unit_of_measure=data.get("unitOfMeasure"),
            item_discount_amount=try_money(data.get("itemDiscountAmount")),
            item_discount_rate=float(rate) if isinstance(rate, (int, float)) and not isinstance(rate, bool) else None,
        )


@dataclass
class Order:
    id: str
    total: Optional[Decimal]
    currency: Currency = DEFAULT_CURRENCY
    status: Optional[str] = OrderStatus.PENDING.value
    customer: Customer = field(default_factory=Customer)
    booking: Optional[Booking] = None
    level3: list[Level3Item] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "Order":
        try:
            currency = Currency(str(data.get("currency") or DEFAULT_CURRENCY.value).upper())
        except ValueError:
            currency = DEFAULT_CURRENCY
        level3 = [item for item in (Level3Item.from_document(i) for i in data.get("level3") or []) if item]
        return cls(
            id=doc_id,
            total=try_money(data.get("total")),
            currency=currency,
            status=data.get("status"),
            customer=Customer.from_document(data.get("customer")),
            booking=Booking.from_document(data.get("booking")),
            level3=level3,
            raw=data,
        )

    @property
    def has_positive_total(self) -> bool:
        return self.total is not None and self.total > 0

    def is_awaiting_payment(self) -> bool:
        """Only pending orders (or ones with no status yet) may become paid."""
        return self.status in (None, "", OrderStatus.PENDING.value)

    def has_canonical_payment_id(self) -> bool:
        return bool(_dig(self.raw, CANONICAL_PAYMENT_ID_FIELD))

    def recorded_payment_id(self) -> Optional[str]:
        for path in (CANONICAL_PAYMENT_ID_FIELD, *LEGACY_PAYMENT_ID_FIELDS):
            value = _dig(self.raw, path)
            if value:
                return str(value)
        return None
