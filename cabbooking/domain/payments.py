"""
Payment Settlement Strategies  (Strategy Pattern, closed set)
=============================================================

One strategy per ``PaymentMethod``:

* **UPI**  -- wallet transfer.  Valid when amount > 0 and a UPI id is given.
* **CARD** -- valid when amount > 0 and the card number is exactly 16 digits.
* **CASH** -- valid when amount > 0 and the tendered amount covers it.

Dispatch is keyed by the method tag.  Tags outside the enum raise
``UnsupportedPaymentMethod``; there is no default strategy.

Settlement is simulated: validation plus a time-derived synthetic
reference.  Nothing here talks to a payment provider.
"""

from __future__ import annotations

import itertools
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .entities import BookingRequest
from .enums import PaymentMethod, PaymentStatus
from .exceptions import UnsupportedPaymentMethod

_CARD_NUMBER = re.compile(r"[0-9]{16}")
_sequence = itertools.count(1)


def _synthetic_reference(prefix: str) -> str:
    """Time-derived reference, unique within the process."""
    return f"{prefix}{time.time_ns() // 1_000_000}{next(_sequence) % 10_000:04d}"


def mask_upi_id(upi_id: Optional[str]) -> str:
    if upi_id and "@" in upi_id:
        username, _, domain = upi_id.partition("@")
        if len(username) > 3:
            return f"{username[:3]}***@{domain}"
    return "***@***"


# ── Method payloads ───────────────────────────────────────────────────


@dataclass(frozen=True)
class UpiDetails:
    upi_id: Optional[str]
    provider: str = "PhonePe"


@dataclass(frozen=True)
class CardDetails:
    card_number: Optional[str]
    card_type: Optional[str] = None
    bank_name: Optional[str] = None
    card_holder_name: Optional[str] = None

    @property
    def last4(self) -> str:
        if self.card_number and _CARD_NUMBER.fullmatch(self.card_number):
            return self.card_number[-4:]
        return "****"

    def __repr__(self) -> str:
        return f"CardDetails(card=****{self.last4}, bank_name={self.bank_name!r})"


@dataclass(frozen=True)
class CashDetails:
    received_amount: Optional[float]
    collected_by: Optional[str] = None


PaymentDetails = Union[UpiDetails, CardDetails, CashDetails]


@dataclass(frozen=True)
class SettlementOutcome:
    status: PaymentStatus
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == PaymentStatus.SUCCESS


# ── Strategy hierarchy ────────────────────────────────────────────────


class PaymentStrategy(ABC):
    method: PaymentMethod
    details_type: type

    def settle(self, amount: Optional[float], details: PaymentDetails) -> SettlementOutcome:
        if not isinstance(details, self.details_type):
            raise TypeError(
                f"{self.method.value} settlement needs {self.details_type.__name__}, "
                f"got {type(details).__name__}"
            )
        return self._settle(amount, details)

    @abstractmethod
    def _settle(self, amount: Optional[float], details: Any) -> SettlementOutcome: ...

    @staticmethod
    def valid_amount(amount: Optional[float]) -> bool:
        return amount is not None and amount > 0


class UpiPayment(PaymentStrategy):
    method = PaymentMethod.UPI
    details_type = UpiDetails

    def _settle(self, amount: Optional[float], details: UpiDetails) -> SettlementOutcome:
        masked = mask_upi_id(details.upi_id)
        if not (self.valid_amount(amount) and details.upi_id):
            return SettlementOutcome(
                PaymentStatus.FAILED,
                "UPI Payment Failed: Invalid UPI ID or amount",
                {"upi_id": masked, "provider": details.provider},
            )
        transaction_id = _synthetic_reference("UPI")
        return SettlementOutcome(
            PaymentStatus.SUCCESS,
            f"UPI Payment Processed Successfully! UPI ID: {masked}, "
            f"Transaction: {transaction_id}",
            {
                "upi_id": masked,
                "provider": details.provider,
                "transaction_id": transaction_id,
            },
        )


class CardPayment(PaymentStrategy):
    method = PaymentMethod.CARD
    details_type = CardDetails

    def _settle(self, amount: Optional[float], details: CardDetails) -> SettlementOutcome:
        card_ok = bool(details.card_number) and _CARD_NUMBER.fullmatch(details.card_number)
        public = {
            "card_last4": details.last4,
            "card_type": details.card_type,
            "bank_name": details.bank_name,
            "card_holder_name": details.card_holder_name,
        }
        if not (self.valid_amount(amount) and card_ok):
            return SettlementOutcome(
                PaymentStatus.FAILED,
                "Card Payment Failed: Invalid card details or amount",
                public,
            )
        auth_code = _synthetic_reference("AUTH")
        return SettlementOutcome(
            PaymentStatus.SUCCESS,
            f"Card Payment Processed! Card: ****{details.last4}, "
            f"Bank: {details.bank_name}, Auth: {auth_code}",
            {**public, "auth_code": auth_code},
        )


class CashPayment(PaymentStrategy):
    method = PaymentMethod.CASH
    details_type = CashDetails

    def _settle(self, amount: Optional[float], details: CashDetails) -> SettlementOutcome:
        received = details.received_amount
        if not (self.valid_amount(amount) and received is not None and received >= amount):
            return SettlementOutcome(
                PaymentStatus.FAILED,
                "Cash Payment Failed: Insufficient amount received",
                {"received_amount": received, "collected_by": details.collected_by},
            )
        change = max(0.0, received - amount)
        receipt = _synthetic_reference("CASH")
        return SettlementOutcome(
            PaymentStatus.SUCCESS,
            f"Cash Payment Received! Amount: {received:.2f}, "
            f"Change: {change:.2f}, Receipt: {receipt}",
            {
                "received_amount": received,
                "change_returned": change,
                "collected_by": details.collected_by,
                "receipt_number": receipt,
            },
        )


# ── Dispatch ──────────────────────────────────────────────────────────


STRATEGIES: dict[PaymentMethod, PaymentStrategy] = {
    strategy.method: strategy for strategy in (UpiPayment(), CardPayment(), CashPayment())
}


def resolve_method(tag: Optional[str]) -> PaymentMethod:
    """Map a caller-supplied tag (case-insensitive) onto the closed enum."""
    try:
        return PaymentMethod((tag or "").strip().upper())
    except ValueError:
        raise UnsupportedPaymentMethod(f"Invalid payment method: {tag!r}") from None


def strategy_for(tag: Union[str, PaymentMethod, None]) -> PaymentStrategy:
    method = tag if isinstance(tag, PaymentMethod) else resolve_method(tag)
    return STRATEGIES[method]


def details_from_request(
    method: PaymentMethod, request: BookingRequest, upi_provider: str = "PhonePe"
) -> PaymentDetails:
    """Pick the method-specific fields off a booking request."""
    if method == PaymentMethod.UPI:
        return UpiDetails(upi_id=request.upi_id, provider=upi_provider)
    if method == PaymentMethod.CARD:
        return CardDetails(
            card_number=request.card_number,
            card_type=request.card_type,
            bank_name=request.bank_name,
            card_holder_name=request.card_holder_name,
        )
    if method == PaymentMethod.CASH:
        return CashDetails(
            received_amount=request.received_amount,
            collected_by=request.collected_by,
        )
    raise UnsupportedPaymentMethod(f"Invalid payment method: {method!r}")
