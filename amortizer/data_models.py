"""Data models for the amortizer.

This module defines dataclasses representing the entities used by the
amortizer: payment records in a schedule, loan updates applied on top of a
schedule, the loan parameters and the session envelope used to save and
reload a scenario. Using dataclasses makes it easy to construct, inspect and
serialize these structures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from .utils import to_date

RETAIN_TERM = "retain-term"
RETAIN_PAYMENT = "retain-payment"
UPDATE_TYPES = (RETAIN_TERM, RETAIN_PAYMENT)


@dataclass
class PaymentRecord:
    """A single entry in an amortization schedule.

    Attributes
    ----------
    month: Optional[int]
        The 1-based number of a regular scheduled payment. ``None`` marks an
        extra-principal event that sits outside the monthly numbering.
    date: date
        The payment date.
    payment: float
        Total amount paid. For an extra-principal event this equals
        ``principal``.
    interest: float
        Interest portion of the payment. Always zero for extra-principal
        events.
    principal: float
        Principal portion of the payment.
    remaining_balance: float
        Balance left after the payment, never negative.

    All monetary fields are rounded to cents when the record is built.
    """

    month: Optional[int]
    date: date
    payment: float
    interest: float
    principal: float
    remaining_balance: float

    @property
    def is_extra(self) -> bool:
        return self.month is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.month is not None:
            data["month"] = self.month
        data.update(
            {
                "date": self.date.isoformat(),
                "payment": self.payment,
                "interest": self.interest,
                "principal": self.principal,
                "remainingBalance": self.remaining_balance,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymentRecord":
        return cls(
            month=data.get("month"),
            date=to_date(data["date"]),
            payment=float(data["payment"]),
            interest=float(data["interest"]),
            principal=float(data["principal"]),
            remaining_balance=float(data["remainingBalance"]),
        )


@dataclass(frozen=True)
class LoanUpdate:
    """A user initiated change applied to an existing schedule.

    Attributes
    ----------
    id: str
        Unique identifier assigned by the caller.
    principal_payment: float
        Extra amount paid against principal on ``date``.
    new_interest_rate: float
        Annual nominal rate in percent effective from ``date`` onward.
    date: date
        Effective date of the extra payment and the rate change.
    update_type: str
        ``"retain-term"`` keeps the original payoff month count and
        recomputes the payment. ``"retain-payment"`` keeps the payment and
        recomputes the remaining term.

    Updates are never mutated once created.
    """

    id: str
    principal_payment: float
    new_interest_rate: float
    date: date
    update_type: str  # "retain-term" or "retain-payment"

    def __post_init__(self):
        if self.update_type not in UPDATE_TYPES:
            raise ValueError(
                f"Update type must be one of {', '.join(UPDATE_TYPES)}; got {self.update_type}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "principalPayment": self.principal_payment,
            "newInterestRate": self.new_interest_rate,
            "date": self.date.isoformat(),
            "updateType": self.update_type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoanUpdate":
        return cls(
            id=str(data["id"]),
            principal_payment=float(data["principalPayment"]),
            new_interest_rate=float(data["newInterestRate"]),
            date=to_date(data["date"]),
            update_type=data["updateType"],
        )


@dataclass
class LoanParameters:
    """Inputs of the schedule generator.

    ``term_years`` may be fractional; the schedule holds one record per whole
    month of ``term_years * 12``.
    """

    principal: float
    interest_rate: float  # annual nominal interest rate in percent
    term_years: float
    start_date: date  # first payment date


@dataclass
class SessionData:
    """A saved scenario: loan parameters, display settings and updates.

    The derived schedule is never stored; it is regenerated on load.
    """

    version: int
    loan_amount: float
    interest_rate: float
    payment_term: float
    start_date: str  # YYYY-MM-DD
    currency_symbol: str
    hide_past_months: bool
    property_name: str
    loan_updates: List[LoanUpdate] = field(default_factory=list)

    def to_parameters(self) -> LoanParameters:
        return LoanParameters(
            principal=self.loan_amount,
            interest_rate=self.interest_rate,
            term_years=self.payment_term,
            start_date=to_date(self.start_date),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "loanAmount": self.loan_amount,
            "interestRate": self.interest_rate,
            "paymentTerm": self.payment_term,
            "startDate": self.start_date,
            "currencySymbol": self.currency_symbol,
            "hidePastMonths": self.hide_past_months,
            "propertyName": self.property_name,
            "loanUpdates": [u.to_dict() for u in self.loan_updates],
        }


@dataclass
class ScheduleSummary:
    """Aggregate figures describing a schedule."""

    monthly_payment: float
    total_interest: float
    total_principal: float
    total_paid: float
    total_extra_principal: float
    regular_payments: int
    extra_payments: int
    first_payment_date: Optional[date]
    payoff_date: Optional[date]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "monthly_payment": self.monthly_payment,
            "total_interest": self.total_interest,
            "total_principal": self.total_principal,
            "total_paid": self.total_paid,
            "total_extra_principal": self.total_extra_principal,
            "regular_payments": self.regular_payments,
            "extra_payments": self.extra_payments,
            "first_payment_date": self.first_payment_date.isoformat() if self.first_payment_date else None,
            "payoff_date": self.payoff_date.isoformat() if self.payoff_date else None,
        }
