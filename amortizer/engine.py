"""Core calculation engine for the amortizer.

This module implements the financial logic required to build a fixed rate
amortization schedule and to replay loan updates (an extra principal payment
combined with a new interest rate) on top of it. Every function is pure: a
schedule goes in, a new list of ``PaymentRecord`` objects comes out, and no
state is kept between calls.

Recalculation always starts again from the base schedule and replays the full
list of updates, so removing or reordering updates never leaves stale rows
behind.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

from .data_models import RETAIN_TERM, LoanParameters, LoanUpdate, PaymentRecord, ScheduleSummary
from .utils import add_months, round_money, to_date

logger = logging.getLogger(__name__)

# A balance at or below this amount is treated as paid off.
PAID_OFF_THRESHOLD = 0.01

# Absorbs float noise such as 348.00000000000006 before rounding months up.
_MONTH_EPSILON = 1e-9


def compute_monthly_payment(principal: float, annual_rate_pct: float, term_years: float) -> float:
    """Return the fixed monthly payment for a loan.

    The formula is:

        payment = P * (r * (1 + r)^n) / ((1 + r)^n - 1)

    where ``P`` is the principal, ``r`` is the monthly interest rate and
    ``n`` is the number of payments (``term_years * 12``). When the interest
    rate is zero, the payment simplifies to ``P / n``.

    Callers must make sure the term is positive.
    """
    total_months = term_years * 12
    monthly_rate = annual_rate_pct / 12 / 100
    if monthly_rate == 0:
        return principal / total_months
    factor = (1 + monthly_rate) ** total_months
    return principal * (monthly_rate * factor) / (factor - 1)


def months_to_payoff(balance: float, monthly_rate: float, payment: float) -> Optional[int]:
    """Return how many payments of ``payment`` clear ``balance``.

    Uses the closed form ``n = -ln(1 - B*r/P) / ln(1 + r)`` rounded up, or
    ``B / P`` rounded up for an interest free loan. Returns ``None`` when the
    payment cannot even cover the interest that accrues each month.
    """
    if balance <= 0:
        return 0
    if payment <= 0:
        return None
    if monthly_rate == 0:
        return math.ceil(balance / payment - _MONTH_EPSILON)
    if payment <= balance * monthly_rate:
        return None
    ratio = 1 - balance * monthly_rate / payment
    if not 0 < ratio < 1:
        return None
    months = -math.log(ratio) / math.log(1 + monthly_rate)
    if not math.isfinite(months):
        return None
    return max(1, math.ceil(months - _MONTH_EPSILON))


def generate_schedule(
    principal: float, annual_rate_pct: float, term_years: float, start_date
) -> List[PaymentRecord]:
    """Compute the amortization schedule of a fixed rate loan.

    Parameters
    ----------
    principal: float
        The amount borrowed.
    annual_rate_pct: float
        Annual nominal interest rate in percent.
    term_years: float
        Loan term in years. One record is produced for every whole month of
        ``term_years * 12``.
    start_date: date or str
        Date of the first payment. Later payments fall on the same day of
        each following month, clamped to the month's last day.

    Returns
    -------
    List[PaymentRecord]
        One record per month, numbered from 1. Monetary fields are rounded to
        cents as each record is built.
    """
    total_months = term_years * 12
    monthly_rate = annual_rate_pct / 12 / 100
    payment = compute_monthly_payment(principal, annual_rate_pct, term_years)
    start = to_date(start_date)

    schedule: List[PaymentRecord] = []
    remaining_balance = principal
    month = 1
    while month <= total_months:
        interest = remaining_balance * monthly_rate
        principal_portion = payment - interest
        remaining_balance = max(0.0, remaining_balance - principal_portion)
        schedule.append(
            PaymentRecord(
                month=month,
                date=add_months(start, month - 1),
                payment=round_money(payment),
                interest=round_money(interest),
                principal=round_money(principal_portion),
                remaining_balance=round_money(remaining_balance),
            )
        )
        month += 1
    return schedule


def _schedule_order(record: PaymentRecord) -> Tuple[date, bool]:
    # Regular payment before a same day extra payment.
    return record.date, record.is_extra


def _find_pivot(schedule: Sequence[PaymentRecord], update_date: date) -> Optional[int]:
    """Return the index of the first regular payment on/after ``update_date``.

    Payments that precede an extra-principal event already applied on or
    before ``update_date`` are settled and never become the pivot again.
    """
    start = 0
    for index, record in enumerate(schedule):
        if record.is_extra and record.date <= update_date:
            start = index + 1
    for index in range(start, len(schedule)):
        record = schedule[index]
        if not record.is_extra and record.date >= update_date:
            return index
    return None


def _forward_terms(
    update: LoanUpdate,
    balance: float,
    monthly_rate: float,
    current_payment: float,
    pivot_index: int,
    original_term_years: float,
    original_months: int,
) -> Tuple[float, int]:
    """Return the payment amount and month count for the rest of the loan.

    ``pivot_index`` is the pivot's position in the schedule before it was
    split, which is the number of months treated as elapsed.
    """
    if update.update_type == RETAIN_TERM:
        remaining_years = max(original_term_years - pivot_index / 12, 1 / 12)
        payment = compute_monthly_payment(balance, update.new_interest_rate, remaining_years)
        return payment, math.ceil(remaining_years * 12 - _MONTH_EPSILON)

    months = months_to_payoff(balance, monthly_rate, current_payment)
    if months is not None:
        return current_payment, months
    months = max(original_months - pivot_index - 1, 1)
    logger.debug(
        "Payment %.2f cannot amortize %.2f at %.4f%%; re-amortizing over %d months",
        current_payment,
        balance,
        update.new_interest_rate,
        months,
    )
    return compute_monthly_payment(balance, update.new_interest_rate, months / 12), months


def _amortize(
    balance: float,
    monthly_rate: float,
    payment: float,
    first_month: int,
    months: int,
    anchor_date: date,
    anchor_month: int,
) -> List[PaymentRecord]:
    """Build ``months`` regular payments from ``first_month`` on.

    Month ``anchor_month`` falls on ``anchor_date``; every other month is
    dated relative to it. Stops early once the balance is paid off.
    """
    records: List[PaymentRecord] = []
    for month in range(first_month, first_month + months):
        if balance <= PAID_OFF_THRESHOLD:
            break
        interest = balance * monthly_rate
        principal_portion = payment - interest
        balance = round_money(max(0.0, balance - principal_portion))
        records.append(
            PaymentRecord(
                month=month,
                date=add_months(anchor_date, month - anchor_month),
                payment=round_money(payment),
                interest=round_money(interest),
                principal=round_money(principal_portion),
                remaining_balance=balance,
            )
        )
    return records


def _apply_update(
    schedule: List[PaymentRecord],
    update: LoanUpdate,
    original_principal: float,
    original_term_years: float,
    original_months: int,
) -> List[PaymentRecord]:
    """Fold a single update into ``schedule`` and return the new schedule."""
    update_date = to_date(update.date)
    pivot_index = _find_pivot(schedule, update_date)
    if pivot_index is None:
        logger.debug("Skipping update %s dated %s: after the final payment", update.id, update_date)
        return schedule

    pivot = schedule[pivot_index]
    balance_before = original_principal if pivot_index == 0 else schedule[pivot_index - 1].remaining_balance
    monthly_rate = update.new_interest_rate / 12 / 100

    emitted: List[PaymentRecord] = []
    deferred = pivot.date > update_date
    if deferred:
        # The new rate and payment apply before this period's payment falls due.
        balance = balance_before
        next_month = pivot.month
    else:
        interest = balance_before * monthly_rate
        principal_portion = pivot.payment - interest
        balance = round_money(max(0.0, balance_before - principal_portion))
        emitted.append(
            PaymentRecord(
                month=pivot.month,
                date=pivot.date,
                payment=pivot.payment,
                interest=round_money(interest),
                principal=round_money(principal_portion),
                remaining_balance=balance,
            )
        )
        next_month = pivot.month + 1

    extra = round_money(update.principal_payment)
    balance = round_money(max(0.0, balance - update.principal_payment))
    emitted.append(
        PaymentRecord(
            month=None,
            date=update_date,
            payment=extra,
            interest=0.0,
            principal=extra,
            remaining_balance=balance,
        )
    )

    forward: List[PaymentRecord] = []
    if balance > PAID_OFF_THRESHOLD:
        payment, months = _forward_terms(
            update,
            balance,
            monthly_rate,
            pivot.payment,
            pivot_index,
            original_term_years,
            original_months,
        )
        anchor_date = max(pivot.date, update_date)
        forward = _amortize(balance, monthly_rate, payment, next_month, months, anchor_date, pivot.month)

    return schedule[:pivot_index] + emitted + forward


def recalculate_schedule(
    base_schedule: List[PaymentRecord],
    updates: Iterable[LoanUpdate],
    original_rate_pct: float,
    original_principal: float,
    original_term_years: float,
) -> List[PaymentRecord]:
    """Replay ``updates`` on top of ``base_schedule``.

    Updates are applied one at a time in ascending date order; updates that
    share a date keep the order in which they were given. Each update splits
    the schedule at its pivot (the first regular payment on or after the
    update's date), inserts an extra-principal record and regenerates every
    later payment at the new rate.

    Parameters
    ----------
    base_schedule: List[PaymentRecord]
        The schedule produced by ``generate_schedule`` for the original loan.
    updates: Iterable[LoanUpdate]
        The complete list of updates. Nothing is carried over between calls.
    original_rate_pct: float
        The rate the base schedule was generated with.
    original_principal: float
        The amount borrowed; the balance before the first payment.
    original_term_years: float
        The original term. ``retain-term`` updates re-amortize over what
        is left of it.

    Returns
    -------
    List[PaymentRecord]
        The new schedule sorted by date, a regular payment before an extra
        payment on the same day. ``base_schedule`` itself is returned when
        there are no updates. Updates dated after the final payment are
        ignored.
    """
    ordered = sorted(updates, key=lambda u: to_date(u.date))
    if not ordered:
        return base_schedule
    logger.debug(
        "Replaying %d update(s) over a %.2f loan at %.4f%%", len(ordered), original_principal, original_rate_pct
    )
    original_months = int(original_term_years * 12)
    schedule = list(base_schedule)
    for update in ordered:
        schedule = _apply_update(schedule, update, original_principal, original_term_years, original_months)
    return sorted(schedule, key=_schedule_order)


def build_schedule(parameters: LoanParameters, updates: Iterable[LoanUpdate] = ()) -> List[PaymentRecord]:
    """Generate the base schedule for ``parameters`` and replay ``updates`` on it."""
    base = generate_schedule(
        parameters.principal, parameters.interest_rate, parameters.term_years, parameters.start_date
    )
    return recalculate_schedule(
        base, list(updates), parameters.interest_rate, parameters.principal, parameters.term_years
    )


def visible_records(schedule: Iterable[PaymentRecord], today: Optional[date] = None) -> List[PaymentRecord]:
    """Return the records dated in or after the month of ``today``."""
    today = to_date(today or date.today())
    cutoff = today.replace(day=1)
    return [record for record in schedule if record.date >= cutoff]


def summarize_schedule(schedule: Sequence[PaymentRecord]) -> ScheduleSummary:
    """Compute aggregate metrics for a schedule."""
    regular = [record for record in schedule if not record.is_extra]
    extra = [record for record in schedule if record.is_extra]
    return ScheduleSummary(
        monthly_payment=regular[0].payment if regular else 0.0,
        total_interest=round_money(sum(record.interest for record in schedule)),
        total_principal=round_money(sum(record.principal for record in schedule)),
        total_paid=round_money(sum(record.payment for record in schedule)),
        total_extra_principal=round_money(sum(record.principal for record in extra)),
        regular_payments=len(regular),
        extra_payments=len(extra),
        first_payment_date=schedule[0].date if schedule else None,
        payoff_date=schedule[-1].date if schedule else None,
    )
