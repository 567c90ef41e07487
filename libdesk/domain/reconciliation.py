"""Fee reconciliation over collection records.

A collection record carries ``total_fee`` and the amounts paid by method.
``amount_paid`` is always ``cash + online`` and ``due_amount`` is always
``total_fee - amount_paid``.

When a due from an earlier month is paid later, the record of the earlier
month is updated in place and a previous-due item is logged with
``original_month`` (month of the record) and ``month_tag`` (month the money
arrived). Monthly totals add the item to the month it arrived in and subtract
it back out of the month it belongs to, so each payment is counted exactly
once across monthly views.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Literal

from libdesk.models import PaymentMethod


DueState = Literal['unpaid', 'partially_paid', 'paid']

_MONTH_RE = re.compile(r'^\d{4}-\d{2}$')
_DAY_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
_PAYMENT_METHODS = {PaymentMethod.CASH.value, PaymentMethod.ONLINE.value}


@dataclass(frozen=True)
class CollectionEntry:
    history_id: int
    student_id: int | None
    name: str
    total_fee: float = 0.0
    cash: float = 0.0
    online: float = 0.0
    branch_id: int | None = None
    branch_name: str | None = None
    shift_title: str | None = None
    security_money: float = 0.0
    remark: str = ''
    created_at: datetime | None = None
    payment_date: date | None = None

    @property
    def amount_paid(self) -> float:
        return amount_paid(self.cash, self.online)

    @property
    def due_amount(self) -> float:
        return due_amount(self.total_fee, self.cash, self.online)


@dataclass(frozen=True)
class PreviousDueItem:
    amount: float
    method: str
    month_tag: str
    original_month: str
    id: int | None = None
    history_id: int | None = None
    student_id: int | None = None
    student_name: str | None = None
    branch_id: int | None = None
    branch_name: str | None = None
    paid_at: datetime | None = None


@dataclass(frozen=True)
class MethodTotals:
    total_amount: float = 0.0
    total_cash: float = 0.0
    total_online: float = 0.0


@dataclass(frozen=True)
class CollectionTotals:
    total_collected: float = 0.0
    total_due: float = 0.0
    total_cash: float = 0.0
    total_online: float = 0.0
    record_count: int = 0
    previous_due_paid: MethodTotals = field(default_factory=MethodTotals)
    previous_due_paid_adjustments: MethodTotals = field(default_factory=MethodTotals)


@dataclass(frozen=True)
class DuePaymentResult:
    cash: float
    online: float
    amount_paid: float
    due_amount: float
    state: DueState


def round_money(value: float) -> float:
    return round(float(value or 0), 2)


def amount_paid(cash: float | None, online: float | None) -> float:
    return float(cash or 0) + float(online or 0)


def due_amount(total_fee: float | None, cash: float | None, online: float | None) -> float:
    return float(total_fee or 0) - amount_paid(cash, online)


def display_due(total_fee: float | None, cash: float | None, online: float | None) -> float:
    return max(due_amount(total_fee, cash, online), 0.0)


def parse_month(value: str) -> tuple[int, int]:
    text = (value or '').strip()
    if not _MONTH_RE.match(text):
        raise ValueError('Invalid month format. Use YYYY-MM')
    year, month = (int(part) for part in text.split('-'))
    if month < 1 or month > 12:
        raise ValueError('Invalid month format. Use YYYY-MM')
    return year, month


def parse_day(value: str) -> date:
    text = (value or '').strip()
    if not _DAY_RE.match(text):
        raise ValueError('Invalid date format, use YYYY-MM-DD')
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValueError('Invalid date format, use YYYY-MM-DD') from exc


def month_tag(value: date | datetime) -> str:
    return f'{value.year:04d}-{value.month:02d}'


def filter_records(
    records: Iterable[CollectionEntry],
    *,
    month: str | None = None,
    day: date | None = None,
    branch_id: int | None = None,
    search: str = '',
) -> list[CollectionEntry]:
    needle = (search or '').strip().lower()
    result = []
    for record in records:
        if needle and needle not in (record.name or '').lower():
            continue
        if branch_id is not None and record.branch_id != branch_id:
            continue
        # Rows without a timestamp are never hidden by period filters.
        if record.created_at is not None:
            if month and month_tag(record.created_at) != month:
                continue
            if day and record.created_at.date() != day:
                continue
        result.append(record)
    return result


def summarize_method_totals(items: Iterable[PreviousDueItem]) -> MethodTotals:
    total = cash = online = 0.0
    for item in items:
        amount = float(item.amount or 0)
        total += amount
        if item.method == PaymentMethod.CASH.value:
            cash += amount
        elif item.method == PaymentMethod.ONLINE.value:
            online += amount
    return MethodTotals(total_amount=total, total_cash=cash, total_online=online)


def previous_due_paid_into(items: Iterable[PreviousDueItem], month: str) -> list[PreviousDueItem]:
    return [item for item in items if item.month_tag == month and item.original_month != month]


def previous_due_paid_out_of(items: Iterable[PreviousDueItem], month: str) -> list[PreviousDueItem]:
    return [item for item in items if item.original_month == month and item.month_tag != month]


def reconcile(
    records: Iterable[CollectionEntry],
    selected_month: str | None,
    previous_due_paid: Iterable[PreviousDueItem] = (),
) -> CollectionTotals:
    rows = list(records)
    collected = sum(row.amount_paid for row in rows)
    due = sum(row.due_amount for row in rows)
    cash = sum(float(row.cash or 0) for row in rows)
    online = sum(float(row.online or 0) for row in rows)

    if not selected_month:
        return CollectionTotals(
            total_collected=round_money(collected),
            total_due=round_money(due),
            total_cash=round_money(cash),
            total_online=round_money(online),
            record_count=len(rows),
        )

    items = list(previous_due_paid)
    added = summarize_method_totals(previous_due_paid_into(items, selected_month))
    removed = summarize_method_totals(previous_due_paid_out_of(items, selected_month))

    return CollectionTotals(
        total_collected=round_money(max(collected + added.total_amount - removed.total_amount, 0.0)),
        total_due=round_money(due),
        total_cash=round_money(max(cash + added.total_cash - removed.total_cash, 0.0)),
        total_online=round_money(max(online + added.total_online - removed.total_online, 0.0)),
        record_count=len(rows),
        previous_due_paid=added,
        previous_due_paid_adjustments=removed,
    )


def validate_payment_method(method: str) -> str:
    if method not in _PAYMENT_METHODS:
        raise ValueError('Invalid payment_method')
    return method


def validate_due_payment(amount: float, current_due: float) -> None:
    # NaN compares false both ways, so finiteness is checked explicitly.
    if amount is None or not math.isfinite(float(amount)) or float(amount) <= 0:
        raise ValueError('Invalid payment_amount')
    if round_money(amount) > round_money(current_due):
        raise ValueError('Payment exceeds due amount')


def due_state(original_due: float, current_due: float) -> DueState:
    current = round_money(current_due)
    if current <= 0:
        return 'paid'
    if current < round_money(original_due):
        return 'partially_paid'
    return 'unpaid'


def apply_due_payment(
    *,
    total_fee: float,
    cash: float,
    online: float,
    amount: float,
    method: str,
    original_due: float | None = None,
) -> DuePaymentResult:
    validate_payment_method(method)
    current_due = due_amount(total_fee, cash, online)
    validate_due_payment(amount, current_due)
    new_cash = float(cash or 0)
    new_online = float(online or 0)
    if method == PaymentMethod.CASH.value:
        new_cash += float(amount)
    else:
        new_online += float(amount)
    new_due = due_amount(total_fee, new_cash, new_online)
    baseline = current_due if original_due is None else original_due
    return DuePaymentResult(
        cash=round_money(new_cash),
        online=round_money(new_online),
        amount_paid=round_money(new_cash + new_online),
        due_amount=round_money(new_due),
        state=due_state(baseline, new_due),
    )

