from __future__ import annotations

from sqlalchemy.orm import Session

from libdesk.core.time_provider import TimeProvider, default_time_provider
from libdesk.domain.reconciliation import filter_records, parse_day, parse_month, reconcile, round_money
from libdesk.metrics import timed_service
from libdesk.services import collection_service, expense_service, hostel_collection_service, hostel_expense_service


def _expense_totals(rows) -> dict:
    cash = sum(float(row.cash or 0) for row in rows)
    online = sum(float(row.online or 0) for row in rows)
    total = sum(float(row.amount or 0) for row in rows)
    return {
        'total_expenses': round_money(total),
        'cash_expenses': round_money(cash),
        'online_expenses': round_money(online),
    }


@timed_service('profit_loss')
def profit_loss(
    db: Session,
    *,
    month: str | None = None,
    day: str | None = None,
    branch_id: int | None = None,
) -> dict:
    """Collected vs spent for one day or one month.

    A month view reconciles previous-due payments across months; a single
    day sums the records stamped on that day.
    """
    if day:
        day_value = parse_day(day)
        records = filter_records(
            collection_service.load_entries(db, month=f'{day_value.year:04d}-{day_value.month:02d}', branch_id=branch_id),
            day=day_value,
        )
        totals = reconcile(records, None)
        expenses = expense_service.expenses_query(db, branch_id=branch_id, day=day_value).all()
        period = {'date': day_value.isoformat()}
    elif month:
        parse_month(month)
        records = collection_service.load_entries(db, month=month, branch_id=branch_id)
        items = collection_service.load_previous_due_items(db, month, branch_id=branch_id)
        totals = reconcile(records, month, items)
        expenses = expense_service.expenses_query(db, branch_id=branch_id, month=month).all()
        period = {'month': month}
    else:
        raise ValueError('A month or date parameter is required')

    spent = _expense_totals(expenses)
    return {
        **period,
        'total_collected': totals.total_collected,
        'cash_collected': totals.total_cash,
        'online_collected': totals.total_online,
        **spent,
        'profit_loss': round_money(totals.total_collected - spent['total_expenses']),
    }


@timed_service('hostel_profit_loss')
def hostel_profit_loss(
    db: Session,
    *,
    month: str | None = None,
    day: str | None = None,
    branch_id: int | None = None,
) -> dict:
    """Hostel stays booked in the period against hostel expenses dated in it."""
    if day:
        day_value = parse_day(day)
        records = hostel_collection_service.load_hostel_entries(db, day=day_value, branch_id=branch_id)
        expenses = hostel_expense_service.hostel_expenses_query(db, branch_id=branch_id, day=day_value).all()
        period = {'date': day_value.isoformat()}
    elif month:
        parse_month(month)
        records = hostel_collection_service.load_hostel_entries(db, month=month, branch_id=branch_id)
        expenses = hostel_expense_service.hostel_expenses_query(db, branch_id=branch_id, month=month).all()
        period = {'month': month}
    else:
        raise ValueError('A month or date parameter is required')

    # Hostel dues are settled on the stay record itself, with no cross-month ledger.
    totals = reconcile(records, None)
    spent = _expense_totals(expenses)
    return {
        **period,
        'total_collected': totals.total_collected,
        'cash_collected': totals.total_cash,
        'online_collected': totals.total_online,
        **spent,
        'profit_loss': round_money(totals.total_collected - spent['total_expenses']),
    }


def dashboard_stats(
    db: Session,
    *,
    branch_id: int | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    month = time_provider.current_month()
    records = collection_service.load_entries(db, month=month, branch_id=branch_id)
    items = collection_service.load_previous_due_items(db, month, branch_id=branch_id)
    totals = reconcile(records, month, items)
    spent = _expense_totals(expense_service.expenses_query(db, branch_id=branch_id, month=month).all())
    return {
        'month': month,
        'total_collection': totals.total_collected,
        'total_due': totals.total_due,
        'total_expense': spent['total_expenses'],
        'profit_loss': round_money(totals.total_collected - spent['total_expenses']),
    }
