# ABOUTME: Owner financial report aggregation over fetched payments and expenses
# ABOUTME: Builds monthly buckets, summary totals, recent payments, and period reports

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from ownerledger.exceptions import InvalidRecordError
from ownerledger.types import (
    ZERO,
    ExpenseRecord,
    ExpenseReport,
    IncomeReport,
    MonthBucket,
    OwnerReport,
    PaymentRecord,
    PaymentStatus,
    RecentTransaction,
    ReportSummary,
    TaxReport,
    cents_to_decimal,
)

logger = logging.getLogger(__name__)

VALID_PERIODS = (3, 6, 12)
DEFAULT_PERIOD = 6
RECENT_LIMIT = 10
UNKNOWN_TENANT = "Unknown"
UNKNOWN_UNIT = "N/A"

# Fixed English abbreviations so labels don't follow the process locale
MONTH_ABBR = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


@dataclass(frozen=True)
class PeriodWindow:
    """The fixed set of month buckets and the query cutoff for one report."""

    months: int
    start_date: date
    buckets: tuple[MonthBucket, ...]

    @property
    def keys(self) -> list[str]:
        return [bucket.key for bucket in self.buckets]


@dataclass(frozen=True)
class ClassifiedIncome:
    record: PaymentRecord
    amount: Decimal


@dataclass(frozen=True)
class ClassifiedExpense:
    record: ExpenseRecord
    amount: Decimal


@dataclass(frozen=True)
class ClassifiedRecords:
    income: list[ClassifiedIncome] = field(default_factory=list)
    expenses: list[ClassifiedExpense] = field(default_factory=list)


def month_key(value: date) -> str:
    """Zero-padded YYYY-MM key for a date."""
    return f"{value.year:04d}-{value.month:02d}"


def month_label(value: date) -> str:
    """Display label such as 'Feb 2024'."""
    return f"{MONTH_ABBR[value.month - 1]} {value.year}"


def as_date(now: date | datetime | None) -> date:
    """Resolve a reference date, defaulting to today."""
    if now is None:
        return date.today()
    if isinstance(now, datetime):
        return now.date()
    return now


def parse_period(period: int | str | None) -> int:
    """
    Normalize a requested lookback to 3, 6, or 12 months.

    Accepts integers or the period tokens used by the owner portal
    ("3months", "6months", "12months"). Anything else falls back to 6.
    """
    months: int | None = None
    if isinstance(period, int) and not isinstance(period, bool):
        months = period
    elif isinstance(period, str):
        token = period.strip().lower().removesuffix("months").strip()
        if token.isdigit():
            months = int(token)

    if months not in VALID_PERIODS:
        logger.debug(f"Unsupported period {period!r}, using {DEFAULT_PERIOD} months")
        return DEFAULT_PERIOD
    return months


def period_window(months: int | str | None, now: date | datetime | None = None) -> PeriodWindow:
    """
    Compute the month buckets and start-date cutoff for a lookback period.

    Args:
        months: Lookback in months (3, 6 or 12; other values mean 6)
        now: Reference date (default: today)

    Returns:
        PeriodWindow with buckets ordered oldest first, ending at the
        current month, and start_date = now - N months
    """
    months = parse_period(months)
    today = as_date(now)
    first_of_month = today.replace(day=1)

    newest_first = []
    for offset in range(months):
        month_start = first_of_month - relativedelta(months=offset)
        newest_first.append(
            MonthBucket(key=month_key(month_start), label=month_label(month_start))
        )

    return PeriodWindow(
        months=months,
        start_date=today - relativedelta(months=months),
        buckets=tuple(reversed(newest_first)),
    )


def _checked_amount(record_id: str, amount_cents: object) -> Decimal:
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise InvalidRecordError(record_id, f"amount must be integer cents, got {amount_cents!r}")
    if amount_cents < 0:
        raise InvalidRecordError(record_id, f"amount must not be negative, got {amount_cents}")
    return cents_to_decimal(amount_cents)


def classify_records(
    payments: Iterable[PaymentRecord],
    expenses: Iterable[ExpenseRecord],
) -> ClassifiedRecords:
    """
    Split records into income and expense contributions in dollars.

    Only payments with status "paid" count as income; every expense counts.
    Each amount is converted from cents exactly once here.

    Raises:
        InvalidRecordError: If an amount is negative or not integer cents
    """
    classified = ClassifiedRecords()

    for payment in payments:
        amount = _checked_amount(payment.id, payment.amount_cents)
        if payment.status != PaymentStatus.PAID:
            continue
        if payment.payment_date is None:
            logger.debug(f"Paid payment {payment.id} has no payment date, skipping")
            continue
        classified.income.append(ClassifiedIncome(record=payment, amount=amount))

    for expense in expenses:
        amount = _checked_amount(expense.id, expense.amount_cents)
        classified.expenses.append(ClassifiedExpense(record=expense, amount=amount))

    return classified


def aggregate_monthly(window: PeriodWindow, classified: ClassifiedRecords) -> list[MonthBucket]:
    """
    Fold classified records into the window's month buckets.

    Records dated outside the window have no bucket and are dropped.

    Returns:
        Fresh buckets in chronological order with net = income - expenses
    """
    buckets = {bucket.key: bucket.model_copy() for bucket in window.buckets}

    for item in classified.income:
        key = month_key(item.record.payment_date)
        bucket = buckets.get(key)
        if bucket is None:
            logger.debug(f"Payment {item.record.id} in {key} is outside the report window")
            continue
        bucket.income += item.amount

    for item in classified.expenses:
        key = month_key(item.record.expense_date)
        bucket = buckets.get(key)
        if bucket is None:
            logger.debug(f"Expense {item.record.id} in {key} is outside the report window")
            continue
        bucket.expenses += item.amount

    for bucket in buckets.values():
        bucket.net = bucket.income - bucket.expenses

    return list(buckets.values())


def summarize(buckets: Iterable[MonthBucket]) -> ReportSummary:
    """Total income, expenses and net across buckets (zeros when empty)."""
    total_income = ZERO
    total_expenses = ZERO
    for bucket in buckets:
        total_income += bucket.income
        total_expenses += bucket.expenses

    return ReportSummary(
        total_income=total_income,
        total_expenses=total_expenses,
        net_income=total_income - total_expenses,
    )


def recent_transactions(
    income: Sequence[ClassifiedIncome],
    tenant_names: Mapping[str, str],
    unit_labels: Mapping[str, str],
    limit: int = RECENT_LIMIT,
) -> list[RecentTransaction]:
    """
    Most recent paid payments, newest first, with tenant and unit labels.

    Ties on payment date keep their fetch order. Missing lookups become
    "Unknown" (tenant) and "N/A" (unit).
    """
    newest_first = sorted(income, key=lambda item: item.record.payment_date, reverse=True)

    transactions = []
    for item in newest_first[:limit]:
        record = item.record
        tenant = tenant_names.get(record.tenant_id) if record.tenant_id else None
        unit = unit_labels.get(record.unit_id) if record.unit_id else None
        if tenant is None or unit is None:
            logger.debug(f"Missing tenant/unit label for payment {record.id}")

        transactions.append(
            RecentTransaction(
                id=record.id,
                date=record.payment_date,
                tenant=tenant or UNKNOWN_TENANT,
                unit=unit or UNKNOWN_UNIT,
                amount=item.amount,
                status=record.status,
            )
        )

    return transactions


def build_owner_report(
    payments: Iterable[PaymentRecord],
    expenses: Iterable[ExpenseRecord],
    tenant_names: Mapping[str, str] | None = None,
    unit_labels: Mapping[str, str] | None = None,
    period_months: int | str | None = DEFAULT_PERIOD,
    now: date | datetime | None = None,
) -> OwnerReport:
    """
    Build the owner financial report from already-fetched records.

    Args:
        payments: Payment records on or after the window's start date
        expenses: Expense records on or after the window's start date
        tenant_names: tenant_id -> display name
        unit_labels: unit_id -> unit number
        period_months: Lookback (3, 6 or 12)
        now: Reference date (default: today)

    Returns:
        OwnerReport with monthly breakdown, summary, and recent transactions
    """
    window = period_window(period_months, now)
    classified = classify_records(payments, expenses)
    buckets = aggregate_monthly(window, classified)

    return OwnerReport(
        period_months=window.months,
        start_date=window.start_date,
        monthly_breakdown=buckets,
        summary=summarize(buckets),
        recent_transactions=recent_transactions(
            classified.income, tenant_names or {}, unit_labels or {}
        ),
    )


def _in_range(value: date | None, start: date, end: date) -> bool:
    return value is not None and start <= value <= end


def expenses_by_category(expenses: Iterable[ExpenseRecord]) -> dict[str, Decimal]:
    """Sum expense amounts per category, in first-seen category order."""
    totals: dict[str, Decimal] = {}
    for expense in expenses:
        amount = _checked_amount(expense.id, expense.amount_cents)
        totals[expense.category] = totals.get(expense.category, ZERO) + amount
    return totals


def income_report(payments: Iterable[PaymentRecord], start_date: date, end_date: date) -> IncomeReport:
    """Paid payments dated within [start_date, end_date], newest first."""
    paid = [
        p
        for p in payments
        if p.status == PaymentStatus.PAID and _in_range(p.payment_date, start_date, end_date)
    ]
    paid.sort(key=lambda p: p.payment_date, reverse=True)

    total = ZERO
    for payment in paid:
        total += _checked_amount(payment.id, payment.amount_cents)

    return IncomeReport(
        start_date=start_date,
        end_date=end_date,
        total=total,
        payment_count=len(paid),
        average_payment=total / len(paid) if paid else ZERO,
        payments=paid,
    )


def expense_report(expenses: Iterable[ExpenseRecord], start_date: date, end_date: date) -> ExpenseReport:
    """Expenses dated within [start_date, end_date], grouped by category."""
    selected = [e for e in expenses if _in_range(e.expense_date, start_date, end_date)]
    selected.sort(key=lambda e: e.category)
    by_category = expenses_by_category(selected)

    return ExpenseReport(
        start_date=start_date,
        end_date=end_date,
        total=sum(by_category.values(), ZERO),
        by_category=by_category,
        expenses=selected,
    )


def tax_report(
    payments: Iterable[PaymentRecord],
    expenses: Iterable[ExpenseRecord],
    year: int,
) -> TaxReport:
    """Calendar-year income, expenses and net income."""
    start_date = date(year, 1, 1)
    end_date = date(year, 12, 31)
    income = income_report(payments, start_date, end_date)
    spent = expense_report(expenses, start_date, end_date)

    return TaxReport(
        year=year,
        total_income=income.total,
        total_expenses=spent.total,
        net_income=income.total - spent.total,
        expenses_by_category=spent.by_category,
    )
