# ABOUTME: Pydantic models for OwnerLedger records and reports
# ABOUTME: Defines payment/expense records, month buckets, and report shapes

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

ZERO = Decimal("0.00")


def cents_to_decimal(cents: int | None) -> Decimal:
    """Convert cents (integer) to Decimal dollars."""
    if cents is None:
        return Decimal("0.00")
    return Decimal(cents) / 100


class PaymentStatus(str, Enum):
    """Lifecycle states of a rent payment."""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    LATE = "late"
    FAILED = "failed"
    REFUNDED = "refunded"


class ReportScope(BaseModel):
    """The business boundary every query is filtered by."""

    model_config = ConfigDict(frozen=True)

    business_id: str
    property_id: str | None = None


class Business(BaseModel):
    """A business the signed-in user is a property owner of."""

    id: str
    name: str
    slug: str | None = None


class PaymentRecord(BaseModel):
    """A rent payment row as fetched from the backend."""

    model_config = ConfigDict(frozen=True)

    id: str
    amount_cents: int = Field(description="Amount in minor units (cents)")
    due_date: date | None = None
    payment_date: date | None = None
    status: PaymentStatus
    tenant_id: str | None = None
    unit_id: str | None = None


class ExpenseRecord(BaseModel):
    """An expense row as fetched from the backend."""

    model_config = ConfigDict(frozen=True)

    id: str
    amount_cents: int = Field(description="Amount in minor units (cents)")
    expense_date: date
    category: str


class MonthBucket(BaseModel):
    """One calendar month of accumulated income and expenses."""

    key: str = Field(description="Zero-padded YYYY-MM")
    label: str = Field(description="Display label, e.g. 'Feb 2024'")
    income: Decimal = ZERO
    expenses: Decimal = ZERO
    net: Decimal = ZERO


class ReportSummary(BaseModel):
    """Totals across every bucket of a report."""

    total_income: Decimal = ZERO
    total_expenses: Decimal = ZERO
    net_income: Decimal = ZERO


class RecentTransaction(BaseModel):
    """Display projection of a paid rent payment."""

    id: str
    date: date
    tenant: str
    unit: str
    amount: Decimal
    status: PaymentStatus


class OwnerReport(BaseModel):
    """Monthly breakdown, totals, and recent payments for one owner scope."""

    period_months: int
    start_date: date
    monthly_breakdown: list[MonthBucket]
    summary: ReportSummary
    recent_transactions: list[RecentTransaction] = Field(default_factory=list)


class IncomeReport(BaseModel):
    """Paid rent collected over a date range."""

    start_date: date
    end_date: date
    total: Decimal
    payment_count: int
    average_payment: Decimal
    payments: list[PaymentRecord] = Field(default_factory=list)


class ExpenseReport(BaseModel):
    """Expenses over a date range, totalled by category."""

    start_date: date
    end_date: date
    total: Decimal
    by_category: dict[str, Decimal] = Field(default_factory=dict)
    expenses: list[ExpenseRecord] = Field(default_factory=list)


class TaxReport(BaseModel):
    """Calendar-year income and expense totals."""

    year: int
    total_income: Decimal
    total_expenses: Decimal
    net_income: Decimal
    expenses_by_category: dict[str, Decimal] = Field(default_factory=dict)
