# ABOUTME: Data access for owner reports over the PostgREST API
# ABOUTME: Fetches and validates payments, expenses, tenants, and unit labels per scope

import asyncio
import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

import httpx

from ownerledger.exceptions import (
    APIError,
    BusinessNotFoundError,
    InvalidRecordError,
    RateLimitError,
    SessionExpiredError,
)
from ownerledger.reporting import (
    as_date,
    build_owner_report,
    expense_report,
    income_report,
    period_window,
    tax_report,
)
from ownerledger.types import (
    Business,
    ExpenseRecord,
    ExpenseReport,
    IncomeReport,
    OwnerReport,
    PaymentRecord,
    PaymentStatus,
    ReportScope,
    TaxReport,
)

if TYPE_CHECKING:
    from ownerledger.auth import BackendSession

logger = logging.getLogger(__name__)

Params = list[tuple[str, str]]

PAYMENT_COLUMNS = (
    "id,amount_cents,due_date,payment_date,status,tenant_id,unit_id,"
    "tenants(first_name,last_name,unit_id)"
)
EXPENSE_COLUMNS = "id,amount_cents,expense_date,category"
DEFAULT_CATEGORY = "other"


def _in_filter(values: list[str]) -> str:
    quoted = ",".join(f'"{value}"' for value in values)
    return f"in.({quoted})"


def _raise_for_status(response: httpx.Response, table: str) -> None:
    """Map PostgREST error responses onto the exception hierarchy."""
    status = response.status_code
    if status < 400:
        return

    try:
        message = response.json().get("message", response.text)
    except (ValueError, AttributeError):
        message = response.text

    if status in (401, 403):
        raise SessionExpiredError(f"Access to {table} rejected ({status}): {message}")
    if status == 429:
        raise RateLimitError(f"Rate limited while reading {table}", status_code=status)
    raise APIError(f"Error reading {table} ({status}): {message}", status_code=status)


async def _get_rows(session: "BackendSession", table: str, params: Params) -> list[dict[str, Any]]:
    response = await session.select(table, params)
    _raise_for_status(response, table)

    data = response.json()
    if not isinstance(data, list):
        raise APIError(f"Expected a list of rows from {table}, got {type(data).__name__}")
    logger.debug(f"Fetched {len(data)} rows from {table}")
    return data


def _parse_date(record_id: str, value: Any, field: str) -> date | None:
    """Parse a PostgREST date or timestamp string into a date."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        if len(value) == 10:
            return date.fromisoformat(value)
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except (ValueError, TypeError) as e:
        raise InvalidRecordError(record_id, f"unparseable {field} {value!r}") from e


def _parse_amount(record_id: str, value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRecordError(record_id, f"amount must be integer cents, got {value!r}")
    if value < 0:
        raise InvalidRecordError(record_id, f"amount must not be negative, got {value}")
    return value


def _record_id(row: dict[str, Any]) -> str:
    if row.get("id") is None:
        raise InvalidRecordError(None, "row has no id")
    return str(row["id"])


def parse_payment_row(row: dict[str, Any]) -> PaymentRecord:
    """
    Validate a rent_payments row into a PaymentRecord.

    The unit comes from the payment itself, falling back to the embedded
    tenant's unit.

    Raises:
        InvalidRecordError: If the id, amount, dates, or status are invalid
    """
    record_id = _record_id(row)

    try:
        status = PaymentStatus(row.get("status"))
    except ValueError as e:
        raise InvalidRecordError(record_id, f"unknown status {row.get('status')!r}") from e

    tenant = row.get("tenants") or {}
    tenant_id = row.get("tenant_id")
    unit_id = row.get("unit_id") or tenant.get("unit_id")

    return PaymentRecord(
        id=record_id,
        amount_cents=_parse_amount(record_id, row.get("amount_cents")),
        due_date=_parse_date(record_id, row.get("due_date"), "due_date"),
        payment_date=_parse_date(record_id, row.get("payment_date"), "payment_date"),
        status=status,
        tenant_id=str(tenant_id) if tenant_id is not None else None,
        unit_id=str(unit_id) if unit_id is not None else None,
    )


def parse_expense_row(row: dict[str, Any]) -> ExpenseRecord:
    """
    Validate an expenses row into an ExpenseRecord.

    Raises:
        InvalidRecordError: If the id, amount, or expense date are invalid
    """
    record_id = _record_id(row)

    expense_date = _parse_date(record_id, row.get("expense_date"), "expense_date")
    if expense_date is None:
        raise InvalidRecordError(record_id, "missing expense_date")

    return ExpenseRecord(
        id=record_id,
        amount_cents=_parse_amount(record_id, row.get("amount_cents")),
        expense_date=expense_date,
        category=row.get("category") or DEFAULT_CATEGORY,
    )


def _tenant_name(tenant: dict[str, Any]) -> str | None:
    name = f"{tenant.get('first_name') or ''} {tenant.get('last_name') or ''}".strip()
    return name or None


async def fetch_owner_businesses(session: "BackendSession") -> list[Business]:
    """Businesses where the signed-in user is an active property owner."""
    rows = await _get_rows(
        session,
        "business_users",
        [
            ("select", "id,business_id,role,businesses:business_id(id,business_name,slug)"),
            ("auth_user_id", f"eq.{session.user_id}"),
            ("role", "eq.property_owner"),
            ("is_active", "eq.true"),
        ],
    )

    businesses = []
    for row in rows:
        business = row.get("businesses")
        if not business:
            continue
        businesses.append(
            Business(
                id=str(business["id"]),
                name=business.get("business_name") or "",
                slug=business.get("slug"),
            )
        )
    return businesses


async def resolve_scope(
    session: "BackendSession",
    business_id: str | None = None,
    property_id: str | None = None,
) -> ReportScope:
    """
    Turn a requested business into a scope the user actually owns.

    Without a business_id the first owned business is used.

    Raises:
        BusinessNotFoundError: If the user owns no (matching) business
    """
    businesses = await fetch_owner_businesses(session)
    if not businesses:
        raise BusinessNotFoundError("Signed-in user is not a property owner of any business")

    if business_id is None:
        return ReportScope(business_id=businesses[0].id, property_id=property_id)

    if not any(b.id == business_id for b in businesses):
        raise BusinessNotFoundError(f"Business {business_id} is not owned by the signed-in user")
    return ReportScope(business_id=business_id, property_id=property_id)


async def fetch_unit_labels(session: "BackendSession", scope: ReportScope) -> dict[str, str]:
    """Map unit id -> unit number for every unit in the scope's properties."""
    property_params: Params = [("select", "id"), ("business_id", f"eq.{scope.business_id}")]
    if scope.property_id:
        property_params.append(("id", f"eq.{scope.property_id}"))

    properties = await _get_rows(session, "properties", property_params)
    property_ids = [str(p["id"]) for p in properties]
    if not property_ids:
        return {}

    units = await _get_rows(
        session,
        "units",
        [("select", "id,unit_number"), ("property_id", _in_filter(property_ids))],
    )
    return {str(u["id"]): u.get("unit_number") or "" for u in units}


async def fetch_payments(
    session: "BackendSession",
    unit_ids: list[str],
    start_date: date,
    end_date: date | None = None,
    status: PaymentStatus | None = None,
) -> tuple[list[PaymentRecord], dict[str, str]]:
    """
    Rent payments for the given units paid on or after start_date.

    Returns:
        Tuple of (payments newest first, tenant_id -> display name)
    """
    if not unit_ids:
        return [], {}

    params: Params = [
        ("select", PAYMENT_COLUMNS),
        ("unit_id", _in_filter(unit_ids)),
        ("payment_date", f"gte.{start_date.isoformat()}"),
        ("order", "payment_date.desc"),
    ]
    if end_date is not None:
        params.append(("payment_date", f"lte.{end_date.isoformat()}"))
    if status is not None:
        params.append(("status", f"eq.{status.value}"))

    rows = await _get_rows(session, "rent_payments", params)

    payments = []
    tenant_names: dict[str, str] = {}
    for row in rows:
        payment = parse_payment_row(row)
        payments.append(payment)
        name = _tenant_name(row.get("tenants") or {})
        if payment.tenant_id and name:
            tenant_names[payment.tenant_id] = name

    return payments, tenant_names


async def fetch_expenses(
    session: "BackendSession",
    scope: ReportScope,
    start_date: date,
    end_date: date | None = None,
) -> list[ExpenseRecord]:
    """Expenses of the scope's business dated on or after start_date."""
    params: Params = [
        ("select", EXPENSE_COLUMNS),
        ("business_id", f"eq.{scope.business_id}"),
        ("expense_date", f"gte.{start_date.isoformat()}"),
        ("order", "expense_date.desc"),
    ]
    if scope.property_id:
        params.append(("property_id", f"eq.{scope.property_id}"))
    if end_date is not None:
        params.append(("expense_date", f"lte.{end_date.isoformat()}"))

    rows = await _get_rows(session, "expenses", params)
    return [parse_expense_row(row) for row in rows]


async def fetch_scope_payments(
    session: "BackendSession",
    scope: ReportScope,
    start_date: date,
    end_date: date | None = None,
    status: PaymentStatus | None = None,
) -> tuple[list[PaymentRecord], dict[str, str], dict[str, str]]:
    """
    Resolve the scope's units, then fetch their payments.

    Returns:
        Tuple of (payments, tenant_id -> name, unit_id -> unit number)
    """
    unit_labels = await fetch_unit_labels(session, scope)
    payments, tenant_names = await fetch_payments(
        session, list(unit_labels), start_date, end_date, status
    )
    return payments, tenant_names, unit_labels


async def generate_owner_report(
    session: "BackendSession",
    scope: ReportScope,
    period_months: int | str | None = 6,
    now: date | datetime | None = None,
) -> OwnerReport:
    """
    Fetch a scope's records for the lookback period and build its report.

    Payments (with their unit and tenant lookups) and expenses are
    independent reads and are fetched concurrently.
    """
    # Pin the reference date so the fetch cutoff and the buckets agree
    today = as_date(now)
    window = period_window(period_months, today)
    logger.info(
        f"Building {window.months}-month owner report for business {scope.business_id} "
        f"since {window.start_date.isoformat()}"
    )

    (payments, tenant_names, unit_labels), expenses = await asyncio.gather(
        fetch_scope_payments(session, scope, window.start_date),
        fetch_expenses(session, scope, window.start_date),
    )

    return build_owner_report(
        payments,
        expenses,
        tenant_names,
        unit_labels,
        period_months=window.months,
        now=today,
    )


async def generate_income_report(
    session: "BackendSession", scope: ReportScope, start_date: date, end_date: date
) -> IncomeReport:
    """Paid rent collected in the scope between two dates."""
    payments, _, _ = await fetch_scope_payments(
        session, scope, start_date, end_date, status=PaymentStatus.PAID
    )
    return income_report(payments, start_date, end_date)


async def generate_expense_report(
    session: "BackendSession", scope: ReportScope, start_date: date, end_date: date
) -> ExpenseReport:
    """Expenses in the scope between two dates, by category."""
    expenses = await fetch_expenses(session, scope, start_date, end_date)
    return expense_report(expenses, start_date, end_date)


async def generate_tax_report(session: "BackendSession", scope: ReportScope, year: int) -> TaxReport:
    """Calendar-year income and expense totals for the scope."""
    start_date = date(year, 1, 1)
    end_date = date(year, 12, 31)
    (payments, _, _), expenses = await asyncio.gather(
        fetch_scope_payments(session, scope, start_date, end_date, status=PaymentStatus.PAID),
        fetch_expenses(session, scope, start_date, end_date),
    )
    return tax_report(payments, expenses, year)
