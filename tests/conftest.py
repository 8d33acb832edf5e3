# ABOUTME: Pytest fixtures for OwnerLedger tests
# ABOUTME: Provides canned PostgREST rows, a mock backend session, and record builders

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from ownerledger.types import ExpenseRecord, PaymentRecord, PaymentStatus


def _response(data, status_code: int = 200) -> httpx.Response:
    request = httpx.Request("GET", "https://project.supabase.co/rest/v1/table")
    return httpx.Response(status_code, json=data, request=request)


@pytest.fixture
def make_response():
    """Factory for httpx responses carrying JSON bodies."""
    return _response


@pytest.fixture
def make_payment():
    """Factory for PaymentRecord with sensible defaults."""

    def _make(
        id: str = "pay-1",
        amount_cents: int = 100000,
        payment_date: date | None = date(2024, 2, 10),
        status: PaymentStatus | str = PaymentStatus.PAID,
        tenant_id: str | None = "tenant-1",
        unit_id: str | None = "unit-1",
    ) -> PaymentRecord:
        return PaymentRecord(
            id=id,
            amount_cents=amount_cents,
            due_date=payment_date,
            payment_date=payment_date,
            status=status,
            tenant_id=tenant_id,
            unit_id=unit_id,
        )

    return _make


@pytest.fixture
def make_expense():
    """Factory for ExpenseRecord with sensible defaults."""

    def _make(
        id: str = "exp-1",
        amount_cents: int = 25000,
        expense_date: date = date(2024, 2, 20),
        category: str = "maintenance",
    ) -> ExpenseRecord:
        return ExpenseRecord(
            id=id, amount_cents=amount_cents, expense_date=expense_date, category=category
        )

    return _make


@pytest.fixture
def table_rows():
    """Canned PostgREST rows keyed by table name."""
    return {
        "business_users": [
            {
                "id": "bu-1",
                "business_id": "biz-1",
                "role": "property_owner",
                "businesses": {"id": "biz-1", "business_name": "Maple Rentals", "slug": "maple"},
            }
        ],
        "properties": [{"id": "prop-1"}],
        "units": [
            {"id": "unit-1", "unit_number": "101"},
            {"id": "unit-2", "unit_number": "102"},
        ],
        "rent_payments": [
            {
                "id": "pay-1",
                "amount_cents": 100000,
                "due_date": "2024-02-01",
                "payment_date": "2024-02-10",
                "status": "paid",
                "tenant_id": "tenant-1",
                "unit_id": "unit-1",
                "tenants": {"first_name": "Ada", "last_name": "Lovelace", "unit_id": "unit-1"},
            },
            {
                "id": "pay-2",
                "amount_cents": 90000,
                "due_date": "2024-03-01",
                "payment_date": "2024-03-02",
                "status": "pending",
                "tenant_id": "tenant-2",
                "unit_id": "unit-2",
                "tenants": {"first_name": "Alan", "last_name": "Turing", "unit_id": "unit-2"},
            },
        ],
        "expenses": [
            {
                "id": "exp-1",
                "amount_cents": 25000,
                "expense_date": "2024-02-20",
                "category": "repair",
            }
        ],
    }


@pytest.fixture
def mock_backend_session(table_rows):
    """Create a mock backend session that serves table_rows."""
    session = MagicMock()
    session.user_id = "user-1"
    session.is_valid = AsyncMock(return_value=True)
    session.ensure_authenticated = AsyncMock()
    session.close = AsyncMock()

    async def _select(table, params=None):
        return _response(table_rows.get(table, []))

    session.select = AsyncMock(side_effect=_select)
    return session


@pytest.fixture
def mock_get_client(mock_backend_session):
    """Create an async factory that returns the mock session."""

    async def _get_client():
        return mock_backend_session

    return _get_client
