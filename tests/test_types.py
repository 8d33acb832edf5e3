# ABOUTME: Tests for OwnerLedger type definitions
# ABOUTME: Validates cents_to_decimal and Pydantic model behavior

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from ownerledger.types import (
    MonthBucket,
    OwnerReport,
    PaymentRecord,
    PaymentStatus,
    ReportScope,
    ReportSummary,
    cents_to_decimal,
)


class TestCentsToDecimal:
    """Test the cents_to_decimal conversion function."""

    def test_converts_cents_to_dollars(self):
        assert cents_to_decimal(150000) == Decimal("1500.00")
        assert cents_to_decimal(100) == Decimal("1.00")
        assert cents_to_decimal(1) == Decimal("0.01")

    def test_handles_zero(self):
        assert cents_to_decimal(0) == Decimal("0.00")

    def test_handles_none(self):
        assert cents_to_decimal(None) == Decimal("0.00")


class TestPaymentRecord:
    """Test the PaymentRecord model."""

    def test_coerces_status_string(self):
        payment = PaymentRecord(id="p1", amount_cents=5000, status="paid")
        assert payment.status is PaymentStatus.PAID
        assert payment.payment_date is None

    def test_rejects_unknown_status(self):
        with pytest.raises(PydanticValidationError):
            PaymentRecord(id="p1", amount_cents=5000, status="bounced")

    def test_is_immutable(self):
        payment = PaymentRecord(id="p1", amount_cents=5000, status="paid")
        with pytest.raises(PydanticValidationError):
            payment.amount_cents = 1


class TestMonthBucket:
    """Test the MonthBucket model."""

    def test_defaults_to_zero(self):
        bucket = MonthBucket(key="2024-02", label="Feb 2024")
        assert bucket.income == Decimal("0.00")
        assert bucket.expenses == Decimal("0.00")
        assert bucket.net == Decimal("0.00")

    def test_accumulates(self):
        bucket = MonthBucket(key="2024-02", label="Feb 2024")
        bucket.income += cents_to_decimal(100000)
        bucket.expenses += cents_to_decimal(25000)
        bucket.net = bucket.income - bucket.expenses
        assert bucket.net == Decimal("750.00")


class TestOwnerReport:
    """Test the OwnerReport model."""

    def test_creates_report(self):
        report = OwnerReport(
            period_months=3,
            start_date=date(2023, 12, 15),
            monthly_breakdown=[MonthBucket(key="2024-01", label="Jan 2024")],
            summary=ReportSummary(),
        )
        assert report.recent_transactions == []
        assert report.summary.net_income == Decimal("0.00")


def test_scope_is_hashable():
    scope = ReportScope(business_id="biz-1")
    assert scope.property_id is None
    assert {scope: 1}[ReportScope(business_id="biz-1")] == 1
