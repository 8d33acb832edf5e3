# ABOUTME: Owner report tools for the MCP server
# ABOUTME: Owner monthly report, CSV export, income, expense, and tax reports

from datetime import date
from typing import TYPE_CHECKING

from ownerledger.client import with_auth_retry
from ownerledger.exceptions import ValidationError
from ownerledger.export import report_to_csv
from ownerledger.repository import (
    fetch_owner_businesses,
    generate_expense_report,
    generate_income_report,
    generate_owner_report,
    generate_tax_report,
    resolve_scope,
)
from ownerledger.types import OwnerReport, cents_to_decimal

if TYPE_CHECKING:
    from collections.abc import Callable

    from fastmcp import FastMCP

    from ownerledger.auth import BackendSession


def _parse_date_arg(value: str, name: str) -> date:
    try:
        return date.fromisoformat(value)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name} must be YYYY-MM-DD, got {value!r}") from e


def _date_range(start_date: str, end_date: str) -> tuple[date, date]:
    start = _parse_date_arg(start_date, "start_date")
    end = _parse_date_arg(end_date, "end_date")
    if start > end:
        raise ValidationError(f"start_date {start_date} is after end_date {end_date}")
    return start, end


def _owner_report_dict(report: OwnerReport) -> dict:
    return {
        "period_months": report.period_months,
        "start_date": report.start_date.isoformat(),
        "monthly_breakdown": [
            {
                "month": bucket.key,
                "label": bucket.label,
                "income": float(bucket.income),
                "expenses": float(bucket.expenses),
                "net": float(bucket.net),
            }
            for bucket in report.monthly_breakdown
        ],
        "summary": {
            "total_income": float(report.summary.total_income),
            "total_expenses": float(report.summary.total_expenses),
            "net_income": float(report.summary.net_income),
        },
        "recent_transactions": [
            {
                "id": txn.id,
                "date": txn.date.isoformat(),
                "tenant": txn.tenant,
                "unit": txn.unit,
                "amount": float(txn.amount),
                "status": txn.status.value,
            }
            for txn in report.recent_transactions
        ],
    }


def register_report_tools(mcp: "FastMCP", get_client: "Callable") -> None:
    """Register owner report tools with the MCP server."""

    @mcp.tool
    @with_auth_retry
    async def list_owner_businesses() -> list[dict]:
        """
        List the businesses the signed-in user owns properties in.

        Returns:
            List of businesses with id, name, and slug
        """
        session: BackendSession = await get_client()
        businesses = await fetch_owner_businesses(session)
        return [b.model_dump() for b in businesses]

    @mcp.tool
    @with_auth_retry
    async def get_owner_report(
        business_id: str | None = None,
        period: str = "6months",
        property_id: str | None = None,
    ) -> dict:
        """
        Get the owner financial report for a lookback period.

        Income counts paid rent only; expenses count every recorded expense.
        Months without activity are included with zero values.

        Args:
            business_id: Business to report on (default: first owned business)
            period: "3months", "6months", or "12months" (default: 6 months)
            property_id: Restrict the report to one property

        Returns:
            Monthly breakdown (oldest first), totals, and the 10 most
            recent paid payments
        """
        session: BackendSession = await get_client()
        scope = await resolve_scope(session, business_id, property_id)
        report = await generate_owner_report(session, scope, period)
        result = _owner_report_dict(report)
        result["business_id"] = scope.business_id
        return result

    @mcp.tool
    @with_auth_retry
    async def export_owner_report_csv(
        business_id: str | None = None,
        period: str = "6months",
        property_id: str | None = None,
    ) -> str:
        """
        Export the owner financial report as CSV.

        Args:
            business_id: Business to report on (default: first owned business)
            period: "3months", "6months", or "12months"
            property_id: Restrict the report to one property

        Returns:
            CSV text with monthly, total, and recent transaction sections
        """
        session: BackendSession = await get_client()
        scope = await resolve_scope(session, business_id, property_id)
        report = await generate_owner_report(session, scope, period)
        return report_to_csv(report)

    @mcp.tool
    @with_auth_retry
    async def get_income_report(
        start_date: str,
        end_date: str,
        business_id: str | None = None,
    ) -> dict:
        """
        Get paid rent collected over a date range.

        Args:
            start_date: Start date (YYYY-MM-DD)
            end_date: End date (YYYY-MM-DD)
            business_id: Business to report on (default: first owned business)

        Returns:
            Total, payment count, average payment, and payments newest first
        """
        start, end = _date_range(start_date, end_date)
        session: BackendSession = await get_client()
        scope = await resolve_scope(session, business_id)
        report = await generate_income_report(session, scope, start, end)

        return {
            "business_id": scope.business_id,
            "period": {"start": start_date, "end": end_date},
            "total": float(report.total),
            "payment_count": report.payment_count,
            "average_payment": float(report.average_payment),
            "payments": [
                {
                    "id": p.id,
                    "date": p.payment_date.isoformat() if p.payment_date else None,
                    "amount": float(cents_to_decimal(p.amount_cents)),
                    "tenant_id": p.tenant_id,
                    "unit_id": p.unit_id,
                }
                for p in report.payments
            ],
        }

    @mcp.tool
    @with_auth_retry
    async def get_expense_report(
        start_date: str,
        end_date: str,
        business_id: str | None = None,
    ) -> dict:
        """
        Get expenses over a date range, totalled by category.

        Args:
            start_date: Start date (YYYY-MM-DD)
            end_date: End date (YYYY-MM-DD)
            business_id: Business to report on (default: first owned business)

        Returns:
            Total, per-category totals, and the expenses sorted by category
        """
        start, end = _date_range(start_date, end_date)
        session: BackendSession = await get_client()
        scope = await resolve_scope(session, business_id)
        report = await generate_expense_report(session, scope, start, end)

        return {
            "business_id": scope.business_id,
            "period": {"start": start_date, "end": end_date},
            "total": float(report.total),
            "by_category": {k: float(v) for k, v in report.by_category.items()},
            "expenses": [
                {
                    "id": e.id,
                    "date": e.expense_date.isoformat(),
                    "category": e.category,
                    "amount": float(cents_to_decimal(e.amount_cents)),
                }
                for e in report.expenses
            ],
        }

    @mcp.tool
    @with_auth_retry
    async def get_tax_report(year: int, business_id: str | None = None) -> dict:
        """
        Get calendar-year income, expenses, and net income for tax filing.

        Args:
            year: Four-digit calendar year
            business_id: Business to report on (default: first owned business)

        Returns:
            Yearly totals with expenses broken down by category
        """
        if not 1900 <= year <= 9999:
            raise ValidationError(f"year must be a four-digit year, got {year}")

        session: BackendSession = await get_client()
        scope = await resolve_scope(session, business_id)
        report = await generate_tax_report(session, scope, year)

        return {
            "business_id": scope.business_id,
            "year": report.year,
            "total_income": float(report.total_income),
            "total_expenses": float(report.total_expenses),
            "net_income": float(report.net_income),
            "expenses_by_category": {
                k: float(v) for k, v in report.expenses_by_category.items()
            },
        }
