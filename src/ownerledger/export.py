# ABOUTME: CSV export of owner financial reports
# ABOUTME: Renders monthly breakdown, summary, and recent payments as one CSV document

import csv
import io
from decimal import Decimal

from ownerledger.types import OwnerReport


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def report_to_csv(report: OwnerReport) -> str:
    """
    Render an owner report as CSV text.

    The monthly breakdown is followed directly by a Total row; a blank
    row then separates the recent transactions section.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    writer.writerow(["Month", "Income", "Expenses", "Net"])
    for bucket in report.monthly_breakdown:
        writer.writerow(
            [bucket.label, _money(bucket.income), _money(bucket.expenses), _money(bucket.net)]
        )

    summary = report.summary
    writer.writerow(
        [
            "Total",
            _money(summary.total_income),
            _money(summary.total_expenses),
            _money(summary.net_income),
        ]
    )

    writer.writerow([])
    writer.writerow(["Date", "Tenant", "Unit", "Amount", "Status"])
    for txn in report.recent_transactions:
        writer.writerow(
            [txn.date.isoformat(), txn.tenant, txn.unit, _money(txn.amount), txn.status.value]
        )

    return buffer.getvalue()
