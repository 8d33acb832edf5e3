# ABOUTME: MCP server entry point for OwnerLedger
# ABOUTME: Configures FastMCP and registers owner report tools

import logging

from fastmcp import FastMCP

from ownerledger.client import get_client
from ownerledger.tools.reports import register_report_tools

logger = logging.getLogger(__name__)


def create_server() -> FastMCP:
    """
    Create and configure the OwnerLedger MCP server.

    Returns:
        Configured FastMCP server instance
    """
    mcp = FastMCP(
        name="ownerledger",
        instructions="""
OwnerLedger provides financial reports for property owners whose rentals are
managed in the property-management backend. You can:

- List the businesses the signed-in owner holds properties in
- Get a 3, 6, or 12 month owner report: monthly income, expenses, and net,
  period totals, and the 10 most recent paid rent payments
- Export the owner report as CSV
- Get income and expense reports for any date range
- Get a calendar-year tax summary with expenses by category

Income only counts rent payments with status "paid". Pending, partial, late,
failed, and refunded payments are excluded. Every recorded expense counts.
All amounts are in dollars.
""",
    )

    register_report_tools(mcp, get_client)

    return mcp


def main() -> None:
    """Run the MCP server."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    server = create_server()
    server.run()


if __name__ == "__main__":
    main()
