# ABOUTME: OwnerLedger package for owner financial reporting
# ABOUTME: Exports create_server, the report builder, and version info

from ownerledger.reporting import build_owner_report
from ownerledger.server import create_server

__version__ = "0.1.0"
__all__ = ["build_owner_report", "create_server", "__version__"]
