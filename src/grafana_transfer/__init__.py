"""
Grafana Transfer - move Grafana datasources and dashboards between instances

- Export datasources and dashboards to one JSON file each
- Patch datasource passwords into exported files
- Re-import them into another Grafana, folders included

Quick Start:
    pip install grafana-transfer
    grafana-transfer export-dashboards -u https://grafana.example.com -t TOKEN -o ./dashboards
"""

__version__ = "1.0.0"

# Export main classes for programmatic use
from .config import GrafanaTarget, load_target
from .client import GrafanaClient, ApiResponse
from .reconcile import (
    ImportItem,
    ImportKind,
    ImportOptions,
    ImportOutcome,
    ItemResult,
    RunSummary,
    collect_items,
    reconcile,
)
from .exporter import ExportSummary, export_dashboards, export_datasources
from .credentials import add_datasource_password

__all__ = [
    "GrafanaTarget",
    "GrafanaClient",
    "ApiResponse",
    "ImportItem",
    "ImportKind",
    "ImportOptions",
    "ImportOutcome",
    "ItemResult",
    "RunSummary",
    "ExportSummary",
    "load_target",
    "collect_items",
    "reconcile",
    "export_datasources",
    "export_dashboards",
    "add_datasource_password",
]
