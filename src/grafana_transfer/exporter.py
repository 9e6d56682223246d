"""
Export Grafana datasources and dashboards to one JSON file each.

File names follow ``<kind>_<id-or-uid>_<sanitized-name>.json``. A full
export first removes the previous files of the same kind from the output
directory so deleted objects do not linger.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .client import ApiResponse, GrafanaClient
from .documents import dashboard_filename, datasource_filename, dump_document, sanitize_name
from .errors import ConfigurationError, ExportError, TransportError

logger = logging.getLogger(__name__)


@dataclass
class ExportSummary:
    """Files written by one export run."""
    total: int = 0
    exported: int = 0
    failed: int = 0
    files: List[Path] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0


def ensure_output_dir(output_dir: Path) -> Path:
    """Create the output directory when missing."""
    output_dir = Path(output_dir)
    if output_dir.exists() and not output_dir.is_dir():
        raise ConfigurationError(f"Output path is not a directory: {output_dir}")
    if not output_dir.exists():
        output_dir.mkdir(parents=True)
        logger.info(f"Directory created: {output_dir}")
    return output_dir


def _clean(output_dir: Path, pattern: str):
    for old in output_dir.glob(pattern):
        if old.is_file():
            logger.debug(f"Removing old export: {old}")
            old.unlink()


def _fetch_list(response_getter: Callable[[], ApiResponse], what: str) -> List[Dict[str, Any]]:
    try:
        response = response_getter()
    except TransportError as e:
        raise ExportError(f"Failed to fetch {what} from Grafana API: {e.cause}") from e

    if not response.ok:
        raise ExportError(
            f"Failed to fetch {what} from Grafana API (HTTP {response.status_code}): "
            f"{response.error_message()}"
        )
    if not isinstance(response.body, list):
        raise ExportError("Invalid JSON response from Grafana API")
    return [entry for entry in response.body if isinstance(entry, dict)]


def _write(path: Path, doc: Any, summary: ExportSummary,
           on_exported: Optional[Callable[[Path], None]]):
    path.write_text(dump_document(doc), encoding="utf-8")
    summary.exported += 1
    summary.files.append(path)
    if on_exported:
        on_exported(path)


# ============ Datasources ============

def export_datasources(
    client: GrafanaClient,
    output_dir: Path,
    on_exported: Optional[Callable[[Path], None]] = None,
) -> ExportSummary:
    """Write every datasource of the instance to its own file."""
    output_dir = ensure_output_dir(output_dir)
    datasources = _fetch_list(client.list_datasources, "datasources")

    summary = ExportSummary(total=len(datasources))
    if not datasources:
        return summary

    _clean(output_dir, "datasource_*.json")

    for datasource in datasources:
        path = output_dir / datasource_filename(datasource)
        logger.debug(f"Processing datasource ID: {datasource.get('id')}, Name: {datasource.get('name')}")
        try:
            _write(path, datasource, summary, on_exported)
        except OSError as e:
            summary.failed += 1
            summary.failures.append(f"{path.name}: {e}")
            logger.warning(f"Failed to export datasource ID {datasource.get('id')}: {e}")

    return summary


# ============ Dashboards ============

def _dashboard_or_error(client: GrafanaClient, uid: str) -> Dict[str, Any]:
    try:
        response = client.get_dashboard(uid)
    except TransportError as e:
        raise ExportError(f"Failed to fetch dashboard with UID {uid}: {e.cause}") from e

    if not isinstance(response.body, dict):
        raise ExportError(f"Invalid JSON response for dashboard UID: {uid}")
    if "message" in response.body or not response.ok:
        raise ExportError(f"Dashboard not found: {response.error_message()}")
    return response.body


def export_dashboard(client: GrafanaClient, output_dir: Path, uid: str) -> Path:
    """Write a single dashboard, looked up by UID."""
    output_dir = ensure_output_dir(output_dir)
    doc = _dashboard_or_error(client, uid)

    dashboard = doc.get("dashboard") or {}
    meta = doc.get("meta") or {}
    name = meta.get("slug") or dashboard.get("title") or "unknown"
    path = output_dir / dashboard_filename(dashboard.get("uid") or "unknown", name)

    logger.debug(f"Processing dashboard: {name} (UID: {dashboard.get('uid')})")
    path.write_text(dump_document(doc), encoding="utf-8")
    return path


def export_dashboards(
    client: GrafanaClient,
    output_dir: Path,
    uid: Optional[str] = None,
    on_exported: Optional[Callable[[Path], None]] = None,
) -> ExportSummary:
    """Write every dashboard (or only ``uid``) to its own file.

    In the all-dashboards mode a dashboard that cannot be fetched is
    counted as failed and the export continues.
    """
    if uid:
        path = export_dashboard(client, output_dir, uid)
        summary = ExportSummary(total=1, exported=1, files=[path])
        if on_exported:
            on_exported(path)
        return summary

    output_dir = ensure_output_dir(output_dir)
    found = _fetch_list(client.search_dashboards, "dashboards")

    summary = ExportSummary(total=len(found))
    if not found:
        return summary

    _clean(output_dir, "dashboard_*.json")

    for entry in found:
        entry_uid = entry.get("uid")
        title = entry.get("title") or "unknown"
        if not entry_uid:
            summary.failed += 1
            summary.failures.append(f"{title}: missing uid in search result")
            logger.warning(f"Skipping dashboard without uid: {title}")
            continue
        logger.debug(f"Fetching dashboard: {title} (UID: {entry_uid})")

        try:
            response = client.get_dashboard(entry_uid)
        except TransportError as e:
            summary.failed += 1
            summary.failures.append(f"{title}: {e.cause}")
            logger.warning(f"Failed to fetch dashboard: {title}")
            continue

        if not response.ok or not isinstance(response.body, dict):
            summary.failed += 1
            summary.failures.append(f"{title}: HTTP {response.status_code}")
            logger.warning(f"Invalid response for dashboard: {title} (HTTP {response.status_code})")
            continue

        slug = (response.body.get("meta") or {}).get("slug")
        path = output_dir / dashboard_filename(entry_uid, slug or sanitize_name(title))
        try:
            _write(path, response.body, summary, on_exported)
        except OSError as e:
            summary.failed += 1
            summary.failures.append(f"{title}: {e}")
            logger.warning(f"Failed to export dashboard {title}: {e}")

    return summary
