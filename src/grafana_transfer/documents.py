"""
JSON document helpers for exported Grafana objects.

Parsing, the id/uid stripping done before re-import, the two dashboard file
shapes, credential patching and the export file naming scheme.
"""

import copy
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .errors import ItemValidationError

DEFAULT_FOLDER_TITLE = "Imported Folder"


def parse_document(text: str, source: str = "<input>") -> Dict[str, Any]:
    """Parse a JSON object, raising ItemValidationError for anything else."""
    try:
        doc = json.loads(text)
    except ValueError as e:
        raise ItemValidationError(f"invalid JSON in {source}: {e}") from e

    if not isinstance(doc, dict):
        raise ItemValidationError(f"expected a JSON object in {source}, got {type(doc).__name__}")
    return doc


def dump_document(doc: Any) -> str:
    """Pretty-print a document the way exported files are written."""
    return json.dumps(doc, indent=2, ensure_ascii=False) + "\n"


def strip_datasource_ids(datasource: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a datasource without the instance-specific ``id`` and ``uid``."""
    return {k: v for k, v in datasource.items() if k not in ("id", "uid")}


def set_datasource_password(datasource: Dict[str, Any], password: str) -> Dict[str, Any]:
    """Copy of a datasource with ``secureJsonData.password`` set."""
    patched = copy.deepcopy(datasource)
    secure = patched.get("secureJsonData")
    if not isinstance(secure, dict):
        secure = {}
    secure["password"] = password
    patched["secureJsonData"] = secure
    return patched


# ============ Dashboards ============

class DashboardShape(Enum):
    """Layout of a dashboard file."""
    RAW = "raw"          # dashboard model at top level
    WRAPPED = "wrapped"  # {"dashboard": {...}, "meta": {...}} as returned by the API


@dataclass(frozen=True)
class FolderRef:
    """Folder a dashboard lived in on the source instance."""
    uid: str
    title: Optional[str] = None

    @property
    def display_title(self) -> str:
        return self.title or DEFAULT_FOLDER_TITLE


@dataclass
class DashboardDocument:
    """A dashboard file resolved to one of its two shapes."""
    shape: DashboardShape
    dashboard: Dict[str, Any]
    meta: Dict[str, Any]

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "DashboardDocument":
        if "dashboard" in doc and doc["dashboard"] is not None:
            dashboard = doc["dashboard"]
            if not isinstance(dashboard, dict):
                raise ItemValidationError("'dashboard' must be a JSON object")
            meta = doc.get("meta") if isinstance(doc.get("meta"), dict) else {}
            return cls(DashboardShape.WRAPPED, dashboard, meta)
        return cls(DashboardShape.RAW, doc, {})

    @property
    def title(self) -> str:
        return self.dashboard.get("title") or "unknown"

    @property
    def uid(self) -> str:
        return self.dashboard.get("uid") or "none"

    @property
    def folder_ref(self) -> Optional[FolderRef]:
        """Source folder, only known for the wrapped shape."""
        if self.shape is not DashboardShape.WRAPPED:
            return None
        folder_uid = self.meta.get("folderUid")
        if not folder_uid or folder_uid == "null":
            return None
        return FolderRef(uid=str(folder_uid), title=self.meta.get("folderTitle") or None)

    def import_payload(self, overwrite: bool, folder_id: Optional[int] = None) -> Dict[str, Any]:
        """Body for POST /api/dashboards/db."""
        dashboard = {k: v for k, v in self.dashboard.items() if k != "id"}
        payload: Dict[str, Any] = {"dashboard": dashboard, "overwrite": bool(overwrite)}
        if folder_id is not None:
            payload["folderId"] = folder_id
        return payload


# ============ File naming ============

def sanitize_name(name: Any) -> str:
    """Replace spaces and slashes so a name is usable in a file name."""
    return str(name).replace(" ", "_").replace("/", "_")


def datasource_filename(datasource: Dict[str, Any]) -> str:
    ds_id = datasource.get("id")
    if ds_id is None:
        ds_id = 0
    name = datasource.get("name") or "unknown"
    return f"datasource_{ds_id}_{sanitize_name(name)}.json"


def dashboard_filename(uid: str, name: Any) -> str:
    return f"dashboard_{uid}_{sanitize_name(name or 'unknown')}.json"
