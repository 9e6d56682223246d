"""
Grafana HTTP API client.

Thin wrapper around a requests.Session that sends the bearer token and
returns status code plus body for every call, leaving the interpretation
of the status to the caller. Nothing is retried.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests

from .config import GrafanaTarget
from .errors import ConnectivityError, TransportError

logger = logging.getLogger(__name__)

# Lines/characters of a raw error body shown to the user
ERROR_BODY_LINES = 3
ERROR_BODY_CHARS = 300


@dataclass
class ApiResponse:
    """Status code and body of one Grafana API call."""
    status_code: int
    text: str
    body: Any = None

    @classmethod
    def from_response(cls, response) -> "ApiResponse":
        text = response.text or ""
        try:
            body = json.loads(text) if text else None
        except ValueError:
            body = None
        return cls(status_code=response.status_code, text=text, body=body)

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    def field(self, name: str, default: Any = None) -> Any:
        """Read a top-level field of a JSON object body."""
        if isinstance(self.body, dict):
            return self.body.get(name, default)
        return default

    def error_message(self, limit: int = ERROR_BODY_CHARS) -> str:
        """Human-readable error: ``message``/``error`` field or the raw body head."""
        for key in ("message", "error"):
            value = self.field(key)
            if value:
                return str(value)

        head = "\n".join(self.text.strip().splitlines()[:ERROR_BODY_LINES])
        if len(head) > limit:
            head = head[:limit] + "..."
        return head


class GrafanaClient:
    """Authenticated access to the Grafana endpoints used for export/import."""

    def __init__(self, target: GrafanaTarget, session: Optional[requests.Session] = None):
        self.target = target
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {target.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        })
        self.session.verify = target.verify_tls

    def close(self):
        self.session.close()

    def __enter__(self) -> "GrafanaClient":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ============ Raw requests ============

    def _request(self, method: str, path: str, payload: Any = None,
                 params: Optional[Dict[str, str]] = None) -> ApiResponse:
        url = self.target.api_url(path)
        self._log_curl(method, url, params, payload is not None)

        try:
            if payload is None:
                response = self.session.request(method, url, params=params)
            else:
                response = self.session.request(
                    method, url, params=params,
                    data=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
                )
        except requests.RequestException as e:
            logger.debug(f"{method} {url} raised {e!r}")
            raise TransportError(method, url, e) from e

        result = ApiResponse.from_response(response)
        logger.debug(f"HTTP Response Code: {result.status_code}")
        return result

    def _log_curl(self, method: str, url: str, params: Optional[Dict[str, str]], has_body: bool):
        if not logger.isEnabledFor(logging.DEBUG):
            return
        if params:
            url = f"{url}?{urlencode(params)}"
        parts = ["curl -s", f"-X {method}", '-H "Authorization: Bearer [REDACTED]"']
        if has_body:
            parts.append('-H "Content-Type: application/json" --data-binary @-')
        parts.append(f'"{url}"')
        logger.debug("[CMD] " + " ".join(parts))

    def get(self, path: str, params: Optional[Dict[str, str]] = None) -> ApiResponse:
        return self._request("GET", path, params=params)

    def post(self, path: str, payload: Any) -> ApiResponse:
        return self._request("POST", path, payload=payload)

    # ============ Connectivity ============

    def check_connection(self, path: str) -> None:
        """Probe an endpoint; anything but HTTP 200 is fatal."""
        try:
            response = self.get(path)
        except TransportError as e:
            raise ConnectivityError(f"Failed to connect to Grafana API: {e.cause}") from e

        if not response.ok:
            raise ConnectivityError(
                f"Failed to connect to Grafana API. HTTP status code: {response.status_code}"
            )
        logger.info(f"Connected to Grafana API at {self.target.url}")

    # ============ Datasources ============

    def list_datasources(self) -> ApiResponse:
        return self.get("/api/datasources")

    def create_datasource(self, datasource: Dict[str, Any]) -> ApiResponse:
        return self.post("/api/datasources", datasource)

    # ============ Dashboards ============

    def search_dashboards(self) -> ApiResponse:
        return self.get("/api/search", params={"type": "dash-db"})

    def get_dashboard(self, uid: str) -> ApiResponse:
        return self.get(f"/api/dashboards/uid/{uid}")

    def import_dashboard(self, payload: Dict[str, Any]) -> ApiResponse:
        return self.post("/api/dashboards/db", payload)

    # ============ Folders ============

    def get_folder(self, uid: str) -> ApiResponse:
        return self.get(f"/api/folders/{uid}")

    def create_folder(self, uid: str, title: str) -> ApiResponse:
        return self.post("/api/folders", {"uid": uid, "title": title})

