"""
Grafana Transfer Configuration - Resolve the target Grafana instance

Values come from command line flags, then environment variables, then an
optional YAML config file:

    grafana:
      url: https://grafana.example.com
      token: glsa_xxx
      verify_tls: true
"""

import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass

import yaml

from .errors import ConfigurationError, MissingSettingError

logger = logging.getLogger(__name__)

DATASOURCES_API_SUFFIX = "/api/datasources"


def normalize_base_url(url: str) -> str:
    """Strip trailing slashes and a trailing datasources endpoint."""
    url = (url or "").strip().rstrip("/")
    # Older invocations passed the full datasources endpoint
    if url.endswith(DATASOURCES_API_SUFFIX):
        url = url[: -len(DATASOURCES_API_SUFFIX)].rstrip("/")
    return url


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class GrafanaTarget:
    """API base URL and bearer credential of a Grafana instance."""
    url: str
    token: str
    verify_tls: bool = True

    def validate(self) -> "GrafanaTarget":
        """Check the URL scheme and token presence."""
        if not self.url:
            raise MissingSettingError("Grafana URL is required. Use -u option.")
        if not self.url.startswith(("http://", "https://")):
            raise ConfigurationError("Grafana URL must start with http:// or https://")
        if not self.token:
            raise MissingSettingError("Grafana token is required. Use -t option.")
        return self

    def api_url(self, path: str) -> str:
        """Join an API path onto the base URL."""
        return f"{self.url}/{path.lstrip('/')}"


def default_config_file() -> Optional[Path]:
    """Locate the config file from the environment, if any."""
    if "GRAFANA_TRANSFER_CONFIG" in os.environ:
        return Path(os.environ["GRAFANA_TRANSFER_CONFIG"])

    xdg_config = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    candidate = Path(xdg_config) / "grafana-transfer" / "config.yaml"
    if candidate.exists():
        return candidate
    return None


def load_config_file(path: Optional[Path]) -> Dict[str, Any]:
    """Read the ``grafana`` section of a YAML config file."""
    if path is None:
        return {}

    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file does not exist: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    section = data.get("grafana", {}) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'grafana' section in {path} must be a mapping")

    logger.debug(f"Loaded config file: {path}")
    return section


def load_target(
    url: Optional[str] = None,
    token: Optional[str] = None,
    config_file: Optional[Path] = None,
) -> GrafanaTarget:
    """Build a validated GrafanaTarget.

    Precedence: explicit arguments, then GRAFANA_URL / GRAFANA_TOKEN /
    GRAFANA_VERIFY_TLS, then the config file.
    """
    file_values = load_config_file(config_file if config_file else default_config_file())

    resolved_url = url or os.environ.get("GRAFANA_URL") or file_values.get("url") or ""
    resolved_token = token or os.environ.get("GRAFANA_TOKEN") or file_values.get("token") or ""

    verify_tls = file_values.get("verify_tls", True)
    if os.environ.get("GRAFANA_VERIFY_TLS"):
        verify_tls = os.environ["GRAFANA_VERIFY_TLS"]

    target = GrafanaTarget(
        url=normalize_base_url(str(resolved_url)),
        token=str(resolved_token).strip(),
        verify_tls=_parse_bool(verify_tls),
    )
    return target.validate()
