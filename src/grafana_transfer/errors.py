"""
Grafana Transfer error types.

Fatal errors stop a command before any item is processed. Per-item errors
are caught by the reconciler and recorded in the run summary.
"""


class GrafanaTransferError(Exception):
    """Base class for all grafana-transfer errors."""


class ConfigurationError(GrafanaTransferError):
    """Missing or invalid command line / config file input."""


class MissingSettingError(ConfigurationError):
    """A required setting was given neither as a flag, env var nor config file."""


class EmptyInputError(ConfigurationError):
    """The input selection contains no JSON documents."""


class ConnectivityError(GrafanaTransferError):
    """The Grafana API cannot be reached or rejected the credentials."""


class ExportError(GrafanaTransferError):
    """An export could not fetch what it needs from Grafana."""


class ItemValidationError(GrafanaTransferError):
    """A source document is not a usable JSON object."""


class TransportError(GrafanaTransferError):
    """A single HTTP request failed before a response was received."""

    def __init__(self, method: str, url: str, cause: Exception):
        self.method = method
        self.url = url
        self.cause = cause
        super().__init__(f"{method} {url} failed: {cause}")
