"""Exception types shared across the risk engine."""

from __future__ import annotations


class ClimaRiskError(Exception):
    """Base class for every error raised by climarisk."""


class InvalidRequest(ClimaRiskError, ValueError):
    """Rejected before any upstream fetch: bad location, window or grid."""


class UpstreamUnavailable(ClimaRiskError):
    """A collaborator could not produce data (HTTP error, timeout, bad payload)."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
