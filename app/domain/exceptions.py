"""Centralized exception hierarchy for Farmgate.

All domain and service exceptions inherit from :class:`FarmgateError` so that
callers can catch a single base class when they need a broad safety net, yet
still match on specific subclasses where narrower handling is appropriate.

Blueprint-level error handling (see ``app/utils/http.safe_route``) maps these
to the correct HTTP status codes automatically.

Hierarchy
---------
::

    FarmgateError (base, maps to 500)
    ├── ValidationError           (400: bad input from caller)
    ├── MalformedMessageError     (400: unparseable telemetry payload)
    ├── ServiceError              (500: business-logic failure)
    │   └── ExternalServiceError  (502: third-party / network)
    │       └── UpstreamFetchError (502: weather feed)
    ├── DeviceError               (503: hardware communication)
    │   └── TransportError        (503: MQTT publish failure)
    └── ConfigurationError        (500: missing / invalid config)
"""

from __future__ import annotations


class FarmgateError(Exception):
    """Base exception for all Farmgate application errors.

    Parameters
    ----------
    message:
        Human-readable description (logged server-side, **not** leaked to
        the HTTP client unless the exception class opts in).
    detail:
        Optional machine-readable context dict attached to the error for
        structured logging.
    """

    http_status: int = 500

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}


# ── Client errors (4xx) ──────────────────────────────────────────────


class ValidationError(FarmgateError):
    """Caller supplied invalid or incomplete input (HTTP 400)."""

    http_status: int = 400


class MalformedMessageError(FarmgateError):
    """Inbound telemetry could not be parsed into a reading."""

    http_status: int = 400


# ── Server errors (5xx) ──────────────────────────────────────────────


class ServiceError(FarmgateError):
    """Business-logic failure in a service method (HTTP 500)."""

    http_status: int = 500


class ExternalServiceError(ServiceError):
    """Third-party or network dependency failure (HTTP 502)."""

    http_status: int = 502


class UpstreamFetchError(ExternalServiceError):
    """The external weather feed could not be fetched or decoded."""


class DeviceError(FarmgateError):
    """Hardware communication or device-protocol failure (HTTP 503)."""

    http_status: int = 503


class TransportError(DeviceError):
    """A command could not be handed to the MQTT broker."""


class ConfigurationError(FarmgateError):
    """Missing or invalid application configuration (HTTP 500)."""

    http_status: int = 500
