# arstream/core/errors.py
from __future__ import annotations


class ArStreamError(Exception):
    """
    Base class for all expected operational errors in arstream.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, logs, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration / setup errors (no I/O yet)
# ---------------------------------------------------------------------------

class ConfigError(ArStreamError):
    """
    Configuration is invalid or references an unknown driver.

    Examples:
      - interval_ms <= 0
      - unknown camera / motion / transport driver key
      - YAML file missing or not a mapping
    """
    code = "config_error"


class InvalidEndpointError(ArStreamError):
    """
    Host text cannot be turned into an endpoint.

    Raised by start() before any connection attempt.
    """
    code = "invalid_endpoint"


class SessionActiveError(ArStreamError):
    """
    start() was called while a session is CONNECTING or STREAMING.
    """
    code = "session_active"


class DeviceError(ArStreamError):
    """
    A capture or motion device could not be opened.

    Examples:
      - camera index not present
      - serial port busy or missing
      - camera access not authorized
    """
    code = "device_error"


# ---------------------------------------------------------------------------
# Connection lifecycle errors
# ---------------------------------------------------------------------------

class HandshakeError(ArStreamError):
    """
    WebSocket handshake failed. Terminal for the session.

    Examples:
      - connection refused
      - host unreachable / DNS failure
      - open timeout
      - server rejected the upgrade
    """
    code = "handshake_failed"


# ---------------------------------------------------------------------------
# Per-cycle errors (recovered by skipping the cycle)
# ---------------------------------------------------------------------------

class CaptureError(ArStreamError):
    """
    Still capture failed for one cycle.

    Examples:
      - camera not open or being torn down
      - a capture is already outstanding
      - driver raised / returned no data
    """
    code = "capture_failed"


class EncodeError(ArStreamError):
    """
    A capture result could not be turned into a wire message.
    """
    code = "encode_failed"


class SendError(ArStreamError):
    """
    Socket write failed for one message. Logged and counted, never escalated.
    """
    code = "send_failed"
