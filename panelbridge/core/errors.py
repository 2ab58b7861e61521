# panelbridge/core/errors.py
from __future__ import annotations


class BridgeError(Exception):
    """
    Base class for all expected operational errors in panelbridge.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, status snapshots, etc.)
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
# Configuration / setup errors (no device access yet)
# ---------------------------------------------------------------------------

class ConfigError(BridgeError):
    """
    Metadata or configuration is invalid.

    Examples:
      - missing / malformed YAML file
      - unknown transport name or driver key
      - invalid / missing transport parameters
      - join table entry with an unknown action
    """
    code = "config_error"


# ---------------------------------------------------------------------------
# Connection lifecycle errors (absorbed by DeviceSession)
# ---------------------------------------------------------------------------

class DeviceConnectError(BridgeError):
    """
    Transport could not be opened.

    Examples:
      - connection refused
      - host unreachable / connect timeout
      - serial port not found
    """
    code = "device_connect_error"


class DeviceDisconnectedError(BridgeError):
    """
    Device was connected but the link failed during read or write.

    Examples:
      - peer closed the socket
      - write timeout on a dead socket
      - cable removed
    """
    code = "device_disconnected"


# ---------------------------------------------------------------------------
# Protocol errors
# ---------------------------------------------------------------------------

class ProtocolMismatchError(BridgeError):
    """
    Received bytes never complete a valid frame.

    The session stays connected; the offending bytes are discarded.
    """
    code = "protocol_mismatch"
