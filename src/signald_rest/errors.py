"""
signald-rest error types.

Every gateway error carries a short machine-readable ``code`` next to the
human-readable message. The HTTP layer turns them into ``{"error": ...}``.
"""

from typing import Any, Optional


class SignaldRestError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ValidationError(SignaldRestError):
    """Malformed or contradictory caller input."""

    def __init__(self, message: str, code: str = "validation_error"):
        super().__init__(code, message)


class InvalidGroupIdError(ValidationError):
    def __init__(self, message: str = "Invalid group id"):
        super().__init__(message, code="invalid_group_id")


class InvalidAttachmentError(SignaldRestError):
    def __init__(self, message: str):
        super().__init__("invalid_attachment", message)


class TransportError(SignaldRestError):
    def __init__(self, message: str):
        super().__init__("transport_error", message)


class ProtocolError(SignaldRestError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("protocol_error", message, details)


class DaemonError(SignaldRestError):
    """Failure reported by signald itself; the message is passed through verbatim."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("daemon_error", message, details)
