"""Structured error hierarchy for statecompat."""

from __future__ import annotations


class StateCompatError(Exception):
    """Base for all statecompat errors."""

    pass


class SerializationError(StateCompatError):
    """State snapshot/restore failed."""

    pass


class MalformedPayloadError(SerializationError):
    """Restore received something that is not a name -> value mapping."""

    def __init__(self, message: str, payload_type: type | None = None):
        self.payload_type = payload_type
        super().__init__(message)


class FieldAccessError(SerializationError):
    """A persisted field could not be read or written."""

    def __init__(self, field_name: str, declaring_type: type, reason: str = ""):
        self.field_name = field_name
        self.declaring_type = declaring_type
        self.reason = reason
        message = f"Cannot access field '{field_name}' declared by {declaring_type.__qualname__}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
