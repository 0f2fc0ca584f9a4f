"""Tests for the statecompat error hierarchy."""

import pytest

from statecompat import (
    FieldAccessError,
    MalformedPayloadError,
    SerializationError,
    StateCompatError,
)
from tests.helpers import Demo


def test_error_hierarchy():
    """Test error inheritance hierarchy."""
    assert issubclass(SerializationError, StateCompatError)
    assert issubclass(MalformedPayloadError, SerializationError)
    assert issubclass(FieldAccessError, SerializationError)

    # All inherit from Exception
    assert issubclass(StateCompatError, Exception)


def test_field_access_error_attributes():
    """Test FieldAccessError stores the field and its declaring type."""
    error = FieldAccessError("flags", Demo, "write failed")

    assert error.field_name == "flags"
    assert error.declaring_type is Demo
    assert error.reason == "write failed"


def test_field_access_error_message():
    """Test FieldAccessError names the field and declaring type."""
    error = FieldAccessError("flags", Demo, "write failed")

    assert "flags" in str(error)
    assert "Demo" in str(error)
    assert "write failed" in str(error)


def test_field_access_error_without_reason():
    error = FieldAccessError("flags", Demo)

    assert str(error) == "Cannot access field 'flags' declared by Demo"


def test_malformed_payload_error_attributes():
    """Test MalformedPayloadError keeps the offending payload type."""
    error = MalformedPayloadError("not a mapping", payload_type=list)

    assert error.payload_type is list
    assert str(error) == "not a mapping"


def test_malformed_payload_error_can_be_caught_as_serialization_error():
    with pytest.raises(SerializationError):
        raise MalformedPayloadError("bad payload")
