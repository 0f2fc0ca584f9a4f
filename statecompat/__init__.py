"""statecompat: version-tolerant object state snapshots.

Captures every persisted field of an object, whatever its visibility, and
restores it from either a legacy (field list) or current (inline values)
payload, running a reconstruction hook afterwards.
"""

from statecompat.codec import (
    PayloadCodec,
    complete_restore,
    default_codec,
    list_fields_for_legacy,
    restore,
    snapshot,
)
from statecompat.config import CompatSettings
from statecompat.errors import (
    FieldAccessError,
    MalformedPayloadError,
    SerializationError,
    StateCompatError,
)
from statecompat.fields import (
    FieldDescriptor,
    FieldRegistry,
    Visibility,
    list_fields,
    persistable,
)
from statecompat.hooks import OnRestored, Persistable, invoke_restore_hook
from statecompat.payload import CurrentPayload, LegacyPayload, Payload, PayloadFormat

__version__ = "0.1.0"

__all__ = [
    "CompatSettings",
    "CurrentPayload",
    "FieldAccessError",
    "FieldDescriptor",
    "FieldRegistry",
    "LegacyPayload",
    "MalformedPayloadError",
    "OnRestored",
    "Payload",
    "PayloadCodec",
    "PayloadFormat",
    "Persistable",
    "SerializationError",
    "StateCompatError",
    "Visibility",
    "complete_restore",
    "default_codec",
    "invoke_restore_hook",
    "list_fields",
    "list_fields_for_legacy",
    "persistable",
    "restore",
    "snapshot",
]
