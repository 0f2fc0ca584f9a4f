"""Payload codec: snapshot and restore instance state in two payload generations.

Current payloads carry values inline as a ``{key: value}`` mapping. Legacy
payloads only list field keys; the legacy persistence layer stores the values
itself, places them on a fresh instance and then calls
:meth:`PayloadCodec.complete_restore`.

Reads and writes go through ``object.__getattribute__`` / ``object.__setattr__``
so private, protected, slot and frozen-dataclass fields are all reachable.

Restore is best-effort, not transactional: when a write fails, earlier writes
stay in place and the reconstruction hook does not run.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from statecompat.config import CompatSettings
from statecompat.errors import FieldAccessError, MalformedPayloadError
from statecompat.fields import FieldDescriptor, list_fields
from statecompat.hooks import invoke_restore_hook
from statecompat.payload import CurrentPayload, LegacyPayload, Payload, PayloadFormat

logger = logging.getLogger(__name__)

_MISSING = object()


class PayloadCodec:
    """Read and write persisted fields regardless of their visibility."""

    def __init__(self, settings: CompatSettings | None = None):
        """Initialize codec.

        Args:
            settings: Codec settings (defaults read from the environment)
        """
        self._settings = settings or CompatSettings()

    @property
    def settings(self) -> CompatSettings:
        return self._settings

    def fields(self, instance: object, as_type: type | None = None) -> tuple[FieldDescriptor, ...]:
        """Fields of ``as_type`` if given, else of the instance's runtime type."""
        cls = as_type if as_type is not None else type(instance)
        return list_fields(cls, use_cache=self._settings.cache_fields)

    # Serialize path

    def read_values(self, instance: object, as_type: type | None = None) -> dict[str, Any]:
        """Build the field value map of ``instance``.

        Declared fields come first, under their payload keys. Undeclared
        attributes found in the instance ``__dict__`` follow under their
        attribute names. Fields that were never assigned are left out.

        Raises:
            FieldAccessError: A field cannot be read from this instance
        """
        fields = self.fields(instance, as_type)
        values: dict[str, Any] = {}
        for field in fields:
            value = self._read(instance, field)
            if value is not _MISSING:
                values[field.key] = value

        declared = {field.attribute for field in fields}
        for attribute, value in _instance_dict(instance).items():
            if attribute not in declared:
                values.setdefault(attribute, value)
        return values

    def snapshot(self, instance: object, as_type: type | None = None) -> dict[str, Any]:
        """Current payload: the field value map restricted to declared fields.

        Args:
            instance: Object to capture
            as_type: Capture the fields of this type instead of ``type(instance)``

        Returns:
            Ordered mapping of field key -> value
        """
        values = self.read_values(instance, as_type)
        return {
            field.key: values[field.key]
            for field in self.fields(instance, as_type)
            if field.key in values
        }

    def legacy_field_names(self, instance: object, as_type: type | None = None) -> list[str]:
        """Legacy payload: ordered keys of every persisted field."""
        return [field.key for field in self.fields(instance, as_type)]

    def encode(self, instance: object, fmt: PayloadFormat | str = PayloadFormat.CURRENT) -> Payload:
        """Wrap ``instance`` in the payload variant of the requested generation."""
        fmt = PayloadFormat(fmt)
        if fmt is PayloadFormat.LEGACY:
            return LegacyPayload(tuple(self.legacy_field_names(instance)))
        return CurrentPayload(self.snapshot(instance))

    # Restore path

    def restore(
        self,
        instance: object,
        payload: Mapping[str, Any],
        as_type: type | None = None,
    ) -> None:
        """Write a current payload onto ``instance`` and run its hook.

        Fields missing from the payload keep their pre-restore state. Payload
        keys that match no field are ignored.

        Raises:
            MalformedPayloadError: ``payload`` is not a str-keyed mapping
            FieldAccessError: A field cannot be written (earlier writes remain)
        """
        _validate(payload)
        fields = self.fields(instance, as_type)

        for field in fields:
            if field.key in payload:
                self._write(instance, field, payload[field.key])

        if self._settings.log_stray_keys:
            known = {field.key for field in fields}
            stray = [key for key in payload if key not in known]
            if stray:
                logger.debug(f"Ignoring stray payload keys for {type(instance).__qualname__}: {stray}")

        invoke_restore_hook(instance)

    def complete_restore(self, instance: object) -> None:
        """Finish a legacy restore whose values were placed externally."""
        invoke_restore_hook(instance)

    def apply(self, instance: object, payload: Payload) -> None:
        """Restore from either payload variant."""
        if isinstance(payload, CurrentPayload):
            self.restore(instance, payload.values)
        elif isinstance(payload, LegacyPayload):
            self.complete_restore(instance)
        else:
            raise MalformedPayloadError(
                f"Expected LegacyPayload or CurrentPayload, got {type(payload).__qualname__}",
                payload_type=type(payload),
            )

    def _read(self, instance: object, field: FieldDescriptor) -> Any:
        _check_compatible(instance, field)
        try:
            return object.__getattribute__(instance, field.attribute)
        except AttributeError:
            # Declared but never assigned
            return _MISSING
        except Exception as exc:
            raise FieldAccessError(field.name, field.declaring_type, f"read failed: {exc}") from exc

    def _write(self, instance: object, field: FieldDescriptor, value: Any) -> None:
        _check_compatible(instance, field)
        try:
            object.__setattr__(instance, field.attribute, value)
        except (AttributeError, TypeError) as exc:
            raise FieldAccessError(field.name, field.declaring_type, f"write failed: {exc}") from exc


def _check_compatible(instance: object, field: FieldDescriptor) -> None:
    if field.declaring_type not in type(instance).__mro__:
        raise FieldAccessError(
            field.name,
            field.declaring_type,
            f"{type(instance).__qualname__} does not derive from it",
        )


def _validate(payload: Any) -> None:
    if not isinstance(payload, Mapping):
        raise MalformedPayloadError(
            f"Payload must be a mapping of field name to value, got {type(payload).__qualname__}",
            payload_type=type(payload),
        )
    bad_keys = [key for key in payload if not isinstance(key, str)]
    if bad_keys:
        raise MalformedPayloadError(
            f"Payload keys must be field names, got {bad_keys!r}",
            payload_type=type(payload),
        )


def _instance_dict(instance: object) -> dict[str, Any]:
    try:
        return dict(object.__getattribute__(instance, "__dict__"))
    except AttributeError:
        return {}


_default_codec: PayloadCodec | None = None


def default_codec() -> PayloadCodec:
    """Shared codec built from environment settings on first use."""
    global _default_codec
    if _default_codec is None:
        _default_codec = PayloadCodec()
    return _default_codec


def snapshot(instance: object) -> dict[str, Any]:
    """Current payload of ``instance`` using the default codec."""
    return default_codec().snapshot(instance)


def list_fields_for_legacy(instance: object) -> list[str]:
    """Field keys the legacy persistence layer should store for ``instance``."""
    return default_codec().legacy_field_names(instance)


def restore(instance: object, payload: Mapping[str, Any]) -> None:
    """Restore ``instance`` from a current payload using the default codec."""
    default_codec().restore(instance, payload)


def complete_restore(instance: object) -> None:
    """Run the reconstruction hook after an external legacy restore."""
    default_codec().complete_restore(instance)
