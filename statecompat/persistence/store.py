"""Payload store: save instances to JSON envelopes and load them back.

Acts as both external persistence layers. Current envelopes embed the codec's
payload. Legacy envelopes embed the codec's field list and store the field
values keyed by storage attribute, the way the first protocol generation did.
"""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from statecompat.codec import PayloadCodec
from statecompat.config import CompatSettings
from statecompat.errors import MalformedPayloadError, SerializationError
from statecompat.payload import PayloadFormat
from statecompat.persistence.migration import EnvelopeMigration

logger = logging.getLogger(__name__)

# Labels become part of the file name
_LABEL_PATTERN = re.compile(r"[\w.-]*", re.ASCII)


class PayloadStore:
    """Manages payload files: save, load, list."""

    def __init__(
        self,
        directory: str | None = None,
        settings: CompatSettings | None = None,
        codec: PayloadCodec | None = None,
    ):
        """Initialize payload store.

        Args:
            directory: Directory to store envelopes (defaults to settings.store_dir)
            settings: Store and codec settings
            codec: Codec to use (defaults to one built from settings)
        """
        self._settings = settings or CompatSettings()
        self._dir = Path(directory or self._settings.store_dir)
        self._codec = codec or PayloadCodec(self._settings)

        # Create store directory if it doesn't exist
        self._dir.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._dir

    def save(
        self,
        instance: object,
        label: str = "",
        fmt: PayloadFormat | str | None = None,
    ) -> str:
        """Save an instance with atomic write.

        Args:
            instance: Object to persist
            label: Optional label for the file (defaults to the type name)
            fmt: Payload generation (defaults to settings.default_format)

        Returns:
            Path to saved envelope file

        Raises:
            ValueError: ``label`` is not a plain file-name fragment
            SerializationError: A field value cannot be encoded as JSON
        """
        if not _LABEL_PATTERN.fullmatch(label) or label.startswith("."):
            raise ValueError(
                f"Label {label!r} may only contain letters, digits, '_', '-' and '.'"
                " and must not start with '.'"
            )
        envelope = self.build_envelope(instance, label=label, fmt=fmt)

        # Build filename: {timestamp}_{label}.json
        timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S_%f")
        label_part = label or type(instance).__name__.lower()
        filename = f"{timestamp}_{label_part}.json"
        filepath = self._dir / filename

        # Atomic write: write to temp file, then rename
        temp_path = self._dir / f".{filename}.tmp"
        try:
            with open(temp_path, "w") as f:
                try:
                    json.dump(envelope, f, indent=self._settings.json_indent)
                except (TypeError, ValueError) as exc:
                    raise SerializationError(
                        f"Cannot encode {type(instance).__qualname__} as JSON: {exc}"
                    ) from exc

            os.replace(temp_path, filepath)
            logger.debug(f"Saved {envelope['format']} envelope to {filepath}")

            return str(filepath)

        finally:
            if temp_path.exists():
                temp_path.unlink()

    def load(
        self,
        path: str,
        cls: type,
        factory: Callable[[], Any] | None = None,
    ) -> Any:
        """Load an instance from an envelope file.

        Args:
            path: Path to envelope file
            cls: Type to rebuild
            factory: Builds the blank instance (defaults to ``cls.__new__(cls)``)

        Returns:
            Restored instance, reconstruction hook already run
        """
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise MalformedPayloadError(f"{path} is not valid JSON: {exc}") from exc

        return self.restore_envelope(data, cls, factory)

    def build_envelope(
        self,
        instance: object,
        label: str = "",
        fmt: PayloadFormat | str | None = None,
    ) -> dict[str, Any]:
        """Serialize ``instance`` into an envelope dict."""
        fmt = PayloadFormat(fmt or self._settings.default_format)
        envelope: dict[str, Any] = {
            "schema_version": EnvelopeMigration.CURRENT_VERSION,
            "format": fmt.value,
            "type": _type_name(type(instance)),
            "label": label,
            "timestamp": datetime.now(UTC).isoformat(),
        }

        if fmt is PayloadFormat.CURRENT:
            envelope["payload"] = self._codec.snapshot(instance)
        else:
            names = self._codec.legacy_field_names(instance)
            envelope["fields"] = names
            envelope["state"] = self._sleep(instance, names)

        return envelope

    def restore_envelope(
        self,
        data: Any,
        cls: type,
        factory: Callable[[], Any] | None = None,
    ) -> Any:
        """Rebuild an instance of ``cls`` from an envelope dict."""
        if not isinstance(data, dict):
            raise MalformedPayloadError(
                f"Envelope must be a JSON object, got {type(data).__qualname__}",
                payload_type=type(data),
            )
        data = EnvelopeMigration.migrate(data)

        try:
            fmt = PayloadFormat(data.get("format"))
        except ValueError as exc:
            raise MalformedPayloadError(f"Unknown payload format: {data.get('format')!r}") from exc

        expected = _type_name(cls)
        if data.get("type") != expected:
            logger.warning(f"Envelope was written for {data.get('type')!r}, loading as {expected!r}")

        instance = factory() if factory is not None else cls.__new__(cls)

        if fmt is PayloadFormat.CURRENT:
            if "payload" not in data:
                raise MalformedPayloadError("Current envelope has no 'payload' section")
            self._codec.restore(instance, data["payload"])
        else:
            state = data.get("state")
            if not isinstance(state, dict):
                raise MalformedPayloadError(
                    "Legacy envelope 'state' must be an object", payload_type=type(state)
                )
            self._wakeup(instance, state, data.get("fields"))

        return instance

    def list_payloads(self) -> list[dict]:
        """List stored envelopes with metadata.

        Returns:
            List of metadata dicts with keys:
            - path: str
            - label: str
            - format: str
            - type: str
            - timestamp: str
        """
        entries = []

        for filepath in sorted(self._dir.glob("*.json")):
            # Skip temp files
            if filepath.name.startswith("."):
                continue

            try:
                with open(filepath) as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    continue
                data = EnvelopeMigration.migrate(data)
            except (OSError, json.JSONDecodeError, MalformedPayloadError) as exc:
                logger.debug(f"Skipping unreadable envelope {filepath}: {exc}")
                continue

            entries.append(
                {
                    "path": str(filepath),
                    "label": data.get("label", ""),
                    "format": data.get("format", ""),
                    "type": data.get("type", ""),
                    "timestamp": data.get("timestamp", ""),
                }
            )

        return entries

    def latest_payload(self, label: str | None = None) -> str | None:
        """Get path to most recent envelope, optionally with a given label.

        Returns:
            Path to latest envelope, or None if there is none
        """
        entries = self.list_payloads()
        if label is not None:
            entries = [entry for entry in entries if entry["label"] == label]
        if not entries:
            return None

        # Filenames start with the save timestamp
        entries.sort(key=lambda e: Path(e["path"]).name, reverse=True)
        latest: str = entries[0]["path"]
        return latest

    def _sleep(self, instance: object, names: list[str]) -> dict[str, Any]:
        """Copy the listed field values, keyed by storage attribute."""
        values = self._codec.read_values(instance)
        wanted = set(names)
        state = {}
        for field in self._codec.fields(instance):
            if field.key in wanted and field.key in values:
                state[field.attribute] = values[field.key]
        return state

    def _wakeup(self, instance: object, state: dict[str, Any], names: Any = None) -> None:
        """Place stored attributes back, then let the codec finish the restore.

        Only attributes of enumerated fields whose keys the envelope lists are
        placed. Without a field list every enumerated field is eligible.
        """
        if names is not None and (
            not isinstance(names, list) or not all(isinstance(name, str) for name in names)
        ):
            raise MalformedPayloadError(
                "Legacy envelope 'fields' must be a list of strings", payload_type=type(names)
            )

        fields = self._codec.fields(instance)
        wanted = set(names) if names is not None else {field.key for field in fields}
        allowed = {field.attribute for field in fields if field.key in wanted}

        stray = [attribute for attribute in state if attribute not in allowed]
        if stray and self._settings.log_stray_keys:
            logger.debug(
                f"Ignoring legacy attributes {stray} not listed for {type(instance).__qualname__}"
            )

        for attribute, value in state.items():
            if attribute not in allowed:
                continue
            try:
                object.__setattr__(instance, attribute, value)
            except (AttributeError, TypeError) as exc:
                raise SerializationError(
                    f"Cannot place legacy attribute '{attribute}' on "
                    f"{type(instance).__qualname__}: {exc}"
                ) from exc

        self._codec.complete_restore(instance)


def _type_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"
