"""Envelope migration: handle version changes in the stored envelope format.

Version 1 envelopes come from the first protocol generation, which only
knew the legacy layout (field list plus out-of-band state).
"""

from __future__ import annotations

from statecompat.errors import MalformedPayloadError


class EnvelopeMigration:
    """Handle schema version changes in the envelope format."""

    CURRENT_VERSION = 2

    @staticmethod
    def migrate(data: dict) -> dict:
        """Migrate data to current schema version.

        Args:
            data: Envelope to migrate (not modified)

        Returns:
            Envelope at the current schema version
        """
        version = EnvelopeMigration.get_version(data)
        if version > EnvelopeMigration.CURRENT_VERSION:
            raise MalformedPayloadError(
                f"Envelope schema version {version} is newer than supported "
                f"({EnvelopeMigration.CURRENT_VERSION})",
                payload_type=type(data),
            )

        # Migration chain
        if version == 1:
            data = EnvelopeMigration._migrate_1_to_2(data)

        return data

    @staticmethod
    def get_version(data: dict) -> int:
        """Extract schema version from an envelope.

        Returns:
            Schema version number (default 1)
        """
        version = data.get("schema_version", 1)
        try:
            return int(version)
        except (TypeError, ValueError) as exc:
            raise MalformedPayloadError(
                f"Invalid envelope schema version: {version!r}", payload_type=type(data)
            ) from exc

    @staticmethod
    def _migrate_1_to_2(data: dict) -> dict:
        """Migrate from schema v1 to v2.

        v1 stored ``type``, ``fields`` and ``state`` only. v2 adds:
        - format: always "legacy" for v1 data
        - label: empty
        - timestamp: empty (v1 did not record one)

        A missing ``fields`` list stays missing, so every field of the
        loading type is eligible.
        """
        data = dict(data)
        data["schema_version"] = 2
        data["format"] = "legacy"
        data.setdefault("label", "")
        data.setdefault("timestamp", "")
        data.setdefault("state", {})
        return data
