"""Tagged payload variants for the two serialization protocol generations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar


class PayloadFormat(Enum):
    """Protocol generation that produced a payload."""

    LEGACY = "legacy"  # field names only, values stored out-of-band
    CURRENT = "current"  # values inline


@dataclass(frozen=True)
class LegacyPayload:
    """Ordered field keys the legacy persistence layer must store itself."""

    fields: tuple[str, ...]

    format: ClassVar[PayloadFormat] = PayloadFormat.LEGACY


@dataclass(frozen=True)
class CurrentPayload:
    """Field key -> value mapping carried inline."""

    values: dict[str, Any] = field(default_factory=dict)

    format: ClassVar[PayloadFormat] = PayloadFormat.CURRENT


Payload = LegacyPayload | CurrentPayload
