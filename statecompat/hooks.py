"""Reconstruction hook: rebuild derived state once persisted fields are back.

Both restore paths converge on :func:`invoke_restore_hook`. Types opt in by
providing ``on_restored``; types without one are restored with no hook call.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class OnRestored(Protocol):
    """Capability of types that rebuild transient state after a restore."""

    def on_restored(self) -> None:
        """Called once per restore, after every persisted field is written."""
        ...


def invoke_restore_hook(instance: object) -> bool:
    """Run ``instance.on_restored()`` if the type provides one.

    Exceptions raised by the hook propagate to the caller.

    Returns:
        True if a hook ran
    """
    hook = getattr(instance, "on_restored", None)
    if not callable(hook):
        return False
    logger.debug(f"Running reconstruction hook for {type(instance).__qualname__}")
    hook()
    return True


class Persistable:
    """Mixin with a no-op reconstruction hook and codec shortcuts."""

    def on_restored(self) -> None:
        """Rebuild derived state. Override in subclasses; default does nothing."""

    def snapshot_state(self) -> dict[str, Any]:
        """Current payload for this instance."""
        from statecompat.codec import default_codec

        return default_codec().snapshot(self)

    def restore_state(self, payload: Mapping[str, Any]) -> None:
        """Write ``payload`` onto this instance and run the hook."""
        from statecompat.codec import default_codec

        default_codec().restore(self, payload)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]):
        """Build an instance from a current payload without calling ``__init__``."""
        instance = cls.__new__(cls)
        instance.restore_state(payload)
        return instance
