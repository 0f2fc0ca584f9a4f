"""Persistence package: save/load instances as JSON envelopes.

Provides the payload store and envelope schema migration.
"""

from statecompat.persistence.migration import EnvelopeMigration
from statecompat.persistence.store import PayloadStore

__all__ = ["PayloadStore", "EnvelopeMigration"]
