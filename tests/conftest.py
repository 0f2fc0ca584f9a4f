"""Shared test fixtures for the statecompat test suite."""

from __future__ import annotations

import pytest

from statecompat import CompatSettings, FieldRegistry, PayloadCodec
from statecompat.persistence import PayloadStore
from tests.helpers import Demo


@pytest.fixture(autouse=True)
def fresh_field_cache():
    """Each test enumerates fields from scratch."""
    FieldRegistry.clear()
    yield
    FieldRegistry.clear()


@pytest.fixture
def settings() -> CompatSettings:
    """Default settings, independent of the environment."""
    return CompatSettings(
        default_format="current",
        json_indent=2,
        cache_fields=True,
        log_stray_keys=True,
    )


@pytest.fixture
def codec(settings: CompatSettings) -> PayloadCodec:
    """A codec with default settings."""
    return PayloadCodec(settings)


@pytest.fixture
def store(tmp_path, settings: CompatSettings) -> PayloadStore:
    """A payload store writing into a temporary directory."""
    return PayloadStore(str(tmp_path / "payloads"), settings=settings)


@pytest.fixture
def demo() -> Demo:
    """The demo object used throughout: id 123, name 'freemius', beta flag."""
    return Demo(123, "freemius", {"beta": True})
