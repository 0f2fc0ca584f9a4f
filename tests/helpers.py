"""Shared test doubles for statecompat test suites.

Small classes covering each way a field can be declared: annotations with
every visibility, ``__slots__``, frozen dataclasses, ``@persistable``
registrations and private fields shadowed across a hierarchy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from statecompat import Persistable, persistable

# ============================================================================
# Demo types: one field per visibility plus hook-derived state
# ============================================================================


class Demo(Persistable):
    """Public, protected and private fields; ``computed`` is rebuilt by the hook."""

    id: int | None
    _name: str | None
    __flags: dict
    __computed: str | None

    def __init__(self, id=None, name=None, flags=None):
        self.id = id
        self._name = name
        self.__flags = flags if flags is not None else {}
        self.__computed = None

    def on_restored(self) -> None:
        self.__computed = self._name.upper() if self._name is not None else None
        self.hook_calls = getattr(self, "hook_calls", 0) + 1

    @property
    def name(self):
        return self._name

    @property
    def flags(self):
        return self.__flags

    @property
    def computed(self):
        return self.__computed


@persistable("id", "_name", "__flags", "__computed")
class PlainDemo:
    """Same shape as Demo, declared without annotations or a base class."""

    def __init__(self, id=None, name=None, flags=None):
        self.id = id
        self._name = name
        self.__flags = flags if flags is not None else {}
        self.__computed = None

    def on_restored(self) -> None:
        self.__computed = self._name.upper() if self._name is not None else None

    @property
    def flags(self):
        return self.__flags

    @property
    def computed(self):
        return self.__computed


class Counter:
    """Type-level counter next to instance fields."""

    instances: ClassVar[int] = 0
    label: str = "default"
    _level: int
    __secret: str

    def __init__(self, level=0, secret="s"):
        Counter.instances += 1
        self._level = level
        self.__secret = secret

    @property
    def secret(self):
        return self.__secret


# ============================================================================
# Hierarchies
# ============================================================================


class Base:
    __x: int
    shared: str

    def __init__(self, x=1):
        self.__x = x
        self.shared = "base"

    @property
    def base_x(self):
        return self.__x


class Derived(Base):
    __x: int
    extra: list

    def __init__(self, base_x=1, x=2):
        super().__init__(base_x)
        self.__x = x
        self.extra = []

    @property
    def derived_x(self):
        return self.__x


class Clash:
    """Public and protected fields with the same bare name."""

    x: int
    _x: int


# ============================================================================
# Storage variants
# ============================================================================


class Point:
    __slots__ = ("x", "_y", "__z")

    def __init__(self, x=0, y=0, z=0):
        self.x = x
        self._y = y
        self.__z = z

    @property
    def z(self):
        return self.__z


@dataclass(frozen=True)
class Endpoint:
    host: str
    port: int = 80


class Partial:
    """Declares a field that __init__ never assigns."""

    ready: bool
    pending: str

    def __init__(self):
        self.ready = True


# ============================================================================
# Failure cases
# ============================================================================


class ReadOnly:
    value: int

    @property
    def value(self):
        return 42


class Exploding:
    status: str

    @property
    def status(self):
        raise RuntimeError("sensor offline")


class FailingHook(Persistable):
    value: int

    def on_restored(self) -> None:
        raise ValueError("cannot rebuild index")
