"""Field enumeration: which instance attributes of a type get persisted.

Fields are collected across the whole MRO, base classes first, from
class-body annotations, ``__slots__`` and explicit ``@persistable``
registrations. ``ClassVar`` and ``InitVar`` annotations are type-level
and never enumerated.

Visibility follows Python naming: ``id`` is public, ``_name`` protected and
``__flags`` private (stored by Python as ``_Owner__flags``). Two classes in
one hierarchy may each declare a private ``__x``; both are kept as separate
fields and only one of them gets the bare payload key ``x``.
"""

from __future__ import annotations

import dataclasses
import inspect
import logging
import threading
import typing
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "::"


class Visibility(Enum):
    """Access level implied by an attribute's leading underscores."""

    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"

    @property
    def prefix(self) -> str:
        """Underscores the attribute is written with in source."""
        return {"public": "", "protected": "_", "private": "__"}[self.value]


_PRECEDENCE = {Visibility.PUBLIC: 0, Visibility.PROTECTED: 1, Visibility.PRIVATE: 2}


@dataclass(frozen=True)
class FieldDescriptor:
    """One persistable instance field.

    Attributes:
        name: Bare field name with the visibility prefix stripped
        visibility: Public, protected or private
        declaring_type: Class in the MRO that introduces the field
        attribute: Attribute the value is stored under on the instance
        key: Payload key, unique within the enumerated type
    """

    name: str
    visibility: Visibility
    declaring_type: type
    attribute: str
    key: str

    @property
    def qualified_key(self) -> str:
        """Key naming the declaring type, e.g. ``Base::__x``."""
        return f"{self.declaring_type.__name__}{KEY_SEPARATOR}{self.visibility.prefix}{self.name}"


def mangle_attribute(owner: type, name: str) -> str:
    """Return the attribute Python stores ``name`` under inside ``owner``'s body."""
    if name.startswith("__") and not name.endswith("__"):
        stripped = owner.__name__.lstrip("_")
        if stripped:
            return f"_{stripped}{name}"
    return name


def slot_attributes(owner: type) -> list[str]:
    """Storage attributes of the ``__slots__`` declared directly on ``owner``."""
    slots = owner.__dict__.get("__slots__", ())
    if isinstance(slots, str):
        slots = (slots,)
    return [mangle_attribute(owner, slot) for slot in slots if slot not in ("__dict__", "__weakref__")]


class FieldRegistry:
    """Process-wide cache of enumerated fields plus explicit registrations.

    Class-level registries; all methods are classmethods for global access.
    Cached tuples are immutable, so concurrent readers need no locking; only
    population is serialized.
    """

    _fields: dict[type, tuple[FieldDescriptor, ...]] = {}
    _explicit: dict[type, tuple[str, ...]] = {}
    _lock = threading.Lock()

    @classmethod
    def register(cls, owner: type, attributes: Iterable[str]) -> None:
        """Declare the persisted attributes of ``owner`` explicitly.

        Replaces annotation and slot discovery for ``owner`` only; base and
        derived classes still contribute their own fields.

        Args:
            owner: Class declaring the fields
            attributes: Attribute names as written in the class body
                (``"__x"`` is mangled for ``owner``)
        """
        mangled: list[str] = []
        for attribute in attributes:
            if not isinstance(attribute, str) or not attribute:
                raise ValueError(f"Field names must be non-empty strings, got {attribute!r}")
            stored = mangle_attribute(owner, attribute)
            if stored in mangled:
                raise ValueError(f"Field '{attribute}' registered twice on {owner.__qualname__}")
            mangled.append(stored)

        with cls._lock:
            if owner in cls._explicit:
                logger.warning(f"Fields of {owner.__qualname__} already registered, overriding")
            cls._explicit[owner] = tuple(mangled)
            # Subclasses may already be cached with the old declaration
            cls._fields.clear()
        logger.debug(f"Registered fields for {owner.__qualname__}: {mangled}")

    @classmethod
    def is_registered(cls, owner: type) -> bool:
        return owner in cls._explicit

    @classmethod
    def fields_for(cls, owner: type, use_cache: bool = True) -> tuple[FieldDescriptor, ...]:
        """Enumerate ``owner``'s fields, consulting the cache when allowed."""
        if use_cache:
            cached = cls._fields.get(owner)
            if cached is not None:
                return cached

        fields = _enumerate(owner)
        if use_cache:
            with cls._lock:
                fields = cls._fields.setdefault(owner, fields)
            logger.debug(f"Cached {len(fields)} fields for {owner.__qualname__}")
        return fields

    @classmethod
    def clear(cls, explicit: bool = False) -> None:
        """Drop cached enumerations (and explicit registrations if asked)."""
        with cls._lock:
            cls._fields.clear()
            if explicit:
                cls._explicit.clear()


def persistable(*attributes: str):
    """Class decorator listing the persisted attributes of a class.

    Usage:
        @persistable("id", "_name", "__flags")
        class Demo:
            def __init__(self, id, name, flags):
                self.id = id
                self._name = name
                self.__flags = flags
    """

    def decorator(owner: type) -> type:
        FieldRegistry.register(owner, attributes)
        return owner

    return decorator


def list_fields(cls: type, use_cache: bool = True) -> tuple[FieldDescriptor, ...]:
    """Return the ordered persistable fields of ``cls``.

    Args:
        cls: Runtime type of the instance being serialized
        use_cache: Reuse the process-wide enumeration cache

    Returns:
        Field descriptors, base classes first, declaration order within a class
    """
    if not isinstance(cls, type):
        raise TypeError(f"list_fields() expects a class, got {type(cls).__qualname__}")
    return FieldRegistry.fields_for(cls, use_cache=use_cache)


def _enumerate(cls: type) -> tuple[FieldDescriptor, ...]:
    fields: list[FieldDescriptor] = []
    seen: set[str] = set()

    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for attribute in _declared_attributes(klass):
            # A re-annotated public/protected field stays where the base put it
            if attribute in seen:
                continue
            seen.add(attribute)
            name, visibility = _describe(klass, attribute)
            fields.append(FieldDescriptor(name, visibility, klass, attribute, key=name))

    return tuple(_resolve_keys(cls, fields))


def _declared_attributes(klass: type) -> list[str]:
    explicit = FieldRegistry._explicit.get(klass)
    if explicit is not None:
        return list(explicit)

    attributes = [
        attribute
        for attribute, annotation in _own_annotations(klass).items()
        if not _is_type_level(annotation)
    ]
    for attribute in slot_attributes(klass):
        if attribute not in attributes:
            attributes.append(attribute)
    return attributes


def _own_annotations(klass: type) -> dict[str, Any]:
    try:
        return dict(inspect.get_annotations(klass))
    except NameError:
        # Deferred annotations (3.14+) referring to names not defined yet
        import annotationlib

        return dict(annotationlib.get_annotations(klass, format=annotationlib.Format.FORWARDREF))


def _is_type_level(annotation: Any) -> bool:
    if isinstance(annotation, typing.ForwardRef):
        annotation = annotation.__forward_arg__
    if isinstance(annotation, str):
        head = annotation.strip().split("[", 1)[0].rsplit(".", 1)[-1]
        return head in ("ClassVar", "InitVar")
    if annotation is ClassVar or typing.get_origin(annotation) is ClassVar:
        return True
    return annotation is dataclasses.InitVar or isinstance(annotation, dataclasses.InitVar)


def _describe(klass: type, attribute: str) -> tuple[str, Visibility]:
    stripped = klass.__name__.lstrip("_")
    private_prefix = f"_{stripped}__"
    if stripped and attribute.startswith(private_prefix) and len(attribute) > len(private_prefix):
        return attribute[len(private_prefix) :], Visibility.PRIVATE
    if attribute.startswith("_") and not attribute.startswith("__") and len(attribute) > 1:
        return attribute[1:], Visibility.PROTECTED
    return attribute, Visibility.PUBLIC


def _resolve_keys(cls: type, fields: list[FieldDescriptor]) -> list[FieldDescriptor]:
    by_name: dict[str, list[int]] = {}
    for index, field in enumerate(fields):
        by_name.setdefault(field.name, []).append(index)

    mro = cls.__mro__
    resolved = list(fields)
    for indexes in by_name.values():
        if len(indexes) == 1:
            continue
        # Public beats protected beats private; among privates the most derived wins
        primary = min(
            indexes,
            key=lambda i: (_PRECEDENCE[fields[i].visibility], mro.index(fields[i].declaring_type)),
        )
        for index in indexes:
            if index != primary:
                resolved[index] = dataclasses.replace(fields[index], key=fields[index].qualified_key)
    return resolved
