"""Process-wide singleton registry.

Maps stable string names to values that must keep their identity across a
serialization round trip: the serializable classes themselves and a handful of
sentinel scalars JSON cannot express. The codec emits a registered value as a
short ``s<name>`` link instead of encoding it structurally.

Entries are append-only. Modules register their classes at import time, before
any document is encoded or decoded.

Usage::

    from storyframe.serde.registry import default_registry

    default_registry.register("Ending", ENDING_MARKER)
    default_registry.lookup_by_value(ENDING_MARKER)  # "Ending"
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from storyframe.errors import DuplicateRegistrationError
from storyframe.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterator

log = get_logger(__name__)

PLAIN_RECORD_NAME = "Object"
"""Registry name of the plain-record marker (the ``dict`` type)."""


class _Undefined:
    """Type of the ``UNDEFINED`` sentinel; a field that was never given a value."""

    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()


class RegisteredSymbol:
    """A named symbol interned by key.

    Obtain instances through :func:`symbol_for`; the same key always yields
    the same object, so symbols compare by identity after a round trip.
    """

    __slots__ = ("key",)

    def __init__(self, key: str) -> None:
        self.key = key

    def __repr__(self) -> str:
        return f"Symbol({self.key!r})"


_symbols: dict[str, RegisteredSymbol] = {}


def symbol_for(key: str) -> RegisteredSymbol:
    """Return the interned symbol for ``key``, creating it on first use."""
    if not isinstance(key, str):
        raise TypeError(f"symbol key must be a string, got {type(key)!r}")
    symbol = _symbols.get(key)
    if symbol is None:
        symbol = _symbols[key] = RegisteredSymbol(key)
    return symbol


def _value_key(value: Any) -> Hashable:
    """Identity key for reverse lookup.

    Non-finite floats are keyed by kind: every NaN is the same singleton.
    """
    if isinstance(value, float) and not math.isfinite(value):
        return ("float", repr(value))
    return id(value)


class SingletonRegistry:
    """Bidirectional name <-> value table used by the codec.

    Lookups by value are by identity. Registered values are kept alive by the
    registry, so identity keys stay valid for the life of the process.
    """

    def __init__(self) -> None:
        self._by_name: dict[str, Any] = {}
        self._by_value: dict[Hashable, str] = {}

    # -- Registration ----------------------------------------------------------

    def register(self, name: str, value: Any) -> None:
        """Bind ``name`` to ``value``.

        Re-registering the identical pair is a no-op.

        Raises:
            TypeError: If ``name`` is not a string.
            DuplicateRegistrationError: If ``name`` is already bound to a
                different value.
        """
        if not isinstance(name, str):
            raise TypeError(f"singleton name must be a string, got {type(name)!r}")
        if name in self._by_name:
            existing = self._by_name[name]
            if _value_key(existing) == _value_key(value):
                return
            log.error("duplicate_singleton", name=name)
            raise DuplicateRegistrationError(name, existing, value)

        self._by_name[name] = value
        self._by_value.setdefault(_value_key(value), name)
        log.debug("singleton_registered", name=name)

    # -- Lookup ----------------------------------------------------------------

    def has_name(self, name: str) -> bool:
        """Check whether ``name`` is registered (its value may be falsy)."""
        return name in self._by_name

    def lookup_by_name(self, name: str) -> Any | None:
        """Return the value registered under ``name``, or None."""
        return self._by_name.get(name)

    def lookup_by_value(self, value: Any) -> str | None:
        """Return the name ``value`` is registered under, or None."""
        return self._by_value.get(_value_key(value))

    def names(self) -> list[str]:
        """All registered names, sorted."""
        return sorted(self._by_name)

    def items(self) -> Iterator[tuple[str, Any]]:
        """Iterate ``(name, value)`` pairs in registration order."""
        return iter(self._by_name.items())

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name


default_registry = SingletonRegistry()

# JSON cannot carry these; they travel as singleton links instead.
default_registry.register("undefined", UNDEFINED)
default_registry.register("NaN", math.nan)
default_registry.register("Infinity", math.inf)
default_registry.register("-Infinity", -math.inf)
default_registry.register(PLAIN_RECORD_NAME, dict)


def register_singleton(
    name: str,
    value: Any,
    *,
    registry: SingletonRegistry | None = None,
) -> None:
    """Register ``value`` under ``name`` in ``registry`` (default: process-wide)."""
    target = registry if registry is not None else default_registry
    target.register(name, value)


__all__ = [
    "PLAIN_RECORD_NAME",
    "UNDEFINED",
    "RegisteredSymbol",
    "SingletonRegistry",
    "default_registry",
    "register_singleton",
    "symbol_for",
]
