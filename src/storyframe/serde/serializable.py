"""Declared fields and the base class for structured, encodable objects.

A :class:`Serializable` exposes two kinds of persistent data:

- declared fields, created with :class:`Field` on the class body. Every write
  goes through the descriptor and ends in the instance's ``_write_field``
  method, which subclasses extend to maintain their own invariants;
- extra fields, a side-map of loose name -> value pairs. Assigning an
  undeclared public attribute lands there, and decoding a document written by
  an older schema keeps unknown names there instead of dropping them.

Attributes whose name starts with an underscore are transient: they live on
the instance as usual and are never serialized.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar, overload

from storyframe.serde.registry import SingletonRegistry, default_registry

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

S = TypeVar("S", bound="type[Serializable]")


class Field:
    """Declared, serialized attribute of a :class:`Serializable`.

    Args:
        default: Initial value for new instances.
        default_factory: Zero-argument callable producing the initial value;
            use it for mutable defaults such as lists.
        autosubscribe: On state objects, keep the owner subscribed to the
            dirty bit of the stored value (or of each element of a stored list).
        validator: Called with each new value before it is stored; raises to
            reject the write.
    """

    def __init__(
        self,
        default: Any = None,
        *,
        default_factory: Callable[[], Any] | None = None,
        autosubscribe: bool = False,
        validator: Callable[[Any], None] | None = None,
    ) -> None:
        self.default = default
        self.default_factory = default_factory
        self.autosubscribe = autosubscribe
        self.validator = validator
        self.name = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def make_default(self) -> Any:
        """Build the initial value for a new instance."""
        if self.default_factory is not None:
            return self.default_factory()
        return self.default

    def __get__(self, instance: Serializable | None, owner: type | None = None) -> Any:
        if instance is None:
            return self
        try:
            return instance.__dict__[self.name]
        except KeyError as exc:
            raise AttributeError(self.name) from exc

    def __set__(self, instance: Serializable, value: Any) -> None:
        if self.validator is not None:
            self.validator(value)
        instance._write_field(self, value)

    def __delete__(self, instance: Serializable) -> None:
        instance._write_field(self, self.make_default())

    def __repr__(self) -> str:
        return f"Field(name={self.name!r}, autosubscribe={self.autosubscribe})"


class Serializable:
    """Base class for objects the codec encodes field by field.

    Subclasses declare fields with :class:`Field` and register themselves with
    :func:`serializable` so the codec can name their class in documents.
    They must be constructible without arguments.

    Note:
        Extra fields are not lost when a document carries names the current
        class no longer declares. They are kept in :attr:`extra_fields` and
        written back under the same names, which protects saves made by older
        versions of a game, but a name reused later with a new meaning will
        pick up the old value.
    """

    _declared_fields: ClassVar[dict[str, Field]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        fields: dict[str, Field] = {}
        for klass in reversed(cls.__mro__):
            for attr, value in vars(klass).items():
                if isinstance(value, Field):
                    fields[attr] = value
                elif attr in fields:
                    # Shadowed by a plain class attribute in a subclass
                    del fields[attr]
        cls._declared_fields = fields

    def __init__(self) -> None:
        object.__setattr__(self, "_extra_fields", {})
        for field in self._declared_fields.values():
            self.__dict__[field.name] = field.make_default()

    # -- Field access ----------------------------------------------------------

    @classmethod
    def declared_fields(cls) -> Mapping[str, Field]:
        """Declared fields in definition order, base classes first."""
        return MappingProxyType(cls._declared_fields)

    @property
    def extra_fields(self) -> Mapping[str, Any]:
        """Read-only view of the loose fields carried alongside declared ones."""
        return MappingProxyType(self._extra_fields)

    def serialized_items(self) -> Iterator[tuple[str, Any]]:
        """Yield ``(name, value)`` for every field the codec should write."""
        for name in self._declared_fields:
            yield name, self.__dict__[name]
        yield from list(self._extra_fields.items())

    def restore_field(self, name: str, value: Any) -> None:
        """Assign a decoded field.

        Declared names go through their descriptor; anything else becomes an
        extra field, even if it collides with a method or class attribute.
        """
        if name in self._declared_fields:
            setattr(self, name, value)
        else:
            self._set_extra(name, value)

    # -- Write paths (extended by subclasses) ----------------------------------

    def _write_field(self, field: Field, value: Any) -> None:
        self.__dict__[field.name] = value

    def _set_extra(self, name: str, value: Any) -> None:
        self._extra_fields[name] = value

    def _delete_extra(self, name: str) -> None:
        del self._extra_fields[name]

    # -- Attribute protocol ----------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails
        extras = self.__dict__.get("_extra_fields")
        if extras is not None and name in extras:
            return extras[name]
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        # Only data descriptors (fields, properties) own a public name; anything
        # else, including a name clashing with a method, is an extra field
        if name.startswith("_") or hasattr(type(getattr(type(self), name, None)), "__set__"):
            object.__setattr__(self, name, value)
        else:
            self._set_extra(name, value)

    def __delattr__(self, name: str) -> None:
        if name in self._extra_fields:
            self._delete_extra(name)
        else:
            object.__delattr__(self, name)


@overload
def serializable(cls: S, /) -> S: ...


@overload
def serializable(
    *,
    name: str | None = None,
    registry: SingletonRegistry | None = None,
) -> Callable[[S], S]: ...


def serializable(
    cls: S | None = None,
    /,
    *,
    name: str | None = None,
    registry: SingletonRegistry | None = None,
) -> S | Callable[[S], S]:
    """Register a :class:`Serializable` subclass so documents can name it.

    Usable bare (``@serializable``) or with options
    (``@serializable(name="Intro")``). The class is registered under its
    ``__name__`` unless ``name`` is given.

    Raises:
        TypeError: If the decorated object is not a Serializable subclass.
        DuplicateRegistrationError: If the name already belongs to another class.
    """
    target = registry if registry is not None else default_registry

    def decorator(klass: S) -> S:
        if not (isinstance(klass, type) and issubclass(klass, Serializable)):
            raise TypeError(f"@serializable expects a Serializable subclass, got {klass!r}")
        target.register(name or klass.__name__, klass)
        return klass

    if cls is None:
        return decorator
    return decorator(cls)


serializable(Serializable)


__all__ = ["Field", "Serializable", "serializable"]
