"""Dirty-tracking state objects.

``StateObject`` instances represent persistent, durable state: the values a
save file must capture. Each carries an auto-propagating ``dirty`` flag:

- dirtying propagates outward, to every subscriber of the object;
- cleaning propagates inward, to the state objects held in the object's own
  serialized fields (and inside the containers registered for traversal).

Every public write on a state object marks it dirty. Declared fields route
through :class:`~storyframe.serde.serializable.Field`, undeclared public
names through ``__setattr__``; both end in the same bookkeeping, so
subclasses never have to opt in.

When deriving from this class, prefix the class name with ``S`` for "state"
and decorate it with :func:`~storyframe.serde.serializable.serializable`.
Every serialized value must be encodable by :mod:`storyframe.serde.codec`.
"""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Any

from storyframe.errors import InvalidOperationError
from storyframe.serde.serializable import Field, Serializable, serializable

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

# Container type -> function yielding the items clean propagation looks at
_clean_traversals: dict[type, Callable[[Any], Iterable[Any]]] = {
    list: iter,
    dict: lambda mapping: mapping.values(),
}


def register_clean_traversal(
    container_type: type,
    iterate: Callable[[Any], Iterable[Any]],
) -> None:
    """Teach clean propagation to look inside another container type.

    Args:
        container_type: Type (or base type) of the container.
        iterate: Returns the items of a container to inspect; state objects
            among them are cleaned when the owner is cleaned.
    """
    _clean_traversals[container_type] = iterate


def _owned_state_objects(value: Any) -> Iterator[StateObject]:
    """State objects directly held by a field value."""
    if isinstance(value, StateObject):
        yield value
        return
    for container_type, iterate in _clean_traversals.items():
        if isinstance(value, container_type):
            for item in iterate(value):
                if isinstance(item, StateObject):
                    yield item
            return


def _subscribable(value: Any) -> tuple[StateObject, ...]:
    """State objects an auto-subscribing field value stands for."""
    if isinstance(value, StateObject):
        return (value,)
    if isinstance(value, list):
        return tuple(item for item in value if isinstance(item, StateObject))
    return ()


def _reject_non_plain(name: str, value: Any) -> None:
    if isinstance(value, (property, classmethod, staticmethod)) or (
        not isinstance(value, type)
        and (hasattr(type(value), "__set__") or hasattr(type(value), "__delete__"))
    ):
        raise TypeError(
            f"Field {name!r} must hold plain data; accessor-like values cannot be "
            "added to individual StateObject instances. Subclass the type and "
            "declare the behaviour there instead."
        )


class StateObject(Serializable):
    """Serializable object with a propagating dirty bit and subscribers."""

    def __init__(self) -> None:
        object.__setattr__(self, "_dirty", False)
        object.__setattr__(self, "_subscribers", weakref.WeakKeyDictionary())
        # Field name -> state objects this object is currently subscribed to
        object.__setattr__(self, "_autosubscribed", {})
        super().__init__()
        self.sync_autosubscriptions()

    # -- Dirty flag ------------------------------------------------------------

    @property
    def dirty(self) -> bool:
        """Whether this object changed since it was last cleaned.

        Setting True notifies subscribers; setting False cleans owned state
        objects. Only transitions propagate. Setting False also picks up
        in-place edits of auto-subscribing lists (see
        :meth:`sync_autosubscriptions`).
        """
        return self._dirty

    @dirty.setter
    def dirty(self, dirty: bool) -> None:
        dirty = bool(dirty)
        if not dirty:
            self.sync_autosubscriptions()
        if dirty == self._dirty:
            return
        object.__setattr__(self, "_dirty", dirty)
        if dirty:
            for subscriber in list(self._subscribers.keys()):
                subscriber.dirty = True
        else:
            self.propagate_clean()

    def propagate_clean(self) -> None:
        """Clear the dirty bit of every state object held in a serialized field."""
        for _name, value in self.serialized_items():
            for child in _owned_state_objects(value):
                child.dirty = False

    # -- Subscriptions ---------------------------------------------------------

    def subscribe_dirty(self, subscriber: Any) -> None:
        """Mark ``subscriber`` dirty whenever this object becomes dirty.

        Subscriptions are counted: each call needs a matching
        :meth:`unsubscribe_dirty`. A subscriber is notified once per
        transition regardless of its count. ``None`` is ignored.
        """
        if subscriber is None:
            return
        self._subscribers[subscriber] = self._subscribers.get(subscriber, 0) + 1

    def unsubscribe_dirty(self, subscriber: Any) -> None:
        """Drop one subscription of ``subscriber``.

        Raises:
            InvalidOperationError: If ``subscriber`` has no outstanding
                subscription.
        """
        if subscriber is None:
            return
        count = self._subscribers.get(subscriber)
        if count is None:
            raise InvalidOperationError(
                "Tried to unsubscribe_dirty without first subscribing that often "
                "with the given subscriber."
            )
        if count > 1:
            self._subscribers[subscriber] = count - 1
        else:
            del self._subscribers[subscriber]

    def subscription_count(self, subscriber: Any) -> int:
        """Outstanding subscriptions of ``subscriber`` (0 if none)."""
        return self._subscribers.get(subscriber, 0)

    @property
    def subscribers(self) -> dict[Any, int]:
        """Snapshot of current subscribers and their counts."""
        return dict(self._subscribers)

    def subscribe_dirty_to(self, *sources: Any) -> None:
        """Subscribe this object to each state object in ``sources``."""
        for source in sources:
            if isinstance(source, StateObject):
                source.subscribe_dirty(self)

    def unsubscribe_dirty_from(self, *sources: Any) -> None:
        """Undo :meth:`subscribe_dirty_to` for each state object in ``sources``."""
        for source in sources:
            if isinstance(source, StateObject):
                source.unsubscribe_dirty(self)

    def sync_autosubscriptions(self) -> None:
        """Match subscriptions to the current contents of auto-subscribing fields.

        Assigning such a field keeps subscriptions in step on its own. A list
        edited in place (``msg.content.append(text)``) is picked up here, which
        also runs whenever the object is cleaned.
        """
        for field in self._declared_fields.values():
            if field.autosubscribe:
                self._resubscribe(field.name, self.__dict__[field.name])

    def _resubscribe(self, name: str, value: Any) -> None:
        current = _subscribable(value)
        previous = self._autosubscribed.get(name, ())
        if len(current) == len(previous) and all(
            a is b for a, b in zip(current, previous, strict=True)
        ):
            return
        self.unsubscribe_dirty_from(*previous)
        self.subscribe_dirty_to(*current)
        if current:
            self._autosubscribed[name] = current
        else:
            self._autosubscribed.pop(name, None)

    # -- Write paths -----------------------------------------------------------

    def _write_field(self, field: Field, value: Any) -> None:
        super()._write_field(field, value)
        if field.autosubscribe:
            self._resubscribe(field.name, value)

    def _set_extra(self, name: str, value: Any) -> None:
        _reject_non_plain(name, value)
        super()._set_extra(name, value)
        self.dirty = True

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "__class__":
            raise TypeError(
                "Changing the class of StateObject instances is not allowed. "
                "Copy the field values into a new instance instead."
            )
        if name.startswith("_") or name == "dirty":
            super().__setattr__(name, value)
            return
        _reject_non_plain(name, value)
        super().__setattr__(name, value)
        self.dirty = True

    def __delattr__(self, name: str) -> None:
        super().__delattr__(name)
        if not name.startswith("_"):
            self.dirty = True


serializable(StateObject)


__all__ = ["StateObject", "register_clean_traversal"]
