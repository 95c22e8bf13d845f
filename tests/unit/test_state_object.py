"""Tests for dirty tracking and subscriptions on state objects."""

from __future__ import annotations

import gc

import pytest

from storyframe.errors import InvalidOperationError
from storyframe.serde.codec import decode, encode
from storyframe.serde.serializable import Field, serializable
from storyframe.state.state_object import StateObject, register_clean_traversal


@serializable(name="TestStateLeaf")
class SLeaf(StateObject):
    value = Field(0)


@serializable(name="TestStateOwner")
class SOwner(StateObject):
    child = Field(None, autosubscribe=True)
    children = Field(default_factory=list, autosubscribe=True)
    plain = Field(None)


def _non_negative(value: int) -> None:
    if value < 0:
        raise ValueError("must be non-negative")


@serializable(name="TestStateValidated")
class SValidated(StateObject):
    level = Field(0, validator=_non_negative)


class Recorder:
    """Subscriber counting how often it is dirtied."""

    def __init__(self) -> None:
        self.calls = 0

    @property
    def dirty(self) -> bool:
        return self.calls > 0

    @dirty.setter
    def dirty(self, value: bool) -> None:
        if value:
            self.calls += 1


class Bag:
    """Container type outside the default clean traversal."""

    def __init__(self, *items: object) -> None:
        self.items = list(items)


register_clean_traversal(Bag, lambda bag: bag.items)


class TestDirtyFlag:
    """Writes mark the object dirty."""

    def test_new_object_is_clean(self) -> None:
        """Defaults applied by the base constructor do not dirty."""
        assert SLeaf().dirty is False

    def test_declared_field_write_marks_dirty(self) -> None:
        """Assigning a declared field sets dirty."""
        leaf = SLeaf()
        leaf.value = 3

        assert leaf.dirty is True

    def test_extra_field_write_marks_dirty(self) -> None:
        """Adding an undeclared field sets dirty."""
        leaf = SLeaf()
        leaf.note = "x"

        assert leaf.dirty is True
        assert leaf.extra_fields["note"] == "x"

    def test_delete_marks_dirty(self) -> None:
        """Deleting a field counts as a write."""
        leaf = SLeaf()
        leaf.note = "x"
        leaf.dirty = False

        del leaf.note

        assert leaf.dirty is True

    def test_restore_field_marks_dirty(self) -> None:
        """Decoded writes go through the same bookkeeping."""
        leaf = SLeaf()
        leaf.restore_field("legacy", 1)

        assert leaf.dirty is True

    def test_transient_attribute_does_not_mark_dirty(self) -> None:
        """Underscore attributes are outside dirty tracking."""
        leaf = SLeaf()
        leaf._scratch = 1

        assert leaf.dirty is False

    def test_internal_state_is_not_serialized(self) -> None:
        """Only fields reach the encoded document."""
        leaf = SLeaf()
        leaf.value = 2

        assert encode(leaf) == {"": {"": "sTestStateLeaf", "value": 2}}

    def test_assigning_class_is_rejected(self) -> None:
        """The class of a state object cannot change."""
        leaf = SLeaf()

        with pytest.raises(TypeError, match="class"):
            leaf.__class__ = SOwner

    @pytest.mark.parametrize(
        "value",
        [property(lambda self: 1), staticmethod(len), classmethod(len), Field()],
        ids=["property", "staticmethod", "classmethod", "descriptor"],
    )
    def test_accessor_values_are_rejected(self, value: object) -> None:
        """Only plain data may be attached to an instance."""
        leaf = SLeaf()

        with pytest.raises(TypeError, match="plain data"):
            leaf.extra = value

        assert leaf.dirty is False

    def test_classes_are_plain_values(self) -> None:
        """Storing a class reference is allowed."""
        leaf = SLeaf()
        leaf.kind = SOwner

        assert leaf.kind is SOwner


class TestPropagation:
    """Dirty flows out to subscribers; clean flows in to owned children."""

    def test_dirty_propagates_through_subscription_chain(self) -> None:
        """A -> B -> C: dirtying A dirties B and C."""
        a, b, c = SLeaf(), SLeaf(), SLeaf()
        a.subscribe_dirty(b)
        b.subscribe_dirty(c)

        a.value = 1

        assert (a.dirty, b.dirty, c.dirty) == (True, True, True)

    def test_clean_does_not_flow_to_subscribed_sources(self) -> None:
        """Cleaning C leaves A and B dirty."""
        a, b, c = SLeaf(), SLeaf(), SLeaf()
        a.subscribe_dirty(b)
        b.subscribe_dirty(c)
        a.value = 1

        c.dirty = False

        assert (a.dirty, b.dirty, c.dirty) == (True, True, False)

    def test_child_write_dirties_owner(self) -> None:
        """Auto-subscribed children notify their owner."""
        owner, leaf = SOwner(), SLeaf()
        owner.child = leaf
        owner.dirty = False

        leaf.value = 9

        assert owner.dirty is True

    def test_clean_propagates_to_field_values(self) -> None:
        """Cleaning the owner cleans a state object held in a field."""
        owner, leaf = SOwner(), SLeaf()
        owner.child = leaf
        leaf.value = 1

        owner.dirty = False

        assert leaf.dirty is False

    def test_clean_propagates_into_lists_and_dicts(self) -> None:
        """List elements and dict values are traversed by default."""
        owner = SOwner()
        in_list, in_dict = SLeaf(), SLeaf()
        owner.children = [in_list]
        owner.plain = {"key": in_dict}
        in_list.value = in_dict.value = 1

        owner.dirty = False

        assert in_list.dirty is False
        assert in_dict.dirty is False

    def test_clean_uses_registered_traversals(self) -> None:
        """Extra container types can opt in to clean propagation."""
        owner, leaf = SOwner(), SLeaf()
        owner.plain = Bag(leaf)
        leaf.value = 1

        owner.dirty = False

        assert leaf.dirty is False

    def test_subscriber_notified_once_per_transition(self) -> None:
        """Further writes while dirty do not re-notify."""
        leaf, recorder = SLeaf(), Recorder()
        leaf.subscribe_dirty(recorder)

        leaf.value = 1
        leaf.value = 2
        assert recorder.calls == 1

        leaf.dirty = False
        leaf.value = 3
        assert recorder.calls == 2


class TestSubscriptions:
    """Reference-counted subscriber bookkeeping."""

    def test_reference_counting(self) -> None:
        """Two subscribes need two unsubscribes; a third fails."""
        source, subscriber = SLeaf(), SLeaf()
        source.subscribe_dirty(subscriber)
        source.subscribe_dirty(subscriber)

        source.unsubscribe_dirty(subscriber)
        source.value = 1
        assert subscriber.dirty is True
        assert source.subscription_count(subscriber) == 1

        source.unsubscribe_dirty(subscriber)
        assert source.subscription_count(subscriber) == 0
        assert source.subscribers == {}

        with pytest.raises(InvalidOperationError):
            source.unsubscribe_dirty(subscriber)

    def test_none_is_ignored(self) -> None:
        """Subscribing or unsubscribing None does nothing."""
        source = SLeaf()

        source.subscribe_dirty(None)
        source.unsubscribe_dirty(None)

        assert source.subscribers == {}

    def test_subscribers_are_weak(self) -> None:
        """A dropped subscriber disappears from the table."""
        source = SLeaf()
        subscriber = SLeaf()
        source.subscribe_dirty(subscriber)

        del subscriber
        gc.collect()

        assert source.subscribers == {}

    def test_reassigning_autosubscribed_field_swaps_subscription(self) -> None:
        """The old value stops notifying; the new one starts."""
        owner, old, new = SOwner(), SLeaf(), SLeaf()
        owner.child = old
        owner.child = new

        assert old.subscription_count(owner) == 0
        assert new.subscription_count(owner) == 1

        owner.dirty = False
        old.value = 1
        assert owner.dirty is False
        new.value = 1
        assert owner.dirty is True

    def test_autosubscribed_list_subscribes_each_element(self) -> None:
        """Every state object in an assigned list is subscribed."""
        owner, first, second = SOwner(), SLeaf(), SLeaf()

        owner.children = [first, second, "not state"]

        assert first.subscription_count(owner) == 1
        assert second.subscription_count(owner) == 1

        owner.children = []
        assert first.subscription_count(owner) == 0

    def test_same_object_in_two_fields_is_counted_twice(self) -> None:
        """Clearing one field keeps the other subscription alive."""
        owner, leaf = SOwner(), SLeaf()
        owner.child = leaf
        owner.children = [leaf]
        assert leaf.subscription_count(owner) == 2

        owner.child = None
        owner.dirty = False
        leaf.value = 4

        assert leaf.subscription_count(owner) == 1
        assert owner.dirty is True

    def test_reassigning_same_value_keeps_count(self) -> None:
        """Writing the current value again does not double-subscribe."""
        owner, leaf = SOwner(), SLeaf()
        owner.child = leaf
        owner.child = leaf

        assert leaf.subscription_count(owner) == 1

    def test_non_autosubscribed_field_does_not_subscribe(self) -> None:
        """Plain fields never subscribe their owner."""
        owner, leaf = SOwner(), SLeaf()
        owner.plain = leaf

        assert leaf.subscription_count(owner) == 0

    def test_reassigning_after_in_place_append(self) -> None:
        """Only the elements actually subscribed are unsubscribed."""
        owner, first, appended = SOwner(), SLeaf(), SLeaf()
        owner.children = [first]
        owner.children.append(appended)

        owner.children = []

        assert first.subscription_count(owner) == 0
        assert appended.subscription_count(owner) == 0
        assert owner.children == []

    def test_in_place_append_is_picked_up_when_cleaned(self) -> None:
        """Cleaning the owner subscribes it to elements appended in place."""
        owner, appended = SOwner(), SLeaf()
        owner.children.append(appended)

        owner.dirty = False
        appended.value = 1

        assert appended.subscription_count(owner) == 1
        assert owner.dirty is True

    def test_sync_drops_elements_removed_in_place(self) -> None:
        """Elements removed in place stop dirtying the owner after a sync."""
        owner, leaf = SOwner(), SLeaf()
        owner.children = [leaf]
        owner.children.remove(leaf)

        owner.sync_autosubscriptions()
        owner.dirty = False
        leaf.value = 1

        assert leaf.subscription_count(owner) == 0
        assert owner.dirty is False

    def test_rejected_write_does_not_mark_dirty(self) -> None:
        """A validator failure leaves both value and dirty bit untouched."""
        owner = SValidated()

        with pytest.raises(ValueError):
            owner.level = -1

        assert owner.level == 0
        assert owner.dirty is False


class TestDecodedStateObjects:
    """State objects rebuilt by the codec."""

    def test_decode_restores_subscriptions(self) -> None:
        """Auto-subscriptions are rebuilt while fields are restored."""
        owner = SOwner()
        owner.children = [SLeaf(), SLeaf()]

        restored = decode(encode(owner))

        for leaf in restored.children:
            assert leaf.subscription_count(restored) == 1

    def test_decoded_objects_are_dirty_until_cleaned(self) -> None:
        """Decoding writes fields, so the result starts dirty."""
        owner = SOwner()
        owner.child = SLeaf()

        restored = decode(encode(owner))
        assert restored.dirty is True

        restored.dirty = False
        assert restored.child.dirty is False
