"""Scene base class.

A scene is one focus-holding unit of narrative flow. The owning
:class:`~storyframe.scenes.stack.SceneStack` drives its lifecycle:

- ``start()`` once after construction, ``stop()`` once before removal;
- ``on_focused()`` / ``on_focus_lost()`` when it becomes or stops being the
  top of the stack;
- ``update()`` once per frame while it is the focused top;
- ``update_blurring()`` / ``update_popping()`` as readiness gates before it
  is covered or removed (return False to hold the transition, e.g. while an
  exit animation is still running);
- ``update_background()`` per frame while a pop above it is being held.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from storyframe.serde.serializable import Field, serializable
from storyframe.state.state_object import StateObject

if TYPE_CHECKING:
    from storyframe.scenes.stack import SceneStack


@serializable
class Scene(StateObject):
    """Base class for scenes managed by a scene stack.

    Attributes:
        focused: Whether this scene currently holds focus.
    """

    focused = Field(False)

    @property
    def stack(self) -> SceneStack | None:
        """The stack this scene lives on, or None before it is attached."""
        return self.__dict__.get("_stack")

    def _attach(self, stack: SceneStack | None) -> None:
        self._stack = stack

    # -- Lifecycle hooks -------------------------------------------------------

    def start(self) -> None:
        """Called once after the scene is pushed."""

    def stop(self) -> None:
        """Called once before the scene is removed."""

    def on_focused(self) -> None:
        """Called when the scene becomes the focused top of the stack."""

    def on_focus_lost(self) -> None:
        """Called when the scene stops being the focused top of the stack."""

    def update(self) -> None:
        """Per-frame tick while focused."""

    def update_blurring(self) -> bool:
        """Return True once the scene is ready to be covered by a push."""
        return True

    def update_popping(self) -> bool:
        """Return True once the scene is ready to be removed."""
        return True

    def update_background(self) -> None:
        """Per-frame tick while a pop above this scene is held."""

    # -- Focus transitions -----------------------------------------------------

    def gain_focus(self) -> bool:
        """Focus the scene, firing ``on_focused`` on a transition.

        Returns:
            True if the scene was not focused before.
        """
        if self.focused:
            return False
        self.focused = True
        self.on_focused()
        return True

    def lose_focus(self) -> bool:
        """Unfocus the scene, firing ``on_focus_lost`` on a transition.

        Returns:
            True if the scene was focused before.
        """
        if not self.focused:
            return False
        self.focused = False
        self.on_focus_lost()
        return True


__all__ = ["Scene"]
