"""Scene stack state machine.

Navigation requests never act immediately. ``push`` and ``pop`` only adjust
two pending-transition buffers (``push_queue`` and ``pop_count``) which
``update()`` drains once per frame, gated by the scenes' readiness hooks.

Within one ``update()`` call pops are drained first, then pushes, then the
focused top is ticked. A scene is never popped and ticked in the same frame,
and a freshly pushed scene is not ticked until the next frame.
"""

from __future__ import annotations

from typing import Any

from storyframe.errors import InvalidOperationError
from storyframe.observability.logging import get_logger
from storyframe.scenes.scene import Scene
from storyframe.serde.serializable import Field, serializable
from storyframe.state.state_object import StateObject

log = get_logger(__name__)


def _validate_pop_count(value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise TypeError(f"pop_count must be a non-negative int. Tried to set it to {value!r}.")


def _validate_scene_class(scene_class: Any) -> None:
    if not (isinstance(scene_class, type) and issubclass(scene_class, Scene)):
        raise TypeError(f"Expected a Scene subclass, got {scene_class!r}")


@serializable
class SceneStack(StateObject):
    """Ordered scenes plus the deferred push/pop buffers.

    Attributes:
        scenes: Realized scenes, bottom first. Owned exclusively by the stack.
        pop_count: Pending removals. Reset to 0 once drained or when the
            stack runs empty.
        push_queue: Scene classes waiting to be constructed and pushed.
    """

    scenes = Field(default_factory=list, autosubscribe=True)
    pop_count = Field(0, validator=_validate_pop_count)
    push_queue = Field(default_factory=list)

    @property
    def top(self) -> Scene | None:
        """The top-most scene, or None when the stack is empty."""
        return self.scenes[-1] if self.scenes else None

    def _write_field(self, field: Field, value: Any) -> None:
        super()._write_field(field, value)
        if field.name == "scenes":
            for scene in value:
                if isinstance(scene, Scene):
                    scene._attach(self)

    # -- Requests --------------------------------------------------------------

    def push(self, *scene_classes: type[Scene]) -> None:
        """Queue scenes to be constructed and pushed on a later update."""
        for scene_class in scene_classes:
            _validate_scene_class(scene_class)
        if scene_classes:
            self.push_queue = [*self.push_queue, *scene_classes]

    def pop(self, count: int = 1) -> None:
        """Request ``count`` pops.

        Queued pushes that have not been realized yet are cancelled first;
        only the remainder becomes pending pops.

        Raises:
            ValueError: If ``count`` is negative.
        """
        if count < 0:
            raise ValueError(f"pop count must be non-negative, got {count}")
        if count == 0:
            return

        queued = len(self.push_queue)
        if queued >= count:
            self.push_queue = self.push_queue[: queued - count]
            return
        if queued:
            self.push_queue = []
        self.pop_count += count - queued

    def change(self, *scene_classes: type[Scene]) -> None:
        """Replace the top scene: ``pop()`` then ``push(*scene_classes)``."""
        self.pop()
        self.push(*scene_classes)

    def pop_to(self, scene_class: type[Scene], skip_pending_pops: bool = False) -> None:
        """Request the pops needed to bring the nearest ``scene_class`` to the top.

        Args:
            scene_class: Scene type to search for, nearest to the top first.
            skip_pending_pops: Ignore scenes already slated for removal by
                ``pop_count``.

        Raises:
            InvalidOperationError: If no matching scene is on the stack.
        """
        scenes = self.scenes
        limit = len(scenes) - self.pop_count if skip_pending_pops else len(scenes)
        for index in range(max(limit, 0) - 1, -1, -1):
            if isinstance(scenes[index], scene_class):
                break
        else:
            raise InvalidOperationError(f"Target scene {scene_class.__name__} not found.")

        needed = len(scenes) - 1 - index
        count = len(self.push_queue) + max(0, needed - self.pop_count)
        if count:
            self.pop(count)

    # -- Frame update ----------------------------------------------------------

    def update(self) -> None:
        """Advance the stack by one frame."""
        popped = 0
        while self.pop_count > 0 and self.scenes:
            if not self.scenes[-1].update_popping():
                for scene in self.scenes[:-1]:
                    scene.update_background()
                return
            self.pop_count -= 1
            self.exec_pop()
            popped += 1
        if self.pop_count:
            self.pop_count = 0

        if self.push_queue:
            top = self.top
            if top is not None and not top.update_blurring():
                return
            queued = list(self.push_queue)
            self.push_queue = []
            self.exec_push(*queued)
            return

        top = self.top
        if top is None:
            return
        if popped:
            top.gain_focus()
        top.update()

    # -- Realized transitions --------------------------------------------------

    def exec_push(self, *scene_classes: type[Scene]) -> None:
        """Construct and push scenes now, handing focus to the last one.

        The previous top loses focus once; intermediate scenes are started but
        never focused.
        """
        if not scene_classes:
            return

        previous = self.top
        if previous is not None:
            previous.lose_focus()
        for scene_class in scene_classes:
            scene = scene_class()
            self.scenes = [*self.scenes, scene]
            log.debug("scene_pushed", scene=scene_class.__name__, depth=len(self.scenes))
            scene.start()
        self.scenes[-1].gain_focus()

    def exec_pop(self) -> None:
        """Remove the top scene now: it loses focus, stops, then leaves the stack.

        Raises:
            InvalidOperationError: If the stack is empty.
        """
        if not self.scenes:
            raise InvalidOperationError(
                "Tried to exec_pop a scene while the scene stack was empty."
            )

        scene = self.scenes[-1]
        scene.lose_focus()
        scene.stop()
        self.scenes = self.scenes[:-1]
        scene._attach(None)
        log.debug("scene_popped", scene=type(scene).__name__, depth=len(self.scenes))


__all__ = ["SceneStack"]
