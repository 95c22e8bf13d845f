"""Demo scene flow: a splash screen handing over to the title screen."""

from __future__ import annotations

from storyframe.scenes.scene import Scene
from storyframe.serde.serializable import serializable


@serializable
class Splash(Scene):
    """Shown first; replaces itself with :class:`Title` as soon as it is focused."""

    def on_focused(self) -> None:
        super().on_focused()
        if self.stack is not None:
            self.stack.change(Title)


@serializable
class Title(Scene):
    """Title screen. Pops itself when focused, which ends the demo run."""

    def on_focused(self) -> None:
        super().on_focused()
        if self.stack is not None:
            self.stack.pop()


__all__ = ["Splash", "Title"]
