"""Persistent message state: styled text, speakers and the messages themselves.

These are the durable "stops" of a script. Anything that only exists while a
message animates in belongs in transient, non-serialized objects instead.
"""

from __future__ import annotations

from typing import Any

from storyframe.serde.registry import register_singleton
from storyframe.serde.serializable import Field, serializable
from storyframe.state.state_object import StateObject


@serializable
class SMessageTextStyle(StateObject):
    """Font settings shared between many text elements.

    Values use CSS font shorthand vocabulary. Treat an instance as immutable
    once it is in use and prefer reusing instances over creating new ones,
    since every distinct style is written into save data.
    """

    style = Field("normal")
    variant = Field("normal")
    weight = Field("normal")
    stretch = Field("normal")
    size = Field("medium")
    line_height = Field("normal")
    family = Field("serif")

    def __init__(
        self,
        style: str = "normal",
        variant: str = "normal",
        weight: str = "normal",
        stretch: str = "normal",
        size: str = "medium",
        line_height: str = "normal",
        family: str = "serif",
    ) -> None:
        super().__init__()
        self.style = style
        self.variant = variant
        self.weight = weight
        self.stretch = stretch
        self.size = size
        self.line_height = line_height
        self.family = family

    @property
    def font_string(self) -> str:
        """CSS ``font`` shorthand, e.g. ``"normal normal normal normal medium/normal serif"``."""
        return (
            f"{self.style} {self.variant} {self.weight} {self.stretch} "
            f"{self.size}/{self.line_height} {self.family}"
        )


DEFAULT_MESSAGE_TEXT_STYLE = SMessageTextStyle()
register_singleton("DefaultMessageTextStyle", DEFAULT_MESSAGE_TEXT_STYLE)


@serializable
class SMessageElement(StateObject):
    """Base class for flow-layouted message elements."""


@serializable
class SMessageText(SMessageElement):
    """Plain styled text, possibly with line breaks.

    Whitespace is significant and must be kept as-is when rendering.
    ``style`` is not dirty-subscribed: styles are shared widely and would
    otherwise dirty every text using them.
    """

    text = Field("")
    style = Field(DEFAULT_MESSAGE_TEXT_STYLE)

    def __init__(self, text: str = "", style: SMessageTextStyle | None = None) -> None:
        super().__init__()
        self.text = text
        self.style = style if style is not None else DEFAULT_MESSAGE_TEXT_STYLE


@serializable
class SActor(StateObject):
    """A speaking character; ``pose`` names the sprite pose to show."""

    pose = Field(None)

    def __init__(self, pose: Any = None) -> None:
        super().__init__()
        self.pose = pose


@serializable
class SMessage(StateObject):
    """One message of the script.

    ``loudness`` is renderer-defined; as a guide, 2 is shouting, 1 is normal
    speech or narration, 0.5 whispering and 0 thinking.
    """

    speaker = Field(None, autosubscribe=True)
    loudness = Field(1.0)
    content = Field(default_factory=list, autosubscribe=True)

    def __init__(
        self,
        speaker: SActor | None = None,
        loudness: float = 1.0,
        content: list[SMessageElement] | None = None,
    ) -> None:
        super().__init__()
        self.speaker = speaker
        self.loudness = loudness
        self.content = content if content is not None else []

    @property
    def plain_text(self) -> str:
        """Concatenated text of all text elements."""
        return "".join(
            element.text for element in self.content if isinstance(element, SMessageText)
        )


__all__ = [
    "DEFAULT_MESSAGE_TEXT_STYLE",
    "SActor",
    "SMessage",
    "SMessageElement",
    "SMessageText",
    "SMessageTextStyle",
]
