"""Dirty-tracking state objects and the engine's persistent state types."""

from storyframe.state.messages import (
    DEFAULT_MESSAGE_TEXT_STYLE,
    SActor,
    SMessage,
    SMessageElement,
    SMessageText,
    SMessageTextStyle,
)
from storyframe.state.state_object import StateObject, register_clean_traversal

__all__ = [
    "DEFAULT_MESSAGE_TEXT_STYLE",
    "SActor",
    "SMessage",
    "SMessageElement",
    "SMessageText",
    "SMessageTextStyle",
    "StateObject",
    "register_clean_traversal",
]
