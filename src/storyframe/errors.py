"""Engine error types.

Every failure in the persistence and scene core is a contract violation by
the caller. Errors are raised synchronously and never retried; each type
formats its own message from the attributes it carries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from difflib import get_close_matches
from typing import Any


class StoryframeError(Exception):
    """Base class for all engine errors."""


@dataclass
class DuplicateRegistrationError(StoryframeError):
    """Raised when a singleton name is already bound to a different value.

    Attributes:
        name: The registry name that collided.
        existing: The value already registered under ``name``.
        attempted: The value that was being registered.
    """

    name: str
    existing: Any = None
    attempted: Any = None

    def __post_init__(self) -> None:
        super().__init__(
            f"Singleton name {self.name!r} is already registered to "
            f"{self.existing!r}, cannot register {self.attempted!r}"
        )


@dataclass
class UnserializableValueError(StoryframeError):
    """Raised when encode meets a value with no defined encoding.

    Attributes:
        value: The offending value.
        link: Object link under which the value was found.
        reason: Optional extra explanation.
    """

    value: Any
    link: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        msg = f"Unserializable value encountered at {self.link or '<root>'!s}: {self.value!r}"
        if self.reason:
            msg += f" ({self.reason})"
        super().__init__(msg)


@dataclass
class MalformedDocumentError(StoryframeError):
    """Raised when decode meets data it cannot interpret.

    Attributes:
        reason: What is wrong with the document.
        link: Object link being decoded when the problem was found.
    """

    reason: str
    link: str | None = None

    def __post_init__(self) -> None:
        msg = f"Malformed document: {self.reason}"
        if self.link is not None:
            msg += f" (at {self.link or '<root>'})"
        super().__init__(msg)


@dataclass
class UnknownSingletonError(StoryframeError):
    """Raised when a singleton link names nothing in the registry.

    Attributes:
        name: The unknown singleton name.
        available: Registered names, used for suggestions.
    """

    name: str
    available: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(self._format_message())

    def suggestions(self) -> list[str]:
        """Registered names that look like typos of ``name``."""
        return get_close_matches(self.name, self.available, n=3, cutoff=0.6)

    def _format_message(self) -> str:
        msg = f"Missing singleton for key {self.name!r}"
        suggestions = self.suggestions()
        if suggestions:
            msg += f"; did you mean {', '.join(repr(s) for s in suggestions)}?"
        return msg


class InvalidOperationError(StoryframeError):
    """Raised when an operation is not valid in the object's current state.

    Covers over-unsubscribing a dirty subscriber, ``pop_to`` with no matching
    scene and popping an empty scene stack.
    """


__all__ = [
    "DuplicateRegistrationError",
    "InvalidOperationError",
    "MalformedDocumentError",
    "StoryframeError",
    "UnknownSingletonError",
    "UnserializableValueError",
]
