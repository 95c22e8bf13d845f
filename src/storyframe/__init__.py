"""storyframe: save-state codec, dirty-tracking state and a scene stack runtime."""

from storyframe.errors import (
    DuplicateRegistrationError,
    InvalidOperationError,
    MalformedDocumentError,
    StoryframeError,
    UnknownSingletonError,
    UnserializableValueError,
)
from storyframe.scenes import Scene, SceneStack, Splash, Title
from storyframe.serde import (
    UNDEFINED,
    Field,
    RegisteredSymbol,
    Serializable,
    SingletonRegistry,
    decode,
    deep_clone,
    default_registry,
    encode,
    register_singleton,
    serializable,
    symbol_for,
)
from storyframe.state import StateObject, register_clean_traversal

__version__ = "0.1.0"

__all__ = [
    "UNDEFINED",
    "DuplicateRegistrationError",
    "Field",
    "InvalidOperationError",
    "MalformedDocumentError",
    "RegisteredSymbol",
    "Scene",
    "SceneStack",
    "Serializable",
    "SingletonRegistry",
    "Splash",
    "StateObject",
    "StoryframeError",
    "Title",
    "UnknownSingletonError",
    "UnserializableValueError",
    "__version__",
    "decode",
    "deep_clone",
    "default_registry",
    "encode",
    "register_clean_traversal",
    "register_singleton",
    "serializable",
    "symbol_for",
]
