"""Singleton registry, serializable base class and the link-addressed codec."""

from storyframe.serde.codec import (
    CONSTRUCTOR_KEY,
    DOCUMENT_ROOT,
    Document,
    check_document,
    decode,
    deep_clone,
    encode,
)
from storyframe.serde.registry import (
    UNDEFINED,
    RegisteredSymbol,
    SingletonRegistry,
    default_registry,
    register_singleton,
    symbol_for,
)
from storyframe.serde.serializable import Field, Serializable, serializable

__all__ = [
    "CONSTRUCTOR_KEY",
    "DOCUMENT_ROOT",
    "UNDEFINED",
    "Document",
    "Field",
    "RegisteredSymbol",
    "Serializable",
    "SingletonRegistry",
    "check_document",
    "decode",
    "deep_clone",
    "default_registry",
    "encode",
    "register_singleton",
    "serializable",
    "symbol_for",
]
