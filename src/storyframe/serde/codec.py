"""Link-addressed object graph codec.

``encode`` flattens a value graph into a document: a dict mapping object
links to records. The root lives under the empty link ``""``; every other
compound value lives under the path it was first discovered at
(``".scenes.0"``). Values seen a second time are emitted as their existing
link, which is how shared references and cycles survive.

Serialized values are tagged so they stay unambiguous inside plain JSON:

======================  =================================================
``None``, bool, number  as-is (ints beyond 2**53-1 become ``"b<digits>"``)
``str``                 ``"_" + value``
registered value        ``"s" + name`` (classes, ``UNDEFINED``, NaN, ±inf)
``RegisteredSymbol``    ``"rs" + key``
dict / list / object    object link: ``""`` or ``"." + escaped path``
======================  =================================================

Records name their class under the ``""`` key. A field literally named ``""``
is stored under ``"constructor"`` instead, and vice versa.

``decode`` reverses the process. It registers every object right after
construction and before filling its fields, so links pointing back into a
partially built object resolve to that same instance.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from storyframe.errors import (
    MalformedDocumentError,
    UnknownSingletonError,
    UnserializableValueError,
)
from storyframe.observability.logging import get_logger
from storyframe.serde.registry import (
    RegisteredSymbol,
    SingletonRegistry,
    default_registry,
    symbol_for,
)
from storyframe.serde.serializable import Serializable

if TYPE_CHECKING:
    from collections.abc import Iterable

log = get_logger(__name__)

DOCUMENT_ROOT = ""
CONSTRUCTOR_KEY = "constructor"
MAX_SAFE_INTEGER = 2**53 - 1

_BIG_INT_PATTERN = re.compile(r"-?[0-9]+")

Document = dict[str, Any]


def escape_link_segment(key: str) -> str:
    """Escape ``.`` and ``\\`` so a field name cannot forge a path separator."""
    return key.replace("\\", "\\\\").replace(".", "\\.")


def child_link(parent: str, key: str) -> str:
    """Object link of field ``key`` inside the object at ``parent``."""
    return f"{parent}.{escape_link_segment(key)}"


def _swap_reserved(key: str) -> str:
    # Records keep their class under "", so a real "" field trades places
    # with the reserved constructor key.
    if key == DOCUMENT_ROOT:
        return CONSTRUCTOR_KEY
    if key == CONSTRUCTOR_KEY:
        return DOCUMENT_ROOT
    return key


def _is_object_link(value: Any) -> bool:
    return isinstance(value, str) and (value == DOCUMENT_ROOT or value.startswith("."))


# -----------------------------------------------------------------------------
# Encoding
# -----------------------------------------------------------------------------


class _Encoder:
    def __init__(self, registry: SingletonRegistry) -> None:
        self.registry = registry
        self.document: Document = {}
        self._visited: dict[int, tuple[Any, str]] = {}

    def encode_value(self, value: Any, link: str) -> Any:
        name = self.registry.lookup_by_value(value)
        if name is not None:
            return f"s{name}"

        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, int):
            if -MAX_SAFE_INTEGER <= value <= MAX_SAFE_INTEGER:
                return value
            return f"b{value}"
        if isinstance(value, float):
            if value != value or value in (float("inf"), float("-inf")):
                raise UnserializableValueError(value, link, "non-finite float without a singleton")
            return value
        if isinstance(value, str):
            return f"_{value}"
        if isinstance(value, RegisteredSymbol):
            return f"rs{value.key}"

        visited = self._visited.get(id(value))
        if visited is not None:
            return visited[1]

        if type(value) is list:
            return self._encode_sequence(value, link)
        if type(value) is dict:
            return self._encode_record(value, dict, value.items(), link)
        if isinstance(value, Serializable):
            if self.registry.lookup_by_value(type(value)) is None:
                raise UnserializableValueError(
                    value, link, f"class {type(value).__name__} is not registered"
                )
            return self._encode_record(value, type(value), value.serialized_items(), link)

        raise UnserializableValueError(value, link)

    def _encode_sequence(self, value: list[Any], link: str) -> str:
        self._visited[id(value)] = (value, link)
        encoded: list[Any] = []
        self.document[link] = encoded
        for index, item in enumerate(value):
            encoded.append(self.encode_value(item, child_link(link, str(index))))
        return link

    def _encode_record(
        self,
        value: Any,
        constructor: type,
        items: Iterable[tuple[Any, Any]],
        link: str,
    ) -> str:
        self._visited[id(value)] = (value, link)
        record: dict[str, Any] = {}
        self.document[link] = record
        record[DOCUMENT_ROOT] = self.encode_value(constructor, link)

        for key, item in items:
            if not isinstance(key, str):
                raise UnserializableValueError(value, link, f"non-string field name {key!r}")
            record_key = _swap_reserved(key)
            if record_key in record:
                raise UnserializableValueError(
                    value, link, f"duplicate serialized field name {key!r}"
                )
            record[record_key] = self.encode_value(item, child_link(link, key))
        return link


def encode(root: Any, *, registry: SingletonRegistry | None = None) -> Document:
    """Encode ``root`` and everything reachable from it into a document.

    Args:
        root: Any encodable value.
        registry: Singleton registry to use (default: process-wide).

    Returns:
        A document of plain JSON-compatible data.

    Raises:
        UnserializableValueError: If the graph holds a value with no encoding.
    """
    encoder = _Encoder(registry if registry is not None else default_registry)
    encoded = encoder.encode_value(root, DOCUMENT_ROOT)
    if not (isinstance(encoded, str) and encoded == DOCUMENT_ROOT):
        encoder.document[DOCUMENT_ROOT] = encoded
    log.debug("document_encoded", root=type(root).__name__, entries=len(encoder.document))
    return encoder.document


# -----------------------------------------------------------------------------
# Decoding
# -----------------------------------------------------------------------------


class _Decoder:
    def __init__(self, document: Mapping[str, Any], registry: SingletonRegistry) -> None:
        self.document = document
        self.registry = registry
        self._decoded: dict[str, Any] = {}

    def decode_value(self, raw: Any, link: str) -> Any:
        if raw is None or isinstance(raw, (bool, int, float)):
            return raw
        if not isinstance(raw, str):
            raise MalformedDocumentError(f"unexpected {type(raw).__name__} value {raw!r}", link)

        if _is_object_link(raw):
            return self.decode_object(raw)
        if raw.startswith("_"):
            return raw[1:]
        if raw.startswith("rs"):
            return symbol_for(raw[2:])
        if raw.startswith("s"):
            name = raw[1:]
            if not self.registry.has_name(name):
                raise UnknownSingletonError(name, self.registry.names())
            return self.registry.lookup_by_name(name)
        if raw.startswith("b"):
            digits = raw[1:]
            if not _BIG_INT_PATTERN.fullmatch(digits):
                raise MalformedDocumentError(f"invalid big integer {raw!r}", link)
            return int(digits)

        raise MalformedDocumentError(f"unrecognised string value {raw!r}", link)

    def decode_object(self, link: str) -> Any:
        if link in self._decoded:
            return self._decoded[link]

        try:
            raw = self.document[link]
        except KeyError as exc:
            raise MalformedDocumentError("dangling object link", link) from exc

        if isinstance(raw, list):
            items: list[Any] = []
            self._decoded[link] = items
            for item in raw:
                items.append(self.decode_value(item, link))
            return items

        if not isinstance(raw, Mapping):
            raise MalformedDocumentError(
                f"expected a record or sequence, got {type(raw).__name__}", link
            )
        if DOCUMENT_ROOT not in raw:
            raise MalformedDocumentError("record has no constructor", link)

        constructor = self.decode_value(raw[DOCUMENT_ROOT], link)
        if not (
            isinstance(constructor, type)
            and (constructor is dict or issubclass(constructor, Serializable))
        ):
            raise MalformedDocumentError(f"constructor {constructor!r} is not a record type", link)

        obj = constructor()
        self._decoded[link] = obj

        for key, item in raw.items():
            if key == DOCUMENT_ROOT:
                continue
            name = _swap_reserved(key)
            value = self.decode_value(item, link)
            if constructor is dict:
                obj[name] = value
            else:
                obj.restore_field(name, value)
        return obj


def decode(document: Mapping[str, Any], *, registry: SingletonRegistry | None = None) -> Any:
    """Rebuild the value graph stored in ``document``.

    Args:
        document: A document produced by :func:`encode` (or parsed from JSON).
        registry: Singleton registry to use (default: process-wide).

    Returns:
        The decoded root value.

    Raises:
        MalformedDocumentError: If the document cannot be interpreted.
        UnknownSingletonError: If a singleton link names nothing registered.
    """
    if not isinstance(document, Mapping):
        raise MalformedDocumentError(f"document must be a mapping, got {type(document).__name__}")
    if DOCUMENT_ROOT not in document:
        raise MalformedDocumentError("missing root entry", DOCUMENT_ROOT)

    decoder = _Decoder(document, registry if registry is not None else default_registry)
    root = document[DOCUMENT_ROOT]
    if isinstance(root, (list, Mapping)):
        value = decoder.decode_object(DOCUMENT_ROOT)
    else:
        value = decoder.decode_value(root, DOCUMENT_ROOT)
    log.debug("document_decoded", root=type(value).__name__, entries=len(document))
    return value


def deep_clone(value: Any, *, registry: SingletonRegistry | None = None) -> Any:
    """Copy a value graph by encoding and decoding it."""
    return decode(encode(value, registry=registry), registry=registry)


# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------


def check_document(
    document: Mapping[str, Any],
    *,
    registry: SingletonRegistry | None = None,
) -> list[str]:
    """Check a document's shape without decoding it.

    Verifies link keys, record constructors, value tags and the closure
    invariant (every object link used as a value is present). When a
    registry is given, singleton names are checked against it too.

    Returns:
        List of error strings. Empty means valid.
    """
    if not isinstance(document, Mapping):
        return [f"document must be a mapping, got {type(document).__name__}"]

    errors: list[str] = []
    if DOCUMENT_ROOT not in document:
        errors.append("missing root entry ''")

    def check_value(raw: Any, where: str) -> None:
        if raw is None or isinstance(raw, (bool, int, float)):
            return
        if not isinstance(raw, str):
            errors.append(f"{where}: unexpected {type(raw).__name__} value")
        elif _is_object_link(raw):
            if raw not in document:
                errors.append(f"{where}: dangling object link {raw!r}")
        elif raw.startswith("s") and not raw.startswith("rs"):
            if registry is not None and not registry.has_name(raw[1:]):
                errors.append(f"{where}: unknown singleton {raw[1:]!r}")
        elif raw.startswith("b"):
            if not _BIG_INT_PATTERN.fullmatch(raw[1:]):
                errors.append(f"{where}: invalid big integer {raw!r}")
        elif not raw.startswith(("_", "rs")):
            errors.append(f"{where}: unrecognised string value {raw!r}")

    for link, entry in document.items():
        where = repr(link)
        if not _is_object_link(link):
            errors.append(f"{where}: invalid object link key")
            continue
        if isinstance(entry, list):
            for item in entry:
                check_value(item, where)
        elif isinstance(entry, Mapping):
            if DOCUMENT_ROOT not in entry:
                errors.append(f"{where}: record has no constructor")
            for item in entry.values():
                check_value(item, where)
        elif link == DOCUMENT_ROOT:
            check_value(entry, where)
        else:
            errors.append(f"{where}: expected a record or sequence")

    return errors


__all__ = [
    "CONSTRUCTOR_KEY",
    "DOCUMENT_ROOT",
    "Document",
    "check_document",
    "child_link",
    "decode",
    "deep_clone",
    "encode",
    "escape_link_segment",
]
