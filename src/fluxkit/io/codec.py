"""Serialization codecs for the wire.

Provides orjson (JSON) and msgpack (binary) codecs. JSON is the default
everywhere; the HTTP transport switches to msgpack when the caller's
`Accept` header asks for `application/msgpack`.

Usage:
    >>> from fluxkit.io import encode, decode, negotiate
    >>> encode({"key": "value"})
    b'{"key":"value"}'
    >>> negotiate("application/msgpack").name
    'msgpack'
"""

from __future__ import annotations

import dataclasses
from enum import StrEnum
from typing import Protocol, runtime_checkable

import msgpack
import orjson
from pydantic import BaseModel


class CodecType(StrEnum):
    """Supported codec types."""
    ORJSON = "orjson"
    MSGPACK = "msgpack"


@runtime_checkable
class Codec(Protocol):
    """Protocol for serialization codecs."""

    name: str
    content_type: str

    def encode(self, data: object) -> bytes: ...
    def decode(self, data: bytes) -> object: ...


def _default(obj: object) -> object:
    """Fallback for values neither codec handles natively (results are arbitrary)."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    return str(obj)


# ═══════════════════════════════════════════════════════════════════════════════
# Codec Implementations
# ═══════════════════════════════════════════════════════════════════════════════

class OrjsonCodec:
    """orjson codec. Native datetime/uuid/dataclass support."""

    __slots__ = ()
    name = "orjson"
    content_type = "application/json"

    def encode(self, data: object) -> bytes:
        return orjson.dumps(data, default=_default, option=orjson.OPT_NON_STR_KEYS)

    def decode(self, data: bytes) -> object:
        return orjson.loads(data)


class MsgpackCodec:
    """MessagePack codec. Smaller binary payloads."""

    __slots__ = ()
    name = "msgpack"
    content_type = "application/msgpack"

    def encode(self, data: object) -> bytes:
        return msgpack.packb(data, use_bin_type=True, default=_default)

    def decode(self, data: bytes) -> object:
        return msgpack.unpackb(data, raw=False, strict_map_key=False)


# ═══════════════════════════════════════════════════════════════════════════════
# Singleton Instances
# ═══════════════════════════════════════════════════════════════════════════════

_orjson = OrjsonCodec()
_msgpack = MsgpackCodec()

_CODECS: dict[str, Codec] = {"orjson": _orjson, "msgpack": _msgpack}
_BY_MEDIA_TYPE: dict[str, Codec] = {
    "application/json": _orjson,
    "application/msgpack": _msgpack,
    "application/x-msgpack": _msgpack,
}


def get_codec(name: str | CodecType | None = None) -> Codec:
    """Get codec by name (default: orjson)."""
    return _CODECS.get(str(name) if name else "orjson", _orjson)


def register_codec(name: str, codec: Codec, *media_types: str) -> None:
    """Register a custom codec, optionally reachable through content negotiation."""
    _CODECS[name] = codec
    for media_type in media_types:
        _BY_MEDIA_TYPE[media_type.lower()] = codec


def negotiate(accept: str | None) -> Codec:
    """Pick a response codec from an Accept header.

    Media ranges are tried in q-value order; the first known type wins and
    anything else (including `*/*`) falls back to JSON.
    """
    if not accept:
        return _orjson
    ranges: list[tuple[float, int, str]] = []
    for index, part in enumerate(accept.split(",")):
        media_type, _, params = part.strip().partition(";")
        q = 1.0
        for param in params.split(";"):
            key, _, value = param.strip().partition("=")
            if key == "q":
                try:
                    q = float(value)
                except ValueError:
                    q = 0.0
        ranges.append((-q, index, media_type.strip().lower()))
    for neg_q, _, media_type in sorted(ranges):
        if neg_q < 0 and media_type in _BY_MEDIA_TYPE:
            return _BY_MEDIA_TYPE[media_type]
    return _orjson


def codec_for_content_type(content_type: str | None) -> Codec:
    """Codec matching a request's Content-Type (JSON when unknown)."""
    media_type = (content_type or "").partition(";")[0].strip().lower()
    return _BY_MEDIA_TYPE.get(media_type, _orjson)


# ═══════════════════════════════════════════════════════════════════════════════
# Direct Functions (JSON)
# ═══════════════════════════════════════════════════════════════════════════════

def encode(data: object) -> bytes:
    """Encode to JSON bytes (orjson)."""
    return orjson.dumps(data, default=_default, option=orjson.OPT_NON_STR_KEYS)


def decode(data: bytes | str) -> object:
    """Decode from JSON bytes/str (orjson). Raises orjson.JSONDecodeError."""
    return orjson.loads(data)


def encode_str(data: object) -> str:
    """Encode to JSON string (orjson)."""
    return encode(data).decode()


def encode_line(data: object) -> bytes:
    """One JSON document terminated by a newline."""
    return orjson.dumps(data, default=_default, option=orjson.OPT_NON_STR_KEYS | orjson.OPT_APPEND_NEWLINE)
