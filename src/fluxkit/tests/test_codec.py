"""Tests for wire codecs and content negotiation."""

from __future__ import annotations

from dataclasses import dataclass

import pytest
from pydantic import BaseModel

from fluxkit.io import (
    MsgpackCodec,
    OrjsonCodec,
    codec_for_content_type,
    decode,
    encode,
    encode_line,
    get_codec,
    negotiate,
)


class Forecast(BaseModel):
    city: str
    days: int


@dataclass
class Reading:
    value: float


def test_arbitrary_results_serialize() -> None:
    assert decode(encode({"model": Forecast(city="Oslo", days=3)})) == {"model": {"city": "Oslo", "days": 3}}
    assert decode(encode({"tags": {"a"}, "pair": (1, 2)})) == {"tags": ["a"], "pair": [1, 2]}
    assert MsgpackCodec().decode(MsgpackCodec().encode(Reading(1.5))) == {"value": 1.5}


def test_encode_line_ends_with_newline() -> None:
    assert encode_line({"a": 1}) == b'{"a":1}\n'


@pytest.mark.parametrize(
    ("accept", "codec"),
    [
        (None, OrjsonCodec),
        ("*/*", OrjsonCodec),
        ("application/msgpack", MsgpackCodec),
        ("application/x-msgpack", MsgpackCodec),
        ("text/html, application/msgpack;q=0.9", MsgpackCodec),
        ("application/msgpack;q=0.2, application/json;q=0.8", OrjsonCodec),
        ("application/msgpack;q=0", OrjsonCodec),
    ],
)
def test_negotiate(accept: str | None, codec: type) -> None:
    assert isinstance(negotiate(accept), codec)


def test_codec_lookup() -> None:
    assert isinstance(codec_for_content_type("application/msgpack; charset=binary"), MsgpackCodec)
    assert isinstance(codec_for_content_type(None), OrjsonCodec)
    assert isinstance(get_codec("msgpack"), MsgpackCodec)
    assert isinstance(get_codec("unknown"), OrjsonCodec)
