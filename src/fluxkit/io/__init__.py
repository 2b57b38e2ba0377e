"""Wire serialization: orjson and msgpack codecs, content negotiation."""

from .codec import (
    Codec,
    CodecType,
    MsgpackCodec,
    OrjsonCodec,
    codec_for_content_type,
    decode,
    encode,
    encode_line,
    encode_str,
    get_codec,
    negotiate,
    register_codec,
)

__all__ = [
    "Codec",
    "CodecType",
    "MsgpackCodec",
    "OrjsonCodec",
    "codec_for_content_type",
    "decode",
    "encode",
    "encode_line",
    "encode_str",
    "get_codec",
    "negotiate",
    "register_codec",
]
