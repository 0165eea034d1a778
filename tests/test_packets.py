# tests/test_packets.py
"""
测试封包构建 (encode_request) 与数据报拆包 (decode_response)。
"""

import logging
import struct

import pytest

from source_query.exceptions import (
    MalformedPacketBodyError,
    MalformedPacketHeaderError,
    UnknownPacketHeaderError,
    UnknownPacketTypeError,
    UnsupportedSplitPacketError,
)
from source_query.protocols import constants
from source_query.protocols.packets import (
    PacketHeader,
    PacketType,
    RequestPacket,
    ResponsePacket,
    decode_response,
    encode_request,
)

PLAIN_REQUEST = b"\xff\xff\xff\xffTSource Engine Query\x00"


def test_encode_plain_request():
    packet = encode_request(RequestPacket())

    assert packet == PLAIN_REQUEST
    assert len(packet) == 4 + 1 + len("Source Engine Query") + 1


def test_encode_request_with_challenge_appends_token_verbatim():
    token = b"\x00\x9a\xff\x01"
    packet = RequestPacket(challenge=token).pack()

    assert packet == PLAIN_REQUEST + token


def test_request_packet_fixed_fields():
    req = RequestPacket()
    assert req.header is PacketHeader.SINGLE
    assert req.packet_type is PacketType.REQUEST
    assert req.payload == "Source Engine Query"
    assert req.challenge is None


@pytest.mark.parametrize(
    "type_byte, expected",
    [
        (0x54, PacketType.REQUEST),
        (0x41, PacketType.CHALLENGE),
        (0x49, PacketType.RESPONSE),
    ],
)
def test_decode_roundtrips_all_type_tags(type_byte, expected):
    raw = PacketHeader.SINGLE.to_bytes() + bytes([type_byte]) + b"\x01\x02\x03\x04"
    packet = decode_response(raw)

    assert packet.header is PacketHeader.SINGLE
    assert packet.packet_type is expected
    assert packet.packet_type.to_byte() == bytes([type_byte])


def test_encoded_request_decodes_back_to_request_tags():
    packet = decode_response(encode_request(RequestPacket()))

    assert packet.header is PacketHeader.SINGLE
    assert packet.packet_type is PacketType.REQUEST
    assert packet.body == b"Source Engine Query\x00"


def test_decode_challenge_body_is_exactly_four_bytes():
    raw = b"\xff\xff\xff\xffA" + b"\xde\xad\xbe\xef" + b"\x00" * 10
    packet = decode_response(raw)

    assert packet.packet_type is PacketType.CHALLENGE
    assert packet.body == b"\xde\xad\xbe\xef"


def test_decode_response_body_is_untrimmed():
    raw = b"\xff\xff\xff\xffI" + b"\x11payload\x00" + b"\x00" * 5
    packet = decode_response(raw)

    assert packet.packet_type is PacketType.RESPONSE
    assert packet.body == b"\x11payload\x00" + b"\x00" * 5


def test_decode_leaves_fragment_metadata_empty():
    packet = ResponsePacket.unpack(b"\xff\xff\xff\xffI\x11")

    assert packet.fragment_id is None
    assert packet.fragment_total is None
    assert packet.fragment_number is None
    assert packet.fragment_size is None
    assert packet.decompressed_size is None


@pytest.mark.parametrize("raw_header", [0, 1, -3, 0x7FFFFFFF, -(2**31), 0x49FFFFFF])
def test_decode_unknown_header_carries_raw_value(raw_header):
    raw = struct.pack("<i", raw_header) + b"I\x00"

    with pytest.raises(UnknownPacketHeaderError) as exc_info:
        decode_response(raw)
    assert exc_info.value.raw == raw_header


def test_decode_split_header_is_unsupported():
    raw = struct.pack("<i", constants.HEADER_SPLIT) + b"\x01\x00\x00\x00\x02\x00"

    with pytest.raises(UnsupportedSplitPacketError):
        decode_response(raw)


@pytest.mark.parametrize(
    "type_byte",
    [b for b in (0x00, 0x44, 0x45, 0x55, 0x6C, 0xFF)],
)
def test_decode_unknown_type_carries_raw_byte(type_byte):
    raw = b"\xff\xff\xff\xff" + bytes([type_byte]) + b"\x00" * 4

    with pytest.raises(UnknownPacketTypeError) as exc_info:
        decode_response(raw)
    assert exc_info.value.raw == type_byte


@pytest.mark.parametrize(
    "raw, description",
    [
        (b"", "空数据报"),
        (b"\xff\xff\xff", "包头只有 3 字节"),
        (b"\xff\xff\xff\xff", "缺少类型字节"),
    ],
)
def test_decode_short_header(raw, description):
    with pytest.raises(MalformedPacketHeaderError):
        decode_response(raw)


def test_decode_short_challenge():
    with pytest.raises(MalformedPacketBodyError):
        decode_response(b"\xff\xff\xff\xffA\x01\x02")


def test_header_and_type_decode_are_total():
    assert PacketHeader.decode(-1) is PacketHeader.SINGLE
    assert PacketHeader.decode(-2) is PacketHeader.SPLIT
    assert PacketHeader.SPLIT.to_bytes() == b"\xfe\xff\xff\xff"

    for raw in range(256):
        if raw in (0x54, 0x41, 0x49):
            assert PacketType.decode(raw).value == raw
        else:
            with pytest.raises(UnknownPacketTypeError):
                PacketType.decode(raw)


def test_decode_debug_log_is_preformatted(caplog):
    caplog.set_level(logging.DEBUG, logger="source_query.protocols.packets")

    decode_response(b"\xff\xff\xff\xffA\x01\x02\x03\x04")

    (record,) = caplog.records
    assert record.msg == "decode_response: type=CHALLENGE body_len=4"
    assert record.args == ()
