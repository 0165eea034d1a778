# File: src/source_query/protocols/packets.py
"""
A2S_INFO 封包构建与解析 (Packet Codec)

负责请求包的序列化与响应数据报的拆包 (Header / Type / Body)。
本模块是无状态的 (Stateless)，不持有任何配置或会话信息，也不做任何 I/O。

请求结构:
    int32 Header(-1) + Type('T') + "Source Engine Query\\0" + [Challenge(4B)]
响应结构:
    int32 Header(-1) + Type('A') + Challenge(4B)
    int32 Header(-1) + Type('I') + Info Body
"""

import logging
import struct
from dataclasses import dataclass
from enum import IntEnum

from ..exceptions import (
    MalformedPacketBodyError,
    MalformedPacketHeaderError,
    UnknownPacketHeaderError,
    UnknownPacketTypeError,
    UnsupportedSplitPacketError,
)
from . import constants
from .reader import PacketReader

logger = logging.getLogger(__name__)

_HEADER = struct.Struct("<i")


class PacketHeader(IntEnum):
    """区分单包与分片包的 4 字节包头。"""

    SINGLE = constants.HEADER_SINGLE
    SPLIT = constants.HEADER_SPLIT

    @classmethod
    def decode(cls, raw: int) -> "PacketHeader":
        """将 int32 转换为 PacketHeader。

        Raises:
            UnknownPacketHeaderError: raw 不是 -1 / -2。
        """
        if raw == constants.HEADER_SINGLE:
            return cls.SINGLE
        if raw == constants.HEADER_SPLIT:
            return cls.SPLIT
        raise UnknownPacketHeaderError(raw)

    def to_bytes(self) -> bytes:
        return _HEADER.pack(self.value)


class PacketType(IntEnum):
    """数据包在协议中的角色。"""

    REQUEST = constants.TYPE_REQUEST
    CHALLENGE = constants.TYPE_CHALLENGE
    RESPONSE = constants.TYPE_RESPONSE

    @classmethod
    def decode(cls, raw: int) -> "PacketType":
        """将类型字节转换为 PacketType。

        Raises:
            UnknownPacketTypeError: raw 不在 {'T', 'A', 'I'} 之内。
        """
        if raw == constants.TYPE_REQUEST:
            return cls.REQUEST
        if raw == constants.TYPE_CHALLENGE:
            return cls.CHALLENGE
        if raw == constants.TYPE_RESPONSE:
            return cls.RESPONSE
        raise UnknownPacketTypeError(raw)

    def to_byte(self) -> bytes:
        return bytes([self.value])


# =========================================================================
# Request (Client -> Server)
# =========================================================================


@dataclass(frozen=True)
class RequestPacket:
    """A2S_INFO 请求包。

    Attributes:
        challenge: 服务器下发的 4 字节 Challenge，仅在重发时存在。
    """

    challenge: bytes | None = None

    @property
    def header(self) -> PacketHeader:
        return PacketHeader.SINGLE

    @property
    def packet_type(self) -> PacketType:
        return PacketType.REQUEST

    @property
    def payload(self) -> str:
        return constants.REQUEST_PAYLOAD

    def pack(self) -> bytes:
        return encode_request(self)


def encode_request(request: RequestPacket) -> bytes:
    """序列化请求包。

    数据报边界即帧边界，不附加长度前缀。

    Args:
        request: 请求包对象。

    Returns:
        bytes: 可直接发送的 UDP 载荷。
    """
    pkt = bytearray()
    pkt.extend(request.header.to_bytes())
    pkt.extend(request.packet_type.to_byte())
    pkt.extend(request.payload.encode("ascii"))
    pkt.append(0x00)
    if request.challenge is not None:
        pkt.extend(request.challenge)
    return bytes(pkt)


# =========================================================================
# Response (Server -> Client)
# =========================================================================


@dataclass(frozen=True)
class ResponsePacket:
    """拆包后的响应数据报。

    分片相关字段 (fragment_*) 仅对 Split 包有意义。
    本库遇到 Split 包直接报错，因此它们始终为 None。
    """

    header: PacketHeader
    packet_type: PacketType
    body: bytes
    fragment_id: int | None = None
    fragment_total: int | None = None
    fragment_number: int | None = None
    fragment_size: int | None = None
    decompressed_size: int | None = None

    @classmethod
    def unpack(cls, data: bytes) -> "ResponsePacket":
        return decode_response(data)


def decode_response(data: bytes) -> ResponsePacket:
    """解析一个入站数据报。

    Args:
        data: 接收到的 UDP 载荷。

    Returns:
        ResponsePacket: 拆包结果。Challenge 包的 body 恰为 4 字节，
            其它类型的 body 为类型字节之后的全部内容 (不裁剪尾部)。

    Raises:
        MalformedPacketHeaderError: 不足 4 字节包头或缺少类型字节。
        UnknownPacketHeaderError: 包头既不是 -1 也不是 -2。
        UnsupportedSplitPacketError: 收到分片包。
        UnknownPacketTypeError: 未知类型字节。
        MalformedPacketBodyError: Challenge 包不足 4 字节。
    """
    if len(data) < constants.HEADER_LEN:
        raise MalformedPacketHeaderError(f"包头长度不足: {len(data)} 字节")

    (raw_header,) = _HEADER.unpack_from(data, 0)
    header = PacketHeader.decode(raw_header)

    if header is PacketHeader.SPLIT:
        raise UnsupportedSplitPacketError("不支持分片响应包 (header=-2)")

    if len(data) <= constants.TYPE_OFFSET:
        raise MalformedPacketHeaderError("缺少包类型字节")

    packet_type = PacketType.decode(data[constants.TYPE_OFFSET])

    if packet_type is PacketType.CHALLENGE:
        reader = PacketReader(data, constants.BODY_OFFSET)
        try:
            body = reader.read_bytes(constants.CHALLENGE_LEN)
        except MalformedPacketBodyError as e:
            raise MalformedPacketBodyError(f"Challenge 长度不足: {e}") from e
    else:
        body = bytes(data[constants.BODY_OFFSET :])

    logger.debug(f"decode_response: type={packet_type.name} body_len={len(body)}")
    return ResponsePacket(header=header, packet_type=packet_type, body=body)
