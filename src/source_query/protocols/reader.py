# src/source_query/protocols/reader.py
"""
A2S_INFO 协议层 - 字段读取器 (Field Reader)

在不可变的字节缓冲区上维护一个游标，按小端序读取定长整数和以 0x00 结尾的字符串。
包体长度由对端决定，所有读取都做边界检查，越界时抛出 MalformedPacketBodyError。
"""

import struct

from ..exceptions import MalformedPacketBodyError

_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_U64 = struct.Struct("<Q")


class PacketReader:
    """带游标的只读字节流。

    Attributes:
        data: 被读取的原始字节。
        offset: 下一个待读取字段的起始位置。
    """

    def __init__(self, data: bytes, offset: int = 0) -> None:
        self.data = bytes(data)
        self.offset = offset

    @property
    def remaining(self) -> int:
        """游标之后剩余的字节数。"""
        return max(len(self.data) - self.offset, 0)

    def _unpack(self, fmt: struct.Struct, name: str) -> int:
        if self.remaining < fmt.size:
            raise MalformedPacketBodyError(
                f"{name} 越界: offset={self.offset}, 需要 {fmt.size} 字节, "
                f"剩余 {self.remaining} 字节"
            )
        (value,) = fmt.unpack_from(self.data, self.offset)
        self.offset += fmt.size
        return value

    def read_u8(self) -> int:
        return self._unpack(_U8, "u8")

    def read_u16_le(self) -> int:
        return self._unpack(_U16, "u16")

    def read_u64_le(self) -> int:
        return self._unpack(_U64, "u64")

    def read_bytes(self, length: int) -> bytes:
        """读取定长原始字节。"""
        if self.remaining < length:
            raise MalformedPacketBodyError(
                f"bytes[{length}] 越界: offset={self.offset}, 剩余 {self.remaining} 字节"
            )
        chunk = self.data[self.offset : self.offset + length]
        self.offset += length
        return chunk

    def read_string(self) -> str:
        """读取一个以 0x00 结尾的 UTF-8 字符串，游标移动到终止符之后。

        Raises:
            MalformedPacketBodyError: 找不到终止符，或内容不是合法 UTF-8。
        """
        end = self.data.find(b"\x00", self.offset)
        if end < 0:
            raise MalformedPacketBodyError(f"字符串未终止: offset={self.offset}")

        raw = self.data[self.offset : end]
        try:
            value = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedPacketBodyError(
                f"字符串不是合法 UTF-8: offset={self.offset}"
            ) from e

        self.offset = end + 1
        return value
