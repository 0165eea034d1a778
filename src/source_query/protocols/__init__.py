# src/source_query/protocols/__init__.py
"""
A2S_INFO 协议层 (Protocol Layer)

本包负责协议数据包的纯粹构建 (Build) 与解析 (Parse)。

- 不包含任何 socket 操作或网络 I/O。
- 不包含任何状态管理 (State)。
- 不依赖于 core 或 network 层。
"""

from . import constants
from .constants import ExtraDataFlag
from .info import ServerInfo, parse_server_info
from .packets import (
    PacketHeader,
    PacketType,
    RequestPacket,
    ResponsePacket,
    decode_response,
    encode_request,
)
from .reader import PacketReader

# 公共 API
__all__ = [
    "constants",
    "ExtraDataFlag",
    "PacketReader",
    "PacketHeader",
    "PacketType",
    "RequestPacket",
    "ResponsePacket",
    "encode_request",
    "decode_response",
    "ServerInfo",
    "parse_server_info",
]
