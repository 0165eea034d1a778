# src/source_query/protocols/constants.py
"""
A2S_INFO 协议层 - 常量定义

本模块定义了所有协议相关的魔法数字、偏移量和固定值。
参考: https://developer.valvesoftware.com/wiki/Server_queries#A2S_INFO
"""

from enum import IntFlag

# =========================================================================
# 1. 包头与包类型 (Header & Type)
# =========================================================================

# 包头 int32 (Little Endian)
HEADER_SINGLE = -1  # 单包
HEADER_SPLIT = -2  # 分片包

# 类型字节
TYPE_REQUEST = 0x54  # 'T' A2S_INFO 请求
TYPE_CHALLENGE = 0x41  # 'A' S2C_CHALLENGE
TYPE_RESPONSE = 0x49  # 'I' A2S_INFO 响应

# =========================================================================
# 2. 结构偏移量 (Offsets & Structure)
# =========================================================================

HEADER_LEN = 4
TYPE_OFFSET = 4
BODY_OFFSET = 5
CHALLENGE_LEN = 4

# 请求载荷 (以 0x00 结尾)
REQUEST_PAYLOAD = "Source Engine Query"

# Valve 文档: 单包最大 1400 字节 (不含 IP/UDP 头)
MAX_PACKET_SIZE = 1400

# =========================================================================
# 3. 默认值
# =========================================================================

DEFAULT_PORT = 27015
DEFAULT_TIMEOUT = 5.0


# =========================================================================
# 4. Extra Data Flags (EDF)
# =========================================================================


class ExtraDataFlag(IntFlag):
    """EDF 位到可选字段的映射表 (与 Valve Server_queries 文档一致)。

    可选字段按成员声明顺序依次出现在包体末尾 (注意不是按位高低排序)，
    没有长度前缀，只能顺序读取。
    """

    PORT = 0x80  # u16 服务器端口
    STEAM_ID = 0x10  # u64 服务器 SteamID
    SPECTATOR = 0x40  # u16 SourceTV 端口 + string SourceTV 名称
    KEYWORDS = 0x20  # string 逗号分隔的标签
    GAME_ID = 0x01  # u64 完整 GameID
