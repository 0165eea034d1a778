# File: src/source_query/state.py
"""
Source Query 核心库 - 状态模块

定义单次 A2S_INFO 查询的握手状态。
本模块不包含业务逻辑，仅作为数据容器供 Core 读写。
"""

from dataclasses import dataclass
from enum import Enum, auto


class QueryStatus(Enum):
    """单次查询的握手状态枚举。

    状态流转示意:
    IDLE -> AWAITING_INITIAL -> DONE
                 |
                 v
          AWAITING_CHALLENGED -> DONE

    AWAITING_CHALLENGED 只能进入一次；在该状态下再次收到 Challenge 即为协议违规。
    """

    IDLE = auto()
    """初始状态，尚未绑定 Socket。"""

    AWAITING_INITIAL = auto()
    """已发送不带 Challenge 的请求，等待首个响应。"""

    AWAITING_CHALLENGED = auto()
    """已携带 Challenge 重发请求，等待最终响应。"""

    DONE = auto()
    """已收到 Response 并完成解析。"""


@dataclass
class QueryState:
    """单次查询的易变状态。

    Attributes:
        status: 当前握手状态。
        challenge: 服务器下发的 Challenge (4 Bytes)，未被挑战时为空。
        rounds: 已完成的 send/receive 轮数 (最多 2)。
    """

    status: QueryStatus = QueryStatus.IDLE
    challenge: bytes = b""
    rounds: int = 0

    @property
    def is_challenged(self) -> bool:
        return bool(self.challenge)
