# File: src/source_query/exceptions.py
"""
Source Query 核心库 - 异常体系 (Exceptions)

定义库内统一使用的异常类，上层应用可以按层级精细地处理错误：
协议层 (ProtocolError) 与网络层 (NetworkError) 分开。
"""


class SourceQueryError(Exception):
    """source-query 所有内部异常的基类。

    上层应用可以通过捕获此异常来处理所有由本库抛出的已知错误。
    """

    pass


class ConfigError(SourceQueryError):
    """配置加载或校验失败。

    触发场景:
    1. 字段格式错误 (如 timeout 为负数、端口越界)。
    2. 找不到配置文件、Profile 或环境变量。
    3. 目标主机地址无法解析为 (host, port)。
    """

    pass


# =========================================================================
# 协议层 (逻辑级别)
# =========================================================================


class ProtocolError(SourceQueryError):
    """协议交互错误 (逻辑级别)。

    数据包已经收到，但内容不符合 A2S_INFO 协议。
    此类错误不会因为重试而消失。
    """

    pass


class UnknownPacketHeaderError(ProtocolError):
    """包头 (int32) 既不是 -1 (Single) 也不是 -2 (Split)。"""

    def __init__(self, raw: int) -> None:
        super().__init__(f"未知的包头: {raw}")
        self.raw = raw


class UnknownPacketTypeError(ProtocolError):
    """类型字节不在 {'T', 'A', 'I'} 之内。"""

    def __init__(self, raw: int) -> None:
        super().__init__(f"未知的包类型: {raw:#04x}")
        self.raw = raw


class MalformedPacketHeaderError(ProtocolError):
    """数据包太短，无法读出 4 字节包头或 1 字节类型。"""

    pass


class MalformedPacketBodyError(ProtocolError):
    """包体损坏：字段越界、字符串未终止或不是合法 UTF-8。"""

    pass


class UnsupportedSplitPacketError(ProtocolError):
    """收到了分片包 (header == -2)。本库不实现分片重组。"""

    pass


class AttemptParseEmptyPacketError(ProtocolError):
    """尝试将非 Response 类型的包解析为服务器信息。"""

    pass


class FussyHostError(ProtocolError):
    """服务器在回答 Challenge 之后再次下发 Challenge。"""

    def __init__(self, host: str) -> None:
        super().__init__(f"主机拒绝了 Challenge 应答: {host}")
        self.host = host


# =========================================================================
# 网络层 (I/O 级别)
# =========================================================================


class NetworkError(SourceQueryError):
    """网络层面的错误 (I/O 级别)。

    注意: 此类错误通常是暂时的，是否重试由调用方决定，本库不会自动重试。
    """

    pass


class FailedPortBindError(NetworkError):
    """无法绑定本地临时端口。"""

    pass


class UnreachableHostError(NetworkError):
    """目标主机不可达 (DNS 失败、路由不通或被防火墙拦截)。"""

    pass


class SendError(NetworkError):
    """Socket 已建立，但写入数据报失败。"""

    pass


class ReceiveError(NetworkError):
    """Socket 已建立，但读取数据报失败。"""

    pass


class QueryTimeoutError(NetworkError, TimeoutError):
    """某个挂起步骤 (bind/connect/send/receive) 超过了截止时间。

    同时继承内置 TimeoutError，`except TimeoutError` 也能捕获。
    """

    def __init__(self, step: str, timeout: float) -> None:
        super().__init__(f"{step} 超时 ({timeout}s)")
        self.step = step
        self.timeout = timeout
