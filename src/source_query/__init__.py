# src/source_query/__init__.py
"""
source-query v1.0.0
基于 asyncio 的 Source Engine A2S_INFO 查询客户端。
"""

# 暴露核心配置
from .config import (
    QueryConfig,
    create_config_from_dict,
    load_config_from_env,
    load_config_from_toml,
)

# 暴露引擎与状态
from .core import SourceQuery, query

# 暴露异常体系 (方便上层 try-except)
from .exceptions import (
    AttemptParseEmptyPacketError,
    ConfigError,
    FailedPortBindError,
    FussyHostError,
    MalformedPacketBodyError,
    MalformedPacketHeaderError,
    NetworkError,
    ProtocolError,
    QueryTimeoutError,
    ReceiveError,
    SendError,
    SourceQueryError,
    UnknownPacketHeaderError,
    UnknownPacketTypeError,
    UnreachableHostError,
    UnsupportedSplitPacketError,
)
from .protocols import ExtraDataFlag, ServerInfo
from .state import QueryState, QueryStatus

__version__ = "1.0.0"

__all__ = [
    "query",
    "SourceQuery",
    "ServerInfo",
    "ExtraDataFlag",
    "QueryConfig",
    "QueryState",
    "QueryStatus",
    "create_config_from_dict",
    "load_config_from_env",
    "load_config_from_toml",
    "SourceQueryError",
    "ConfigError",
    "ProtocolError",
    "NetworkError",
    "UnknownPacketHeaderError",
    "UnknownPacketTypeError",
    "MalformedPacketHeaderError",
    "MalformedPacketBodyError",
    "UnsupportedSplitPacketError",
    "AttemptParseEmptyPacketError",
    "FussyHostError",
    "FailedPortBindError",
    "UnreachableHostError",
    "SendError",
    "ReceiveError",
    "QueryTimeoutError",
]
