"""
Source Query 核心库 - 配置模块

负责配置的加载、解析与强类型转换。
支持从 TOML 文件、环境变量 (可选 .env 文件) 或字典中加载配置。
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .exceptions import ConfigError
from .protocols import constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryConfig:
    """查询客户端的强类型配置对象。

    所有字段均为只读 (frozen=True)，确保配置在运行时不可变。

    Attributes:
        timeout: 每个挂起步骤 (connect/send/receive) 的超时秒数。
        bind_ip: 本地绑定 IP (端口总是由系统分配)。地址族与目标不一致时改用该族的通配地址。
        default_port: 目标地址未写端口时使用的端口。
        buffer_size: 单个数据报的最大接收长度。
    """

    timeout: float = constants.DEFAULT_TIMEOUT
    bind_ip: str = "0.0.0.0"
    default_port: int = constants.DEFAULT_PORT
    buffer_size: int = constants.MAX_PACKET_SIZE


def create_config_from_dict(raw_data: dict[str, Any]) -> QueryConfig:
    """通用工厂：将字典转换为强类型配置对象。

    Args:
        raw_data: 原始配置字典 (来自 TOML 或 Env)，所有字段均可省略。

    Returns:
        QueryConfig: 验证并转换后的配置对象。

    Raises:
        ConfigError: 字段格式错误或取值越界。
    """
    defaults = QueryConfig()

    def _positive_float(key: str, default: float) -> float:
        val = raw_data.get(key, default)
        try:
            num = float(val)
        except (TypeError, ValueError):
            raise ConfigError(f"数值格式无效 '{key}': {val}")
        if num <= 0:
            raise ConfigError(f"'{key}' 必须大于 0: {val}")
        return num

    def _port(key: str, default: int) -> int:
        val = raw_data.get(key, default)
        try:
            port = int(val)
        except (TypeError, ValueError):
            raise ConfigError(f"端口格式无效 '{key}': {val}")
        if not 0 < port < 65536:
            raise ConfigError(f"端口越界 '{key}': {val}")
        return port

    def _positive_int(key: str, default: int) -> int:
        val = raw_data.get(key, default)
        try:
            num = int(val)
        except (TypeError, ValueError):
            raise ConfigError(f"数值格式无效 '{key}': {val}")
        if num <= 0:
            raise ConfigError(f"'{key}' 必须大于 0: {val}")
        return num

    return QueryConfig(
        timeout=_positive_float("timeout", defaults.timeout),
        bind_ip=str(raw_data.get("bind_ip", defaults.bind_ip)),
        default_port=_port("default_port", defaults.default_port),
        buffer_size=_positive_int("buffer_size", defaults.buffer_size),
    )


def load_config_from_toml(file_path: Path, profile: str = "default") -> QueryConfig:
    """从 TOML 文件加载配置。

    支持多层级查找策略:
    1. [profile.xxx]: 优先查找指定的 profile 块。
    2. [source_query]: 单节配置。
    3. Root: 根目录直接配置。

    Raises:
        ConfigError: 文件读取失败或 Profile 不存在。
    """
    if not file_path.exists():
        raise ConfigError(f"配置文件未找到: {file_path}")

    try:
        with open(file_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"读取 TOML 失败: {e}") from e

    if "profile" in data:
        if profile not in data["profile"]:
            raise ConfigError(f"未找到预设: [profile.{profile}]")
        raw_config = data["profile"][profile]
    elif "source_query" in data:
        if profile != "default":
            logger.warning(f"配置仅包含 [source_query] 节，忽略 profile='{profile}'。")
        raw_config = data["source_query"]
    else:
        raw_config = data

    return create_config_from_dict(raw_config)


def load_config_from_env(env_file: Path | None = None) -> QueryConfig:
    """从环境变量加载配置。

    读取以 `SOURCE_QUERY_` 开头的环境变量，例如 `SOURCE_QUERY_TIMEOUT` -> `timeout`。
    未设置的字段使用默认值。

    Args:
        env_file: 可选的 .env 文件路径，存在时先加载进环境变量 (覆盖已有值)。

    Raises:
        ConfigError: 指定的 .env 文件不存在，或字段格式错误。
    """
    if env_file is not None:
        if not env_file.exists():
            raise ConfigError(f".env 文件未找到: {env_file}")
        load_dotenv(dotenv_path=env_file, override=True)

    env_map = {
        "timeout": "TIMEOUT",
        "bind_ip": "BIND_IP",
        "default_port": "DEFAULT_PORT",
        "buffer_size": "BUFFER_SIZE",
    }

    raw_data = {}
    for cfg_key, env_suffix in env_map.items():
        val = os.environ.get(f"SOURCE_QUERY_{env_suffix}")
        if val is not None:
            raw_data[cfg_key] = val

    return create_config_from_dict(raw_data)
