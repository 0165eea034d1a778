# File: src/source_query/core.py
"""
Source Query 核心引擎 (Query Orchestrator)

职责：
1. 资源组装：Config + Channel + State。
2. 握手编排：Request -> [Challenge -> Request(token)] -> Response。
3. 截止时间：connect / send / receive 各自拥有独立的超时预算。
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import TypeVar

from .config import QueryConfig
from .exceptions import ConfigError, FussyHostError, QueryTimeoutError, SourceQueryError
from .network import Address, BaseChannel, UdpChannel
from .protocols.info import ServerInfo, parse_server_info
from .protocols.packets import PacketType, RequestPacket, ResponsePacket, decode_response
from .state import QueryState, QueryStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 通道工厂：接收配置，返回一个尚未绑定的通道
ChannelFactory = Callable[[QueryConfig], BaseChannel]

HostLike = str | tuple[str, int]


def parse_host(host: HostLike, default_port: int) -> Address:
    """将 "addr:port" / "addr" / "[v6]:port" / (addr, port) 统一为 (addr, port)。

    Raises:
        ConfigError: 地址为空或端口不是合法整数。
    """
    if isinstance(host, tuple):
        addr, port = host
    else:
        text = host.strip()
        if text.startswith("["):
            addr, _, rest = text[1:].partition("]")
            port = rest[1:] if rest.startswith(":") else default_port
        elif text.count(":") == 1:
            addr, _, port = text.partition(":")
        else:
            addr, port = text, default_port

    try:
        port = int(port)
    except (TypeError, ValueError):
        raise ConfigError(f"端口格式无效: {host!r}")

    if not addr or not 0 < port < 65536:
        raise ConfigError(f"目标地址无效: {host!r}")
    return addr, port


def next_status(status: QueryStatus, packet_type: PacketType, host: str) -> QueryStatus:
    """握手状态机的转移函数。

    - AWAITING_INITIAL + Challenge -> AWAITING_CHALLENGED
    - AWAITING_CHALLENGED + Challenge -> FussyHostError (不允许第二次挑战)
    - 其余响应 -> DONE (交给解析器，类型不对时由解析器报错)

    注意: 挑战之后收到既非 Challenge 也非 Response 的包 (例如回显的 'T')，
    这里不视为 FussyHost，而是进入 DONE 并由 parse_server_info 抛出
    AttemptParseEmptyPacketError。只有重复的 Challenge 才是 FussyHost。

    Raises:
        FussyHostError: 服务器在 Challenge 应答之后再次挑战。
        SourceQueryError: 在非等待状态下调用。
    """
    if status not in (QueryStatus.AWAITING_INITIAL, QueryStatus.AWAITING_CHALLENGED):
        raise SourceQueryError(f"非法的状态转移: {status.name} <- {packet_type.name}")

    if packet_type is PacketType.CHALLENGE:
        if status is QueryStatus.AWAITING_CHALLENGED:
            raise FussyHostError(host)
        return QueryStatus.AWAITING_CHALLENGED

    return QueryStatus.DONE


class SourceQuery:
    """单次 A2S_INFO 查询 (Async)。

    每个实例独占一个通道，只能执行一次 run()。
    """

    def __init__(
        self,
        host: HostLike,
        timeout: float | None = None,
        *,
        config: QueryConfig | None = None,
        channel_factory: ChannelFactory | None = None,
    ) -> None:
        """初始化查询。

        Args:
            host: 目标服务器地址，端口缺省时使用 config.default_port。
            timeout: 每个挂起步骤的超时秒数，缺省时使用 config.timeout。
            config: 全局配置对象。
            channel_factory: 通道工厂，默认为 UdpChannel。测试时可注入内存通道。
        """
        self.config = config or QueryConfig()
        self.timeout = self.config.timeout if timeout is None else timeout
        if self.timeout <= 0:
            raise ConfigError(f"timeout 必须大于 0: {self.timeout}")

        self.address = parse_host(host, self.config.default_port)
        self.host = f"{self.address[0]}:{self.address[1]}"
        self._channel_factory = channel_factory or UdpChannel
        self._state = QueryState()

    @property
    def state(self) -> QueryState:
        """获取当前握手状态的只读副本。"""
        return replace(self._state)

    async def run(self) -> ServerInfo:
        """执行完整的握手并返回服务器信息。

        Raises:
            FailedPortBindError / UnreachableHostError: 通道建立失败。
            SendError / ReceiveError: 通道 I/O 失败。
            QueryTimeoutError: 任一步骤超时。
            FussyHostError: 服务器重复挑战。
            ProtocolError: 响应包无法解码。
        """
        if self._state.status is not QueryStatus.IDLE:
            raise SourceQueryError("查询实例只能执行一次")

        async with self._channel_factory(self.config) as channel:
            await self._deadline(self._open(channel), "connect")

            request = RequestPacket()
            self._transition(QueryStatus.AWAITING_INITIAL)

            info: ServerInfo | None = None
            while self._state.status is not QueryStatus.DONE:
                packet = await self._exchange(channel, request)
                status = next_status(self._state.status, packet.packet_type, self.host)

                if status is QueryStatus.AWAITING_CHALLENGED:
                    logger.debug(f"收到 Challenge: {packet.body.hex()}")
                    self._state.challenge = packet.body
                    request = RequestPacket(challenge=packet.body)
                else:
                    info = parse_server_info(packet)

                self._transition(status)

        assert info is not None
        return info

    async def _open(self, channel: BaseChannel) -> None:
        await channel.bind(self.address)
        await channel.connect(self.address)

    async def _exchange(
        self, channel: BaseChannel, request: RequestPacket
    ) -> ResponsePacket:
        """发送一次请求并接收一个响应，send 与 receive 各自计时。"""
        await self._deadline(channel.send(request.pack()), "send")
        raw = await self._deadline(channel.receive(), "receive")
        self._state.rounds += 1
        return decode_response(raw)

    async def _deadline(self, aw: Awaitable[T], step: str) -> T:
        try:
            return await asyncio.wait_for(aw, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise QueryTimeoutError(step, self.timeout) from None

    def _transition(self, status: QueryStatus) -> None:
        logger.debug(f"[{self.host}] {self._state.status.name} -> {status.name}")
        self._state.status = status


async def query(
    host: HostLike,
    timeout: float | None = None,
    *,
    config: QueryConfig | None = None,
) -> ServerInfo:
    """对 host 执行一次 A2S_INFO 查询。

    每个挂起步骤使用同一个超时预算：未被挑战时最坏耗时约 3 × timeout，
    被挑战时约 5 × timeout。本函数不做任何重试。

    Example:
        info = await query("127.0.0.1:27015", timeout=2.0)
    """
    return await SourceQuery(host, timeout, config=config).run()
