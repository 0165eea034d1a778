# src/source_query/network.py
"""
Source Query 核心库 - 网络模块 (Network) [Asyncio Edition]

封装 UDP Socket 的绑定、连接、发送和接收逻辑。
该模块屏蔽了底层 Socket 的复杂性，向 Core 提供纯粹的 bytes 收发接口。
超时控制不在本模块内完成，由 Core 对每个步骤单独施加截止时间。
"""

import abc
import asyncio
import logging
import socket
from typing import Optional, Tuple, Union, cast

from .config import QueryConfig
from .exceptions import (
    FailedPortBindError,
    NetworkError,
    ReceiveError,
    SendError,
    UnreachableHostError,
)

logger = logging.getLogger(__name__)

Address = Tuple[str, int]


class BaseChannel(abc.ABC):
    """查询通道抽象基类 (Transport 协作方契约)。

    一个通道只服务于一次查询，不可在并发查询之间共享。
    """

    def __init__(self, config: QueryConfig) -> None:
        self.config = config

    @abc.abstractmethod
    async def bind(self, address: Address) -> None:
        """[Abstract] 绑定与目标地址族匹配的本地临时端点。

        Args:
            address: 目标主机，用于决定 Socket 的地址族 (IPv4 / IPv6)。

        Raises:
            UnreachableHostError: 目标主机无法解析。
            FailedPortBindError: 无法获取本地端口。
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def connect(self, address: Address) -> None:
        """[Abstract] 将通道连接到目标主机。

        Raises:
            UnreachableHostError: 主机无法解析或不可达。
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def send(self, packet: bytes) -> None:
        """[Abstract] 发送一个数据报。

        Raises:
            SendError: 写入失败。
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def receive(self) -> bytes:
        """[Abstract] 等待并返回下一个数据报。

        Raises:
            ReceiveError: 读取失败。
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def close(self) -> None:
        """[Abstract] 释放底层资源，可重复调用。"""
        raise NotImplementedError

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class QueryUdpProtocol(asyncio.DatagramProtocol):
    """
    asyncio UDP 协议适配器。
    将回调风格的 datagram_received 转换为 Queue 模式，供上层 await 使用。
    """

    def __init__(self):
        self.transport: Optional[asyncio.DatagramTransport] = None
        # 队列内容可以是数据，也可以是异常对象（用于快速失败）
        self.queue: asyncio.Queue[Union[bytes, Exception]] = asyncio.Queue(
            maxsize=16
        )

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = cast(asyncio.DatagramTransport, transport)
        logger.debug("UDP Transport 已建立")

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        try:
            self.queue.put_nowait(data)
        except asyncio.QueueFull:
            logger.warning("UDP 接收队列已满，丢弃数据包")

    def error_received(self, exc: Exception) -> None:
        # 典型场景: ICMP Port Unreachable -> ConnectionRefusedError
        logger.debug(f"UDP 错误: {exc}")
        self._propagate_error(exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc:
            self._propagate_error(exc)
        else:
            logger.debug("UDP 连接已正常关闭")
            self._propagate_error(NetworkError("连接已关闭"))
        self.transport = None

    def _propagate_error(self, exc: Exception) -> None:
        """将底层错误立即传播给上层消费者"""
        if self.queue.full():
            # 队列满时腾出一个位置，保证错误能被传达
            self.queue.get_nowait()
        self.queue.put_nowait(exc)


class UdpChannel(BaseChannel):
    """
    基于 asyncio 的 UDP 查询通道。

    bind() 先解析目标地址，再按其地址族在本地临时端口上创建非阻塞 Socket；connect() 连接目标地址，
    随后将 Socket 交给 asyncio 事件循环托管。
    """

    def __init__(self, config: QueryConfig) -> None:
        super().__init__(config)
        self.sock: Optional[socket.socket] = None
        self.remote: Optional[tuple] = None
        self.protocol: Optional[QueryUdpProtocol] = None
        self.transport: Optional[asyncio.DatagramTransport] = None

    def _local_ip(self, family: socket.AddressFamily) -> str:
        """与目标地址族匹配的本地绑定 IP。

        config.bind_ip 与目标地址族不一致时，退回到该地址族的通配地址。
        """
        configured = socket.AF_INET6 if ":" in self.config.bind_ip else socket.AF_INET
        if configured == family:
            return self.config.bind_ip
        return "::" if family == socket.AF_INET6 else "0.0.0.0"

    async def bind(self, address: Address) -> None:
        loop = asyncio.get_running_loop()
        host, port = address
        try:
            infos = await loop.getaddrinfo(host, port, type=socket.SOCK_DGRAM)
        except OSError as e:
            raise UnreachableHostError(f"无法解析主机 {host}:{port}: {e}") from e
        if not infos:
            raise UnreachableHostError(f"无法解析主机 {host}:{port}")

        family, _, _, _, sockaddr = infos[0]
        bind_addr = (self._local_ip(family), 0)
        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            sock.setblocking(False)
            sock.bind(bind_addr)
        except OSError as e:
            sock.close()
            raise FailedPortBindError(f"端口绑定失败 {bind_addr}: {e}") from e

        self.sock = sock
        self.remote = sockaddr
        logger.debug(f"Socket 绑定成功: {sock.getsockname()} -> {sockaddr}")

    async def connect(self, address: Address) -> None:
        if self.sock is None:
            await self.bind(address)
        assert self.sock is not None and self.remote is not None

        loop = asyncio.get_running_loop()
        host, port = address
        try:
            await loop.sock_connect(self.sock, self.remote)
            transport, protocol = await loop.create_datagram_endpoint(
                QueryUdpProtocol, sock=self.sock
            )
        except OSError as e:
            raise UnreachableHostError(f"主机不可达 {host}:{port}: {e}") from e

        self.transport = cast(asyncio.DatagramTransport, transport)
        self.protocol = cast(QueryUdpProtocol, protocol)
        logger.debug(f"已连接目标主机: {host}:{port}")

    async def send(self, packet: bytes) -> None:
        if not self.transport or self.transport.is_closing():
            raise SendError("Transport 未连接或已关闭")

        try:
            # sendto 是同步非阻塞的，已连接的 Socket 无需目标地址
            self.transport.sendto(packet)
        except OSError as e:
            raise SendError(f"发送失败: {e}") from e

    async def receive(self) -> bytes:
        if not self.protocol:
            raise ReceiveError("Protocol 未初始化")

        item = await self.protocol.queue.get()
        if isinstance(item, Exception):
            raise ReceiveError(f"接收错误: {item}") from item

        # 与 recv(buffer_size) 的语义一致：超出部分被丢弃
        return item[: self.config.buffer_size]

    async def close(self) -> None:
        if self.transport:
            self.transport.close()
            self.transport = None
            logger.debug("UDP Transport 已关闭")
        elif self.sock is not None:
            self.sock.close()
        self.sock = None
