# tests/conftest.py
import asyncio
import struct
import sys
from pathlib import Path

import pytest

# 确保 src 目录在 sys.path 中
src_path = Path(__file__).resolve().parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from source_query.config import QueryConfig
from source_query.network import BaseChannel

SINGLE_HEADER = b"\xff\xff\xff\xff"


class FakeChannel(BaseChannel):
    """内存通道：按顺序返回预设的数据报，并记录所有发送内容。

    responses 中的元素可以是 bytes (正常返回) 或 Exception (直接抛出)。
    队列耗尽后 receive() 永久挂起，用于模拟不响应的主机。
    hang 指定某一步骤永久挂起 ("bind" / "connect" / "send")。
    """

    def __init__(self, config, responses=(), hang=None):
        super().__init__(config)
        self.responses = list(responses)
        self.hang = hang
        self.sent = []
        self.address = None
        self.bound = False
        self.closed = False

    async def _maybe_hang(self, step):
        if self.hang == step:
            await asyncio.Event().wait()

    async def bind(self, address):
        await self._maybe_hang("bind")
        self.bound = address

    async def connect(self, address):
        await self._maybe_hang("connect")
        self.address = address

    async def send(self, packet):
        await self._maybe_hang("send")
        self.sent.append(packet)

    async def receive(self):
        if not self.responses:
            await asyncio.Event().wait()
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self):
        self.closed = True


@pytest.fixture
def config():
    """[Fixture] 默认配置，超时缩短以加快测试。"""
    return QueryConfig(timeout=0.2)


@pytest.fixture
def make_channel(config):
    """[Fixture] 构造 FakeChannel 的工厂函数。"""

    def _make(*responses, hang=None):
        return FakeChannel(config, responses, hang=hang)

    return _make


def _build_info_body(
    edf: int | None = 0x00,
    *,
    protocol: int = 17,
    hostname: str = "Test Server",
    map_name: str = "cp_badlands",
    folder: str = "tf",
    game: str = "Team Fortress",
    game_id: int = 440,
    players: int = 12,
    max_players: int = 24,
    bots: int = 2,
    server_type: bytes = b"d",
    server_env: bytes = b"l",
    password: int = 0,
    vac: int = 1,
    version: str = "8835751",
    port: int = 27015,
    steam_id: int = 90071992547409920,
    stv_port: int = 27020,
    stv_name: str = "SourceTV",
    keywords: str = "alltalk,nocrits",
    game_id64: int = 440,
    trailing: bytes = b"",
) -> bytes:
    def cstr(s: str) -> bytes:
        return s.encode("utf-8") + b"\x00"

    body = bytearray()
    body.append(protocol)
    body += cstr(hostname) + cstr(map_name) + cstr(folder) + cstr(game)
    body += struct.pack("<H", game_id)
    body += bytes([players, max_players, bots])
    body += server_type + server_env
    body += bytes([password, vac])
    body += cstr(version)
    if edf is None:
        # 老版本服务器: version 之后没有 EDF 字节
        return bytes(body) + trailing
    body.append(edf)
    if edf & 0x80:
        body += struct.pack("<H", port)
    if edf & 0x10:
        body += struct.pack("<Q", steam_id)
    if edf & 0x40:
        body += struct.pack("<H", stv_port) + cstr(stv_name)
    if edf & 0x20:
        body += cstr(keywords)
    if edf & 0x01:
        body += struct.pack("<Q", game_id64)
    body += trailing
    return bytes(body)


@pytest.fixture
def info_body():
    """[Fixture] 返回一个构造 A2S_INFO 包体的函数 (不含包头和类型字节)。"""
    return _build_info_body


@pytest.fixture
def info_datagram():
    """[Fixture] 返回一个构造完整 'I' 响应数据报的函数。"""

    def _make(edf: int = 0x00, **kwargs) -> bytes:
        return SINGLE_HEADER + b"I" + _build_info_body(edf, **kwargs)

    return _make


@pytest.fixture
def challenge_datagram():
    """[Fixture] 返回一个构造 'A' Challenge 数据报的函数。"""

    def _make(token: bytes = b"\x11\x22\x33\x44") -> bytes:
        return SINGLE_HEADER + b"A" + token

    return _make
