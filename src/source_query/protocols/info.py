# File: src/source_query/protocols/info.py
"""
A2S_INFO 响应解析 (Server-Info Decoder)

将 Response 包的包体按固定顺序解码为 ServerInfo。
包体末尾的可选字段由 EDF 字节决定是否存在，没有长度前缀，必须按 ExtraDataFlag 的声明顺序依次读取。
EDF 字节本身也是可选的：老版本服务器在 version 之后直接结束包体。
"""

import logging
from dataclasses import asdict, dataclass

from ..exceptions import AttemptParseEmptyPacketError
from .constants import ExtraDataFlag
from .packets import PacketType, ResponsePacket
from .reader import PacketReader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerInfo:
    """A2S_INFO 查询结果。

    Attributes:
        protocol: A2S_INFO 协议版本。
        hostname: 服务器名称。
        map: 当前地图。
        folder: 游戏目录。
        game: 游戏名称。
        game_id: Steam App ID (u16)。
        players: 当前玩家数。
        max_players: 最大玩家数。
        bots: 机器人数。
        server_type: 'd' 专用服务器, 'l' 非专用, 'p' SourceTV 代理。
        server_env: 'l' Linux, 'w' Windows, 'm'/'o' Mac。
        password_protected: 是否需要密码。
        vac_enabled: 是否启用 VAC。
        version: 服务器游戏版本。
        edf: Extra Data Flags 原始字节，包体中缺失时为 0。
        port: 游戏端口 (EDF 0x80)。
        server_steam_id: 服务器 SteamID (EDF 0x10)。
        stv_port: SourceTV 端口 (EDF 0x40)。
        stv_name: SourceTV 名称 (EDF 0x40)。
        keywords: 标签列表 (EDF 0x20)。
        server_game_id: 64 位 GameID (EDF 0x01)。
    """

    protocol: int
    hostname: str
    map: str
    folder: str
    game: str
    game_id: int
    players: int
    max_players: int
    bots: int
    server_type: str
    server_env: str
    password_protected: bool
    vac_enabled: bool
    version: str
    edf: int
    port: int | None = None
    server_steam_id: int | None = None
    stv_port: int | None = None
    stv_name: str | None = None
    keywords: list[str] | None = None
    server_game_id: int | None = None

    def has(self, flag: ExtraDataFlag) -> bool:
        """判断 EDF 中某一位是否被置位。"""
        return bool(self.edf & flag)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def parse(cls, packet: ResponsePacket) -> "ServerInfo":
        return parse_server_info(packet)


def parse_server_info(packet: ResponsePacket) -> ServerInfo:
    """解析 Response 包体。

    Args:
        packet: 类型必须为 PacketType.RESPONSE。

    Returns:
        ServerInfo: 解码后的服务器信息。多余的尾部字节被忽略。

    Raises:
        AttemptParseEmptyPacketError: 包类型不是 Response (例如误把 Challenge 当作结果)。
        MalformedPacketBodyError: 任一字段越界或字符串损坏。
    """
    if packet.packet_type is not PacketType.RESPONSE:
        raise AttemptParseEmptyPacketError(
            f"无法将 {packet.packet_type.name} 包解析为服务器信息"
        )

    r = PacketReader(packet.body)

    # 1. 固定字段
    protocol = r.read_u8()
    hostname = r.read_string()
    map_name = r.read_string()
    folder = r.read_string()
    game = r.read_string()
    game_id = r.read_u16_le()
    players = r.read_u8()
    max_players = r.read_u8()
    bots = r.read_u8()
    server_type = chr(r.read_u8())
    server_env = chr(r.read_u8())
    password_protected = r.read_u8() == 1
    vac_enabled = r.read_u8() == 1
    version = r.read_string()
    # 包体在 version 之后结束时视为没有任何可选字段
    edf = r.read_u8() if r.remaining else 0

    # 2. 可选字段 (顺序与 ExtraDataFlag 声明顺序一致)
    optional: dict = {}
    if edf & ExtraDataFlag.PORT:
        optional["port"] = r.read_u16_le()
    if edf & ExtraDataFlag.STEAM_ID:
        optional["server_steam_id"] = r.read_u64_le()
    if edf & ExtraDataFlag.SPECTATOR:
        optional["stv_port"] = r.read_u16_le()
        optional["stv_name"] = r.read_string()
    if edf & ExtraDataFlag.KEYWORDS:
        optional["keywords"] = r.read_string().split(",")
    if edf & ExtraDataFlag.GAME_ID:
        optional["server_game_id"] = r.read_u64_le()

    logger.debug(
        f"parse_server_info: edf={edf:#04x} consumed={r.offset} trailing={r.remaining}"
    )

    return ServerInfo(
        protocol=protocol,
        hostname=hostname,
        map=map_name,
        folder=folder,
        game=game,
        game_id=game_id,
        players=players,
        max_players=max_players,
        bots=bots,
        server_type=server_type,
        server_env=server_env,
        password_protected=password_protected,
        vac_enabled=vac_enabled,
        version=version,
        edf=edf,
        **optional,
    )
