# example.py
"""
这是一个 source-query API 的最小示例。

它演示了如何将 source_query 作为一个库导入到你自己的项目中，
并发查询多台服务器，逐个打印结果或错误。

运行此示例：
1. 确保已安装依赖： pip install -e .
2. 从项目根目录运行： python example.py 1.2.3.4:27015 [host:port ...]
"""

import asyncio
import logging
import sys

from source_query import QueryTimeoutError, SourceQueryError, load_config_from_env, query

logging.basicConfig(
    level=logging.DEBUG, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("SourceQueryExample")


async def probe(host: str, config) -> None:
    try:
        info = await query(host, config=config)
    except QueryTimeoutError as e:
        logger.warning(f"{host} 无响应: {e}")
        return
    except SourceQueryError as e:
        logger.error(f"{host} 查询失败: {e}")
        return

    print(
        f"{host} | {info.hostname} | {info.map} | "
        f"{info.players}/{info.max_players} (bots: {info.bots}) | {info.game}"
    )
    if info.keywords:
        print(f"    keywords: {', '.join(info.keywords)}")


async def main(hosts: list[str]) -> None:
    # 未设置 SOURCE_QUERY_* 环境变量时使用默认配置
    config = load_config_from_env()
    # 每个查询独占一个 Socket，可以安全并发
    await asyncio.gather(*(probe(h, config) for h in hosts))


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("用法: python example.py <host[:port]> [host[:port] ...]")
        sys.exit(1)
    asyncio.run(main(sys.argv[1:]))
