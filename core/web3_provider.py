"""
core/web3_provider.py — 异步 Web3 Provider 单例

管理一个通过 AsyncHTTPProvider 连接的 AsyncWeb3 实例（指向 Alchemy 节点）。
除了标准的连接健康检查，还提供 `rpc_request()` 用于调用
alchemy_* 这类非标准 JSON-RPC 方法（资产变动仿真、代币余额、代币元数据）。
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from loguru import logger
from web3 import AsyncWeb3
from web3.providers import AsyncHTTPProvider
from web3.types import RPCEndpoint

from core.config import get_settings
from domain.errors import UpstreamUnavailableError


@lru_cache(maxsize=1)
def get_async_web3() -> AsyncWeb3:
    """返回一个缓存的 AsyncWeb3 实例。

    使用 AsyncHTTPProvider 实现非阻塞的 JSON-RPC 调用，超时取自配置。
    """
    settings = get_settings()
    provider = AsyncHTTPProvider(
        endpoint_uri=settings.rpc_url,
        request_kwargs={"timeout": settings.provider_timeout_secs},
    )
    return AsyncWeb3(provider)


async def check_connection() -> bool:
    """验证 Web3 Provider 是否连通且可响应。

    返回:
        如果节点响应 eth_blockNumber 则返回 True，否则返回 False。
    """
    try:
        w3 = get_async_web3()
        block = await w3.eth.block_number
        return block > 0
    except Exception:
        return False


async def rpc_request(method: str, params: list[Any]) -> Any:
    """发送一个原始 JSON-RPC 请求并返回 result 字段。

    异常:
        UpstreamUnavailableError: 传输失败，或节点返回了 JSON-RPC error 对象。
    """
    w3 = get_async_web3()
    try:
        response = await w3.provider.make_request(RPCEndpoint(method), params)
    except Exception as exc:
        logger.warning("RPC {} 调用失败: {}", method, exc)
        raise UpstreamUnavailableError(
            f"{method} request failed: {exc}", source="alchemy"
        ) from exc

    error = response.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else str(error)
        logger.warning("RPC {} 返回错误: {}", method, message)
        raise UpstreamUnavailableError(f"{method} error: {message}", source="alchemy")

    return response.get("result")
