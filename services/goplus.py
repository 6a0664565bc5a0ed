"""
services/goplus.py — GoPlus 代币安全 API 客户端

按合约地址列表批量查询安全字段。返回原始的 result 映射
（键为小写地址，值为扁平的字段记录），规范化交给 services/normalizer.py。

GoPlus 免费接口无需 API Key。
"""

from __future__ import annotations

from typing import Any, Iterable

import httpx
from loguru import logger

from core.config import get_settings
from domain.errors import UpstreamUnavailableError

# 1 = 成功；2 = 部分地址没有数据（有数据的仍在 result 中）
_SUCCESS_CODES = {"1", "2"}


class GoPlusService:
    """GoPlus token_security 接口的异步客户端。

    每次调用创建独立的 httpx.AsyncClient，请求之间没有共享状态。
    """

    def __init__(self, chain_id: int | None = None) -> None:
        self._settings = get_settings()
        self.chain_id = chain_id or self._settings.chain_id
        self.base_url = f"{self._settings.goplus_base_url.rstrip('/')}/{self.chain_id}"

    async def get_token_security(self, addresses: Iterable[str]) -> dict[str, Any]:
        """查询一个或多个合约的安全数据。

        参数:
            addresses: 合约地址（任意大小写）。

        返回:
            GoPlus 的 result 映射，键统一为小写地址。没有数据的地址不会出现在映射中。

        异常:
            UpstreamUnavailableError: HTTP 失败、超时、响应无法解析，
                或 GoPlus 返回错误码（如 4029 限流）/ result 为 null。
        """
        unique = list(dict.fromkeys(a.lower() for a in addresses))
        if not unique:
            return {}

        params = {"contract_addresses": ",".join(unique)}

        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    self.base_url,
                    params=params,
                    timeout=self._settings.provider_timeout_secs,
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("GoPlus 请求失败 ({} 个地址): {}", len(unique), exc)
            raise UpstreamUnavailableError(
                f"GoPlus request failed: {exc}", source="goplus"
            ) from exc

        if not isinstance(data, dict):
            raise UpstreamUnavailableError("GoPlus returned a non-object body", source="goplus")

        code = data.get("code")
        result = data.get("result")
        if str(code) not in _SUCCESS_CODES or not isinstance(result, dict):
            logger.warning("GoPlus 返回错误: code={} message={}", code, data.get("message"))
            raise UpstreamUnavailableError(
                f"GoPlus error (code={code}): {data.get('message') or 'no result'}",
                source="goplus",
            )

        logger.debug("GoPlus 返回 {}/{} 条记录", len(result), len(unique))
        return {str(k).lower(): v for k, v in result.items()}
