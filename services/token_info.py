"""
services/token_info.py — 钱包持仓与代币元数据采集服务

通过 Alchemy 的增强 API 枚举钱包持有的 ERC-20 代币（alchemy_getTokenBalances），
并并发获取每个代币的元数据（alchemy_getTokenMetadata）。

持仓枚举是钱包犯罪记录的必需步骤，失败直接上抛；
单个代币的元数据是可选的，失败时降级为 "Unknown" / "???"。
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from loguru import logger

from core.config import get_settings
from core.web3_provider import rpc_request
from domain.errors import UpstreamUnavailableError

UNKNOWN_NAME = "Unknown"
UNKNOWN_SYMBOL = "???"


@dataclass(frozen=True)
class Holding:
    """钱包中余额非零的一个代币。"""

    address: str
    balance: str


@dataclass(frozen=True)
class TokenMetadata:
    address: str
    name: str = UNKNOWN_NAME
    symbol: str = UNKNOWN_SYMBOL
    available: bool = True


def _is_zero(balance: Any) -> bool:
    if not isinstance(balance, str) or not balance:
        return True
    try:
        return int(balance, 16) == 0
    except ValueError:
        return True


class TokenInfoService:
    def __init__(self) -> None:
        self._settings = get_settings()

    async def list_holdings(self, wallet_address: str, limit: int | None = None) -> list[Holding]:
        """列出余额非零的代币，最多 limit 个（默认取配置 wallet_max_tokens）。

        异常:
            UpstreamUnavailableError: 持仓接口失败。
        """
        limit = self._settings.wallet_max_tokens if limit is None else limit
        result = await rpc_request("alchemy_getTokenBalances", [wallet_address, "erc20"])
        if not isinstance(result, dict):
            raise UpstreamUnavailableError("Token balances returned an unexpected payload", source="alchemy")

        holdings: list[Holding] = []
        for entry in result.get("tokenBalances") or []:
            if not isinstance(entry, dict) or entry.get("error"):
                continue
            contract = entry.get("contractAddress")
            balance = entry.get("tokenBalance")
            if not contract or _is_zero(balance):
                continue
            holdings.append(Holding(address=str(contract).lower(), balance=balance))
            if len(holdings) >= limit:
                break

        logger.info("钱包 {} 持有 {} 个非零代币（上限 {}）", wallet_address[:10], len(holdings), limit)
        return holdings

    async def fetch_metadata(self, address: str) -> TokenMetadata:
        """获取单个代币的名称和符号。失败时返回带 available=False 的占位值。"""
        try:
            result = await rpc_request("alchemy_getTokenMetadata", [address])
        except UpstreamUnavailableError as exc:
            logger.debug("代币 {} 元数据不可用: {}", address[:10], exc)
            return TokenMetadata(address=address, available=False)

        result = result if isinstance(result, dict) else {}
        return TokenMetadata(
            address=address,
            name=result.get("name") or UNKNOWN_NAME,
            symbol=result.get("symbol") or UNKNOWN_SYMBOL,
        )

    async def fetch_all_metadata(self, addresses: list[str]) -> list[TokenMetadata]:
        """并发获取元数据，并发数受 metadata_concurrency 限制。结果顺序与输入一致。"""
        semaphore = asyncio.Semaphore(max(1, self._settings.metadata_concurrency))

        async def bounded(address: str) -> TokenMetadata:
            async with semaphore:
                return await self.fetch_metadata(address)

        return list(await asyncio.gather(*(bounded(a) for a in addresses)))
