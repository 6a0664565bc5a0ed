"""
services/simulation.py — 交易资产变动仿真

通过 Alchemy 的 alchemy_simulateAssetChanges 方法对交易做一次空跑，
得到预计的余额变动（不上链）。

  simulate_asset_changes() 返回原始响应，失败时抛出 UpstreamUnavailableError
  simulate()               仿真是可选步骤: 失败降级为 FAILED 摘要
"""

from __future__ import annotations

from typing import Any, Optional

from loguru import logger

from core.web3_provider import rpc_request
from domain.errors import UpstreamUnavailableError
from domain.models import SimulationSummary
from services.summarizer import summarize_simulation


class SimulationService:
    """资产变动仿真客户端。"""

    method = "alchemy_simulateAssetChanges"

    async def simulate_asset_changes(
        self,
        *,
        from_address: str,
        to_address: str,
        value: str = "0x0",
        data: Optional[str] = None,
    ) -> dict[str, Any]:
        """仿真一笔交易。

        参数:
            from_address: 发送者。
            to_address: 接收者（代币合约或任意地址）。
            value: 十六进制 wei 金额。
            data: 可选的 calldata。

        返回:
            原始响应，包含 changes 列表，可能带 error 字段。
        """
        tx: dict[str, Any] = {"from": from_address, "to": to_address, "value": value}
        if data:
            tx["data"] = data

        logger.debug("仿真交易: {} → {} value={}", from_address[:10], to_address[:10], value)
        result = await rpc_request(self.method, [tx])

        if not isinstance(result, dict):
            raise UpstreamUnavailableError(
                "Simulation returned an unexpected payload", source="alchemy"
            )
        return result

    async def simulate(
        self,
        *,
        from_address: str,
        to_address: str,
        value: str = "0x0",
        data: Optional[str] = None,
    ) -> SimulationSummary:
        """尽力而为的仿真: 上游失败降级为 FAILED 摘要，不抛异常。"""
        try:
            raw = await self.simulate_asset_changes(
                from_address=from_address, to_address=to_address, value=value, data=data
            )
        except UpstreamUnavailableError as exc:
            logger.warning("仿真不可用，降级继续: {}", exc.message)
            return SimulationSummary.failed(exc.message)
        return summarize_simulation(raw, from_address)
