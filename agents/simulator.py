"""
agents/simulator.py — 交易仿真 Agent

不经过安全数据和叙述生成器，只对一笔交易做资产变动仿真，
并把发送者的转出 / 转入单独列出。

与 roast / 交易解读中的"尽力而为"仿真不同，这里仿真就是全部产出:
上游失败直接上抛 UpstreamUnavailableError；交易会 revert 则返回 FAILED 摘要。
"""

from __future__ import annotations

from typing import Any, Optional

from agents.base import BaseAgent
from domain.models import PipelineStage, SimulationReport, require_address, require_hex
from services.simulation import SimulationService
from services.summarizer import summarize_simulation


class SimulationAgent(BaseAgent):
    name = "SimulationAgent"

    def __init__(self, simulator: Optional[SimulationService] = None) -> None:
        self._simulator = simulator or SimulationService()

    async def run(self, task: dict[str, Any]) -> SimulationReport:
        """task keys: from_address, to_address, value（可选）"""
        return await self.simulate_transaction(
            task.get("from_address"), task.get("to_address"), task.get("value") or "0x0"
        )

    async def simulate_transaction(
        self, from_address: Any, to_address: Any, value: str = "0x0"
    ) -> SimulationReport:
        """
        异常:
            InvalidInputError: 地址或 value 非法。
            UpstreamUnavailableError: 仿真接口不可用。
        """
        sender = require_address(from_address, "from_address")
        target = require_address(to_address, "to_address")
        value = require_hex(value or "0x0", "value")
        trace = self.trace()

        with trace.step(PipelineStage.FETCHING_SIMULATION):
            raw = await self._simulator.simulate_asset_changes(
                from_address=sender, to_address=target, value=value
            )
            simulation = summarize_simulation(raw, sender)

        self.log(
            f"仿真 {simulation.status.value}: {len(simulation.changes)} 条变动, "
            f"转出 {len(simulation.outgoing)} / 转入 {len(simulation.incoming)}"
        )
        return SimulationReport(
            from_address=sender,
            to_address=target,
            value=value,
            simulation=simulation,
            user_lost=simulation.outgoing,
            user_gained=simulation.incoming,
            stages=trace.done(),
        )
