"""
agents/coordinator.py — 协调者 Agent

对外的唯一入口。持有各 Agent 的单个实例（共享同一组客户端），
暴露五个操作，并支持按 action 分发的 run()。

使用流程:
    coordinator = CoordinatorAgent()
    result = await coordinator.assess_token("0x…")
    reply = await coordinator.chat([{"role": "user", "content": "why?"}], context=result)
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from agents.base import BaseAgent
from agents.chat import ChatAgent, MessageLike
from agents.interpreter import InterpreterAgent
from agents.investigator import InvestigatorAgent
from agents.roaster import RoastAgent
from agents.simulator import SimulationAgent
from domain.errors import InvalidInputError
from domain.models import (
    AssessmentResult,
    ChatReply,
    InterpretationResult,
    SimulationReport,
    WalletProfile,
)
from services.goplus import GoPlusService
from services.narrator import NarrativeService
from services.simulation import SimulationService
from services.token_info import TokenInfoService


class CoordinatorAgent(BaseAgent):
    """协调者 Agent — 把请求路由到 Roast / Interpreter / Investigator / Chat / Simulation。

    各 Agent 不保存请求之间的状态，同一个协调者可以同时服务多个请求。
    """

    name = "CoordinatorAgent"

    def __init__(
        self,
        goplus: Optional[GoPlusService] = None,
        simulator: Optional[SimulationService] = None,
        narrator: Optional[NarrativeService] = None,
        token_info: Optional[TokenInfoService] = None,
    ) -> None:
        goplus = goplus or GoPlusService()
        simulator = simulator or SimulationService()
        narrator = narrator or NarrativeService()
        token_info = token_info or TokenInfoService()

        self.roaster = RoastAgent(goplus=goplus, simulator=simulator, narrator=narrator)
        self.interpreter = InterpreterAgent(goplus=goplus, simulator=simulator, narrator=narrator)
        self.investigator = InvestigatorAgent(token_info=token_info, goplus=goplus, narrator=narrator)
        self.chatter = ChatAgent(narrator=narrator)
        self.sandbox = SimulationAgent(simulator=simulator)

        self._routes: dict[str, BaseAgent] = {
            "assess_token": self.roaster,
            "interpret_transaction": self.interpreter,
            "get_wallet_profile": self.investigator,
            "chat": self.chatter,
            "simulate_transaction": self.sandbox,
        }

    async def run(self, task: dict[str, Any]) -> Any:
        """按 action 分发。

        task keys:
          action: assess_token | interpret_transaction | get_wallet_profile | chat
                  | simulate_transaction
          其余 key 原样交给对应 Agent 的 run()
        """
        action = await self.decide(task)
        agent = self._routes.get(action)
        if agent is None:
            raise InvalidInputError(f"unknown action: {task.get('action')!r}")
        self.log(f"分发 {action} → {agent.name}")
        return await agent.run(task)

    async def decide(self, context: dict[str, Any]) -> str:
        return str(context.get("action") or "").strip()

    # ── 公开操作 ──────────────────────────────────────────

    async def assess_token(
        self, contract: str, from_address: Optional[str] = None
    ) -> AssessmentResult:
        return await self.roaster.assess_token(contract, from_address)

    async def interpret_transaction(
        self,
        from_address: str,
        to_address: str,
        value: str = "0x0",
        data: Optional[str] = None,
    ) -> InterpretationResult:
        return await self.interpreter.interpret_transaction(from_address, to_address, value, data)

    async def get_wallet_profile(self, wallet: str) -> WalletProfile:
        return await self.investigator.get_wallet_profile(wallet)

    async def chat(
        self,
        messages: Sequence[MessageLike],
        context: Optional[AssessmentResult] = None,
    ) -> ChatReply:
        return await self.chatter.chat(messages, context)

    async def simulate_transaction(
        self, from_address: str, to_address: str, value: str = "0x0"
    ) -> SimulationReport:
        return await self.sandbox.simulate_transaction(from_address, to_address, value)
