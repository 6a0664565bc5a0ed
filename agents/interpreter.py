"""
agents/interpreter.py — 交易解读 Agent

把一笔任意交易翻译成白话:
  FETCHING_SIMULATION → FETCHING_FACTS → CLASSIFYING → GENERATING_NARRATIVE → DONE

仿真和目标合约的安全数据都是尽力而为，缺失时在结果上留下明确标记；
只有叙述生成是必需的。
"""

from __future__ import annotations

from typing import Any, Optional

from agents.base import BaseAgent
from domain.errors import NotFoundError, UpstreamUnavailableError
from domain.models import (
    InterpretationNarrative,
    InterpretationResult,
    PipelineStage,
    SecurityStatus,
    TokenFacts,
    require_address,
    require_hex,
)
from services.classifier import transaction_risk_level
from services.goplus import GoPlusService
from services.narrator import NarrativeService
from services.normalizer import normalize_facts
from services.prompts import INTERPRET_SYSTEM_PROMPT, interpretation_prompt
from services.simulation import SimulationService


def _has_calldata(data: Optional[str]) -> bool:
    return bool(data) and data not in ("0x", "0X")


class InterpreterAgent(BaseAgent):
    name = "InterpreterAgent"

    def __init__(
        self,
        goplus: Optional[GoPlusService] = None,
        simulator: Optional[SimulationService] = None,
        narrator: Optional[NarrativeService] = None,
    ) -> None:
        self._goplus = goplus or GoPlusService()
        self._simulator = simulator or SimulationService()
        self._narrator = narrator or NarrativeService()

    async def run(self, task: dict[str, Any]) -> InterpretationResult:
        """task keys:
          from_address, to_address: 必填
          value: 十六进制 wei，默认 0x0
          data: 可选 calldata
        """
        return await self.interpret_transaction(
            task.get("from_address"),
            task.get("to_address"),
            task.get("value") or "0x0",
            task.get("data"),
        )

    async def _fetch_security(
        self, to_address: str
    ) -> tuple[Optional[TokenFacts], SecurityStatus]:
        try:
            security = await self._goplus.get_token_security([to_address])
            return normalize_facts(security, to_address), SecurityStatus.OK
        except NotFoundError:
            self.log(f"目标地址 {to_address[:10]}… 没有安全数据（可能是 EOA）")
            return None, SecurityStatus.NOT_FOUND
        except UpstreamUnavailableError as exc:
            self.log(f"安全数据不可用，降级继续: {exc.message}")
            return None, SecurityStatus.UNAVAILABLE

    async def interpret_transaction(
        self,
        from_address: Any,
        to_address: Any,
        value: str = "0x0",
        data: Optional[str] = None,
    ) -> InterpretationResult:
        """解读一笔交易。

        异常:
            InvalidInputError: 地址或十六进制字段非法。
            UpstreamUnavailableError / GenerationParseError: 叙述生成失败。
        """
        sender = require_address(from_address, "from_address")
        target = require_address(to_address, "to_address")
        value = require_hex(value or "0x0", "value")
        data = require_hex(data, "data") if data else None
        trace = self.trace()
        self.log(f"解读交易: {sender[:10]}… → {target[:10]}… value={value}")

        trace.enter(PipelineStage.FETCHING_SIMULATION)
        simulation = await self._simulator.simulate(
            from_address=sender, to_address=target, value=value, data=data
        )

        trace.enter(PipelineStage.FETCHING_FACTS)
        security, security_status = await self._fetch_security(target)

        with trace.step(PipelineStage.CLASSIFYING):
            risk_level = transaction_risk_level(
                security, simulation, has_calldata=_has_calldata(data)
            )
        self.log(
            f"风险等级 {risk_level.value} (仿真 {simulation.status.value}, "
            f"安全数据 {security_status.value})"
        )

        with trace.step(PipelineStage.GENERATING_NARRATIVE):
            narrative = await self._narrator.generate(
                InterpretationNarrative,
                INTERPRET_SYSTEM_PROMPT,
                interpretation_prompt(
                    from_address=sender,
                    to_address=target,
                    value=value,
                    data=data,
                    simulation=simulation,
                    security=security,
                    risk_level=risk_level,
                ),
            )

        if narrative.risk_level is not None and narrative.risk_level != risk_level:
            self.log(
                f"生成器给出的风险等级 {narrative.risk_level.value} 与规则引擎不一致，"
                f"以 {risk_level.value} 为准"
            )
        narrative = narrative.model_copy(update={"risk_level": risk_level})

        return InterpretationResult(
            from_address=sender,
            to_address=target,
            value=value,
            data=data,
            risk_level=risk_level,
            narrative=narrative,
            simulation=simulation,
            security=security,
            security_status=security_status,
            stages=trace.done(),
        )
