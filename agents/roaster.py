"""
agents/roaster.py — 代币吐槽 Agent

单个代币的完整评估流水线:
  FETCHING_FACTS → (FETCHING_SIMULATION) → CLASSIFYING → GENERATING_NARRATIVE → DONE

安全事实是必需的（没有数据直接 NotFound）；仿真只在给出 from_address 时发起，
失败降级。结论和评分由规则引擎决定，生成器只负责措辞。
"""

from __future__ import annotations

from typing import Any, Optional

from agents.base import BaseAgent
from domain.models import (
    AssessmentResult,
    PipelineStage,
    RoastNarrative,
    SimulationSummary,
    require_address,
)
from services.classifier import assess, risk_flags
from services.goplus import GoPlusService
from services.narrator import NarrativeService
from services.normalizer import normalize_facts
from services.prompts import ROAST_SYSTEM_PROMPT, roast_prompt
from services.simulation import SimulationService


class RoastAgent(BaseAgent):
    """事实 → 仿真 → 规则引擎 → 吐槽。"""

    name = "RoastAgent"

    def __init__(
        self,
        goplus: Optional[GoPlusService] = None,
        simulator: Optional[SimulationService] = None,
        narrator: Optional[NarrativeService] = None,
    ) -> None:
        self._goplus = goplus or GoPlusService()
        self._simulator = simulator or SimulationService()
        self._narrator = narrator or NarrativeService()

    async def run(self, task: dict[str, Any]) -> AssessmentResult:
        """task keys:
          contract: 代币合约地址
          from_address: 可选，仿真用的发送者
        """
        return await self.assess_token(task.get("contract"), task.get("from_address"))

    async def decide(self, context: dict[str, Any]) -> str:
        """有发送者才仿真，否则跳过。"""
        return "simulate" if context.get("from_address") else "skip_simulation"

    async def assess_token(
        self, contract: Any, from_address: Optional[str] = None
    ) -> AssessmentResult:
        """评估一个代币。

        异常:
            InvalidInputError: 地址非法。
            NotFoundError: 安全数据源没有该合约。
            UpstreamUnavailableError: 安全数据源或生成器不可用。
            GenerationParseError: 生成器输出无法解析。
        """
        contract = require_address(contract, "contract")
        sender = require_address(from_address, "from_address") if from_address else None
        trace = self.trace()
        self.log(f"开始评估代币: {contract[:10]}…")

        # ── 安全事实（必需）────────────────────────────────
        with trace.step(PipelineStage.FETCHING_FACTS):
            security = await self._goplus.get_token_security([contract])
            facts = normalize_facts(security, contract)

        # ── 仿真（可选）──────────────────────────────────
        simulation = SimulationSummary.not_attempted()
        if await self.decide({"from_address": sender}) == "simulate":
            trace.enter(PipelineStage.FETCHING_SIMULATION)
            simulation = await self._simulator.simulate(
                from_address=sender, to_address=contract, value="0x0"
            )

        # ── 规则引擎 ──────────────────────────────────────
        with trace.step(PipelineStage.CLASSIFYING):
            classification = assess(facts)
            flags = risk_flags(facts)
        self.log(
            f"结论 {classification.verdict.value}, 评分 {classification.score.total}/100, "
            f"标签 {[f.value for f in flags]}"
        )

        # ── 叙述 ──────────────────────────────────────────
        with trace.step(PipelineStage.GENERATING_NARRATIVE):
            narrative = await self._narrator.generate(
                RoastNarrative,
                ROAST_SYSTEM_PROMPT,
                roast_prompt(facts, classification.verdict, classification.score, simulation),
            )

        if narrative.verdict is not None and narrative.verdict != classification.verdict:
            self.log(
                f"生成器给出的结论 {narrative.verdict.value} 与规则引擎不一致，"
                f"以 {classification.verdict.value} 为准"
            )
        narrative = narrative.model_copy(update={"verdict": classification.verdict})

        return AssessmentResult(
            address=contract,
            token_name=facts.display_name,
            verdict=classification.verdict,
            risk_score=classification.score,
            risk_flags=flags,
            narrative=narrative,
            facts=classification.facts,
            simulation=simulation,
            stages=trace.done(),
        )
