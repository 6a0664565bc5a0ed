"""
agents/investigator.py — 钱包"犯罪记录" Agent

  FETCHING_HOLDINGS → FETCHING_FACTS → CLASSIFYING → GENERATING_NARRATIVE → DONE

持仓枚举是必需的；元数据逐个代币降级，安全数据整批降级。
没有安全数据的代币记为 unscanned，不参与等级和评分。
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from agents.base import BaseAgent
from domain.errors import NotFoundError, UpstreamUnavailableError
from domain.models import (
    CriminalRecordNarrative,
    PipelineStage,
    TokenFacts,
    Verdict,
    WalletProfile,
    WalletStats,
    WalletToken,
    require_address,
)
from services.classifier import assess, degen_level, degen_score
from services.goplus import GoPlusService
from services.narrator import NarrativeService
from services.normalizer import normalize_facts
from services.prompts import CRIMINAL_RECORD_SYSTEM_PROMPT, criminal_record_prompt
from services.token_info import Holding, TokenInfoService, TokenMetadata


def build_stats(tokens: Sequence[WalletToken]) -> WalletStats:
    scanned = [t.facts for t in tokens if t.facts is not None]
    return WalletStats(
        total_tokens=len(tokens),
        honeypots=sum(1 for f in scanned if f.is_honeypot),
        risky=sum(1 for t in tokens if t.verdict == Verdict.RISKY),
        trusted=sum(1 for f in scanned if f.is_trusted),
        closed_source=sum(1 for f in scanned if not f.is_open_source),
        unscanned=len(tokens) - len(scanned),
    )


def _to_wallet_token(
    holding: Holding, meta: TokenMetadata, facts: Optional[TokenFacts]
) -> WalletToken:
    if facts is None:
        return WalletToken(
            address=holding.address,
            name=meta.name,
            symbol=meta.symbol,
            balance=holding.balance,
        )

    classification = assess(facts)
    # 元数据查不到时用安全数据里的名称
    name = meta.name if meta.available else (facts.token_name or meta.name)
    symbol = meta.symbol if meta.available else (facts.token_symbol or meta.symbol)
    return WalletToken(
        address=holding.address,
        name=name,
        symbol=symbol,
        balance=holding.balance,
        facts=facts,
        verdict=classification.verdict,
        risk_score=classification.score,
    )


class InvestigatorAgent(BaseAgent):
    name = "InvestigatorAgent"

    def __init__(
        self,
        token_info: Optional[TokenInfoService] = None,
        goplus: Optional[GoPlusService] = None,
        narrator: Optional[NarrativeService] = None,
    ) -> None:
        self._token_info = token_info or TokenInfoService()
        self._goplus = goplus or GoPlusService()
        self._narrator = narrator or NarrativeService()

    async def run(self, task: dict[str, Any]) -> WalletProfile:
        """task keys:
          wallet: 钱包地址
        """
        return await self.get_wallet_profile(task.get("wallet"))

    async def _fetch_security(self, addresses: list[str]) -> Mapping[str, Any]:
        if not addresses:
            return {}
        try:
            return await self._goplus.get_token_security(addresses)
        except UpstreamUnavailableError as exc:
            self.log(f"批量安全数据不可用，所有代币记为未扫描: {exc.message}")
            return {}

    def _facts_for(self, security: Mapping[str, Any], address: str) -> Optional[TokenFacts]:
        try:
            return normalize_facts(security, address)
        except NotFoundError:
            return None

    async def get_wallet_profile(self, wallet: Any) -> WalletProfile:
        """生成钱包犯罪记录。

        异常:
            InvalidInputError: 地址非法。
            UpstreamUnavailableError: 持仓枚举或生成器不可用。
            GenerationParseError: 生成器输出无法解析。
        """
        wallet = require_address(wallet, "wallet")
        trace = self.trace()
        self.log(f"调查钱包: {wallet[:10]}…")

        with trace.step(PipelineStage.FETCHING_HOLDINGS):
            holdings = await self._token_info.list_holdings(wallet)

        trace.enter(PipelineStage.FETCHING_FACTS)
        addresses = [h.address for h in holdings]
        metadata = await self._token_info.fetch_all_metadata(addresses)
        security = await self._fetch_security(addresses)

        with trace.step(PipelineStage.CLASSIFYING):
            tokens = [
                _to_wallet_token(holding, meta, self._facts_for(security, holding.address))
                for holding, meta in zip(holdings, metadata)
            ]
            stats = build_stats(tokens)
            level = degen_level(tokens)
            score = degen_score(tokens, level)
        self.log(
            f"{stats.total_tokens} 个代币 (蜜罐 {stats.honeypots}, 风险 {stats.risky}, "
            f"未扫描 {stats.unscanned}) → {level.value} {score}/100"
        )

        with trace.step(PipelineStage.GENERATING_NARRATIVE):
            narrative = await self._narrator.generate(
                CriminalRecordNarrative,
                CRIMINAL_RECORD_SYSTEM_PROMPT,
                criminal_record_prompt(
                    wallet_address=wallet,
                    stats=stats,
                    tokens=tokens,
                    level=level,
                    score=score,
                ),
            )

        if (narrative.degen_level, narrative.degen_score) != (level, score):
            self.log(
                f"生成器给出 {narrative.degen_level} / {narrative.degen_score}，"
                f"以规则引擎的 {level.value} / {score} 为准"
            )
        narrative = narrative.model_copy(update={"degen_level": level, "degen_score": score})

        return WalletProfile(
            address=wallet,
            tokens=tokens,
            stats=stats,
            degen_level=level,
            degen_score=score,
            narrative=narrative,
            stages=trace.done(),
        )
