"""
services/classifier.py — 确定性规则引擎

全部为纯函数，输入一份 TokenFacts 快照:
  classify_verdict()   有序规则链 → Verdict（首个命中的规则生效）
  compute_risk_score() 三个独立封顶分量之和 → RiskScore (0-100)

结论与评分相互独立地计算，边界上可能"看起来不一致"（例如 SAFE 但评分非零），
但两者必须来自同一份快照，见 assess()。

另外提供交易解读的三档风险等级和钱包犯罪记录等级，同样是确定性的，
叙述生成器给出的等级只作参考，不会覆盖这里的结果。
"""

from __future__ import annotations

from dataclasses import dataclass
from statistics import mean
from typing import Optional, Sequence

from domain.models import (
    DegenLevel,
    RiskFlag,
    RiskLevel,
    RiskScore,
    ScoreComponent,
    SimulationSummary,
    TokenFacts,
    Verdict,
    WalletToken,
)

SCAM_SELL_TAX_PCT = 20.0
MEDIUM_TAX_RANGE = (1.0, 20.0)

HONEYPOT_MAX = 35
PAUSABLE_POINTS = 20
TAX_MAX = 30
OWNERSHIP_MAX = 35

# (最大税率下限, 分值)，从高到低匹配
TAX_BRACKETS: tuple[tuple[float, int], ...] = (
    (20.0, 30),
    (10.0, 20),
    (5.0, 10),
    (1.0, 5),
)

HIDDEN_OWNER_POINTS = 15
MINTABLE_POINTS = 15
CLOSED_SOURCE_POINTS = 5

# 钱包等级 → 该档位的最低 degen 分
DEGEN_FLOORS: dict[DegenLevel, int] = {
    DegenLevel.CLEAN: 0,
    DegenLevel.SUSPECT: 20,
    DegenLevel.DEGEN: 40,
    DegenLevel.WANTED: 60,
    DegenLevel.MOST_WANTED: 80,
}
DEGEN_RISKY_THRESHOLD = 3


@dataclass(frozen=True)
class Classification:
    """同一份 TokenFacts 上算出的结论和评分。"""

    facts: TokenFacts
    verdict: Verdict
    score: RiskScore


# ── 结论 ────────────────────────────────────────────────────────

def _taxed(pct: float) -> bool:
    return 0.0 < pct <= SCAM_SELL_TAX_PCT


def _is_clean(facts: TokenFacts) -> bool:
    return (
        not facts.is_honeypot
        and facts.buy_tax_pct == 0
        and facts.sell_tax_pct == 0
        and facts.is_open_source
        and not facts.hidden_owner
        and not facts.owner_can_mint
        and not facts.owner_can_change_balance
    )


def classify_verdict(facts: TokenFacts) -> Verdict:
    """有序规则链，首个命中生效。

    1. SCAM  — 蜜罐 / 卖出税 > 20% / 无法全部卖出
    2. RISKY — 隐藏 owner / 可增发 / 可改余额 / 买卖税 (0, 20] / 可暂停 / 未开源
    3. SAFE  — 仅当在信任列表中或满足干净画像时确认；否则 RISKY

    信任列表只会把本来就干净的画像确认为 SAFE，不会覆盖规则 1、2。
    """
    if facts.is_honeypot or facts.sell_tax_pct > SCAM_SELL_TAX_PCT or facts.cannot_sell_all:
        return Verdict.SCAM

    if (
        facts.hidden_owner
        or facts.owner_can_mint
        or facts.owner_can_change_balance
        or _taxed(facts.buy_tax_pct)
        or _taxed(facts.sell_tax_pct)
        or facts.transfer_pausable
        or not facts.is_open_source
    ):
        return Verdict.RISKY

    # 走到这里只剩买入税 > 20% 的画像可能无法确认
    if facts.is_trusted or _is_clean(facts):
        return Verdict.SAFE
    return Verdict.RISKY


# ── 评分 ────────────────────────────────────────────────────────

def _honeypot_component(facts: TokenFacts) -> int:
    if facts.is_honeypot:
        return HONEYPOT_MAX
    if facts.transfer_pausable:
        return PAUSABLE_POINTS
    return 0


def _tax_component(facts: TokenFacts) -> int:
    top = facts.max_tax_pct
    for floor, points in TAX_BRACKETS:
        if top >= floor:
            return min(points, TAX_MAX)
    return 0


def _ownership_component(facts: TokenFacts) -> int:
    points = 0
    if facts.hidden_owner:
        points += HIDDEN_OWNER_POINTS
    if facts.owner_can_mint:
        points += MINTABLE_POINTS
    if not facts.is_open_source:
        points += CLOSED_SOURCE_POINTS
    return min(points, OWNERSHIP_MAX)


def compute_risk_score(facts: TokenFacts) -> RiskScore:
    """honeypot (≤35) + tax (≤30) + ownership (≤35)，总分 ≤ 100。"""
    components = [
        ScoreComponent(label="honeypot", value=_honeypot_component(facts), max=HONEYPOT_MAX),
        ScoreComponent(label="tax", value=_tax_component(facts), max=TAX_MAX),
        ScoreComponent(label="ownership", value=_ownership_component(facts), max=OWNERSHIP_MAX),
    ]
    total = sum(c.value for c in components)
    return RiskScore(total=min(total, 100), components=components)


def assess(facts: TokenFacts) -> Classification:
    """在同一份快照上计算结论和评分。"""
    return Classification(
        facts=facts,
        verdict=classify_verdict(facts),
        score=compute_risk_score(facts),
    )


# ── 风险标签 ────────────────────────────────────────────────────

def risk_flags(facts: TokenFacts) -> list[RiskFlag]:
    flags: list[RiskFlag] = []
    if facts.is_honeypot:
        flags.append(RiskFlag.HONEYPOT)
    if facts.cannot_sell_all:
        flags.append(RiskFlag.CANNOT_SELL_ALL)
    if facts.hidden_owner:
        flags.append(RiskFlag.HIDDEN_OWNER)
    if facts.owner_can_mint:
        flags.append(RiskFlag.MINTABLE)
    if facts.owner_can_change_balance:
        flags.append(RiskFlag.OWNER_CHANGE_BALANCE)
    if facts.transfer_pausable:
        flags.append(RiskFlag.PAUSABLE)
    if facts.buy_tax_pct > 0:
        flags.append(RiskFlag.BUY_TAX)
    if facts.sell_tax_pct > 0:
        flags.append(RiskFlag.SELL_TAX)
    if not facts.is_open_source:
        flags.append(RiskFlag.CLOSED_SOURCE)
    if facts.is_trusted:
        flags.append(RiskFlag.TRUSTED)
    return flags


# ── 交易解读风险等级 ────────────────────────────────────────────

def _in_medium_tax_band(pct: float) -> bool:
    low, high = MEDIUM_TAX_RANGE
    return low <= pct <= high


def is_unusual_flow(simulation: SimulationSummary) -> bool:
    """有限额授权，或同时转出多种资产。"""
    if any(not c.is_unlimited_approval for c in simulation.approvals):
        return True
    return len({c.asset for c in simulation.outgoing}) > 1


def transaction_risk_level(
    facts: Optional[TokenFacts],
    simulation: SimulationSummary,
    has_calldata: bool = False,
) -> RiskLevel:
    """交易解读的三档风险等级。

    HIGH   — 蜜罐 / 无法全部卖出 / 卖出税 > 20% / 无限授权 / 合约调用只有流出没有流入
    MEDIUM — 任一税率 1-20% / 买入税 > 20% / 隐藏 owner / 可增发 / 可暂停 / 未开源 / 异常资金流
    LOW    — 其他

    facts 为 None 表示目标地址没有安全数据，只按仿真结果判断。
    """
    net_loss = bool(simulation.outgoing) and not simulation.incoming
    if facts is not None and (
        facts.is_honeypot or facts.cannot_sell_all or facts.sell_tax_pct > SCAM_SELL_TAX_PCT
    ):
        return RiskLevel.HIGH
    if simulation.has_unlimited_approval:
        return RiskLevel.HIGH
    if has_calldata and net_loss:
        return RiskLevel.HIGH

    if facts is not None and (
        _in_medium_tax_band(facts.buy_tax_pct)
        or facts.buy_tax_pct > SCAM_SELL_TAX_PCT
        or _in_medium_tax_band(facts.sell_tax_pct)
        or facts.hidden_owner
        or facts.owner_can_mint
        or facts.transfer_pausable
        or not facts.is_open_source
    ):
        return RiskLevel.MEDIUM
    if is_unusual_flow(simulation):
        return RiskLevel.MEDIUM

    return RiskLevel.LOW


# ── 钱包犯罪记录等级 ────────────────────────────────────────────

def degen_level(tokens: Sequence[WalletToken]) -> DegenLevel:
    """按已扫描代币的结论分布定级。没有安全数据的代币不参与。"""
    verdicts = [t.verdict for t in tokens if t.verdict is not None]
    scams = sum(1 for v in verdicts if v == Verdict.SCAM)
    risky = sum(1 for v in verdicts if v == Verdict.RISKY)

    if verdicts and scams * 2 > len(verdicts):
        return DegenLevel.MOST_WANTED
    if scams:
        return DegenLevel.WANTED
    if risky >= DEGEN_RISKY_THRESHOLD:
        return DegenLevel.DEGEN
    if risky:
        return DegenLevel.SUSPECT
    return DegenLevel.CLEAN


def degen_score(tokens: Sequence[WalletToken], level: DegenLevel) -> int:
    """档位下限 + 已扫描代币平均风险分 / 5，落在 [0, 100]。"""
    totals = [t.risk_score.total for t in tokens if t.risk_score is not None]
    bonus = round(mean(totals) / 5) if totals else 0
    return max(0, min(100, DEGEN_FLOORS[level] + bonus))
