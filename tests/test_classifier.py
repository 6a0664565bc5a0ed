"""规则引擎: 结论规则链、风险评分、交易风险等级、钱包等级。"""

from itertools import product

import pytest

from domain.models import (
    DegenLevel,
    RiskFlag,
    RiskLevel,
    RiskScore,
    SimulationSummary,
    TokenFacts,
    Verdict,
    WalletToken,
)
from services.classifier import (
    assess,
    classify_verdict,
    compute_risk_score,
    degen_level,
    degen_score,
    risk_flags,
    transaction_risk_level,
)
from tests.factories import (
    MAX_UINT256,
    OTHER,
    TOKEN,
    approval,
    clean_facts,
    ok_simulation,
    transfer,
)

BOOL_FIELDS = (
    "is_honeypot",
    "owner_can_mint",
    "hidden_owner",
    "owner_can_change_balance",
    "transfer_pausable",
    "is_open_source",
    "is_trusted",
    "cannot_sell_all",
)
TAX_VALUES = (0.0, 0.5, 1.0, 5.0, 12.0, 20.0, 20.5, 100.0)


def fact_space() -> list[TokenFacts]:
    """布尔字段全组合 × 代表性税率。"""
    space = []
    for flags in product((False, True), repeat=len(BOOL_FIELDS)):
        for buy, sell in product(TAX_VALUES, repeat=2):
            space.append(
                TokenFacts(**dict(zip(BOOL_FIELDS, flags)), buy_tax_pct=buy, sell_tax_pct=sell)
            )
    return space


FACT_SPACE = fact_space()


def _is_scam_profile(facts: TokenFacts) -> bool:
    return facts.is_honeypot or facts.sell_tax_pct > 20 or facts.cannot_sell_all


class TestVerdictProperties:
    def test_honeypot_is_always_scam(self) -> None:
        for facts in FACT_SPACE:
            if facts.is_honeypot:
                assert classify_verdict(facts) == Verdict.SCAM

    def test_sell_tax_above_20_is_always_scam(self) -> None:
        for facts in FACT_SPACE:
            if facts.sell_tax_pct > 20:
                assert classify_verdict(facts) == Verdict.SCAM

    def test_closed_source_is_never_safe(self) -> None:
        """未开源且不满足 SCAM 条件 → RISKY，即使在信任列表中。"""
        for facts in FACT_SPACE:
            if not facts.is_open_source and not _is_scam_profile(facts):
                assert classify_verdict(facts) == Verdict.RISKY

    def test_trusted_never_overrides_scam(self) -> None:
        facts = clean_facts(is_trusted=True, cannot_sell_all=True)
        assert classify_verdict(facts) == Verdict.SCAM


class TestVerdictRules:
    def test_scenario_clean_profile_is_safe_with_zero_score(self) -> None:
        facts = TokenFacts(
            is_honeypot=False,
            buy_tax_pct=0,
            sell_tax_pct=0,
            is_open_source=True,
            hidden_owner=False,
            owner_can_mint=False,
            owner_can_change_balance=False,
            is_trusted=False,
        )
        result = assess(facts)
        assert result.verdict == Verdict.SAFE
        assert result.score.total == 0

    def test_scenario_honeypot(self) -> None:
        result = assess(TokenFacts(is_honeypot=True, sell_tax_pct=99))
        assert result.verdict == Verdict.SCAM
        assert result.score.component("honeypot").value == 35

    def test_scenario_mid_taxes(self) -> None:
        result = assess(TokenFacts(buy_tax_pct=12, sell_tax_pct=8, is_open_source=True))
        assert result.verdict == Verdict.RISKY
        assert result.score.component("tax").value == 20

    def test_six_percent_buy_tax_is_risky(self) -> None:
        assert classify_verdict(clean_facts(buy_tax_pct=6)) == Verdict.RISKY

    def test_exactly_20_sell_tax_is_risky_not_scam(self) -> None:
        assert classify_verdict(clean_facts(sell_tax_pct=20)) == Verdict.RISKY

    def test_cannot_sell_all_is_scam(self) -> None:
        assert classify_verdict(clean_facts(cannot_sell_all=True)) == Verdict.SCAM

    def test_owner_can_change_balance_is_risky(self) -> None:
        assert classify_verdict(clean_facts(owner_can_change_balance=True)) == Verdict.RISKY

    def test_buy_tax_above_20_needs_trust_to_be_safe(self) -> None:
        assert classify_verdict(clean_facts(buy_tax_pct=25)) == Verdict.RISKY
        assert classify_verdict(clean_facts(buy_tax_pct=25, is_trusted=True)) == Verdict.SAFE

    def test_verdict_ordering(self) -> None:
        assert Verdict.SAFE < Verdict.RISKY < Verdict.SCAM
        assert Verdict.worst([Verdict.RISKY, Verdict.SAFE]) == Verdict.RISKY
        assert Verdict.worst([]) == Verdict.SAFE


class TestRiskScore:
    def test_total_always_within_bounds(self) -> None:
        for facts in FACT_SPACE:
            score = compute_risk_score(facts)
            assert 0 <= score.total <= 100
            assert score.total == sum(c.value for c in score.components)
            for comp in score.components:
                assert 0 <= comp.value <= comp.max

    def test_component_order(self) -> None:
        score = compute_risk_score(clean_facts())
        assert [c.label for c in score.components] == ["honeypot", "tax", "ownership"]

    def test_hidden_owner_only_moves_ownership(self) -> None:
        for facts in FACT_SPACE:
            if facts.hidden_owner:
                continue
            before = compute_risk_score(facts)
            after = compute_risk_score(facts.model_copy(update={"hidden_owner": True}))
            assert after.component("honeypot") == before.component("honeypot")
            assert after.component("tax") == before.component("tax")

    @pytest.mark.parametrize(
        ("tax", "points"),
        [(0.0, 0), (0.5, 0), (1.0, 5), (5.0, 10), (9.9, 10), (10.0, 20), (20.0, 30), (100.0, 30)],
    )
    def test_tax_brackets(self, tax: float, points: int) -> None:
        score = compute_risk_score(clean_facts(sell_tax_pct=tax))
        assert score.component("tax").value == points

    def test_tax_uses_max_of_buy_and_sell(self) -> None:
        score = compute_risk_score(clean_facts(buy_tax_pct=12, sell_tax_pct=2))
        assert score.component("tax").value == 20

    def test_pausable_without_honeypot(self) -> None:
        score = compute_risk_score(clean_facts(transfer_pausable=True))
        assert score.component("honeypot").value == 20

    def test_ownership_capped(self) -> None:
        facts = TokenFacts(hidden_owner=True, owner_can_mint=True, is_open_source=False)
        assert compute_risk_score(facts).component("ownership").value == 35

    def test_assess_uses_single_snapshot(self) -> None:
        facts = clean_facts(hidden_owner=True)
        result = assess(facts)
        assert result.facts is facts
        assert result.verdict == classify_verdict(facts)
        assert result.score == compute_risk_score(facts)


class TestRiskFlags:
    def test_flags_follow_facts(self) -> None:
        facts = TokenFacts(is_honeypot=True, sell_tax_pct=50, is_trusted=True)
        flags = risk_flags(facts)
        assert RiskFlag.HONEYPOT in flags
        assert RiskFlag.SELL_TAX in flags
        assert RiskFlag.CLOSED_SOURCE in flags
        assert RiskFlag.TRUSTED in flags
        assert RiskFlag.BUY_TAX not in flags

    def test_clean_has_no_flags(self) -> None:
        assert risk_flags(clean_facts()) == []


class TestTransactionRiskLevel:
    def test_honeypot_target_is_high(self) -> None:
        assert transaction_risk_level(clean_facts(is_honeypot=True), ok_simulation()) == RiskLevel.HIGH

    def test_unlimited_approval_is_high(self) -> None:
        sim = ok_simulation(approval(MAX_UINT256))
        assert transaction_risk_level(None, sim, has_calldata=True) == RiskLevel.HIGH

    def test_contract_call_with_only_outflow_is_high(self) -> None:
        sim = ok_simulation(transfer("-1.5"))
        assert transaction_risk_level(None, sim, has_calldata=True) == RiskLevel.HIGH

    def test_plain_send_is_low(self) -> None:
        sim = ok_simulation(transfer("-1.5"))
        assert transaction_risk_level(None, sim, has_calldata=False) == RiskLevel.LOW

    def test_clean_swap_is_low(self) -> None:
        sim = ok_simulation(transfer("-1"), transfer("1000", asset=TOKEN, symbol="PEPE"))
        assert transaction_risk_level(clean_facts(), sim, has_calldata=True) == RiskLevel.LOW

    def test_mid_tax_is_medium(self) -> None:
        assert transaction_risk_level(clean_facts(buy_tax_pct=5), ok_simulation()) == RiskLevel.MEDIUM

    def test_cannot_sell_all_target_is_high(self) -> None:
        facts = clean_facts(cannot_sell_all=True)
        assert transaction_risk_level(facts, ok_simulation()) == RiskLevel.HIGH

    def test_buy_tax_above_20_is_medium(self) -> None:
        facts = clean_facts(buy_tax_pct=25)
        assert transaction_risk_level(facts, ok_simulation()) == RiskLevel.MEDIUM

    @pytest.mark.parametrize(
        "overrides",
        [
            {"cannot_sell_all": True},
            {"buy_tax_pct": 25},
            {"is_honeypot": True},
            {"sell_tax_pct": 30},
            {"hidden_owner": True},
        ],
    )
    def test_non_safe_target_is_never_low(self, overrides: dict) -> None:
        facts = clean_facts(**overrides)
        assert classify_verdict(facts) != Verdict.SAFE
        assert transaction_risk_level(facts, ok_simulation()) != RiskLevel.LOW

    def test_sub_one_percent_tax_is_low(self) -> None:
        assert transaction_risk_level(clean_facts(buy_tax_pct=0.5), ok_simulation()) == RiskLevel.LOW

    def test_closed_source_is_medium(self) -> None:
        assert transaction_risk_level(TokenFacts(), ok_simulation()) == RiskLevel.MEDIUM

    def test_bounded_approval_is_medium(self) -> None:
        sim = ok_simulation(approval(10**18))
        assert transaction_risk_level(None, sim, has_calldata=True) == RiskLevel.MEDIUM

    def test_multiple_outgoing_assets_is_medium(self) -> None:
        sim = ok_simulation(
            transfer("-1"),
            transfer("-50", asset=OTHER, symbol="USDC"),
            transfer("1000", asset=TOKEN, symbol="PEPE"),
        )
        assert transaction_risk_level(None, sim, has_calldata=True) == RiskLevel.MEDIUM

    def test_failed_simulation_without_facts_is_low(self) -> None:
        sim = SimulationSummary.failed("reverted")
        assert transaction_risk_level(None, sim, has_calldata=True) == RiskLevel.LOW


def _token(verdict: Verdict | None, total: int | None = None) -> WalletToken:
    score = RiskScore(total=total) if total is not None else None
    return WalletToken(address=TOKEN, verdict=verdict, risk_score=score)


class TestDegenLevel:
    def test_empty_wallet_is_clean(self) -> None:
        assert degen_level([]) == DegenLevel.CLEAN
        assert degen_score([], DegenLevel.CLEAN) == 0

    def test_scam_majority_is_most_wanted(self) -> None:
        tokens = [_token(Verdict.SCAM), _token(Verdict.SCAM), _token(Verdict.SAFE)]
        assert degen_level(tokens) == DegenLevel.MOST_WANTED

    def test_any_scam_is_wanted(self) -> None:
        tokens = [_token(Verdict.SCAM), _token(Verdict.SAFE), _token(Verdict.RISKY)]
        assert degen_level(tokens) == DegenLevel.WANTED

    def test_three_risky_is_degen(self) -> None:
        tokens = [_token(Verdict.RISKY)] * 3 + [_token(Verdict.SAFE)]
        assert degen_level(tokens) == DegenLevel.DEGEN

    def test_one_risky_is_suspect(self) -> None:
        assert degen_level([_token(Verdict.RISKY), _token(Verdict.SAFE)]) == DegenLevel.SUSPECT

    def test_unscanned_tokens_are_ignored(self) -> None:
        tokens = [_token(Verdict.SCAM, 70)] + [_token(None)] * 5
        assert degen_level(tokens) == DegenLevel.MOST_WANTED
        assert degen_score(tokens, DegenLevel.MOST_WANTED) == 80 + 14

    def test_score_is_floor_plus_mean_bonus(self) -> None:
        tokens = [_token(Verdict.SCAM, 50), _token(Verdict.SAFE, 50), _token(Verdict.SAFE, 50)]
        assert degen_score(tokens, DegenLevel.WANTED) == 60 + 10

    def test_score_is_clamped(self) -> None:
        tokens = [_token(Verdict.SCAM, 100)]
        assert degen_score(tokens, DegenLevel.MOST_WANTED) == 100
