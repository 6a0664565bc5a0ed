"""
services/prompts.py — 叙述生成器的指令模板

每个用例一条系统指令 + 一个构造用户内容的函数。
所有指令都要求生成器只根据给定事实作答、不得编造信息；
确定性的结论 / 等级会直接告诉生成器，它只负责措辞。
"""

from __future__ import annotations

from typing import Optional, Sequence

from domain.models import (
    AssessmentResult,
    DegenLevel,
    RiskLevel,
    RiskScore,
    SimulationSummary,
    TokenFacts,
    Verdict,
    WalletStats,
    WalletToken,
)

ROAST_SYSTEM_PROMPT = """You are the Crypto RoastMaster. You are ruthless and sarcastic but technically accurate.
You only roast based on the facts given to you. Never invent information.

The verdict has already been decided by a deterministic rule engine and is given to you.
Repeat it exactly; do not argue with it.

Always respond in this exact JSON format with no extra text:
{
  "verdict": "SCAM" or "RISKY" or "SAFE",
  "roast": "one savage sentence",
  "tip": "one actionable piece of advice"
}"""

INTERPRET_SYSTEM_PROMPT = """You are a crypto transaction interpreter. Your job is to explain what a blockchain transaction will do in plain, simple English so even a beginner can understand it.

Given simulation results (asset changes) and optional security data about the destination contract, you must:
1. Explain what happens in one clear sentence
2. List any warnings or red flags
3. Break down every asset change

The risk level has already been decided by a deterministic rule engine and is given to you. Repeat it exactly.

Respond ONLY in this exact JSON format with no extra text:
{
  "summary": "one clear sentence explaining the transaction",
  "riskLevel": "LOW" or "MEDIUM" or "HIGH",
  "warnings": ["array of warning strings, empty if none"],
  "details": ["array of human-readable asset change strings"]
}

Be specific about token names, amounts, and directions of flow. If simulation shows no changes, say so clearly.
If the simulation was not run or failed, say that the effect could not be verified.
Never invent information. Only interpret what you are given."""

CRIMINAL_RECORD_SYSTEM_PROMPT = """You are a Crypto Crime Investigator generating a CRIMINAL RECORD report for a wallet.

Based on the wallet's token holdings and their security data, generate a criminal-style rap sheet.
The degen level and degen score have already been decided by a deterministic rule engine; repeat them exactly.

Respond ONLY in this exact JSON format with no extra text:
{
  "alias": "a funny crypto nickname for this wallet based on behavior (e.g. 'The Degen Desperado', 'Paper Hands Pete', 'Diamond Chad')",
  "degenLevel": "CLEAN" or "SUSPECT" or "DEGEN" or "WANTED" or "MOST_WANTED",
  "degenScore": number from 0-100 (100 = maximum degen),
  "charges": ["array of funny criminal-style charges based on holdings, e.g. 'Possession of 3 unaudited shitcoins'"],
  "priors": ["array of past 'offenses' inferred from holdings, e.g. 'Known associate of honeypot tokens'"],
  "verdict": "one dramatic sentence summarizing the wallet's criminal status",
  "advice": "one piece of rehabilitation advice"
}

Only cite holdings and facts that appear in the data. Be savage, funny, and dramatic. This is entertainment. Use crypto slang."""

CHAT_SYSTEM_PROMPT = """You are the WalletRoast AI — a crypto security expert who is witty, sharp, and slightly sarcastic but genuinely helpful.

You have already analyzed a token and given a verdict. Now the user wants to ask follow-up questions about it. You have the token's security data as context.

Rules:
- Stay in character — concise, punchy, crypto-native language
- Answer based ONLY on the security facts provided. Never invent data.
- If asked about price predictions or financial advice, deflect with humor: "I roast tokens, not predict their price. DYOR."
- Keep responses SHORT — 2-3 sentences max unless the user asks for detail
- Use emojis sparingly but effectively
- If the user asks something unrelated to the token, redirect them back
- Reply in plain prose, not JSON"""


def _pct(value: float) -> str:
    return f"{value:g}%"


def facts_block(facts: TokenFacts) -> str:
    return "\n".join(
        [
            f"- Honeypot (can't sell): {facts.is_honeypot}",
            f"- Buy Tax: {_pct(facts.buy_tax_pct)}",
            f"- Sell Tax: {_pct(facts.sell_tax_pct)}",
            f"- Can mint unlimited tokens: {facts.owner_can_mint}",
            f"- Hidden owner (can rug): {facts.hidden_owner}",
            f"- Owner can change balances: {facts.owner_can_change_balance}",
            f"- Can pause all transfers: {facts.transfer_pausable}",
            f"- Cannot sell all tokens: {facts.cannot_sell_all}",
            f"- Open source contract: {facts.is_open_source}",
            f"- Trusted/verified token: {facts.is_trusted}",
        ]
    )


def score_block(score: RiskScore) -> str:
    parts = ", ".join(f"{c.label} {c.value}/{c.max}" for c in score.components)
    return f"{score.total}/100 ({parts})"


def roast_prompt(
    facts: TokenFacts,
    verdict: Verdict,
    score: RiskScore,
    simulation: SimulationSummary,
) -> str:
    return (
        f"Here are the facts about {facts.display_name}:\n"
        f"{facts_block(facts)}\n"
        f"- Simulation Result: {simulation.describe()}\n\n"
        f"Verdict (already decided): {verdict.value}\n"
        f"Risk score: {score_block(score)}\n\n"
        "Roast this token."
    )


def interpretation_prompt(
    *,
    from_address: str,
    to_address: str,
    value: str,
    data: Optional[str],
    simulation: SimulationSummary,
    security: Optional[TokenFacts],
    risk_level: RiskLevel,
) -> str:
    if security is not None:
        security_text = (
            f"Security data for {security.display_name}:\n{facts_block(security)}"
        )
    else:
        security_text = "No security data available for destination address."

    calldata = f"Calldata: {data}" if data else "No calldata (simple transfer)"
    return (
        "Interpret this Ethereum transaction:\n"
        f"From: {from_address}\n"
        f"To: {to_address}\n"
        f"Value: {value}\n"
        f"{calldata}\n\n"
        f"Simulation Results:\n{simulation.describe()}\n\n"
        f"{security_text}\n\n"
        f"Risk level (already decided): {risk_level.value}\n\n"
        "Explain what this transaction does."
    )


def _token_line(token: WalletToken) -> str:
    if token.facts is None:
        return f"- {token.name} ({token.symbol}): no security data available"
    f = token.facts
    return (
        f"- {token.name} ({token.symbol}): verdict={token.verdict.value if token.verdict else 'UNKNOWN'}, "
        f"honeypot={f.is_honeypot}, buyTax={_pct(f.buy_tax_pct)}, sellTax={_pct(f.sell_tax_pct)}, "
        f"hiddenOwner={f.hidden_owner}, mintable={f.owner_can_mint}, "
        f"openSource={f.is_open_source}, trusted={f.is_trusted}"
    )


def criminal_record_prompt(
    *,
    wallet_address: str,
    stats: WalletStats,
    tokens: Sequence[WalletToken],
    level: DegenLevel,
    score: int,
) -> str:
    holdings = "\n".join(_token_line(t) for t in tokens) or "- (no token holdings found)"
    return (
        f"Generate a criminal record for wallet: {wallet_address}\n\n"
        "Portfolio Stats:\n"
        f"- Total tokens held: {stats.total_tokens}\n"
        f"- Honeypot tokens: {stats.honeypots}\n"
        f"- Risky tokens: {stats.risky}\n"
        f"- Trusted/verified tokens: {stats.trusted}\n"
        f"- Closed source tokens: {stats.closed_source}\n"
        f"- Tokens without security data: {stats.unscanned}\n\n"
        f"Token Holdings:\n{holdings}\n\n"
        f"Degen level (already decided): {level.value}\n"
        f"Degen score (already decided): {score}\n\n"
        "Generate the criminal record."
    )


def chat_system_prompt(context: Optional[AssessmentResult]) -> str:
    if context is None:
        return CHAT_SYSTEM_PROMPT + "\n\nNo token context available.\n"
    f = context.facts
    return (
        f"{CHAT_SYSTEM_PROMPT}\n\n"
        f"Token being discussed: {context.token_name}\n"
        f"Verdict: {context.verdict.value}\n"
        f"Risk score: {score_block(context.risk_score)}\n"
        f'Roast: "{context.narrative.roast}"\n'
        f"Facts: Honeypot={f.is_honeypot}, Buy Tax={_pct(f.buy_tax_pct)}, "
        f"Sell Tax={_pct(f.sell_tax_pct)}, Hidden Owner={f.hidden_owner}, "
        f"Mintable={f.owner_can_mint}, Owner Can Change Balance={f.owner_can_change_balance}, "
        f"Pausable={f.transfer_pausable}, Cannot Sell All={f.cannot_sell_all}, "
        f"Open Source={f.is_open_source}, Trusted={f.is_trusted}\n"
        f"Simulation: {context.simulation.describe()}\n"
    )
