"""
app.py — Streamlit 控制台入口（WalletRoast）

四个标签页: 代币吐槽 / 交易解读（含"仅仿真"）/ 钱包犯罪记录 / 追问对话。

异步流水线运行在后台守护线程的独立事件循环中，
主线程通过 run_coroutine_threadsafe 提交任务并等待结果。

🔧 后台线程不能访问 st.session_state，协程只返回结果，
   所有 session_state 的读写都在主线程完成。

启动方式: `streamlit run app.py`
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Coroutine
from typing import Any, Optional, TypeVar

import streamlit as st
from loguru import logger

from agents.coordinator import CoordinatorAgent
from core.config import get_settings
from core.logging import setup_logging
from core.web3_provider import check_connection
from domain.errors import AssessmentError
from domain.models import (
    AssessmentResult,
    InterpretationResult,
    RiskLevel,
    SimulationReport,
    SimulationStatus,
    Verdict,
    WalletProfile,
)

T = TypeVar("T")

VERDICT_BADGES = {Verdict.SAFE: "🟢", Verdict.RISKY: "🟡", Verdict.SCAM: "🔴"}
RISK_BADGES = {RiskLevel.LOW: "🟢", RiskLevel.MEDIUM: "🟡", RiskLevel.HIGH: "🔴"}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 页面配置
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

st.set_page_config(
    page_title="🔥 WalletRoast",
    page_icon="🔥",
    layout="wide",
    initial_sidebar_state="expanded",
)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 会话状态初始化
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

if "event_loop" not in st.session_state:
    st.session_state.event_loop: asyncio.AbstractEventLoop | None = None
if "loop_thread" not in st.session_state:
    st.session_state.loop_thread: threading.Thread | None = None
if "coordinator" not in st.session_state:
    st.session_state.coordinator: CoordinatorAgent | None = None
if "last_assessment" not in st.session_state:
    st.session_state.last_assessment: AssessmentResult | None = None
if "chat_history" not in st.session_state:
    st.session_state.chat_history: list[dict[str, str]] = []


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 后台事件循环（用于运行异步流水线）
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _run_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """守护线程的目标函数。"""
    asyncio.set_event_loop(loop)
    loop.run_forever()


def get_or_create_loop() -> asyncio.AbstractEventLoop:
    """返回后台事件循环，如不存在则创建。"""
    if st.session_state.event_loop is None or st.session_state.event_loop.is_closed():
        loop = asyncio.new_event_loop()
        thread = threading.Thread(target=_run_event_loop, args=(loop,), daemon=True)
        thread.start()
        st.session_state.event_loop = loop
        st.session_state.loop_thread = thread
    return st.session_state.event_loop


def get_coordinator() -> CoordinatorAgent:
    if st.session_state.coordinator is None:
        st.session_state.coordinator = CoordinatorAgent()
    return st.session_state.coordinator


def run_pipeline(coro: Coroutine[Any, Any, T], timeout: float = 120) -> Optional[T]:
    """在后台事件循环中执行协程。

    流水线错误以结构化形式展示并返回 None；其他异常记录后上抛。
    """
    future = asyncio.run_coroutine_threadsafe(coro, get_or_create_loop())
    try:
        return future.result(timeout=timeout)
    except AssessmentError as exc:
        logger.warning("流水线失败: {}", exc.to_dict())
        st.error(f"**{exc.kind}** ({exc.status_code}): {exc.message}")
        if exc.stage:
            st.caption(f"失败阶段: `{exc.stage}`")
        return None
    except Exception:
        logger.exception("流水线出现未预期的异常")
        raise


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 结果渲染
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _render_simulation_lines(lines: list[str], status: SimulationStatus) -> None:
    if status == SimulationStatus.NOT_ATTEMPTED:
        st.caption("未发起仿真")
    elif status == SimulationStatus.FAILED:
        st.warning("仿真不可用，无法验证交易效果")
    elif not lines:
        st.caption("仿真成功，没有资产变动")
    for line in lines:
        st.text(line)


def render_assessment(result: AssessmentResult) -> None:
    badge = VERDICT_BADGES[result.verdict]
    st.subheader(f"{badge} {result.token_name} — {result.verdict.value}")

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("风险评分", f"{result.risk_score.total}/100")
    for col, comp in zip((col2, col3, col4), result.risk_score.components):
        col.metric(comp.label, f"{comp.value}/{comp.max}")

    st.markdown(f"> {result.narrative.roast}")
    st.info(f"💡 {result.narrative.tip}")

    if result.risk_flags:
        st.warning("**风险标签:** " + " | ".join(f"🚩 {f.value}" for f in result.risk_flags))

    with st.expander("安全事实 / 仿真"):
        f = result.facts
        st.text(f"蜜罐:         {'🍯 是' if f.is_honeypot else '否'}")
        st.text(f"买入税:       {f.buy_tax_pct:g}%")
        st.text(f"卖出税:       {f.sell_tax_pct:g}%")
        st.text(f"可增发:       {'是' if f.owner_can_mint else '否'}")
        st.text(f"隐藏 owner:   {'是' if f.hidden_owner else '否'}")
        st.text(f"可改余额:     {'是' if f.owner_can_change_balance else '否'}")
        st.text(f"可暂停转账:   {'是' if f.transfer_pausable else '否'}")
        st.text(f"开源:         {'✅' if f.is_open_source else '❌'}")
        st.text(f"信任列表:     {'✅' if f.is_trusted else '—'}")
        _render_simulation_lines([c.describe() for c in result.simulation.changes], result.simulation.status)
    st.caption(" → ".join(s.value for s in result.stages))


def render_interpretation(result: InterpretationResult) -> None:
    badge = RISK_BADGES[result.risk_level]
    st.subheader(f"{badge} 风险等级: {result.risk_level.value}")
    st.markdown(f"**{result.narrative.summary}**")

    for warning in result.narrative.warnings:
        st.warning(f"⚠️ {warning}")
    if result.narrative.details:
        st.markdown("**资产变动**")
        for detail in result.narrative.details:
            st.markdown(f"- {detail}")

    with st.expander("原始数据"):
        st.text(f"安全数据: {result.security_status.value}")
        if result.security is not None:
            st.text(f"目标合约: {result.security.display_name}")
        _render_simulation_lines([c.describe() for c in result.simulation.changes], result.simulation.status)
    st.caption(" → ".join(s.value for s in result.stages))


def render_simulation(report: SimulationReport) -> None:
    col1, col2 = st.columns(2)
    with col1:
        st.markdown("**📤 转出**")
        for change in report.user_lost:
            st.text(change.describe())
    with col2:
        st.markdown("**📥 转入**")
        for change in report.user_gained:
            st.text(change.describe())
    with st.expander("全部变动"):
        _render_simulation_lines(
            [c.describe() for c in report.simulation.changes], report.simulation.status
        )


def render_wallet(profile: WalletProfile) -> None:
    record = profile.narrative
    st.subheader(f"🚔 {record.alias}")
    col1, col2 = st.columns(2)
    col1.metric("Degen 等级", profile.degen_level.value)
    col2.metric("Degen 评分", f"{profile.degen_score}/100")
    st.markdown(f"> {record.verdict}")

    if record.charges:
        st.markdown("**罪名**")
        for charge in record.charges:
            st.markdown(f"- {charge}")
    if record.priors:
        st.markdown("**前科**")
        for prior in record.priors:
            st.markdown(f"- {prior}")
    st.info(f"💡 {record.advice}")

    stats = profile.stats
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("📊 代币总数", stats.total_tokens)
    c2.metric("🍯 蜜罐", stats.honeypots)
    c3.metric("⚠️ 风险", stats.risky)
    c4.metric("✅ 可信", stats.trusted)
    c5.metric("❔ 未扫描", stats.unscanned)

    with st.expander("持仓明细"):
        for token in profile.tokens:
            badge = VERDICT_BADGES.get(token.verdict, "⚪")
            score = f"{token.risk_score.total}/100" if token.risk_score else "无安全数据"
            st.text(f"{badge} {token.name} ({token.symbol}) — {score} | {token.address}")
    st.caption(" → ".join(s.value for s in profile.stages))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# UI 布局
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def render_sidebar() -> None:
    """侧边栏：连接状态和配置。"""
    settings = get_settings()

    st.sidebar.title("⚙️ 控制面板")
    st.sidebar.markdown("---")

    future = asyncio.run_coroutine_threadsafe(check_connection(), get_or_create_loop())
    try:
        connected = future.result(timeout=5)
    except Exception:
        connected = False

    if connected:
        st.sidebar.success("🟢 RPC 已连接")
    else:
        st.sidebar.error("🔴 RPC 连接断开")

    st.sidebar.caption(f"RPC: `{settings.rpc_url[:40]}…`")
    st.sidebar.caption(f"链 ID: `{settings.chain_id}`")
    st.sidebar.caption(f"模型: `{settings.llm_model}`")
    if not settings.llm_api_key:
        st.sidebar.warning("未配置 LLM_API_KEY，无法生成叙述")


def render_roast_tab() -> None:
    address = st.text_input("代币合约地址", placeholder="0x…", key="roast_address")
    simulate = st.checkbox("附带仿真（用默认发送者）", value=True)
    if st.button("🔥 Roast it", use_container_width=True) and address:
        sender = get_settings().default_from_address if simulate else None
        with st.status("评估中…", expanded=False):
            result = run_pipeline(get_coordinator().assess_token(address, sender))
        if result is not None:
            st.session_state.last_assessment = result
            st.session_state.chat_history = []

    if st.session_state.last_assessment is not None:
        render_assessment(st.session_state.last_assessment)


def render_interpret_tab() -> None:
    settings = get_settings()
    from_address = st.text_input("From", value=settings.default_from_address, key="tx_from")
    to_address = st.text_input("To", placeholder="0x…", key="tx_to")
    value = st.text_input("Value (hex wei)", value="0x0", key="tx_value")
    data = st.text_area("Calldata (可选)", placeholder="0x…", key="tx_data")

    col1, col2 = st.columns(2)
    interpret = col1.button("🔎 解读交易", use_container_width=True)
    simulate_only = col2.button("🧪 仅仿真", use_container_width=True)

    if interpret and to_address:
        with st.status("解读中…", expanded=False):
            result = run_pipeline(
                get_coordinator().interpret_transaction(
                    from_address, to_address, value or "0x0", data.strip() or None
                )
            )
        if result is not None:
            render_interpretation(result)
    elif simulate_only and to_address:
        report = run_pipeline(
            get_coordinator().simulate_transaction(from_address, to_address, value or "0x0")
        )
        if report is not None:
            render_simulation(report)


def render_wallet_tab() -> None:
    wallet = st.text_input("钱包地址", placeholder="0x…", key="wallet_address")
    if st.button("🚔 调取犯罪记录", use_container_width=True) and wallet:
        with st.status("调查中…", expanded=False):
            profile = run_pipeline(get_coordinator().get_wallet_profile(wallet), timeout=180)
        if profile is not None:
            render_wallet(profile)


def render_chat_tab() -> None:
    context = st.session_state.last_assessment
    if context is None:
        st.info("先在「代币吐槽」里评估一个代币，再来追问。")
    else:
        st.caption(f"当前话题: {context.token_name} — {context.verdict.value}")

    for message in st.session_state.chat_history:
        with st.chat_message(message["role"]):
            st.markdown(message["content"])

    question = st.chat_input("问点什么…")
    if question:
        history = [*st.session_state.chat_history, {"role": "user", "content": question}]
        reply = run_pipeline(get_coordinator().chat(history, context))
        if reply is not None:
            st.session_state.chat_history = [
                *history,
                {"role": "assistant", "content": reply.reply},
            ]
            st.rerun()


def render_main() -> None:
    st.title("🔥 WalletRoast")
    st.caption("安全事实 + 资产仿真 + 规则引擎，再配一句毒舌点评")

    roast_tab, tx_tab, wallet_tab, chat_tab = st.tabs(
        ["🔥 代币吐槽", "🔎 交易解读", "🚔 钱包犯罪记录", "💬 追问"]
    )
    with roast_tab:
        render_roast_tab()
    with tx_tab:
        render_interpret_tab()
    with wallet_tab:
        render_wallet_tab()
    with chat_tab:
        render_chat_tab()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 主入口
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def main() -> None:
    """应用入口函数。"""
    setup_logging()
    render_sidebar()
    render_main()


# Streamlit 在每次交互时会重新执行整个脚本
main()
