"""
domain/models.py — Pydantic V2 领域模型

严格、不可变的数据契约，用于流水线各步骤之间以及对调用方的边界。
每个请求构造一次，不做持久化。
"""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Iterable, Optional

from loguru import logger
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from web3 import Web3

from domain.errors import InvalidInputError

# APPROVE 金额达到该值即视为"无限授权"（常见实现为 2**256 - 1）
UNLIMITED_APPROVAL_THRESHOLD = 2**255

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]*$")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 输入校验
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def require_address(value: Any, field: str = "address") -> str:
    """校验并返回小写十六进制地址。

    异常:
        InvalidInputError: 缺失或不是合法的 20 字节地址。
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} is required")
    candidate = value.strip().lower()
    if not Web3.is_address(candidate):
        raise InvalidInputError(f"{field} is not a valid address: {value!r}")
    return candidate


def require_hex(value: Any, field: str) -> str:
    """校验 0x 前缀的十六进制字符串（交易 value / calldata）。"""
    if not isinstance(value, str) or not _HEX_RE.match(value.strip()):
        raise InvalidInputError(f"{field} must be a 0x-prefixed hex string")
    return value.strip()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 枚举
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class _Ordered(str, Enum):
    """按声明顺序比较严重程度的字符串枚举。"""

    @property
    def severity(self) -> int:
        return list(type(self)).index(self)

    def __lt__(self, other: Any) -> bool:
        if isinstance(other, type(self)):
            return self.severity < other.severity
        return NotImplemented

    def __le__(self, other: Any) -> bool:
        if isinstance(other, type(self)):
            return self.severity <= other.severity
        return NotImplemented

    def __gt__(self, other: Any) -> bool:
        if isinstance(other, type(self)):
            return self.severity > other.severity
        return NotImplemented

    def __ge__(self, other: Any) -> bool:
        if isinstance(other, type(self)):
            return self.severity >= other.severity
        return NotImplemented


class Verdict(_Ordered):
    """代币结论。严重程度: SAFE < RISKY < SCAM。"""

    SAFE = "SAFE"
    RISKY = "RISKY"
    SCAM = "SCAM"

    @classmethod
    def worst(cls, verdicts: Iterable[Verdict]) -> Verdict:
        """聚合多个结论，取最严重者；空集合为 SAFE。"""
        return max(verdicts, default=cls.SAFE)


class RiskLevel(_Ordered):
    """交易解读的三档风险等级，与 Verdict 相互独立。"""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class DegenLevel(_Ordered):
    """钱包"犯罪记录"等级。"""

    CLEAN = "CLEAN"
    SUSPECT = "SUSPECT"
    DEGEN = "DEGEN"
    WANTED = "WANTED"
    MOST_WANTED = "MOST_WANTED"


class RiskFlag(str, Enum):
    """从事实集中检测到的风险标签（用于 UI 展示）。"""

    HONEYPOT = "HONEYPOT"
    CANNOT_SELL_ALL = "CANNOT_SELL_ALL"
    HIDDEN_OWNER = "HIDDEN_OWNER"
    MINTABLE = "MINTABLE"
    OWNER_CHANGE_BALANCE = "OWNER_CHANGE_BALANCE"
    PAUSABLE = "PAUSABLE"
    BUY_TAX = "BUY_TAX"
    SELL_TAX = "SELL_TAX"
    CLOSED_SOURCE = "CLOSED_SOURCE"
    TRUSTED = "TRUSTED"


class PipelineStage(str, Enum):
    """编排器状态机的阶段。"""

    FETCHING_HOLDINGS = "FETCHING_HOLDINGS"
    FETCHING_FACTS = "FETCHING_FACTS"
    FETCHING_SIMULATION = "FETCHING_SIMULATION"
    CLASSIFYING = "CLASSIFYING"
    GENERATING_NARRATIVE = "GENERATING_NARRATIVE"
    DONE = "DONE"


class SimulationStatus(str, Enum):
    NOT_ATTEMPTED = "NOT_ATTEMPTED"
    FAILED = "FAILED"
    OK = "OK"


class SecurityStatus(str, Enum):
    OK = "OK"
    NOT_FOUND = "NOT_FOUND"
    UNAVAILABLE = "UNAVAILABLE"


class AssetDirection(str, Enum):
    TRANSFER = "TRANSFER"
    APPROVE = "APPROVE"
    OTHER = "OTHER"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TokenFacts 安全事实
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TokenFacts(BaseModel):
    """单个合约的安全快照。缺失字段一律按"无风险"默认值处理。"""

    is_honeypot: bool = False
    buy_tax_pct: float = Field(default=0.0, ge=0.0, le=100.0)
    sell_tax_pct: float = Field(default=0.0, ge=0.0, le=100.0)
    owner_can_mint: bool = False
    hidden_owner: bool = False
    owner_can_change_balance: bool = False
    transfer_pausable: bool = False
    is_open_source: bool = False
    is_trusted: bool = False
    cannot_sell_all: bool = False
    token_name: Optional[str] = None
    token_symbol: Optional[str] = None

    @property
    def max_tax_pct(self) -> float:
        return max(self.buy_tax_pct, self.sell_tax_pct)

    @property
    def display_name(self) -> str:
        if self.token_name and self.token_symbol:
            return f"{self.token_name} ({self.token_symbol})"
        return "Unknown Token"

    model_config = {"frozen": True}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RiskScore 风险评分
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class ScoreComponent(BaseModel):
    label: str
    value: int = Field(ge=0)
    max: int = Field(ge=0)

    model_config = {"frozen": True}


class RiskScore(BaseModel):
    """0-100 的风险评分，由若干独立封顶的分量相加而成。"""

    total: int = Field(ge=0, le=100)
    components: list[ScoreComponent] = Field(default_factory=list)

    def component(self, label: str) -> ScoreComponent:
        for comp in self.components:
            if comp.label == label:
                return comp
        raise KeyError(label)

    model_config = {"frozen": True}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 仿真结果模型
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class AssetChange(BaseModel):
    """仿真得到的单条资产变动。amount 为带符号的十进制字符串（负数=流出）。"""

    asset: str
    symbol: str = "???"
    name: str = "Unknown Token"
    amount: str = "0"
    direction: AssetDirection = AssetDirection.OTHER
    raw_amount: Optional[int] = None

    @field_validator("amount", mode="before")
    @classmethod
    def check_amount(cls, v: Any) -> str:
        try:
            return str(Decimal(str(v)))
        except (InvalidOperation, ValueError):
            return "0"

    @property
    def value(self) -> Decimal:
        return Decimal(self.amount)

    @property
    def is_unlimited_approval(self) -> bool:
        return (
            self.direction == AssetDirection.APPROVE
            and self.raw_amount is not None
            and self.raw_amount >= UNLIMITED_APPROVAL_THRESHOLD
        )

    def describe(self) -> str:
        amount = "UNLIMITED" if self.is_unlimited_approval else self.amount
        return f"{self.direction.value}: {amount} {self.symbol} ({self.name})"

    model_config = {"frozen": True}


class SimulationSummary(BaseModel):
    """仿真摘要。三种状态在下游必须可区分:

    NOT_ATTEMPTED — 没有发起仿真
    FAILED        — 发起了但失败（降级，不中断流水线）
    OK            — 成功；changes 可以为空
    """

    status: SimulationStatus = SimulationStatus.NOT_ATTEMPTED
    changes: list[AssetChange] = Field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def not_attempted(cls) -> SimulationSummary:
        return cls(status=SimulationStatus.NOT_ATTEMPTED)

    @classmethod
    def failed(cls, error: str | None = None) -> SimulationSummary:
        return cls(status=SimulationStatus.FAILED, error=error)

    @property
    def transfers(self) -> list[AssetChange]:
        return [c for c in self.changes if c.direction == AssetDirection.TRANSFER]

    @property
    def outgoing(self) -> list[AssetChange]:
        return [c for c in self.transfers if c.value < 0]

    @property
    def incoming(self) -> list[AssetChange]:
        return [c for c in self.transfers if c.value > 0]

    @property
    def approvals(self) -> list[AssetChange]:
        return [c for c in self.changes if c.direction == AssetDirection.APPROVE]

    @property
    def has_unlimited_approval(self) -> bool:
        return any(c.is_unlimited_approval for c in self.approvals)

    def describe(self) -> str:
        """供叙述生成器使用的文本。"""
        if self.status == SimulationStatus.NOT_ATTEMPTED:
            return "No simulation data available."
        if self.status == SimulationStatus.FAILED:
            if self.error:
                return f"Simulation unavailable: {self.error}"
            return "Simulation unavailable."
        if not self.changes:
            return "No asset changes detected in simulation."
        return "\n".join(c.describe() for c in self.changes)

    model_config = {"frozen": True}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 叙述生成器的输出契约
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _upper(v: Any) -> Any:
    return v.strip().upper().replace(" ", "_") if isinstance(v, str) else v


def _lenient_label(enum_cls: type[Enum]) -> BeforeValidator:
    """等级标签最终由规则引擎覆盖，认不出的值记为 None，不让整份叙述解析失败。"""

    def coerce(v: Any) -> Any:
        if v is None or isinstance(v, enum_cls):
            return v
        try:
            return enum_cls(_upper(v))
        except (ValueError, TypeError):
            logger.warning("忽略无法识别的 {} 标签: {!r}", enum_cls.__name__, v)
            return None

    return BeforeValidator(coerce)


def _lenient_score(v: Any) -> Optional[int]:
    if v is None:
        return None
    if isinstance(v, str):
        try:
            v = float(v.strip())
        except ValueError:
            pass
    if isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v):
        return max(0, min(100, int(v)))
    logger.warning("忽略无法识别的 degenScore: {!r}", v)
    return None


def _string_list(v: Any) -> Any:
    if v is None:
        return []
    if isinstance(v, str):
        return [v]
    return v


class _Narrative(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


StringList = Annotated[list[str], BeforeValidator(_string_list)]


class RoastNarrative(_Narrative):
    verdict: Annotated[Optional[Verdict], _lenient_label(Verdict)] = None
    roast: str = Field(min_length=1)
    tip: str = Field(min_length=1)


class InterpretationNarrative(_Narrative):
    summary: str = Field(min_length=1)
    risk_level: Annotated[Optional[RiskLevel], _lenient_label(RiskLevel)] = Field(
        default=None, alias="riskLevel"
    )
    warnings: StringList = Field(default_factory=list)
    details: StringList = Field(default_factory=list)


class CriminalRecordNarrative(_Narrative):
    alias: str = Field(min_length=1)
    degen_level: Annotated[Optional[DegenLevel], _lenient_label(DegenLevel)] = Field(
        default=None, alias="degenLevel"
    )
    degen_score: Annotated[Optional[int], BeforeValidator(_lenient_score)] = Field(
        default=None, alias="degenScore"
    )
    charges: StringList = Field(default_factory=list)
    priors: StringList = Field(default_factory=list)
    verdict: str = Field(min_length=1)
    advice: str = Field(min_length=1)


class ChatReply(_Narrative):
    reply: str = Field(min_length=1)


class ChatMessage(BaseModel):
    """对话历史中的一条消息。role 仅区分用户与助手。"""

    role: str = "user"
    content: str = Field(min_length=1)

    @field_validator("role", mode="before")
    @classmethod
    def normalise_role(cls, v: Any) -> str:
        return "user" if v == "user" else "assistant"

    model_config = {"frozen": True}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 编排器输出
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class AssessmentResult(BaseModel):
    """单个代币的最终评估结果（roast）。"""

    address: str
    token_name: str = "Unknown Token"
    verdict: Verdict
    risk_score: RiskScore
    risk_flags: list[RiskFlag] = Field(default_factory=list)
    narrative: RoastNarrative
    facts: TokenFacts
    simulation: SimulationSummary = Field(default_factory=SimulationSummary.not_attempted)
    stages: list[PipelineStage] = Field(default_factory=list)

    model_config = {"frozen": True}


class InterpretationResult(BaseModel):
    """交易解读结果。"""

    from_address: str
    to_address: str
    value: str = "0x0"
    data: Optional[str] = None
    risk_level: RiskLevel
    narrative: InterpretationNarrative
    simulation: SimulationSummary
    security: Optional[TokenFacts] = None
    security_status: SecurityStatus = SecurityStatus.UNAVAILABLE
    stages: list[PipelineStage] = Field(default_factory=list)

    model_config = {"frozen": True}


class SimulationReport(BaseModel):
    """单独的交易仿真结果: 全部变动，以及发送者的转出 / 转入视图。"""

    from_address: str
    to_address: str
    value: str = "0x0"
    simulation: SimulationSummary
    user_lost: list[AssetChange] = Field(default_factory=list)
    user_gained: list[AssetChange] = Field(default_factory=list)
    stages: list[PipelineStage] = Field(default_factory=list)

    model_config = {"frozen": True}


class WalletToken(BaseModel):
    """钱包持有的一个代币。facts 为 None 表示安全数据不可用。"""

    address: str
    name: str = "Unknown"
    symbol: str = "???"
    balance: str = "0x0"
    facts: Optional[TokenFacts] = None
    verdict: Optional[Verdict] = None
    risk_score: Optional[RiskScore] = None

    model_config = {"frozen": True}


class WalletStats(BaseModel):
    total_tokens: int = 0
    honeypots: int = 0
    risky: int = 0
    trusted: int = 0
    closed_source: int = 0
    unscanned: int = 0

    model_config = {"frozen": True}


class WalletProfile(BaseModel):
    """钱包"犯罪记录"。"""

    address: str
    tokens: list[WalletToken] = Field(default_factory=list)
    stats: WalletStats = Field(default_factory=WalletStats)
    degen_level: DegenLevel = DegenLevel.CLEAN
    degen_score: int = Field(default=0, ge=0, le=100)
    narrative: CriminalRecordNarrative
    stages: list[PipelineStage] = Field(default_factory=list)

    model_config = {"frozen": True}
