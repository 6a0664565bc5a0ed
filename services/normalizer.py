"""
services/normalizer.py — GoPlus 原始记录 → TokenFacts

纯转换，无副作用。GoPlus 用 "1"/"0" 字符串表示布尔值、用比例字符串表示税率，
这些格式只在这里出现，流水线其余部分只看到原生 bool 和百分比。

缺失字段按"无风险"默认值处理（布尔 False，税率 0）。
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from domain.errors import NotFoundError
from domain.models import TokenFacts

# TokenFacts 字段 → GoPlus 字段
_FLAG_FIELDS: dict[str, str] = {
    "is_honeypot": "is_honeypot",
    "owner_can_mint": "is_mintable",
    "hidden_owner": "hidden_owner",
    "owner_can_change_balance": "owner_change_balance",
    "transfer_pausable": "transfer_pausable",
    "is_open_source": "is_open_source",
    "is_trusted": "trust_list",
    "cannot_sell_all": "cannot_sell_all",
}


def parse_flag(value: Any) -> bool:
    """GoPlus 标志位: 只有 "1" 为真，其余（包括缺失）一律为假。"""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value == 1
    return isinstance(value, str) and value.strip() == "1"


def parse_tax_pct(value: Any) -> float:
    """GoPlus 税率比例（"0.05" = 5%）→ [0, 100] 内的百分比。无法解析时为 0。"""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        ratio = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return 0.0
    if not ratio.is_finite():
        return 0.0
    pct = float(ratio * 100)
    return max(0.0, min(100.0, pct))


def _parse_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def normalize_record(record: Mapping[str, Any]) -> TokenFacts:
    """把单条 GoPlus 记录转换为 TokenFacts。所有字段缺失时返回全默认值。"""
    flags = {field: parse_flag(record.get(source)) for field, source in _FLAG_FIELDS.items()}
    return TokenFacts(
        **flags,
        buy_tax_pct=parse_tax_pct(record.get("buy_tax")),
        sell_tax_pct=parse_tax_pct(record.get("sell_tax")),
        token_name=_parse_text(record.get("token_name")),
        token_symbol=_parse_text(record.get("token_symbol")),
    )


def normalize_facts(result: Optional[Mapping[str, Any]], address: str) -> TokenFacts:
    """从 GoPlus result 映射中取出指定地址的记录并规范化。

    异常:
        NotFoundError: 映射为空或没有该地址的记录。
    """
    record = (result or {}).get(address.lower())
    if not isinstance(record, Mapping):
        raise NotFoundError(f"No security data found for {address}")
    return normalize_record(record)
