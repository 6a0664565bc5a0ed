"""
services/summarizer.py — 仿真原始响应 → SimulationSummary

把提供方的资产变动记录转换为有序的 AssetChange 列表，
并按用户视角给 TRANSFER 金额加上符号（用户转出为负）。
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from loguru import logger

from domain.models import AssetChange, AssetDirection, SimulationStatus, SimulationSummary


def _parse_raw_amount(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        return int(text, 16) if text.lower().startswith("0x") else int(text)
    except ValueError:
        return None


def _parse_amount(value: Any) -> Decimal:
    try:
        return abs(Decimal(str(value)))
    except (InvalidOperation, ValueError):
        return Decimal(0)


def _parse_direction(value: Any) -> AssetDirection:
    try:
        return AssetDirection(str(value).upper())
    except ValueError:
        return AssetDirection.OTHER


def to_asset_change(record: Mapping[str, Any], user_address: Optional[str] = None) -> AssetChange:
    """转换单条变动记录。"""
    direction = _parse_direction(record.get("changeType"))
    amount = _parse_amount(record.get("amount"))

    sender = str(record.get("from") or "").lower()
    if direction == AssetDirection.TRANSFER and user_address and sender == user_address.lower():
        amount = -amount

    asset = record.get("contractAddress") or record.get("asset") or record.get("assetType") or "NATIVE"

    return AssetChange(
        asset=str(asset),
        symbol=record.get("symbol") or "???",
        name=record.get("name") or "Unknown Token",
        amount=str(amount),
        direction=direction,
        raw_amount=_parse_raw_amount(record.get("rawAmount")),
    )


def summarize_simulation(
    raw: Optional[Mapping[str, Any]], user_address: Optional[str] = None
) -> SimulationSummary:
    """把一次已发起的仿真的响应转换为摘要。

    raw 为 None（调用没有拿到响应）或带 error 字段（交易会 revert）都视为 FAILED；
    changes 为空列表是成功的 OK 状态。
    """
    if raw is None:
        return SimulationSummary.failed()

    error = raw.get("error")
    if error:
        message = error.get("message") if isinstance(error, Mapping) else str(error)
        logger.info("仿真返回错误: {}", message)
        return SimulationSummary.failed(message)

    records = raw.get("changes") or []
    changes = [to_asset_change(r, user_address) for r in records if isinstance(r, Mapping)]
    return SimulationSummary(status=SimulationStatus.OK, changes=changes)
