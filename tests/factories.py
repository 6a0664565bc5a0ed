"""测试数据工厂: 地址常量、GoPlus 记录、仿真摘要。"""

from typing import Any

from domain.models import (
    AssetChange,
    AssetDirection,
    SimulationStatus,
    SimulationSummary,
    TokenFacts,
)

TOKEN = "0x" + "ab" * 20
USER = "0x" + "11" * 20
OTHER = "0x" + "22" * 20

MAX_UINT256 = 2**256 - 1


def goplus_record(**overrides: Any) -> dict[str, Any]:
    """一条"干净"的 GoPlus 记录，可按需覆盖字段。"""
    record = {
        "token_name": "Pepe",
        "token_symbol": "PEPE",
        "is_honeypot": "0",
        "buy_tax": "0",
        "sell_tax": "0",
        "is_mintable": "0",
        "hidden_owner": "0",
        "owner_change_balance": "0",
        "transfer_pausable": "0",
        "is_open_source": "1",
        "trust_list": "0",
        "cannot_sell_all": "0",
    }
    record.update(overrides)
    return record


def clean_facts(**overrides: Any) -> TokenFacts:
    return TokenFacts(is_open_source=True).model_copy(update=overrides)


def transfer(amount: str, asset: str = "NATIVE", symbol: str = "ETH") -> AssetChange:
    return AssetChange(
        asset=asset, symbol=symbol, name=symbol, amount=amount, direction=AssetDirection.TRANSFER
    )


def approval(raw_amount: int, asset: str = TOKEN) -> AssetChange:
    return AssetChange(
        asset=asset,
        symbol="PEPE",
        name="Pepe",
        amount="1",
        direction=AssetDirection.APPROVE,
        raw_amount=raw_amount,
    )


def ok_simulation(*changes: AssetChange) -> SimulationSummary:
    return SimulationSummary(status=SimulationStatus.OK, changes=list(changes))
