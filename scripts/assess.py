"""
scripts/assess.py — 命令行评估脚本

四个子命令，各跑一次流水线并把结果以 JSON 打印到 stdout:
  token     <contract> [--from ADDRESS]             代币吐槽
  tx        <from> <to> [--value HEX] [--data HEX]  交易解读
  wallet    <address>                               钱包犯罪记录
  simulate  <from> <to> [--value HEX]               交易仿真（不生成叙述）

运行方式:
  python -m scripts.assess token 0x6982508145454ce325ddbe47a25d4ec3d2311933 --simulate

--json-logs 放在子命令前后都可以。
流水线错误以 {"error": {...}} 打印，退出码为 1。
"""

import argparse
import asyncio
import json
import sys
from typing import Any

from loguru import logger

from agents.coordinator import CoordinatorAgent
from core.config import get_settings
from core.logging import setup_logging
from domain.errors import AssessmentError


def build_parser() -> argparse.ArgumentParser:
    # 子命令之后也能写 --json-logs；SUPPRESS 避免子解析器覆盖顶层已给的值
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--json-logs", action="store_true", default=argparse.SUPPRESS, help="stderr 日志输出为 JSON"
    )

    parser = argparse.ArgumentParser(
        prog="assess", description="WalletRoast 命令行评估", parents=[common]
    )
    sub = parser.add_subparsers(dest="command", required=True)

    token = sub.add_parser("token", help="评估一个代币合约", parents=[common])
    token.add_argument("contract")
    token.add_argument("--from", dest="from_address", default=None, help="仿真用的发送者")
    token.add_argument(
        "--simulate", action="store_true", help="用配置里的默认发送者做仿真"
    )

    tx = sub.add_parser("tx", help="解读一笔交易", parents=[common])
    tx.add_argument("from_address")
    tx.add_argument("to_address")
    tx.add_argument("--value", default="0x0")
    tx.add_argument("--data", default=None)

    wallet = sub.add_parser("wallet", help="生成钱包犯罪记录", parents=[common])
    wallet.add_argument("address")

    simulate = sub.add_parser("simulate", help="仿真一笔交易的资产变动", parents=[common])
    simulate.add_argument("from_address")
    simulate.add_argument("to_address")
    simulate.add_argument("--value", default="0x0")

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    args = build_parser().parse_args(argv)
    args.json_logs = getattr(args, "json_logs", False)
    return args


async def dispatch(args: argparse.Namespace) -> Any:
    coordinator = CoordinatorAgent()
    if args.command == "token":
        sender = args.from_address
        if sender is None and args.simulate:
            sender = get_settings().default_from_address
        return await coordinator.assess_token(args.contract, sender)
    if args.command == "tx":
        return await coordinator.interpret_transaction(
            args.from_address, args.to_address, args.value, args.data
        )
    if args.command == "simulate":
        return await coordinator.simulate_transaction(
            args.from_address, args.to_address, args.value
        )
    return await coordinator.get_wallet_profile(args.address)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(json_console=args.json_logs)

    try:
        result = await dispatch(args)
    except AssessmentError as exc:
        logger.error("流水线失败: {}", exc.to_dict())
        print(json.dumps({"error": exc.to_dict()}, ensure_ascii=False, indent=2))
        return 1

    print(result.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
