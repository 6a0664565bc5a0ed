"""
core/logging.py — Loguru 日志配置

  stderr  人类可读的彩色输出（CLI 可改为 JSON）
  文件    DEBUG 级别的 JSON 结构化日志，按天轮转，用于事后排查

Alchemy 的 RPC URL 里带着 API Key，LLM Key 也可能出现在异常信息中，
所有输出通道在写入前都会把这两个值替换为掩码。

入口（app.py / scripts）启动时调用 `setup_logging()`。
"""

from __future__ import annotations

import sys
from typing import Any

from loguru import logger

from core.config import AppSettings, get_settings

_MASK = "***"
_configured = False


def _secrets(settings: AppSettings) -> list[str]:
    secrets = [settings.llm_api_key]
    # https://eth-mainnet.g.alchemy.com/v2/<key>
    tail = settings.rpc_url.rstrip("/").rsplit("/", 1)[-1]
    if len(tail) >= 16:
        secrets.append(tail)
    return [s for s in secrets if s]


def redact(text: str, secrets: list[str]) -> str:
    for secret in secrets:
        text = text.replace(secret, _MASK)
    return text


def _make_patcher(secrets: list[str]) -> Any:
    def patcher(record: dict[str, Any]) -> None:
        record["message"] = redact(record["message"], secrets)

    return patcher


def setup_logging(*, json_console: bool = False) -> None:
    """配置日志输出通道。只有第一次调用生效。"""
    global _configured
    if _configured:
        return

    settings = get_settings()
    settings.log_dir.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.configure(patcher=_make_patcher(_secrets(settings)))

    level = settings.log_level.upper()
    if json_console:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(
            sys.stderr,
            level=level,
            format=(
                "<green>{time:HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan> — "
                "<level>{message}</level>"
            ),
            colorize=True,
        )

    logger.add(
        settings.log_dir / "walletroast_{time:YYYY-MM-DD}.log",
        level="DEBUG",
        serialize=True,
        rotation="00:00",
        retention="7 days",
        compression="gz",
        enqueue=True,  # Streamlit 的后台事件循环线程也会写日志
    )

    _configured = True
    logger.debug("日志已初始化: level={} dir={}", level, settings.log_dir)
