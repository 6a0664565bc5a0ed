"""
core/config.py — 应用配置单例

使用 pydantic-settings 从 .env 文件中加载环境变量，并进行严格的类型校验。
通过 `get_settings()` 获取全局唯一的配置实例。
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """集中化、类型安全的应用配置。"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── 链 & RPC (Alchemy) ─────────────────────────────────────
    rpc_url: str = "https://eth-mainnet.g.alchemy.com/v2/YOUR_KEY"
    chain_id: int = 1

    # ── GoPlus 安全数据源 ──────────────────────────────────────
    goplus_base_url: str = "https://api.gopluslabs.io/api/v1/token_security"

    # 外部数据源的单次调用超时（GoPlus + Alchemy）
    provider_timeout_secs: float = 15.0

    # ── LLM / 叙述生成（兼容 OpenAI API 格式）──────────────────
    llm_api_key: str = ""
    llm_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    llm_model: str = "gemini-2.5-flash"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 800
    llm_timeout_secs: float = 60.0

    # ── 钱包犯罪记录 ───────────────────────────────────────────
    wallet_max_tokens: int = 15  # 限制单个钱包的外部调用次数
    metadata_concurrency: int = 5

    # 未连接钱包时用于仿真的默认发送者
    default_from_address: str = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"

    # ── 日志 ────────────────────────────────────────────────────
    log_dir: Path = Path("./logs")
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """返回应用级别的配置单例。"""
    return AppSettings()
