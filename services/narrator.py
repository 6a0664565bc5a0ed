"""
services/narrator.py — 叙述生成器适配层

把事实集交给 LLM（兼容 OpenAI API 格式，默认 Gemini），并把返回的自由文本
解析为固定结构。生成器的"文本里应该有一个 JSON 对象"的约定很脆弱，因此:

  1. clean_output()     去掉代码围栏和首尾空白
  2. parse_narrative()  返回标签化结果 NarrativeOk | NarrativeParseFailure
  3. NarrativeService   解析失败时抛出 GenerationParseError，不重试

生成器是否真的只用了给定事实，属于提示词设计问题，这里无法程序化验证。
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Generic, Optional, Sequence, TypeVar, Union

from loguru import logger
from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, ValidationError

from core.config import get_settings
from domain.errors import GenerationParseError, UpstreamUnavailableError
from domain.models import ChatMessage, ChatReply

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_FENCE_RE = re.compile(r"```(?:json|JSON)?")


@dataclass(frozen=True)
class NarrativeOk(Generic[SchemaT]):
    value: SchemaT


@dataclass(frozen=True)
class NarrativeParseFailure:
    raw_text: str
    reason: str


NarrativeResult = Union[NarrativeOk[Any], NarrativeParseFailure]


def clean_output(text: Optional[str]) -> str:
    """去掉 ```json / ``` 围栏和首尾空白。"""
    return _FENCE_RE.sub("", text or "").strip()


def _extract_object(text: str) -> str:
    # 生成器偶尔会在 JSON 前后加一句话，只保留最外层的对象
    if text.startswith("{"):
        return text
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text


def parse_narrative(text: Optional[str], schema: type[SchemaT]) -> NarrativeResult:
    """把生成器的原始输出解析为指定结构。不抛异常。"""
    raw = text or ""
    cleaned = _extract_object(clean_output(raw))
    if not cleaned:
        return NarrativeParseFailure(raw_text=raw, reason="empty output")

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        return NarrativeParseFailure(raw_text=raw, reason=f"invalid JSON: {exc.msg}")

    if not isinstance(payload, dict):
        return NarrativeParseFailure(raw_text=raw, reason="expected a JSON object")

    try:
        return NarrativeOk(schema.model_validate(payload))
    except ValidationError as exc:
        return NarrativeParseFailure(
            raw_text=raw, reason=f"schema mismatch: {exc.error_count()} error(s)"
        )


class NarrativeService:
    """调用 LLM 生成结构化叙述。

    client 可注入（测试用），否则按配置懒加载 AsyncOpenAI。
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None) -> None:
        self._settings = get_settings()
        self._llm_client = client

    def _get_llm_client(self) -> AsyncOpenAI:
        """懒加载 LLM 客户端。"""
        if self._llm_client is None:
            if not self._settings.llm_api_key:
                raise UpstreamUnavailableError(
                    "LLM API key is not configured (set LLM_API_KEY)", source="llm"
                )
            self._llm_client = AsyncOpenAI(
                api_key=self._settings.llm_api_key,
                base_url=self._settings.llm_base_url,
                timeout=self._settings.llm_timeout_secs,
                max_retries=0,
            )
        return self._llm_client

    async def _complete(self, system: str, messages: Sequence[dict[str, str]]) -> str:
        client = self._get_llm_client()
        try:
            response = await client.chat.completions.create(
                model=self._settings.llm_model,
                messages=[{"role": "system", "content": system}, *messages],
                max_tokens=self._settings.llm_max_tokens,
                temperature=self._settings.llm_temperature,
            )
        except OpenAIError as exc:
            logger.error("LLM 调用失败: {}", exc)
            raise UpstreamUnavailableError(f"Narrative generator failed: {exc}", source="llm") from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def generate(self, schema: type[SchemaT], system: str, user: str) -> SchemaT:
        """单轮生成并解析为 schema。

        异常:
            GenerationParseError: 输出无法解析为 schema。
            UpstreamUnavailableError: 生成器不可用。
        """
        text = await self._complete(system, [{"role": "user", "content": user}])
        result = parse_narrative(text, schema)
        if isinstance(result, NarrativeParseFailure):
            logger.warning("{} 解析失败: {} | 原文: {}", schema.__name__, result.reason, result.raw_text[:200])
            raise GenerationParseError(
                f"Narrative generator returned unparseable output ({result.reason})",
                raw_text=result.raw_text,
            )
        return result.value

    async def chat(self, system: str, messages: Sequence[ChatMessage]) -> ChatReply:
        """多轮对话。最后一条消息是本轮提问，之前的消息作为历史。回复为纯文本。"""
        history = [{"role": m.role, "content": m.content} for m in messages]
        text = clean_output(await self._complete(system, history))
        if not text:
            raise GenerationParseError("Narrative generator returned an empty reply", raw_text=text)
        return ChatReply(reply=text)
