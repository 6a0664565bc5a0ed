"""
agents/chat.py — 追问对话 Agent

针对上一次 roast 结果的多轮问答。每轮只调用一次生成器:
之前的消息作为历史，最近一次 AssessmentResult 作为固定上下文。
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from agents.base import BaseAgent
from domain.errors import InvalidInputError
from domain.models import AssessmentResult, ChatMessage, ChatReply, PipelineStage
from services.narrator import NarrativeService
from services.prompts import chat_system_prompt

MessageLike = Union[ChatMessage, Mapping[str, Any]]


def coerce_messages(messages: Optional[Sequence[MessageLike]]) -> list[ChatMessage]:
    """把 {role, content} 字典或 ChatMessage 统一为 ChatMessage 列表。"""
    if not messages:
        raise InvalidInputError("messages must contain at least one message")
    try:
        return [
            m if isinstance(m, ChatMessage) else ChatMessage.model_validate(m)
            for m in messages
        ]
    except ValidationError as exc:
        raise InvalidInputError(f"invalid chat message: {exc.error_count()} error(s)") from exc


class ChatAgent(BaseAgent):
    name = "ChatAgent"

    def __init__(self, narrator: Optional[NarrativeService] = None) -> None:
        self._narrator = narrator or NarrativeService()

    async def run(self, task: dict[str, Any]) -> ChatReply:
        """task keys:
          messages: 对话历史（最后一条为本轮提问）
          context: 可选 AssessmentResult
        """
        return await self.chat(task.get("messages"), task.get("context"))

    async def chat(
        self,
        messages: Optional[Sequence[MessageLike]],
        context: Optional[AssessmentResult] = None,
    ) -> ChatReply:
        history = coerce_messages(messages)
        trace = self.trace()
        topic = context.token_name if context is not None else "无上下文"
        self.log(f"对话第 {len(history)} 条消息 ({topic})")

        with trace.step(PipelineStage.GENERATING_NARRATIVE):
            return await self._narrator.chat(chat_system_prompt(context), history)
