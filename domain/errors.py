"""
domain/errors.py — 风险评估流水线的错误分类

四类错误，对应调用方（UI / HTTP 层）看到的四种失败:

  NotFoundError            必需的事实来源没有该地址的数据 → 404
  UpstreamUnavailableError 外部数据源调用失败 → 502
                           （可选步骤会在编排层降级，不会抛到调用方）
  GenerationParseError     叙述生成器的输出不符合约定的 JSON 结构 → 500
  InvalidInputError        地址格式错误或缺少必填字段 → 400
"""

from __future__ import annotations

from typing import Any, Optional


class AssessmentError(Exception):
    """流水线错误基类。携带 kind / status_code / 失败所在的阶段。"""

    kind: str = "assessment_error"
    status_code: int = 500

    def __init__(self, message: str, *, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage

    def to_dict(self) -> dict[str, Any]:
        """给调用方的结构化错误。"""
        payload: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.stage:
            payload["stage"] = self.stage
        return payload


class NotFoundError(AssessmentError):
    kind = "not_found"
    status_code = 404


class UpstreamUnavailableError(AssessmentError):
    kind = "upstream_unavailable"
    status_code = 502

    def __init__(
        self, message: str, *, source: str = "", stage: Optional[str] = None
    ) -> None:
        super().__init__(message, stage=stage)
        self.source = source


class GenerationParseError(AssessmentError):
    """生成器输出无法解析为预期结构。保留原始文本用于排查。"""

    kind = "generation_parse_error"
    status_code = 500

    def __init__(
        self, message: str, *, raw_text: str = "", stage: Optional[str] = None
    ) -> None:
        super().__init__(message, stage=stage)
        self.raw_text = raw_text


class InvalidInputError(AssessmentError):
    kind = "invalid_input"
    status_code = 400
