"""
agents/base.py — Agent 基类

所有编排器 Agent 继承此基类:
  - run()     执行任务（task 字典 → 结果模型）
  - decide()  根据上下文决定下一步（例如是否发起仿真）

Agent 实例只持有客户端和配置，可在并发请求间共享；
每次运行的状态保存在局部的 StageTrace 中。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from loguru import logger

from domain.errors import AssessmentError
from domain.models import PipelineStage


class StageTrace:
    """记录一次运行经过的状态机阶段。

    必需步骤失败时，错误会被标记上失败所在的阶段再上抛。
    """

    def __init__(self, agent: BaseAgent) -> None:
        self._agent = agent
        self.stages: list[PipelineStage] = []

    def enter(self, stage: PipelineStage) -> None:
        self.stages.append(stage)
        self._agent.log(f"→ {stage.value}")

    @contextmanager
    def step(self, stage: PipelineStage) -> Iterator[None]:
        self.enter(stage)
        try:
            yield
        except AssessmentError as exc:
            if exc.stage is None:
                exc.stage = stage.value
            self._agent.log_error(f"{stage.value} 失败 [{exc.kind}]: {exc.message}")
            raise

    def done(self) -> list[PipelineStage]:
        self.enter(PipelineStage.DONE)
        return list(self.stages)


class BaseAgent(ABC):
    """WalletRoast Agent 基类。

    每个 Agent 都有:
      name     — 人类可读的名称，用于日志
      run()    — 执行一个任务，返回结构化结果
      decide() — 根据上下文决策下一步动作
    """

    name: str = "BaseAgent"

    @abstractmethod
    async def run(self, task: dict[str, Any]) -> Any:
        """执行任务。

        参数:
            task: 任务上下文字典，具体 key 由各子类定义。
        """

    async def decide(self, context: dict[str, Any]) -> str:
        """根据当前上下文决策下一步动作。默认返回 "done"。"""
        return "done"

    def trace(self) -> StageTrace:
        return StageTrace(self)

    def log(self, message: str, **kwargs: Any) -> None:
        """统一日志格式: [AgentName] message"""
        logger.info(f"[{self.name}] {message}", **kwargs)

    def log_error(self, message: str, **kwargs: Any) -> None:
        """统一错误日志"""
        logger.error(f"[{self.name}] {message}", **kwargs)
