"""
agents/ — WalletRoast 编排层

各 Agent 封装底层 Service，负责状态机推进、可选步骤降级和结果组装。
"""

from agents.base import BaseAgent
from agents.chat import ChatAgent
from agents.coordinator import CoordinatorAgent
from agents.interpreter import InterpreterAgent
from agents.investigator import InvestigatorAgent
from agents.roaster import RoastAgent
from agents.simulator import SimulationAgent

__all__ = [
    "BaseAgent",
    "ChatAgent",
    "CoordinatorAgent",
    "InterpreterAgent",
    "InvestigatorAgent",
    "RoastAgent",
    "SimulationAgent",
]
