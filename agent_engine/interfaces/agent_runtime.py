"""Agent Runtime interface."""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..models.message import AgentRunResult, NetworkState, RunResult
from ..models.subagent import AgentDescriptor


# 路由函数：返回 None 表示停止，否则返回下一轮要运行的智能体
Router = Callable[[NetworkState, Optional[AgentRunResult]], Optional[AgentDescriptor]]


class IAgentRuntime(ABC):
    """智能体运行时接口

    运行时负责与模型交互并按路由函数驱动多轮执行，
    每一轮的输出追加到 ``RunResult.state.results``。
    """

    @abstractmethod
    async def run(
        self,
        descriptor: AgentDescriptor,
        task: str,
        router: Router,
        max_iterations: int,
    ) -> RunResult:
        """
        运行单智能体网络

        Args:
            descriptor: 智能体描述
            task: 任务文本
            router: 路由函数
            max_iterations: 最大轮数

        Returns:
            运行结果
        """
        pass
