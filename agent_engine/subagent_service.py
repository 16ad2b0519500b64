"""Subagent service: looks up agent definitions and runs them with cached executors."""

from typing import Any, Dict, Optional

from .config import SubagentSettings
from .interfaces.agent_runtime import IAgentRuntime
from .models.subagent import SubagentExecutionResult
from .subagent_executor import SubagentExecutor
from .subagent_factory import SubagentFactory
from .subagent_registry import SubagentRegistry
from .utils.logging import get_logger

logger = get_logger("subagent_service")


class SubagentService:
    """
    子智能体服务

    每个智能体 id 对应一个执行器，首次运行时创建并缓存；
    定义发生变化后调用 invalidate 使缓存失效。
    """

    def __init__(
        self,
        registry: SubagentRegistry,
        runtime: IAgentRuntime,
        factory: Optional[SubagentFactory] = None,
        settings: Optional[SubagentSettings] = None,
    ):
        self._registry = registry
        self._runtime = runtime
        self._factory = factory or SubagentFactory()
        self._settings = settings or SubagentSettings()
        self._executors: Dict[str, SubagentExecutor] = {}

    def get_executor(self, agent_id: str) -> SubagentExecutor:
        """
        获取执行器

        Raises:
            SubagentNotFoundError: 智能体不存在
            ConfigValidationError: 定义无效
        """
        executor = self._executors.get(agent_id)
        if executor is None:
            config = self._registry.require(agent_id)
            executor = SubagentExecutor(config, self._runtime, self._factory)
            self._executors[agent_id] = executor
        return executor

    def invalidate(self, agent_id: Optional[str] = None) -> None:
        if agent_id is None:
            self._executors.clear()
        else:
            self._executors.pop(agent_id, None)

    async def run(self, agent_id: str, task: str, **options: Any) -> SubagentExecutionResult:
        """按 id 运行子智能体；未指定的选项取配置默认值"""
        options.setdefault("timeout_ms", self._settings.timeout_ms)
        options.setdefault("include_tool_calls", self._settings.include_tool_calls)
        return await self.get_executor(agent_id).execute(task, **options)

    async def route_and_run(self, task: str, **options: Any) -> Optional[SubagentExecutionResult]:
        """按关键词和正则为任务选择子智能体并运行；没有匹配时返回 None"""
        config = self._registry.route(task)
        if config is None:
            logger.info("No subagent matched task")
            return None
        logger.info("Routing task to %s", config.id)
        return await self.run(config.id, task, **options)
