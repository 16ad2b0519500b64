"""Subagent executor: runs one subagent as a single-agent network with a timeout."""

import asyncio
import time
from typing import Any, Optional

from .interfaces.agent_runtime import IAgentRuntime
from .models.message import AgentRunResult, NetworkState
from .models.subagent import AgentDescriptor, SubagentConfig, SubagentExecutionResult
from .output_extraction import extract_network_output, extract_run_tool_calls, has_tool_calls
from .subagent_factory import SubagentFactory
from .utils.logging import get_logger

logger = get_logger("subagent_executor")

DEFAULT_TIMEOUT_MS = 120000
TIMEOUT_ERROR = "Execution timed out"


class SubagentExecutor:
    """
    子智能体执行器

    构造时校验配置并生成描述（无效配置立即抛出 ConfigValidationError），
    之后每次 execute 复用同一个描述。
    """

    def __init__(
        self,
        config: SubagentConfig,
        runtime: IAgentRuntime,
        factory: Optional[SubagentFactory] = None,
    ):
        self._config = config
        self._runtime = runtime
        self._factory = factory or SubagentFactory()
        self._descriptor = self._factory.create(config)

    @property
    def config(self) -> SubagentConfig:
        return self._config

    @property
    def descriptor(self) -> AgentDescriptor:
        return self._descriptor

    @property
    def network_name(self) -> str:
        return f"subagent-{self._config.id}"

    def _router(self, state: NetworkState, last_result: Optional[AgentRunResult]) -> Optional[AgentDescriptor]:
        # 第一轮总是运行；之后只有上一轮请求了工具才继续
        if last_result is None:
            return self._descriptor
        if not has_tool_calls(last_result):
            return None
        return self._descriptor

    def _result(self, started: float, success: bool, **kwargs: Any) -> SubagentExecutionResult:
        return SubagentExecutionResult(
            success=success,
            agent_id=self._config.id,
            agent_name=self._config.name,
            model=self._descriptor.model_name,
            execution_time_ms=(time.monotonic() - started) * 1000,
            output=kwargs.pop("output", ""),
            **kwargs,
        )

    async def execute(
        self,
        task: str,
        timeout_ms: float = DEFAULT_TIMEOUT_MS,
        max_iterations: Optional[int] = None,
        include_tool_calls: bool = False,
    ) -> SubagentExecutionResult:
        """
        执行任务

        Args:
            task: 任务文本
            timeout_ms: 超时时间（毫秒），超时后运行时任务被取消
            max_iterations: 最大轮数，默认取配置中的 max_iterations
            include_tool_calls: 是否在结果中附带工具调用轨迹

        Returns:
            执行结果；超时和运行时异常都转为 success=False
        """
        started = time.monotonic()
        iterations = max_iterations or self._descriptor.max_iterations
        logger.info("Running %s (timeout=%sms, max_iterations=%s)", self.network_name, timeout_ms, iterations)

        try:
            run_result = await asyncio.wait_for(
                self._runtime.run(self._descriptor, task, self._router, iterations),
                timeout=timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            logger.warning("%s timed out after %sms", self.network_name, timeout_ms)
            return self._result(started, False, error=TIMEOUT_ERROR)
        except Exception as e:
            logger.error("%s failed: %s", self.network_name, e)
            return self._result(started, False, error=str(e) or e.__class__.__name__)

        return self._result(
            started,
            True,
            output=extract_network_output(run_result),
            tool_calls=extract_run_tool_calls(run_result) if include_tool_calls else None,
            iterations=len(run_result.state.results),
        )


def create_subagent_executor(
    config: SubagentConfig,
    runtime: IAgentRuntime,
    factory: Optional[SubagentFactory] = None,
) -> SubagentExecutor:
    return SubagentExecutor(config, runtime, factory)


async def execute_with_subagent(
    config: SubagentConfig,
    runtime: IAgentRuntime,
    task: str,
    **options: Any,
) -> SubagentExecutionResult:
    """一次性构建执行器并执行任务"""
    return await SubagentExecutor(config, runtime).execute(task, **options)
