"""DashScope-backed agent runtime.

Drives the round loop for a single agent: each round sends the conversation to
``dashscope.Generation``, executes any requested tools through a
``ToolExecutor`` after a permission check, and records the round's messages in
the runtime reply shape (``text`` / ``tool_call`` / ``tool_result``).
"""

import asyncio
import json
import os
from typing import Any, Dict, List, Optional

from ..interfaces.agent_runtime import IAgentRuntime, Router
from ..models.enums import ModelProvider
from ..models.message import AgentRunResult, NetworkState, RunResult
from ..models.subagent import AgentDescriptor
from ..models.tool import ToolCall, ToolResult, create_tool_call
from ..permissions import ToolPermissionManager
from ..tool_executor import ToolExecutor
from ..utils.logging import get_logger
from .retry import RetryConfig, call_with_retry

logger = get_logger("runtime.dashscope")

DEFAULT_MODEL = "qwen3-max"


class RuntimeLoopError(Exception):
    """运行时循环错误"""
    pass


class DashScopeAPIError(Exception):
    """DashScope 返回非 200 状态"""
    pass


class DashScopeRuntime(IAgentRuntime):
    """基于 DashScope Generation API 的智能体运行时"""

    def __init__(
        self,
        executor: ToolExecutor,
        permission_manager: Optional[ToolPermissionManager] = None,
        api_key: Optional[str] = None,
        default_model: str = DEFAULT_MODEL,
        request_timeout: float = 120.0,
        retry_config: Optional[RetryConfig] = None,
    ):
        """
        Args:
            executor: 工具执行器
            permission_manager: 权限管理器（记录工具使用）
            api_key: DashScope API key，默认读取 DASHSCOPE_API_KEY
            default_model: 描述未绑定模型时使用的模型
            request_timeout: 单次模型请求超时（秒）
            retry_config: 瞬态错误重试配置
        """
        self._executor = executor
        self._permissions = permission_manager or ToolPermissionManager()
        self._api_key = api_key or os.environ.get("DASHSCOPE_API_KEY")
        self._default_model = default_model
        self._request_timeout = request_timeout
        self._retry_config = retry_config or RetryConfig()

        if not self._api_key:
            raise ValueError(
                "DashScope API key is required. "
                "Set DASHSCOPE_API_KEY environment variable or pass api_key."
            )

    @property
    def permission_manager(self) -> ToolPermissionManager:
        return self._permissions

    def _model_for(self, descriptor: AgentDescriptor) -> str:
        binding = descriptor.binding
        if binding is None:
            return self._default_model
        if binding.provider != ModelProvider.DASHSCOPE:
            raise RuntimeLoopError(
                f"Model '{binding.model}' ({binding.provider.value}) is not served by the DashScope runtime"
            )
        return binding.model

    async def run(
        self,
        descriptor: AgentDescriptor,
        task: str,
        router: Router,
        max_iterations: int,
    ) -> RunResult:
        state = NetworkState()
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": descriptor.system_prompt},
            {"role": "user", "content": task},
        ]
        last: Optional[AgentRunResult] = None

        for _ in range(max_iterations):
            agent = router(state, last)
            if agent is None:
                break
            reply = await call_with_retry(lambda: self._chat(agent, messages), self._retry_config)
            last = await self._handle_reply(agent, reply, messages)
            state.results.append(last)
        else:
            logger.warning("Agent %s reached max iterations (%d)", descriptor.agent_id, max_iterations)

        return RunResult(state=state)

    async def _chat(self, agent: AgentDescriptor, messages: List[Dict[str, Any]]) -> Dict[str, Any]:
        # 延迟导入以避免在未安装时报错
        try:
            from dashscope import Generation
        except ImportError:
            raise ImportError(
                "dashscope package is required. Install with: pip install dashscope"
            )

        kwargs: Dict[str, Any] = {
            "model": self._model_for(agent),
            "messages": list(messages),
            "temperature": agent.temperature,
            "result_format": "message",
        }
        if agent.max_tokens is not None:
            kwargs["max_tokens"] = agent.max_tokens
        if agent.tools:
            kwargs["tools"] = [{"type": "function", "function": tool} for tool in agent.tools]

        loop = asyncio.get_running_loop()
        response = await asyncio.wait_for(
            loop.run_in_executor(
                None,
                lambda: Generation.call(api_key=self._api_key, **kwargs)
            ),
            timeout=self._request_timeout
        )

        if response.status_code != 200:
            raise DashScopeAPIError(f"DashScope API error: {response.code} - {response.message}")

        choice = response.output.get("choices", [{}])[0]
        return choice.get("message", {}) or {}

    async def _handle_reply(
        self,
        agent: AgentDescriptor,
        reply: Dict[str, Any],
        messages: List[Dict[str, Any]],
    ) -> AgentRunResult:
        output: List[Dict[str, Any]] = []
        content = reply.get("content") or ""
        tool_calls = reply.get("tool_calls") or []

        assistant: Dict[str, Any] = {"role": "assistant", "content": content}
        if tool_calls:
            assistant["tool_calls"] = tool_calls
        messages.append(assistant)

        if content:
            output.append({"type": "text", "role": "assistant", "content": content})

        if tool_calls:
            invocations = [self._parse_tool_call(tc) for tc in tool_calls]
            output.append({
                "type": "tool_call",
                "role": "assistant",
                "tools": [{"id": c.id, "name": c.tool, "input": c.args} for c in invocations],
            })
            results = await self._run_tools(agent, invocations)
            for call, result in zip(invocations, results):
                payload = result.to_dict()
                messages.append({
                    "role": "tool",
                    "name": call.tool,
                    "tool_call_id": call.id,
                    "content": json.dumps(payload, ensure_ascii=False, default=str),
                })
                output.append({"type": "tool_result", "role": "tool", "tool_call_id": call.id, "content": payload})

        return AgentRunResult(agent_name=agent.name, output=output)

    @staticmethod
    def _parse_tool_call(raw: Dict[str, Any]) -> ToolCall:
        function = raw.get("function") or {}
        name = function.get("name", "")
        arguments = function.get("arguments") or {}
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments) if arguments.strip() else {}
            except json.JSONDecodeError:
                logger.warning("Could not parse arguments for %s: %s", name, arguments[:200])
                arguments = {}
        if not isinstance(arguments, dict):
            arguments = {}
        call = create_tool_call(name, arguments)
        if raw.get("id"):
            call = ToolCall(id=raw["id"], tool=name, args=arguments, timestamp=call.timestamp)
        return call

    async def _run_tools(self, agent: AgentDescriptor, calls: List[ToolCall]) -> List[ToolResult]:
        """权限检查后批量执行；被拒绝的调用直接返回失败结果"""
        results: List[Optional[ToolResult]] = [None] * len(calls)
        permitted: List[int] = []
        for index, call in enumerate(calls):
            check = self._permissions.check_tool_grant(agent.agent_id, agent.tool_names, call.tool)
            self._permissions.record_usage(agent.agent_id, call.tool, check.allowed)
            if check.allowed:
                permitted.append(index)
            else:
                results[index] = ToolResult.fail(f"{check.reason}. {check.suggestion}")

        if permitted:
            executions = await self._executor.batch([calls[i] for i in permitted], parallel=True)
            for index, execution in zip(permitted, executions):
                results[index] = execution.result

        return [r if r is not None else ToolResult.fail("Not executed") for r in results]
