"""子智能体执行器测试：用脚本化的假运行时驱动路由循环。"""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from agent_engine.interfaces.agent_runtime import IAgentRuntime, Router
from agent_engine.models.message import AgentRunResult, NetworkState, RunResult
from agent_engine.models.subagent import AgentDescriptor, SubagentConfig
from agent_engine.subagent_executor import (
    TIMEOUT_ERROR,
    SubagentExecutor,
    create_subagent_executor,
    execute_with_subagent,
)
from agent_engine.subagent_factory import ConfigValidationError

PROMPT = "You are a helpful assistant that explores the repository and answers questions."


def make_config(**overrides) -> SubagentConfig:
    values = dict(
        id="explorer",
        name="Explorer",
        description="Explores code",
        system_prompt=PROMPT,
        tools=["read_file", "list_dir"],
        max_iterations=5,
    )
    values.update(overrides)
    return SubagentConfig(**values)


def text(content: str) -> Dict[str, Any]:
    return {"type": "text", "role": "assistant", "content": content}


def tool_call(call_id: str, name: str, args: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "tool_call", "role": "assistant", "tools": [{"id": call_id, "name": name, "input": args}]}


def tool_result(call_id: str, content: Any) -> Dict[str, Any]:
    return {"type": "tool_result", "role": "tool", "tool_call_id": call_id, "content": content}


class ScriptedRuntime(IAgentRuntime):
    """按脚本逐轮返回输出，并遵守路由器的决定"""

    def __init__(self, rounds: List[List[Dict[str, Any]]]):
        self.rounds = rounds
        self.calls: List[Dict[str, Any]] = []

    async def run(self, descriptor: AgentDescriptor, task: str, router: Router, max_iterations: int) -> RunResult:
        self.calls.append({"descriptor": descriptor, "task": task, "max_iterations": max_iterations})
        state = NetworkState()
        last: Optional[AgentRunResult] = None
        for index in range(max_iterations):
            agent = router(state, last)
            if agent is None or index >= len(self.rounds):
                break
            last = AgentRunResult(agent_name=agent.name, output=self.rounds[index])
            state.results.append(last)
        return RunResult(state=state)


class HangingRuntime(IAgentRuntime):
    def __init__(self):
        self.cancelled = False

    async def run(self, descriptor, task, router, max_iterations):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return RunResult()


class FailingRuntime(IAgentRuntime):
    async def run(self, descriptor, task, router, max_iterations):
        raise RuntimeError("model unavailable")


class TestConstruction:

    def test_invalid_config_rejected_up_front(self):
        with pytest.raises(ConfigValidationError):
            SubagentExecutor(make_config(system_prompt="short"), ScriptedRuntime([]))

    def test_network_name(self):
        executor = create_subagent_executor(make_config(), ScriptedRuntime([]))
        assert executor.network_name == "subagent-explorer"
        assert executor.descriptor.tool_names == ["read_file", "list_dir"]


class TestExecute:

    @pytest.mark.asyncio
    async def test_single_round(self):
        runtime = ScriptedRuntime([[text("Done.")]])
        result = await SubagentExecutor(make_config(), runtime).execute("look around")
        assert result.success is True
        assert result.output == "Done."
        assert result.iterations == 1
        assert result.tool_calls is None
        assert result.model == "inherit"
        assert result.agent_id == "explorer"
        assert runtime.calls[0]["task"] == "look around"

    @pytest.mark.asyncio
    async def test_continues_while_tools_are_called(self):
        runtime = ScriptedRuntime([
            [tool_call("c1", "list_dir", {"path": "."}), tool_result("c1", {"entries": []})],
            [tool_call("c2", "read_file", {"path": "a"}), tool_result("c2", "text")],
            [text("Summary of findings")],
            [text("never reached")],
        ])
        result = await SubagentExecutor(make_config(), runtime).execute("explore", include_tool_calls=True)
        assert result.iterations == 3
        assert result.output == "Summary of findings"
        assert [t.name for t in result.tool_calls] == ["list_dir", "read_file"]
        assert result.tool_calls[1].output == "text"

    @pytest.mark.asyncio
    async def test_max_iterations_defaults_to_config(self):
        runtime = ScriptedRuntime([[text("ok")]])
        await SubagentExecutor(make_config(max_iterations=7), runtime).execute("x")
        assert runtime.calls[0]["max_iterations"] == 7

    @pytest.mark.asyncio
    async def test_max_iterations_override(self):
        rounds = [[tool_call(str(i), "list_dir", {})] for i in range(10)]
        runtime = ScriptedRuntime(rounds)
        result = await SubagentExecutor(make_config(), runtime).execute("x", max_iterations=2)
        assert result.iterations == 2
        assert result.success is True

    @pytest.mark.asyncio
    async def test_empty_output(self):
        runtime = ScriptedRuntime([[]])
        result = await SubagentExecutor(make_config(), runtime).execute("x")
        assert result.success is True
        assert result.output == ""

    @pytest.mark.asyncio
    async def test_timeout_cancels_runtime(self):
        runtime = HangingRuntime()
        result = await SubagentExecutor(make_config(), runtime).execute("x", timeout_ms=50)
        assert result.success is False
        assert result.error == TIMEOUT_ERROR
        assert result.output == ""
        assert runtime.cancelled is True
        assert result.execution_time_ms < 5000

    @pytest.mark.asyncio
    async def test_runtime_error_becomes_failure(self):
        result = await SubagentExecutor(make_config(), FailingRuntime()).execute("x")
        assert result.success is False
        assert result.error == "model unavailable"

    @pytest.mark.asyncio
    async def test_execute_with_subagent(self):
        result = await execute_with_subagent(make_config(), ScriptedRuntime([[text("hi")]]), "task")
        assert result.output == "hi"
        assert result.to_dict()["tool_calls"] is None
