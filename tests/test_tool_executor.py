"""工具执行器测试。

覆盖：未知工具、缺少 handler、超时、异常、缓存命中、别名、
批量执行的顺序保持、并发上限和 stop_on_error。
"""

import asyncio
from typing import Any, Dict

import pytest

from agent_engine.models.enums import ExecutionStatus, ToolCategory
from agent_engine.models.tool import ToolResult, ToolSchema, create_tool_call
from agent_engine.tool_executor import (
    ToolExecutor,
    create_tool_executor,
    get_tool_executor,
    reset_tool_executor,
)


# ── helpers ───────────────────────────────────────────────

def make_schema(name: str, **overrides: Any) -> ToolSchema:
    """构造测试用工具定义"""
    defaults = dict(
        name=name,
        description=f"test tool {name}",
        category=ToolCategory.READ,
        parallel=True,
        timeout=1000,
        cacheable=False,
    )
    defaults.update(overrides)
    return ToolSchema(**defaults)


def make_executor(*schemas: ToolSchema, **kwargs: Any) -> ToolExecutor:
    """只认识给定工具的执行器"""
    table = {schema.name: schema for schema in schemas}
    return ToolExecutor(schema_lookup=table.get, alias_resolver=None, **kwargs)


def echo_handler(calls: list = None):
    async def handler(args: Dict[str, Any]) -> ToolResult:
        if calls is not None:
            calls.append(args)
        return ToolResult.ok(args)
    return handler


# ── single execution ─────────────────────────────────────

class TestExecute:

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        executor = make_executor()
        execution = await executor.execute(create_tool_call("nope", {}))
        assert execution.status == ExecutionStatus.ERROR
        assert execution.result.error == "Unknown tool: nope"

    @pytest.mark.asyncio
    async def test_missing_handler(self):
        executor = make_executor(make_schema("read"))
        execution = await executor.execute(create_tool_call("read", {}))
        assert execution.result.success is False
        assert execution.result.error == "No handler registered for tool: read"

    @pytest.mark.asyncio
    async def test_success(self):
        executor = make_executor(make_schema("read"))
        executor.register_handler("read", echo_handler())
        execution = await executor.execute(create_tool_call("read", {"path": "a.txt"}))
        assert execution.status == ExecutionStatus.SUCCESS
        assert execution.result.data == {"path": "a.txt"}
        assert execution.result.duration is not None
        assert execution.result.cached is False
        assert execution.start_time is not None and execution.end_time is not None

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_failure(self):
        async def boom(args):
            raise RuntimeError("disk on fire")

        executor = make_executor(make_schema("read"))
        executor.register_handler("read", boom)
        execution = await executor.execute(create_tool_call("read", {}))
        assert execution.status == ExecutionStatus.ERROR
        assert execution.result.error == "disk on fire"

    @pytest.mark.asyncio
    async def test_timeout(self):
        cancelled = []

        async def slow(args):
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise
            return ToolResult.ok()

        executor = make_executor(make_schema("slow", timeout=50))
        executor.register_handler("slow", slow)
        execution = await executor.execute(create_tool_call("slow", {}))
        assert execution.result.success is False
        assert execution.result.error == "Tool execution timed out after 50ms"
        assert cancelled == [True]

    @pytest.mark.asyncio
    async def test_dict_result_is_coerced(self):
        async def handler(args):
            return {"success": False, "error": "bad path"}

        executor = make_executor(make_schema("read"))
        executor.register_handler("read", handler)
        execution = await executor.execute(create_tool_call("read", {}))
        assert execution.result.success is False
        assert execution.result.error == "bad path"

    @pytest.mark.asyncio
    async def test_handler_receives_copy_of_args(self):
        async def mutating(args):
            args["injected"] = True
            return ToolResult.ok()

        executor = make_executor(make_schema("read"))
        executor.register_handler("read", mutating)
        call = create_tool_call("read", {"path": "x"})
        await executor.execute(call)
        assert call.args == {"path": "x"}

    @pytest.mark.asyncio
    async def test_hooks_called(self):
        started, completed, errored = [], [], []
        executor = make_executor(
            make_schema("ok"), make_schema("bad"),
            on_tool_start=lambda call: started.append(call.tool),
            on_tool_complete=lambda call, result: completed.append(call.tool),
            on_tool_error=lambda call, error: errored.append((call.tool, error)),
        )
        executor.register_handler("ok", echo_handler())

        async def bad(args):
            return ToolResult.fail("nope")
        executor.register_handler("bad", bad)

        await executor.execute(create_tool_call("ok", {}))
        await executor.execute(create_tool_call("bad", {}))
        assert started == ["ok", "bad"]
        assert completed == ["ok"]
        assert errored == [("bad", "nope")]

    @pytest.mark.asyncio
    async def test_failing_hook_does_not_break_execution(self):
        def broken(call):
            raise ValueError("hook bug")

        executor = make_executor(make_schema("ok"), on_tool_start=broken)
        executor.register_handler("ok", echo_handler())
        execution = await executor.execute(create_tool_call("ok", {}))
        assert execution.result.success is True


class TestAliases:

    @pytest.mark.asyncio
    async def test_alias_resolves_to_canonical_handler(self):
        calls = []
        executor = ToolExecutor()
        executor.register_handler("read_file", echo_handler(calls))
        execution = await executor.execute(create_tool_call("cat", {"path": "a"}))
        assert execution.result.success is True
        assert calls == [{"path": "a"}]
        assert executor.has_handler("cat")

    @pytest.mark.asyncio
    async def test_alias_and_canonical_share_cache(self):
        calls = []
        executor = ToolExecutor()
        executor.register_handler("read_file", echo_handler(calls))
        await executor.execute(create_tool_call("read_file", {"path": "a"}))
        second = await executor.execute(create_tool_call("cat", {"path": "a"}))
        assert second.result.cached is True
        assert len(calls) == 1


class TestCache:

    @pytest.mark.asyncio
    async def test_cache_hit_skips_handler(self):
        calls = []
        executor = make_executor(make_schema("read", cacheable=True, cache_timeout=60000))
        executor.register_handler("read", echo_handler(calls))

        first = await executor.execute(create_tool_call("read", {"path": "a"}))
        second = await executor.execute(create_tool_call("read", {"path": "a"}))

        assert first.result.cached is False
        assert second.result.cached is True
        assert second.result.data == {"path": "a"}
        assert len(calls) == 1
        assert executor.cache_size == 1

    @pytest.mark.asyncio
    async def test_caller_mutation_does_not_leak_into_cache(self):
        """修改返回的 data 不影响缓存中的结果"""
        async def handler(args):
            return ToolResult.ok({"content": "original", "lines": [1, 2]})

        executor = make_executor(make_schema("read", cacheable=True))
        executor.register_handler("read", handler)

        first = await executor.execute(create_tool_call("read", {}))
        first.result.data["content"] = "changed"
        first.result.data["lines"].append(3)

        second = await executor.execute(create_tool_call("read", {}))
        assert second.result.cached is True
        assert second.result.data == {"content": "original", "lines": [1, 2]}

        second.result.data["content"] = "changed again"
        third = await executor.execute(create_tool_call("read", {}))
        assert third.result.data["content"] == "original"

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self):
        count = 0

        async def flaky(args):
            nonlocal count
            count += 1
            return ToolResult.fail("nope")

        executor = make_executor(make_schema("read", cacheable=True))
        executor.register_handler("read", flaky)
        await executor.execute(create_tool_call("read", {}))
        await executor.execute(create_tool_call("read", {}))
        assert count == 2
        assert executor.cache_size == 0

    @pytest.mark.asyncio
    async def test_non_cacheable_tool(self):
        calls = []
        executor = make_executor(make_schema("write", cacheable=False))
        executor.register_handler("write", echo_handler(calls))
        await executor.execute(create_tool_call("write", {"x": 1}))
        second = await executor.execute(create_tool_call("write", {"x": 1}))
        assert second.result.cached is False
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_cache_disabled(self):
        calls = []
        executor = make_executor(make_schema("read", cacheable=True), enable_cache=False)
        executor.register_handler("read", echo_handler(calls))
        await executor.execute(create_tool_call("read", {}))
        await executor.execute(create_tool_call("read", {}))
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_invalidate_and_clear(self):
        executor = make_executor(make_schema("read", cacheable=True))
        executor.register_handler("read", echo_handler())
        await executor.execute(create_tool_call("read", {"path": "a"}))
        assert executor.cache_size == 1
        executor.invalidate_cache("read")
        assert executor.cache_size == 0
        await executor.execute(create_tool_call("read", {"path": "a"}))
        executor.clear_cache()
        assert executor.cache_size == 0


# ── batching ─────────────────────────────────────────────

class TestBatch:

    @pytest.mark.asyncio
    async def test_preserves_input_order(self):
        async def delayed(args):
            await asyncio.sleep(args["delay"])
            return ToolResult.ok(args["n"])

        executor = make_executor(make_schema("p", parallel=True), make_schema("s", parallel=False))
        executor.register_handler("p", delayed)
        executor.register_handler("s", delayed)

        calls = [
            create_tool_call("s", {"n": 0, "delay": 0}),
            create_tool_call("p", {"n": 1, "delay": 0.05}),
            create_tool_call("p", {"n": 2, "delay": 0.0}),
            create_tool_call("s", {"n": 3, "delay": 0}),
            create_tool_call("p", {"n": 4, "delay": 0.02}),
        ]
        executions = await executor.batch(calls)
        assert [e.result.data for e in executions] == [0, 1, 2, 3, 4]
        assert [e.call.id for e in executions] == [c.id for c in calls]

    @pytest.mark.asyncio
    async def test_concurrency_bound(self):
        active = 0
        peak = 0

        async def tracked(args):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return ToolResult.ok()

        executor = make_executor(make_schema("p", parallel=True), max_concurrency=3)
        executor.register_handler("p", tracked)
        executions = await executor.batch([create_tool_call("p", {"i": i}) for i in range(10)])
        assert len(executions) == 10
        assert peak <= 3
        assert peak > 1

    @pytest.mark.asyncio
    async def test_per_batch_concurrency_override(self):
        active = 0
        peak = 0

        async def tracked(args):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return ToolResult.ok()

        executor = make_executor(make_schema("p", parallel=True), max_concurrency=10)
        executor.register_handler("p", tracked)
        await executor.batch([create_tool_call("p", {"i": i}) for i in range(6)], max_concurrency=1)
        assert peak == 1

    @pytest.mark.asyncio
    async def test_sequential_mode_stop_on_error(self):
        calls = []

        async def handler(args):
            calls.append(args["n"])
            if args["n"] == 1:
                return ToolResult.fail("stop here")
            return ToolResult.ok()

        executor = make_executor(make_schema("s", parallel=False))
        executor.register_handler("s", handler)
        executions = await executor.batch(
            [create_tool_call("s", {"n": n}) for n in range(4)],
            parallel=False,
            stop_on_error=True,
        )
        assert calls == [0, 1]
        assert len(executions) == 2
        assert executions[-1].result.error == "stop here"

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_batch_by_default(self):
        async def handler(args):
            if args["n"] == 0:
                raise RuntimeError("first fails")
            return ToolResult.ok(args["n"])

        executor = make_executor(make_schema("p"))
        executor.register_handler("p", handler)
        executions = await executor.batch([create_tool_call("p", {"n": n}) for n in range(3)])
        assert [e.result.success for e in executions] == [False, True, True]

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        assert await make_executor().batch([]) == []

    @pytest.mark.asyncio
    async def test_batch_read(self):
        executor = ToolExecutor()

        async def read(args):
            if args["path"] == "missing.txt":
                return ToolResult.fail("File not found: missing.txt")
            return ToolResult.ok({"content": f"contents of {args['path']}"})

        executor.register_handler("read_file", read)
        paths = [f"f{i}.txt" for i in range(5)] + ["missing.txt"]
        results = await executor.batch_read(paths, chunk_size=2)
        assert list(results) == paths
        assert results["f3.txt"].data["content"] == "contents of f3.txt"
        assert results["missing.txt"].success is False


class TestModuleHelpers:

    def test_default_executor_singleton(self):
        reset_tool_executor()
        try:
            assert get_tool_executor() is get_tool_executor()
        finally:
            reset_tool_executor()

    def test_create_returns_fresh_instance(self):
        assert create_tool_executor(max_concurrency=2) is not create_tool_executor(max_concurrency=2)

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            ToolExecutor(max_concurrency=0)
