"""Tool Executor implementation.

Executes tool calls against registered handlers with schema-driven timeouts,
an LRU+TTL result cache and bounded-concurrency batching. Failures never
propagate out of ``execute``: they are captured in the returned
``ToolExecution``.
"""

import asyncio
import copy
import dataclasses
import time
from typing import Any, Callable, Dict, List, Optional

from .interfaces.tool_executor import IToolExecutor
from .models.enums import ExecutionStatus
from .models.tool import (
    ToolCall,
    ToolExecution,
    ToolHandler,
    ToolResult,
    ToolSchema,
    create_tool_call,
)
from .tool_cache import LRUCache, make_cache_key
from .tool_schema import get_tool_by_name, resolve_tool_alias
from .utils.logging import get_logger

logger = get_logger("tool_executor")

DEFAULT_CACHE_TTL_MS = 30000

ToolStartHook = Callable[[ToolCall], None]
ToolCompleteHook = Callable[[ToolCall, ToolResult], None]
ToolErrorHook = Callable[[ToolCall, str], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _format_ms(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class ToolExecutor(IToolExecutor):
    """工具执行器实现"""

    def __init__(
        self,
        max_concurrency: int = 10,
        default_timeout: float = 30000,
        enable_cache: bool = True,
        cache_size: int = 200,
        schema_lookup: Callable[[str], Optional[ToolSchema]] = get_tool_by_name,
        alias_resolver: Optional[Callable[[str], str]] = resolve_tool_alias,
        on_tool_start: Optional[ToolStartHook] = None,
        on_tool_complete: Optional[ToolCompleteHook] = None,
        on_tool_error: Optional[ToolErrorHook] = None,
    ):
        """
        初始化执行器

        Args:
            max_concurrency: 并行批次中同时运行的 handler 上限
            default_timeout: schema 未给出超时时的默认值（毫秒）
            enable_cache: 是否启用结果缓存
            cache_size: 缓存容量
            schema_lookup: 工具定义查找函数
            alias_resolver: 别名解析函数，None 表示不解析别名
            on_tool_start / on_tool_complete / on_tool_error: 可选回调
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._handlers: Dict[str, ToolHandler] = {}
        self._max_concurrency = max_concurrency
        self._default_timeout = default_timeout
        self._enable_cache = enable_cache
        self._cache = LRUCache(cache_size)
        self._schema_lookup = schema_lookup
        self._alias_resolver = alias_resolver
        self._on_tool_start = on_tool_start
        self._on_tool_complete = on_tool_complete
        self._on_tool_error = on_tool_error

    # ------------------------------------------------------------------
    # handler registration
    # ------------------------------------------------------------------

    def register_handler(self, tool_name: str, handler: ToolHandler) -> None:
        """注册工具处理函数"""
        self._handlers[tool_name] = handler

    def register_handlers(self, handlers: Dict[str, ToolHandler]) -> None:
        """批量注册"""
        for name, handler in handlers.items():
            self.register_handler(name, handler)

    def unregister_handler(self, tool_name: str) -> bool:
        return self._handlers.pop(tool_name, None) is not None

    def has_handler(self, tool_name: str) -> bool:
        return self._canonical(tool_name) in self._handlers

    @property
    def handler_names(self) -> List[str]:
        return list(self._handlers)

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    # ------------------------------------------------------------------
    # execution
    # ------------------------------------------------------------------

    def _canonical(self, tool_name: str) -> str:
        if self._alias_resolver is None:
            return tool_name
        return self._alias_resolver(tool_name)

    def _fire(self, hook: Optional[Callable[..., None]], *args: Any) -> None:
        if hook is None:
            return
        try:
            hook(*args)
        except Exception as e:
            logger.warning("Tool hook %s failed: %s", getattr(hook, "__name__", hook), e)

    async def execute(self, call: ToolCall) -> ToolExecution:
        """
        执行单个工具调用

        Args:
            call: 工具调用

        Returns:
            执行记录；未知工具、缺少 handler、超时和异常都转为失败结果
        """
        execution = ToolExecution(call=call, start_time=_now_ms())
        name = self._canonical(call.tool)

        schema = self._schema_lookup(name)
        if schema is None:
            return self._finish(execution, ToolResult.fail(f"Unknown tool: {call.tool}"))

        cache_key = make_cache_key(name, call.args)
        if self._enable_cache and schema.cacheable:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug("Cache hit for %s", cache_key)
                return self._finish(execution, dataclasses.replace(cached, data=copy.deepcopy(cached.data), cached=True))

        handler = self._handlers.get(name)
        if handler is None:
            return self._finish(execution, ToolResult.fail(f"No handler registered for tool: {name}"))

        execution.status = ExecutionStatus.RUNNING
        self._fire(self._on_tool_start, call)

        timeout_ms = schema.timeout if schema.timeout and schema.timeout > 0 else self._default_timeout
        started = time.monotonic()
        try:
            raw = await asyncio.wait_for(handler(dict(call.args)), timeout=timeout_ms / 1000)
            result = self._coerce_result(raw)
        except asyncio.TimeoutError:
            result = ToolResult.fail(f"Tool execution timed out after {_format_ms(timeout_ms)}ms")
        except Exception as e:
            logger.exception("Tool %s raised", name)
            result = ToolResult.fail(str(e) or e.__class__.__name__)

        result = dataclasses.replace(result, duration=(time.monotonic() - started) * 1000, cached=False)

        if result.success:
            if self._enable_cache and schema.cacheable:
                ttl = schema.cache_timeout or DEFAULT_CACHE_TTL_MS
                # 缓存独立副本，调用方修改返回值不影响后续命中
                self._cache.set(cache_key, dataclasses.replace(result, data=copy.deepcopy(result.data)), ttl)
            self._fire(self._on_tool_complete, call, result)
        else:
            logger.info("Tool %s failed: %s", name, result.error)
            self._fire(self._on_tool_error, call, result.error)

        return self._finish(execution, result)

    @staticmethod
    def _coerce_result(raw: Any) -> ToolResult:
        if isinstance(raw, ToolResult):
            return raw
        if isinstance(raw, dict) and "success" in raw:
            return ToolResult.from_dict(raw)
        return ToolResult.ok(raw)

    @staticmethod
    def _finish(execution: ToolExecution, result: ToolResult) -> ToolExecution:
        execution.result = result
        execution.status = ExecutionStatus.SUCCESS if result.success else ExecutionStatus.ERROR
        execution.end_time = _now_ms()
        return execution

    # ------------------------------------------------------------------
    # batching
    # ------------------------------------------------------------------

    def _is_parallel(self, call: ToolCall) -> bool:
        schema = self._schema_lookup(self._canonical(call.tool))
        return bool(schema and schema.parallel)

    async def batch(
        self,
        calls: List[ToolCall],
        parallel: bool = True,
        stop_on_error: bool = False,
        max_concurrency: Optional[int] = None,
    ) -> List[ToolExecution]:
        """
        批量执行

        parallel 为 True 时，可并行的调用在受限并发池中运行，其余调用随后按顺序执行。
        返回结果按输入顺序排列；stop_on_error 时未开始的调用不出现在结果中。
        """
        results: Dict[int, ToolExecution] = {}
        stopped = False

        if not parallel:
            for index, call in enumerate(calls):
                execution = await self.execute(call)
                results[index] = execution
                if stop_on_error and execution.status == ExecutionStatus.ERROR:
                    break
            return [results[i] for i in sorted(results)]

        parallel_indices = [i for i, call in enumerate(calls) if self._is_parallel(call)]
        sequential_indices = [i for i, call in enumerate(calls) if not self._is_parallel(call)]

        semaphore = asyncio.Semaphore(max_concurrency or self._max_concurrency)

        async def run_pooled(index: int) -> None:
            nonlocal stopped
            async with semaphore:
                if stopped:
                    return
                execution = await self.execute(calls[index])
                results[index] = execution
                if stop_on_error and execution.status == ExecutionStatus.ERROR:
                    stopped = True

        if parallel_indices:
            await asyncio.gather(*(run_pooled(i) for i in parallel_indices))

        for index in sequential_indices:
            if stopped:
                break
            execution = await self.execute(calls[index])
            results[index] = execution
            if stop_on_error and execution.status == ExecutionStatus.ERROR:
                stopped = True

        return [results[i] for i in sorted(results)]

    async def batch_read(self, paths: List[str], chunk_size: int = 20) -> Dict[str, ToolResult]:
        """按块并行读取文件，返回 path -> 结果"""
        results: Dict[str, ToolResult] = {}
        for start in range(0, len(paths), max(chunk_size, 1)):
            chunk = paths[start:start + chunk_size]
            calls = [create_tool_call("read_file", {"path": path}) for path in chunk]
            executions = await self.batch(calls, parallel=True)
            by_id = {execution.call.id: execution for execution in executions}
            for path, call in zip(chunk, calls):
                execution = by_id.get(call.id)
                if execution is not None and execution.result is not None:
                    results[path] = execution.result
                else:
                    results[path] = ToolResult.fail("Not executed")
        return results

    # ------------------------------------------------------------------
    # cache management
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        self._cache.clear()

    def invalidate_cache(self, tool_name: Optional[str] = None, args_pattern: Optional[str] = None) -> None:
        """使缓存失效

        目前不区分工具和参数，整体清空。写操作之后调用即可保证读到新内容。
        """
        logger.debug("Invalidating result cache (tool=%s, pattern=%s)", tool_name, args_pattern)
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)


# 进程级默认执行器
_default_executor: Optional[ToolExecutor] = None


def get_tool_executor() -> ToolExecutor:
    """获取进程级默认执行器（惰性创建）"""
    global _default_executor
    if _default_executor is None:
        _default_executor = ToolExecutor()
    return _default_executor


def create_tool_executor(**kwargs: Any) -> ToolExecutor:
    """创建独立的执行器实例"""
    return ToolExecutor(**kwargs)


def reset_tool_executor() -> None:
    """丢弃进程级默认执行器"""
    global _default_executor
    _default_executor = None
