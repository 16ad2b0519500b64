"""Handler registry: binds tool names to concrete handlers for a workspace."""

from typing import Dict, List, Optional

from ..config import EngineConfig
from ..interfaces.host_bridge import IHostBridge
from ..models.enums import ExecutorType, ToolCategory
from ..models.tool import ToolCall, ToolHandler, ToolResult
from ..tool_executor import ToolExecutor
from ..tool_schema import TOOL_ALIASES, TOOL_DEFINITIONS, get_tool_by_name, resolve_tool_alias
from ..utils.logging import get_logger
from .analysis_handlers import AnalysisToolHandlers
from .context import HandlerSettings, WorkspaceContext
from .execute_handlers import ExecuteToolHandlers
from .git_handlers import GitToolHandlers
from .host_bridge import HttpHostBridge, create_remote_handlers
from .read_handlers import ReadToolHandlers
from .write_handlers import WriteToolHandlers

logger = get_logger("tools.bridge")

__all__ = [
    "TOOL_ALIASES",
    "resolve_tool_alias",
    "settings_from_config",
    "build_tool_handlers",
    "register_tool_handlers",
    "host_tool_names",
    "register_remote_handlers",
    "create_configured_executor",
]

# 成功执行后会使读缓存失效的工具
_MUTATING_CATEGORIES = (ToolCategory.WRITE, ToolCategory.EXECUTE)
_MUTATING_GIT_TOOLS = frozenset({"git_add", "git_commit"})


def settings_from_config(config: EngineConfig) -> HandlerSettings:
    return HandlerSettings(
        max_file_chars=config.workspace.max_file_chars,
        command_timeout=config.commands.default_timeout,
        command_max_timeout=config.commands.max_timeout,
        max_output_chars=config.workspace.max_output_chars,
    )


def build_tool_handlers(context: WorkspaceContext) -> Dict[str, ToolHandler]:
    """构建 工具名 -> handler 映射"""
    execute = ExecuteToolHandlers(context)
    handlers: Dict[str, ToolHandler] = {}
    handlers.update(ReadToolHandlers(context).handlers())
    handlers.update(WriteToolHandlers(context, verifier=execute.verify_changes).handlers())
    handlers.update(execute.handlers())
    handlers.update(GitToolHandlers(context, runner=execute).handlers())
    handlers.update(AnalysisToolHandlers(context).handlers())
    return handlers


def register_tool_handlers(executor: ToolExecutor, context: WorkspaceContext) -> int:
    """把工作区 handler 注册到执行器，返回注册数量"""
    handlers = build_tool_handlers(context)
    executor.register_handlers(handlers)
    logger.debug("Registered %d tool handlers for %s", len(handlers), context.root if context.is_set else "<unset>")
    return len(handlers)


def host_tool_names() -> List[str]:
    """只能在宿主进程执行的工具"""
    return [tool.name for tool in TOOL_DEFINITIONS if tool.executor == ExecutorType.HOST]


def register_remote_handlers(
    executor: ToolExecutor,
    bridge: IHostBridge,
    tool_names: Optional[List[str]] = None,
) -> List[str]:
    """
    用转发到宿主的 handler 覆盖本地 handler

    Args:
        tool_names: 要转发的工具，默认为全部 host 工具

    Returns:
        已转发的工具名
    """
    names = list(tool_names) if tool_names is not None else host_tool_names()
    executor.register_handlers(create_remote_handlers(bridge, names))
    logger.info("Forwarding %d tools to host", len(names))
    return names


def _is_mutating(tool_name: str) -> bool:
    schema = get_tool_by_name(resolve_tool_alias(tool_name))
    if schema is None:
        return False
    return schema.category in _MUTATING_CATEGORIES or schema.name in _MUTATING_GIT_TOOLS


def create_configured_executor(
    workspace: Optional[str] = None,
    config: Optional[EngineConfig] = None,
    bridge: Optional[IHostBridge] = None,
) -> ToolExecutor:
    """
    创建已注册全部 handler 的执行器

    写入、执行类工具成功后整体清空读缓存，避免读到旧内容。
    配置了 subagent.host_url（或传入 bridge）时，host 工具转发到宿主执行，
    hybrid 工具仍在本地运行。

    Args:
        workspace: 工作区根目录（默认取 config.workspace.root）
        config: 引擎配置
        bridge: 宿主桥接，默认按 host_url 创建 HttpHostBridge
    """
    config = config or EngineConfig()
    context = WorkspaceContext(workspace or config.workspace.root, settings_from_config(config))

    executor: Optional[ToolExecutor] = None

    def invalidate_on_write(call: ToolCall, result: ToolResult) -> None:
        if executor is not None and _is_mutating(call.tool):
            executor.invalidate_cache(call.tool)

    executor = ToolExecutor(
        max_concurrency=config.executor.max_concurrency,
        default_timeout=config.executor.default_timeout,
        enable_cache=config.executor.enable_cache,
        cache_size=config.executor.cache_size,
        on_tool_complete=invalidate_on_write,
    )
    register_tool_handlers(executor, context)

    if bridge is None and config.subagent.host_url:
        bridge = HttpHostBridge(config.subagent.host_url, timeout=config.commands.max_timeout / 1000)
    if bridge is not None:
        register_remote_handlers(executor, bridge)
    return executor
