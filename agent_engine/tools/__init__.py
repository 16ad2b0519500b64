"""Tool handlers and host bridges."""

from .context import HandlerSettings, WorkspaceContext, WorkspaceNotSetError
from .process import CommandOutput, run_shell
from .read_handlers import ReadToolHandlers
from .write_handlers import WriteToolHandlers
from .execute_handlers import ExecuteToolHandlers
from .git_handlers import GitToolHandlers
from .analysis_handlers import AnalysisToolHandlers
from .bridge import (
    TOOL_ALIASES,
    build_tool_handlers,
    create_configured_executor,
    host_tool_names,
    register_remote_handlers,
    register_tool_handlers,
    resolve_tool_alias,
    settings_from_config,
)
from .host_bridge import HostBridgeError, HttpHostBridge, create_remote_handlers

__all__ = [
    "HandlerSettings",
    "WorkspaceContext",
    "WorkspaceNotSetError",
    "CommandOutput",
    "run_shell",
    "ReadToolHandlers",
    "WriteToolHandlers",
    "ExecuteToolHandlers",
    "GitToolHandlers",
    "AnalysisToolHandlers",
    "TOOL_ALIASES",
    "build_tool_handlers",
    "create_configured_executor",
    "host_tool_names",
    "register_remote_handlers",
    "register_tool_handlers",
    "resolve_tool_alias",
    "settings_from_config",
    "HostBridgeError",
    "HttpHostBridge",
    "create_remote_handlers",
]
