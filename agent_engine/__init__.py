"""
Agent Engine - 工具执行与子智能体编排引擎

This package provides the tool and subagent layer of a coding assistant:
- A typed catalog of workspace tools with parameters, timeouts and cache policy
- A concurrent tool executor with alias resolution, timeouts and an LRU+TTL cache
- Workspace tool handlers (read, write, execute, git, analysis) plus an HTTP host bridge
- Subagent definitions loaded from markdown files, validated and routed by keywords
- Subagent execution on a pluggable runtime with timeouts and output extraction

Core Components:
- ToolExecutor: Tool dispatch, batching and caching
- WorkspaceContext: Workspace root shared by all handlers
- ToolPermissionManager: Tool grants and usage auditing
- SubagentFactory: Config validation and runtime descriptor creation
- SubagentRegistry: User/project agent definitions
- SubagentExecutor / SubagentService: Running subagents
- DashScopeRuntime: Qwen-backed agent runtime

Usage:
    from agent_engine import (
        DashScopeRuntime, SubagentRegistry, SubagentService, create_configured_executor,
    )

    executor = create_configured_executor(workspace="/path/to/project")
    registry = SubagentRegistry()
    registry.load_all()
    service = SubagentService(registry, DashScopeRuntime(executor))
    result = await service.run("code-reviewer", "Review src/app.py")
"""

__version__ = "0.1.0"

# Core models
from .models import (
    # Enums
    AgentScope,
    ExecutionStatus,
    ExecutorType,
    ModelProvider,
    RiskLevel,
    ToolCategory,
    # Tool models
    ToolCall,
    ToolExecution,
    ToolParameter,
    ToolResult,
    ToolSchema,
    create_tool_call,
    # Subagent models
    AgentDescriptor,
    ModelBinding,
    SubagentConfig,
    SubagentExecutionResult,
    ToolCallTrace,
    ValidationResult,
    # Runtime messages
    AgentRunResult,
    NetworkState,
    RunResult,
    parse_message,
)

# Interfaces
from .interfaces import IAgentRuntime, IHostBridge, IToolExecutor, Router

# Configuration
from .config import ConfigError, EngineConfig, EngineConfigLoader

# Tool layer
from .tool_schema import (
    TOOL_DEFINITIONS,
    get_all_tool_names,
    get_tool_by_name,
    to_agent_tools,
    to_openai_functions,
)
from .tool_executor import (
    ToolExecutor,
    create_tool_executor,
    get_tool_executor,
    reset_tool_executor,
)
from .tools import (
    HttpHostBridge,
    HostBridgeError,
    WorkspaceContext,
    WorkspaceNotSetError,
    create_configured_executor,
    register_tool_handlers,
    resolve_tool_alias,
)

# Subagents
from .permissions import ToolPermissionManager
from .model_mapper import resolve_model
from .subagent_factory import ConfigValidationError, SubagentFactory
from .subagent_registry import SubagentNotFoundError, SubagentRegistry, SubagentRegistryError
from .output_extraction import extract_output, extract_tool_calls
from .subagent_executor import SubagentExecutor, create_subagent_executor, execute_with_subagent
from .subagent_service import SubagentService

# Runtime
from .runtime import DashScopeRuntime, RetryConfig, RuntimeLoopError

# Utils
from .utils import configure_root_logger, get_logger

__all__ = [
    "__version__",
    # Enums
    "AgentScope",
    "ExecutionStatus",
    "ExecutorType",
    "ModelProvider",
    "RiskLevel",
    "ToolCategory",
    # Models
    "ToolCall",
    "ToolExecution",
    "ToolParameter",
    "ToolResult",
    "ToolSchema",
    "create_tool_call",
    "AgentDescriptor",
    "ModelBinding",
    "SubagentConfig",
    "SubagentExecutionResult",
    "ToolCallTrace",
    "ValidationResult",
    "AgentRunResult",
    "NetworkState",
    "RunResult",
    "parse_message",
    # Interfaces
    "IAgentRuntime",
    "IHostBridge",
    "IToolExecutor",
    "Router",
    # Config
    "ConfigError",
    "EngineConfig",
    "EngineConfigLoader",
    # Tools
    "TOOL_DEFINITIONS",
    "get_all_tool_names",
    "get_tool_by_name",
    "to_agent_tools",
    "to_openai_functions",
    "ToolExecutor",
    "create_tool_executor",
    "get_tool_executor",
    "reset_tool_executor",
    "HttpHostBridge",
    "HostBridgeError",
    "WorkspaceContext",
    "WorkspaceNotSetError",
    "create_configured_executor",
    "register_tool_handlers",
    "resolve_tool_alias",
    # Subagents
    "ToolPermissionManager",
    "resolve_model",
    "ConfigValidationError",
    "SubagentFactory",
    "SubagentNotFoundError",
    "SubagentRegistry",
    "SubagentRegistryError",
    "extract_output",
    "extract_tool_calls",
    "SubagentExecutor",
    "create_subagent_executor",
    "execute_with_subagent",
    "SubagentService",
    # Runtime
    "DashScopeRuntime",
    "RetryConfig",
    "RuntimeLoopError",
    # Utils
    "configure_root_logger",
    "get_logger",
]
