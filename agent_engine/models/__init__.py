"""Data models for the tool engine."""

from .enums import (
    AgentScope,
    ExecutionStatus,
    ExecutorType,
    ModelProvider,
    RiskLevel,
    ToolCategory,
)
from .tool import (
    CacheEntry,
    ToolCall,
    ToolExecution,
    ToolHandler,
    ToolParameter,
    ToolResult,
    ToolSchema,
    create_tool_call,
)
from .subagent import (
    ALL_TOOLS,
    INHERIT_MODEL,
    AgentDescriptor,
    ModelBinding,
    PermissionCheck,
    SubagentConfig,
    SubagentExecutionResult,
    ToolCallTrace,
    ToolCompatibility,
    ToolUsageReport,
    UsageStats,
    ValidationResult,
)
from .message import (
    AgentRunResult,
    NetworkState,
    RunResult,
    RuntimeMessage,
    TextMessage,
    ToolCallMessage,
    ToolInvocation,
    ToolResultMessage,
    UnknownMessage,
    parse_message,
    parse_messages,
)

__all__ = [
    # Enums
    "AgentScope",
    "ExecutionStatus",
    "ExecutorType",
    "ModelProvider",
    "RiskLevel",
    "ToolCategory",
    # Tool
    "CacheEntry",
    "ToolCall",
    "ToolExecution",
    "ToolHandler",
    "ToolParameter",
    "ToolResult",
    "ToolSchema",
    "create_tool_call",
    # Subagent
    "ALL_TOOLS",
    "INHERIT_MODEL",
    "AgentDescriptor",
    "ModelBinding",
    "PermissionCheck",
    "SubagentConfig",
    "SubagentExecutionResult",
    "ToolCallTrace",
    "ToolCompatibility",
    "ToolUsageReport",
    "UsageStats",
    "ValidationResult",
    # Messages
    "AgentRunResult",
    "NetworkState",
    "RunResult",
    "RuntimeMessage",
    "TextMessage",
    "ToolCallMessage",
    "ToolInvocation",
    "ToolResultMessage",
    "UnknownMessage",
    "parse_message",
    "parse_messages",
]
