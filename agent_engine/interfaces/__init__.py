"""Interfaces for the tool engine."""

from .tool_executor import IToolExecutor
from .agent_runtime import IAgentRuntime, Router
from .host_bridge import IHostBridge

__all__ = [
    "IToolExecutor",
    "IAgentRuntime",
    "Router",
    "IHostBridge",
]
