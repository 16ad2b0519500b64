"""Enumeration types for the tool engine."""

from enum import Enum


class ToolCategory(Enum):
    """工具类别"""
    READ = "read"
    WRITE = "write"
    EXECUTE = "execute"
    GIT = "git"
    ANALYSIS = "analysis"


class ExecutorType(Enum):
    """工具执行位置"""
    HOST = "host"                  # 宿主进程（文件系统、进程）
    ORCHESTRATOR = "orchestrator"  # 编排器进程内
    HYBRID = "hybrid"              # 两者协作


class ExecutionStatus(Enum):
    """工具执行状态"""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    CANCELLED = "cancelled"


class RiskLevel(Enum):
    """工具风险等级"""
    SAFE = "safe"
    MODERATE = "moderate"
    DESTRUCTIVE = "destructive"


class AgentScope(Enum):
    """子智能体定义来源"""
    USER = "user"
    PROJECT = "project"
    PLUGIN = "plugin"


class ModelProvider(Enum):
    """模型提供方"""
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GROQ = "groq"
    DASHSCOPE = "dashscope"
