"""Subagent-related data models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .enums import AgentScope, ModelProvider, RiskLevel


ALL_TOOLS = "all"
INHERIT_MODEL = "inherit"


@dataclass
class SubagentConfig:
    """子智能体配置

    tools 为 ``"all"`` 时授予全部工具，否则为显式的工具名列表。
    model 为 ``"inherit"`` 时使用运行时默认模型。
    """
    id: str
    name: str
    description: str
    system_prompt: str
    model: str = INHERIT_MODEL
    tools: Union[str, List[str]] = field(default_factory=list)
    max_iterations: int = 15
    temperature: float = 0.7
    max_tokens: Optional[int] = None
    keywords: List[str] = field(default_factory=list)
    patterns: List[str] = field(default_factory=list)
    priority: int = 50
    tags: List[str] = field(default_factory=list)
    scope: AgentScope = AgentScope.USER
    enabled: bool = True
    version: str = "1.0.0"
    author: Optional[str] = None

    @property
    def grants_all_tools(self) -> bool:
        return self.tools == ALL_TOOLS

    @property
    def tool_names(self) -> List[str]:
        """显式授予的工具名（tools 为 "all" 时返回空列表）"""
        if isinstance(self.tools, str):
            return []
        return list(self.tools)

    def to_dict(self) -> Dict[str, Any]:
        """序列化为字典"""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "model": self.model,
            "tools": self.tools if isinstance(self.tools, str) else list(self.tools),
            "max_iterations": self.max_iterations,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "keywords": list(self.keywords),
            "patterns": list(self.patterns),
            "priority": self.priority,
            "tags": list(self.tags),
            "scope": self.scope.value,
            "enabled": self.enabled,
            "author": self.author,
            "system_prompt": self.system_prompt,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubagentConfig":
        """从字典反序列化，同时接受 snake_case 与 camelCase 键名"""
        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        scope_value = pick("scope", default=AgentScope.USER.value)
        try:
            scope = scope_value if isinstance(scope_value, AgentScope) else AgentScope(scope_value)
        except ValueError:
            scope = AgentScope.USER

        tools = pick("tools", default=[])
        if not isinstance(tools, str):
            tools = list(tools)

        return cls(
            id=str(pick("id", default="")),
            name=str(pick("name", default="")),
            description=str(pick("description", default="")),
            system_prompt=str(pick("system_prompt", "systemPrompt", default="")),
            model=str(pick("model", default=INHERIT_MODEL)),
            tools=tools,
            max_iterations=pick("max_iterations", "maxIterations", default=15),
            temperature=pick("temperature", default=0.7),
            max_tokens=pick("max_tokens", "maxTokens"),
            keywords=list(pick("keywords", default=[])),
            patterns=list(pick("patterns", default=[])),
            priority=pick("priority", default=50),
            tags=list(pick("tags", default=[])),
            scope=scope,
            enabled=bool(pick("enabled", default=True)),
            version=str(pick("version", default="1.0.0")),
            author=pick("author"),
        )


@dataclass
class ValidationResult:
    """配置校验结果"""
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class ModelBinding:
    """模型绑定：显式的 (provider, model) 对"""
    provider: ModelProvider
    model: str
    base_url: Optional[str] = None
    default_parameters: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AgentDescriptor:
    """交给运行时执行的智能体描述

    binding 为 None 表示继承运行时的默认模型。
    tools 为通用函数调用视图 ``{name, description, parameters}``。
    """
    agent_id: str
    name: str
    description: str
    system_prompt: str
    binding: Optional[ModelBinding]
    tools: List[Dict[str, Any]] = field(default_factory=list)
    temperature: float = 0.7
    max_tokens: Optional[int] = None
    max_iterations: int = 15

    @property
    def tool_names(self) -> List[str]:
        return [tool["name"] for tool in self.tools]

    @property
    def model_name(self) -> str:
        return self.binding.model if self.binding else INHERIT_MODEL


@dataclass
class ToolCallTrace:
    """子智能体执行过程中的一次工具调用"""
    name: str
    input: Any = None
    output: Any = None
    call_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"name": self.name, "input": self.input, "output": self.output}
        if self.call_id is not None:
            result["id"] = self.call_id
        return result


@dataclass
class SubagentExecutionResult:
    """子智能体执行结果"""
    success: bool
    agent_id: str
    agent_name: str
    output: str
    model: str
    execution_time_ms: float
    tool_calls: Optional[List[ToolCallTrace]] = None
    error: Optional[str] = None
    iterations: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "agent_id": self.agent_id,
            "agent_name": self.agent_name,
            "output": self.output,
            "model": self.model,
            "execution_time_ms": self.execution_time_ms,
            "tool_calls": [t.to_dict() for t in self.tool_calls] if self.tool_calls is not None else None,
            "error": self.error,
            "iterations": self.iterations,
        }


@dataclass
class PermissionCheck:
    """权限检查结果"""
    allowed: bool
    reason: Optional[str] = None
    suggestion: Optional[str] = None


@dataclass
class ToolCompatibility:
    """工具列表兼容性检查结果"""
    compatible: bool
    issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class ToolUsageReport:
    """一次工具使用尝试的记录"""
    tool_name: str
    allowed: bool
    risk_level: RiskLevel
    timestamp: float


@dataclass
class UsageStats:
    """单个智能体的工具使用统计"""
    total_attempts: int = 0
    allowed_uses: int = 0
    denied_uses: int = 0
    tools_used: Dict[str, int] = field(default_factory=dict)
    risk_profile: Dict[str, int] = field(
        default_factory=lambda: {level.value: 0 for level in RiskLevel}
    )
