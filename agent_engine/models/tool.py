"""Tool-related data models."""

import random
import string
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .enums import ExecutionStatus, ExecutorType, ToolCategory


@dataclass
class ToolParameter:
    """工具参数描述（JSON Schema 子集）"""
    type: str
    description: str = ""
    required: bool = False
    default: Any = None
    enum: Optional[List[str]] = None
    items: Optional[Dict[str, Any]] = None
    properties: Optional[Dict[str, Any]] = None

    def to_json_schema(self) -> Dict[str, Any]:
        """转换为 JSON Schema 片段（不含 required 标记）"""
        schema: Dict[str, Any] = {"type": self.type}
        if self.description:
            schema["description"] = self.description
        if self.default is not None:
            schema["default"] = self.default
        if self.enum:
            schema["enum"] = list(self.enum)
        if self.items is not None:
            schema["items"] = self.items
        if self.properties is not None:
            schema["properties"] = self.properties
        return schema


@dataclass
class ToolSchema:
    """工具定义

    Attributes:
        name: 唯一名称
        description: 面向模型的说明
        category: 工具类别
        executor: 执行位置
        parallel: 是否可与其他调用并发
        timeout: 超时时间（毫秒）
        retryable: 失败后调用方是否可以安全重试
        cacheable: 成功结果是否可缓存
        cache_timeout: 缓存有效期（毫秒）
        params: 参数名 -> 参数描述
    """
    name: str
    description: str
    category: ToolCategory
    executor: ExecutorType = ExecutorType.HOST
    parallel: bool = False
    timeout: int = 30000
    retryable: bool = False
    cacheable: bool = False
    cache_timeout: Optional[int] = None
    params: Dict[str, ToolParameter] = field(default_factory=dict)

    @property
    def required_params(self) -> List[str]:
        return [name for name, param in self.params.items() if param.required]

    @property
    def parameters(self) -> Dict[str, Any]:
        """参数的 JSON Schema 对象形式"""
        return {
            "type": "object",
            "properties": {
                name: param.to_json_schema() for name, param in self.params.items()
            },
            "required": self.required_params,
        }


# handler 返回 ToolResult 的可等待对象
ToolHandler = Callable[[Dict[str, Any]], Awaitable["ToolResult"]]


@dataclass
class ToolResult:
    """工具执行结果

    success 为 False 时 error 必须有值；success 为 True 时 error 为 None。
    cached 仅在结果来自缓存时为 True。
    """
    success: bool
    data: Any = None
    error: Optional[str] = None
    duration: Optional[float] = None  # 毫秒
    cached: bool = False

    @classmethod
    def ok(cls, data: Any = None) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, data: Any = None) -> "ToolResult":
        return cls(success=False, error=error or "Unknown error", data=data)

    def to_dict(self) -> Dict[str, Any]:
        """序列化为字典"""
        result: Dict[str, Any] = {"success": self.success}
        if self.data is not None:
            result["data"] = self.data
        if self.error is not None:
            result["error"] = self.error
        if self.duration is not None:
            result["duration"] = self.duration
        if self.cached:
            result["cached"] = True
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolResult":
        """从字典反序列化"""
        success = bool(data.get("success", False))
        error = data.get("error")
        if not success and not error:
            error = "Unknown error"
        return cls(
            success=success,
            data=data.get("data"),
            error=None if success else error,
            duration=data.get("duration"),
            cached=bool(data.get("cached", False)),
        )


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ToolCall:
    """一次工具调用请求（不可变）"""
    id: str
    tool: str
    args: Dict[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=_now_ms)


def create_tool_call(tool: str, args: Optional[Dict[str, Any]] = None) -> ToolCall:
    """创建工具调用，id 形如 ``<tool>_<毫秒时间戳>_<6位随机串>``"""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    now = _now_ms()
    return ToolCall(id=f"{tool}_{now}_{suffix}", tool=tool, args=dict(args or {}), timestamp=now)


@dataclass
class ToolExecution:
    """工具调用的执行记录"""
    call: ToolCall
    status: ExecutionStatus = ExecutionStatus.PENDING
    result: Optional[ToolResult] = None
    start_time: Optional[int] = None
    end_time: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.call.id,
            "tool": self.call.tool,
            "args": self.call.args,
            "status": self.status.value,
            "result": self.result.to_dict() if self.result else None,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }


@dataclass
class CacheEntry:
    """缓存条目"""
    value: ToolResult
    timestamp: float  # 写入时间（毫秒）
    ttl: float        # 有效期（毫秒）

    def is_expired(self, now_ms: float) -> bool:
        return now_ms - self.timestamp > self.ttl
