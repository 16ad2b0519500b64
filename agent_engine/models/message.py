"""Runtime message types.

Runtime replies arrive as loosely-shaped dictionaries. ``parse_message`` maps
each of them onto one variant of a closed set of message types so the output
and trace extraction code can match on the variant instead of probing keys.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class ToolInvocation:
    """模型请求的一次工具调用"""
    name: str
    input: Any = None
    id: Optional[str] = None


def segment_text(content: Any) -> str:
    """提取文本；分段列表只取 type == "text" 的片段，按行拼接"""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(
            part["text"]
            for part in content
            if isinstance(part, dict) and part.get("type") == "text" and isinstance(part.get("text"), str)
        )
    return ""


@dataclass
class TextMessage:
    """文本消息（content 可能是字符串或分段列表）"""
    role: str
    content: Any
    typed: bool = True

    def text(self) -> str:
        return segment_text(self.content)


@dataclass
class ToolCallMessage:
    """工具调用消息"""
    role: str
    tools: List[ToolInvocation] = field(default_factory=list)
    content: Any = None

    def text(self) -> str:
        """附带在工具调用上的文本（模型边说明边调用工具时）"""
        return segment_text(self.content)


@dataclass
class ToolResultMessage:
    """工具结果消息"""
    role: str
    content: Any = None
    tool_call_id: Optional[str] = None


@dataclass
class UnknownMessage:
    """无法识别的消息，保留原始内容"""
    raw: Any

    @property
    def content(self) -> Any:
        if isinstance(self.raw, dict):
            return self.raw.get("content")
        return None

    @property
    def role(self) -> Optional[str]:
        if isinstance(self.raw, dict):
            return self.raw.get("role")
        return None

    def text(self) -> str:
        return segment_text(self.content)


RuntimeMessage = Union[TextMessage, ToolCallMessage, ToolResultMessage, UnknownMessage]


def _parse_tools(raw: Dict[str, Any]) -> List[ToolInvocation]:
    tools: List[ToolInvocation] = []
    for item in raw.get("tools") or []:
        if isinstance(item, dict):
            tools.append(ToolInvocation(
                name=item.get("name", ""),
                input=item.get("input", item.get("arguments")),
                id=item.get("id"),
            ))
    # OpenAI 风格的 tool_calls
    for item in raw.get("tool_calls") or []:
        if not isinstance(item, dict):
            continue
        function = item.get("function") or {}
        tools.append(ToolInvocation(
            name=function.get("name", item.get("name", "")),
            input=function.get("arguments", item.get("input")),
            id=item.get("id"),
        ))
    return tools


def parse_message(raw: Any) -> RuntimeMessage:
    """将运行时返回的原始消息映射为带标签的消息类型"""
    if not isinstance(raw, dict):
        return UnknownMessage(raw=raw)

    msg_type = raw.get("type")
    role = raw.get("role", "")

    if msg_type == "tool_call" or raw.get("tools") or raw.get("tool_calls"):
        return ToolCallMessage(role=role or "assistant", tools=_parse_tools(raw), content=raw.get("content"))

    if msg_type == "tool_result" or role == "tool":
        return ToolResultMessage(
            role=role or "tool",
            content=raw.get("content"),
            tool_call_id=raw.get("tool_call_id") or raw.get("id"),
        )

    if msg_type == "text":
        return TextMessage(role=role, content=raw.get("content"))

    if msg_type is None and "content" in raw:
        return TextMessage(role=role, content=raw.get("content"), typed=False)

    return UnknownMessage(raw=raw)


def parse_messages(raw_messages: Optional[List[Any]]) -> List[RuntimeMessage]:
    return [parse_message(raw) for raw in raw_messages or []]


@dataclass
class AgentRunResult:
    """单轮智能体输出"""
    agent_name: str
    output: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class NetworkState:
    """网络运行状态：每轮结果按顺序保存"""
    results: List[AgentRunResult] = field(default_factory=list)


@dataclass
class RunResult:
    """运行时返回值"""
    state: NetworkState = field(default_factory=NetworkState)
