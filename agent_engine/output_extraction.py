"""Final-output and tool-call trace extraction from runtime messages.

``extract_output`` walks an explicit priority list of strategies; the first
one that yields a non-empty string wins, and the empty string is the final
fallback.
"""

from typing import Any, Callable, List, Optional

from .models.message import (
    AgentRunResult,
    RunResult,
    RuntimeMessage,
    TextMessage,
    ToolCallMessage,
    ToolResultMessage,
    parse_messages,
)
from .models.subagent import ToolCallTrace


def _coerce_content(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: List[str] = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and (part.get("type") == "text" or part.get("text")):
                text = part.get("text")
                if isinstance(text, str):
                    parts.append(text)
        return "\n".join(parts)
    return ""


def _last_assistant_text(messages: List[RuntimeMessage]) -> Optional[str]:
    # 任何 assistant 消息都算，包括同时携带工具调用的消息
    for message in reversed(messages):
        if isinstance(message, ToolResultMessage) or getattr(message, "role", None) != "assistant":
            continue
        text = message.text()
        if text.strip():
            return text
    return None


def _last_string_text(messages: List[RuntimeMessage]) -> Optional[str]:
    # typed text 消息或未标注类型的消息，content 必须是非空字符串
    for message in reversed(messages):
        if isinstance(message, TextMessage) and isinstance(message.content, str) and message.content.strip():
            return message.content
    return None


def _last_content_coerced(messages: List[RuntimeMessage]) -> Optional[str]:
    if not messages:
        return None
    text = _coerce_content(getattr(messages[-1], "content", None))
    return text if text.strip() else None


OUTPUT_STRATEGIES: List[Callable[[List[RuntimeMessage]], Optional[str]]] = [
    _last_assistant_text,
    _last_string_text,
    _last_content_coerced,
]


def extract_output(raw_messages: Optional[List[Any]]) -> str:
    """从一轮输出消息中提取最终文本"""
    messages = parse_messages(raw_messages)
    for strategy in OUTPUT_STRATEGIES:
        text = strategy(messages)
        if text:
            return text
    return ""


def extract_network_output(result: RunResult) -> str:
    """取网络最后一轮结果的输出文本"""
    results = result.state.results
    if not results:
        return ""
    return extract_output(results[-1].output)


def has_tool_calls(agent_result: Optional[AgentRunResult]) -> bool:
    """该轮输出中是否包含工具调用"""
    if agent_result is None:
        return False
    return any(isinstance(message, ToolCallMessage) for message in parse_messages(agent_result.output))


def extract_tool_calls(raw_messages: Optional[List[Any]]) -> List[ToolCallTrace]:
    """
    提取工具调用轨迹

    工具结果优先按 tool_call_id 与调用配对；缺少 id 时配对到最近一个尚未配对的调用。
    """
    traces: List[ToolCallTrace] = []
    paired: List[bool] = []

    for message in parse_messages(raw_messages):
        if isinstance(message, ToolCallMessage):
            for invocation in message.tools:
                traces.append(ToolCallTrace(name=invocation.name, input=invocation.input, call_id=invocation.id))
                paired.append(False)
        elif isinstance(message, ToolResultMessage):
            index = _find_pair(traces, paired, message.tool_call_id)
            if index is not None:
                traces[index].output = message.content
                paired[index] = True

    return traces


def _find_pair(traces: List[ToolCallTrace], paired: List[bool], call_id: Optional[str]) -> Optional[int]:
    if call_id is not None:
        for index, trace in enumerate(traces):
            if trace.call_id == call_id and not paired[index]:
                return index
    for index in range(len(traces) - 1, -1, -1):
        if not paired[index]:
            return index
    return None


def extract_run_tool_calls(result: RunResult) -> List[ToolCallTrace]:
    """汇总所有轮次的工具调用轨迹"""
    traces: List[ToolCallTrace] = []
    for agent_result in result.state.results:
        traces.extend(extract_tool_calls(agent_result.output))
    return traces
