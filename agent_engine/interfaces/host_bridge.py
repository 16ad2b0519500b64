"""Host Bridge interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict

from ..models.tool import ToolResult


class IHostBridge(ABC):
    """宿主桥接接口：把工具调用转发到宿主进程执行"""

    @abstractmethod
    async def call_tool(self, tool: str, args: Dict[str, Any]) -> ToolResult:
        """转发一次工具调用"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """释放连接"""
        pass
