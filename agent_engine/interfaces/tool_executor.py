"""Tool Executor interface."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..models.tool import ToolCall, ToolExecution, ToolHandler, ToolResult


class IToolExecutor(ABC):
    """工具执行器接口"""

    @abstractmethod
    def register_handler(self, tool_name: str, handler: ToolHandler) -> None:
        """注册工具处理函数"""
        pass

    @abstractmethod
    def has_handler(self, tool_name: str) -> bool:
        """是否已注册处理函数"""
        pass

    @abstractmethod
    async def execute(self, call: ToolCall) -> ToolExecution:
        """
        执行单个工具调用

        Args:
            call: 工具调用

        Returns:
            执行记录（失败不抛异常，体现在 result 中）
        """
        pass

    @abstractmethod
    async def batch(
        self,
        calls: List[ToolCall],
        parallel: bool = True,
        stop_on_error: bool = False,
        max_concurrency: Optional[int] = None,
    ) -> List[ToolExecution]:
        """批量执行，结果顺序与输入顺序一致"""
        pass

    @abstractmethod
    async def batch_read(self, paths: List[str], chunk_size: int = 20) -> Dict[str, ToolResult]:
        """批量读取文件"""
        pass

    @abstractmethod
    def clear_cache(self) -> None:
        """清空结果缓存"""
        pass
