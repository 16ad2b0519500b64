"""Workspace context shared by the tool handlers."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class WorkspaceNotSetError(Exception):
    """工作区根目录未设置"""
    pass


@dataclass
class HandlerSettings:
    """handler 行为参数

    Attributes:
        max_file_chars: read_file 返回内容的最大字符数
        command_timeout: run_command 默认超时（毫秒）
        command_max_timeout: run_command 超时上限（毫秒）
        max_output_chars: verify_changes 输出的最大字符数
    """
    max_file_chars: int = 50000
    command_timeout: int = 30000
    command_max_timeout: int = 120000
    max_output_chars: int = 10000


class WorkspaceContext:
    """工作区上下文

    每组 handler 持有一个上下文对象，而不是共享进程级的可变根目录。
    相对路径拼接到根目录；绝对路径原样通过（不做沙箱限制）。
    """

    def __init__(self, root: Optional[str] = None, settings: Optional[HandlerSettings] = None):
        self._root = os.path.abspath(root) if root else None
        self.settings = settings or HandlerSettings()

    @property
    def root(self) -> str:
        if not self._root:
            raise WorkspaceNotSetError("Workspace path not set")
        return self._root

    @property
    def is_set(self) -> bool:
        return bool(self._root)

    def set_root(self, root: str) -> None:
        self._root = os.path.abspath(root) if root else None

    def resolve(self, path: Optional[str] = None) -> str:
        """解析路径：空路径为根目录，绝对路径原样返回"""
        if path and os.path.isabs(path):
            return path
        root = self.root
        if not path or path == ".":
            return root
        return os.path.normpath(os.path.join(root, path))

    def relative(self, path: str) -> str:
        """相对于根目录的路径（根目录外的路径原样返回）"""
        if self._root and self.is_within_root(path):
            rel = os.path.relpath(path, self._root)
            return "." if rel == "." else rel
        return path

    def is_within_root(self, path: str) -> bool:
        """路径是否位于根目录内（仅供参考，handler 不强制）"""
        if not self._root:
            return False
        resolved = Path(self.resolve(path)).resolve()
        root = Path(self._root).resolve()
        return resolved == root or root in resolved.parents
