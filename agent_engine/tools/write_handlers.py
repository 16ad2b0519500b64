"""File-mutating tool handlers."""

import os
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..models.tool import ToolHandler, ToolResult
from ..utils.logging import get_logger
from .context import WorkspaceContext

logger = get_logger("tools.write")

TEXT_NOT_FOUND = "Text not found in file. Make sure to use exact text from the file."


def _normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n")


def replace_unique(content: str, old: str, new: str) -> Tuple[Optional[str], Optional[str]]:
    """
    替换唯一出现的一段文本

    Returns:
        (新内容, 错误信息)；成功时错误信息为 None，失败时新内容为 None
    """
    if not old:
        return None, "old_string must not be empty"
    count = content.count(old)
    if count == 0:
        return None, TEXT_NOT_FOUND
    if count > 1:
        return None, f"Text appears {count} times. Provide more context to make it unique."
    return content.replace(old, new, 1), None


def replace_lines(content: str, start_line: Any, end_line: Any, new_text: str) -> Tuple[Optional[str], Optional[str]]:
    """替换 [start_line, end_line] 行（从 1 开始，闭区间）"""
    lines = content.split("\n")
    try:
        start = int(start_line)
        end = int(end_line if end_line is not None else start_line)
    except (TypeError, ValueError):
        return None, "start_line and end_line must be integers"
    if start < 1 or end < start or end > len(lines):
        return None, f"Line range {start}-{end} is out of bounds (file has {len(lines)} lines)"
    replacement = new_text.split("\n") if new_text else []
    return "\n".join(lines[:start - 1] + replacement + lines[end:]), None


class WriteToolHandlers:
    """
    写操作工具集合

    Args:
        context: 工作区上下文
        verifier: smart_edit 在 verify=True 时调用的校验函数（通常是 verify_changes）
    """

    def __init__(
        self,
        context: WorkspaceContext,
        verifier: Optional[Callable[[Dict[str, Any]], Awaitable[ToolResult]]] = None,
    ):
        self._context = context
        self._verifier = verifier

    def handlers(self) -> Dict[str, ToolHandler]:
        return {
            "create_file": self.create_file,
            "write_file": self.write_file,
            "edit_file": self.edit_file,
            "smart_edit": self.smart_edit,
            "delete_file": self.delete_file,
        }

    @staticmethod
    def _write(abs_path: str, content: str) -> None:
        parent = os.path.dirname(abs_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(abs_path, "w", encoding="utf-8") as f:
            f.write(content)

    async def create_file(self, args: Dict[str, Any]) -> ToolResult:
        path = args.get("path")
        if not path:
            return ToolResult.fail("Missing required parameter: path")
        abs_path = self._context.resolve(path)
        if os.path.exists(abs_path):
            return ToolResult.fail(f"File already exists: {path}")
        content = args.get("content") or ""
        try:
            self._write(abs_path, content)
        except OSError as e:
            return ToolResult.fail(f"Failed to create file: {e}")
        logger.info("Created %s", abs_path)
        return ToolResult.ok({"path": path, "size": len(content), "message": f"Created {path}"})

    async def write_file(self, args: Dict[str, Any]) -> ToolResult:
        path = args.get("path")
        if not path:
            return ToolResult.fail("Missing required parameter: path")
        content = args.get("content")
        if content is None:
            return ToolResult.fail("Missing required parameter: content")
        abs_path = self._context.resolve(path)
        try:
            self._write(abs_path, content)
        except OSError as e:
            return ToolResult.fail(f"Failed to write file: {e}")
        logger.info("Wrote %s", abs_path)
        return ToolResult.ok({"path": path, "size": len(content), "message": f"Wrote {path}"})

    def _load(self, path: str) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        abs_path = self._context.resolve(path)
        if not os.path.isfile(abs_path):
            return None, None, f"File not found: {path}"
        try:
            with open(abs_path, "r", encoding="utf-8", newline="") as f:
                return abs_path, _normalize_newlines(f.read()), None
        except (OSError, UnicodeDecodeError) as e:
            return None, None, f"Failed to read file: {e}"

    async def edit_file(self, args: Dict[str, Any]) -> ToolResult:
        """
        替换文件中唯一出现的 old_string

        未找到或出现多次时失败，文件保持不变。
        """
        path = args.get("path")
        if not path:
            return ToolResult.fail("Missing required parameter: path")
        if args.get("old_string") is None or args.get("new_string") is None:
            return ToolResult.fail("Missing required parameter: old_string and new_string")

        abs_path, content, error = self._load(path)
        if error:
            return ToolResult.fail(error)

        updated, error = replace_unique(
            content,
            _normalize_newlines(args["old_string"]),
            _normalize_newlines(args["new_string"]),
        )
        if error:
            return ToolResult.fail(error)

        try:
            self._write(abs_path, updated)
        except OSError as e:
            return ToolResult.fail(f"Failed to write file: {e}")
        return ToolResult.ok({"path": path, "message": f"Edited {path}"})

    async def smart_edit(self, args: Dict[str, Any]) -> ToolResult:
        """
        对同一文件按顺序应用多处修改

        每处修改是 {find, replace} 或 {start_line, end_line, content}，
        在内存中依次应用，任一失败则整体放弃，不写入文件。
        """
        path = args.get("path")
        edits = args.get("edits")
        if not path:
            return ToolResult.fail("Missing required parameter: path")
        if not edits or not isinstance(edits, list):
            return ToolResult.fail("Missing required parameter: edits")

        abs_path, content, error = self._load(path)
        if error:
            return ToolResult.fail(error)

        errors: List[str] = []
        for index, edit in enumerate(edits, start=1):
            if not isinstance(edit, dict):
                errors.append(f"Edit {index}: must be an object")
                continue
            if "find" in edit:
                updated, error = replace_unique(
                    content,
                    _normalize_newlines(edit.get("find") or ""),
                    _normalize_newlines(edit.get("replace") or ""),
                )
            elif "start_line" in edit:
                updated, error = replace_lines(
                    content,
                    edit.get("start_line"),
                    edit.get("end_line"),
                    _normalize_newlines(edit.get("content") or ""),
                )
            else:
                updated, error = None, "expected {find, replace} or {start_line, end_line, content}"
            if error:
                errors.append(f"Edit {index}: {error}")
                break
            content = updated

        if errors:
            return ToolResult.fail("No changes written. " + "; ".join(errors))

        try:
            self._write(abs_path, content)
        except OSError as e:
            return ToolResult.fail(f"Failed to write file: {e}")

        data: Dict[str, Any] = {
            "path": path,
            "edits_applied": len(edits),
            "message": f"Applied {len(edits)} edit(s) to {path}",
        }
        if args.get("verify") and self._verifier is not None:
            verification = await self._verifier({"scope": "type-check"})
            data["verification"] = verification.data if verification.success else {"error": verification.error}
        return ToolResult.ok(data)

    async def delete_file(self, args: Dict[str, Any]) -> ToolResult:
        path = args.get("path")
        if not path:
            return ToolResult.fail("Missing required parameter: path")
        abs_path = self._context.resolve(path)
        if not os.path.exists(abs_path):
            return ToolResult.fail(f"File not found: {path}")
        if os.path.isdir(abs_path):
            return ToolResult.fail(f"Path is a directory: {path}")
        try:
            os.remove(abs_path)
        except OSError as e:
            return ToolResult.fail(f"Failed to delete file: {e}")
        logger.info("Deleted %s", abs_path)
        return ToolResult.ok({"path": path, "message": f"Deleted {path}"})
