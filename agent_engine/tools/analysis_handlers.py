"""Static-analysis tool handlers."""

import os
import re
from typing import Any, Dict, List

from ..models.tool import ToolHandler, ToolResult
from .context import WorkspaceContext

_IMPORT_PATTERNS = [
    re.compile(r"""\bimport\s+(?:[\w*{}\s,]+?\s+from\s+)?['"]([^'"]+)['"]"""),
    re.compile(r"""\brequire\(\s*['"]([^'"]+)['"]\s*\)"""),
    re.compile(r"""\bimport\(\s*['"]([^'"]+)['"]\s*\)"""),
    re.compile(r"^\s*from\s+([\w.]+)\s+import\b", re.MULTILINE),
    re.compile(r"^\s*import\s+([\w.]+(?:\s*,\s*[\w.]+)*)\s*$", re.MULTILINE),
    re.compile(r"^\s*use\s+([\w:]+)", re.MULTILINE),
]

_EXPORT_PATTERN = re.compile(
    r"\bexport\s+(?:default\s+)?(?:async\s+)?(?:function\*?|class|const|let|var|interface|type|enum)\s+(\w+)"
)


def extract_imports(source: str) -> List[str]:
    """返回去重后的导入模块（按模式分组，组内按出现顺序）"""
    found: List[str] = []
    for pattern in _IMPORT_PATTERNS:
        for match in pattern.finditer(source):
            for name in match.group(1).split(","):
                name = name.strip()
                if name and name not in found:
                    found.append(name)
    return found


class AnalysisToolHandlers:
    """分析工具集合"""

    def __init__(self, context: WorkspaceContext):
        self._context = context

    def handlers(self) -> Dict[str, ToolHandler]:
        return {
            "analyze_imports": self.analyze_imports,
            "get_diagnostics": self.get_diagnostics,
        }

    async def analyze_imports(self, args: Dict[str, Any]) -> ToolResult:
        path = args.get("path")
        if not path:
            return ToolResult.fail("Missing required parameter: path")
        abs_path = self._context.resolve(path)
        if not os.path.isfile(abs_path):
            return ToolResult.fail(f"File not found: {path}")
        with open(abs_path, "r", encoding="utf-8", errors="replace") as f:
            source = f.read()

        imports = extract_imports(source)
        exports = list(dict.fromkeys(_EXPORT_PATTERN.findall(source)))
        return ToolResult.ok({
            "path": path,
            "imports": imports,
            "exports": exports,
            "count": len(imports),
        })

    async def get_diagnostics(self, args: Dict[str, Any]) -> ToolResult:
        # 语言服务器尚未接入，始终返回空列表
        return ToolResult.ok({
            "file": args.get("file"),
            "diagnostics": [],
            "message": "No diagnostics available",
        })
