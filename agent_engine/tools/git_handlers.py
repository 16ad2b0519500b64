"""Git tool handlers.

Each handler is a thin wrapper that builds a git command line and delegates
to ``run_command``. Like any other command, a git process that exits with a
non-zero code is still a successful invocation; the exit code and stderr are
returned in ``data`` for the caller to interpret.
"""

import shlex
from typing import Any, Dict, List, Optional

from ..models.tool import ToolHandler, ToolResult
from .context import WorkspaceContext
from .execute_handlers import ExecuteToolHandlers

GIT_TIMEOUT_MS = 15000


class GitToolHandlers:
    """Git 工具集合"""

    def __init__(self, context: WorkspaceContext, runner: Optional[ExecuteToolHandlers] = None):
        self._context = context
        self._runner = runner or ExecuteToolHandlers(context)

    def handlers(self) -> Dict[str, ToolHandler]:
        return {
            "git_status": self.git_status,
            "git_diff": self.git_diff,
            "git_add": self.git_add,
            "git_commit": self.git_commit,
        }

    async def _git(self, command: str) -> ToolResult:
        return await self._runner.run_command({"command": command, "timeout": GIT_TIMEOUT_MS})

    @staticmethod
    def _with_exit(result: ToolResult, **data: Any) -> ToolResult:
        data["exit_code"] = result.data["exit_code"]
        data["stderr"] = result.data["stderr"]
        return ToolResult.ok(data)

    async def git_status(self, args: Dict[str, Any]) -> ToolResult:
        result = await self._git("git status --porcelain")
        if not result.success:
            return result
        stdout = result.data["stdout"]
        files: List[Dict[str, str]] = []
        for line in stdout.splitlines():
            if len(line) > 3:
                files.append({"status": line[:2].strip(), "path": line[3:]})
        clean = result.data["exit_code"] == 0 and not files
        return self._with_exit(result, files=files, clean=clean, raw=stdout)

    async def git_diff(self, args: Dict[str, Any]) -> ToolResult:
        parts = ["git", "diff"]
        if args.get("staged"):
            parts.append("--staged")
        if args.get("path"):
            parts.extend(["--", shlex.quote(args["path"])])
        result = await self._git(" ".join(parts))
        if not result.success:
            return result
        return self._with_exit(result, diff=result.data["stdout"], staged=bool(args.get("staged")))

    async def git_add(self, args: Dict[str, Any]) -> ToolResult:
        paths = args.get("paths")
        if isinstance(paths, str):
            paths = [paths]
        if not paths:
            return ToolResult.fail("Missing required parameter: paths")
        result = await self._git("git add -- " + " ".join(shlex.quote(p) for p in paths))
        if not result.success:
            return result
        return self._with_exit(result, paths=list(paths), message=result.data["message"])

    async def git_commit(self, args: Dict[str, Any]) -> ToolResult:
        message = args.get("message")
        if not message:
            return ToolResult.fail("Missing required parameter: message")
        result = await self._git(f"git commit -m {shlex.quote(message)}")
        if not result.success:
            return result
        return self._with_exit(result, output=result.data["stdout"], message=message)
