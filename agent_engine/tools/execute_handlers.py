"""Command-running tool handlers: shell commands, tests, formatting, verification."""

import json
import os
import re
import shlex
from typing import Any, Dict, List, Optional

from ..models.tool import ToolHandler, ToolResult
from ..utils.logging import get_logger
from .context import WorkspaceContext
from .process import CommandOutput, run_shell
from .read_handlers import truncate

logger = get_logger("tools.execute")

FORMAT_TIMEOUT_MS = 30000

PRETTIER_EXTENSIONS = frozenset({
    "ts", "tsx", "js", "jsx", "json", "css", "scss", "html", "md",
})

_ERROR_PATTERN = re.compile(r"error(\[|\s|:)", re.IGNORECASE)
_WARNING_PATTERN = re.compile(r"warning(\[|\s|:)", re.IGNORECASE)

# 项目类型 -> 校验范围 -> 命令
VERIFY_COMMANDS: Dict[str, Dict[str, str]] = {
    "typescript": {
        "type-check": "npx tsc --noEmit",
        "lint": "npx eslint .",
        "test": "pnpm test",
        "build": "pnpm build",
    },
    "cargo": {
        "type-check": "cargo check",
        "lint": "cargo clippy",
        "test": "cargo test",
        "build": "cargo build",
    },
    "python": {
        "type-check": "python -m mypy .",
        "lint": "python -m ruff check .",
        "test": "python -m pytest",
        "build": "python -m compileall -q .",
    },
}

LINT_FIX_FLAGS = {
    "typescript": " --fix",
    "cargo": " --fix --allow-dirty",
    "python": " --fix",
}


def count_errors(output: str) -> int:
    return len(_ERROR_PATTERN.findall(output))


def count_warnings(output: str) -> int:
    return len(_WARNING_PATTERN.findall(output))


class ExecuteToolHandlers:
    """命令执行工具集合"""

    def __init__(self, context: WorkspaceContext):
        self._context = context

    def handlers(self) -> Dict[str, ToolHandler]:
        return {
            "run_command": self.run_command,
            "run_tests": self.run_tests,
            "format_file": self.format_file,
            "verify_changes": self.verify_changes,
        }

    async def _run(self, command: str, cwd: Optional[str], timeout_ms: float) -> ToolResult:
        """运行命令；进程正常结束即视为成功，不论退出码"""
        try:
            output = await run_shell(command, cwd=cwd, timeout=timeout_ms / 1000)
        except OSError as e:
            return ToolResult.fail(f"Failed to execute command: {e}")
        if output.timed_out:
            return ToolResult.fail(f"Command timed out after {int(timeout_ms)}ms")
        return ToolResult.ok(self._command_data(command, output))

    @staticmethod
    def _command_data(command: str, output: CommandOutput) -> Dict[str, Any]:
        data = output.to_dict()
        data["command"] = command
        data["message"] = f"Command exited with code {output.exit_code}"
        return data

    async def run_command(self, args: Dict[str, Any]) -> ToolResult:
        """
        在工作区执行 shell 命令

        Args:
            args: command（必填）, cwd, timeout（毫秒，默认 30000，上限 120000）

        Returns:
            进程结束时 success=True（包括非零退出码）；无法启动或超时时 success=False
        """
        command = args.get("command")
        if not command:
            return ToolResult.fail("Missing required parameter: command")

        settings = self._context.settings
        try:
            timeout = float(args.get("timeout") or settings.command_timeout)
        except (TypeError, ValueError):
            timeout = settings.command_timeout
        timeout = min(max(timeout, 1), settings.command_max_timeout)

        cwd = self._context.resolve(args.get("cwd"))
        logger.info("Running command in %s: %s", cwd, command)
        return await self._run(command, cwd, timeout)

    def _detect_test_command(self) -> Optional[str]:
        root = self._context.root
        package_json = os.path.join(root, "package.json")
        if os.path.isfile(package_json):
            try:
                with open(package_json, "r", encoding="utf-8") as f:
                    scripts = json.load(f).get("scripts") or {}
            except (OSError, ValueError):
                scripts = {}
            if scripts.get("test"):
                return "pnpm test"
        if os.path.isfile(os.path.join(root, "Cargo.toml")):
            return "cargo test"
        for marker in ("pyproject.toml", "pytest.ini", "setup.cfg", "tox.ini"):
            if os.path.isfile(os.path.join(root, marker)):
                return "python -m pytest"
        return None

    async def run_tests(self, args: Dict[str, Any]) -> ToolResult:
        framework = args.get("framework")
        command = framework or self._detect_test_command()
        if not command:
            return ToolResult.fail("Could not detect test framework")
        if args.get("target"):
            command = f"{command} {shlex.quote(args['target'])}"

        # 测试可能较慢，使用 run_command 允许的最大超时
        result = await self.run_command({"command": command, "timeout": self._context.settings.command_max_timeout})
        if result.success:
            result.data["passed"] = result.data["exit_code"] == 0
        return result

    async def format_file(self, args: Dict[str, Any]) -> ToolResult:
        path = args.get("path")
        if not path:
            return ToolResult.fail("Missing required parameter: path")
        abs_path = self._context.resolve(path)
        if not os.path.isfile(abs_path):
            return ToolResult.fail(f"File not found: {path}")

        ext = os.path.splitext(path)[1].lstrip(".").lower()
        quoted = shlex.quote(abs_path)
        if ext in PRETTIER_EXTENSIONS:
            command = f"npx prettier --write {quoted}"
        elif ext == "rs":
            command = f"rustfmt {quoted}"
        elif ext == "py":
            command = f"python -m black -q {quoted}"
        else:
            return ToolResult.fail(f"No formatter for .{ext} files")

        result = await self.run_command({"command": command, "timeout": FORMAT_TIMEOUT_MS})
        if not result.success:
            return result
        exit_code = result.data["exit_code"]
        # 格式化器的退出码作为数据返回，由调用方判断
        return ToolResult.ok({
            "path": path,
            "command": command,
            "exit_code": exit_code,
            "formatted": exit_code == 0,
            "stderr": result.data["stderr"],
            "message": f"Formatted {path}" if exit_code == 0 else f"Formatter exited with code {exit_code}",
        })

    def _detect_verify_project(self) -> Optional[str]:
        root = self._context.root
        if os.path.isfile(os.path.join(root, "tsconfig.json")):
            return "typescript"
        if os.path.isfile(os.path.join(root, "Cargo.toml")):
            return "cargo"
        for marker in ("pyproject.toml", "setup.py", "setup.cfg"):
            if os.path.isfile(os.path.join(root, marker)):
                return "python"
        return None

    async def verify_changes(self, args: Dict[str, Any]) -> ToolResult:
        """
        运行类型检查、lint、测试或构建并汇总错误与警告数量

        data.passed 在所有命令退出码为 0 时为 True。
        """
        project = self._detect_verify_project()
        if project is None:
            return ToolResult.fail("Could not detect project type (expected tsconfig.json, Cargo.toml or pyproject.toml)")

        scope = args.get("scope") or "type-check"
        commands = VERIFY_COMMANDS[project]
        if scope == "all":
            scopes: List[str] = ["type-check", "lint", "test"]
        elif scope in commands:
            scopes = [scope]
        else:
            return ToolResult.fail(f"Unknown scope: {scope}")

        outputs: List[str] = []
        executed: List[str] = []
        passed = True
        for name in scopes:
            command = commands[name]
            if name == "lint" and args.get("fix"):
                command += LINT_FIX_FLAGS[project]
            result = await self.run_command({"command": command, "timeout": self._context.settings.command_max_timeout})
            if not result.success:
                return result
            executed.append(command)
            outputs.append(f"$ {command}\n{result.data['combined_output']}")
            passed = passed and result.data["exit_code"] == 0

        output = "\n\n".join(outputs)
        text, _ = truncate(output, self._context.settings.max_output_chars)
        return ToolResult.ok({
            "project_type": project,
            "scope": scope,
            "commands": executed,
            "passed": passed,
            "errors": count_errors(output),
            "warnings": count_warnings(output),
            "output": text,
        })
