"""Tool schema registry.

Static catalog of every tool the engine exposes to agents, plus the lookup,
filter and export views built on it. All functions here are pure and never
raise.
"""

from typing import Any, Dict, List, Optional

from .models.enums import ExecutorType, RiskLevel, ToolCategory
from .models.tool import ToolParameter, ToolSchema


def _p(type_: str, description: str, required: bool = False, **extra: Any) -> ToolParameter:
    return ToolParameter(type=type_, description=description, required=required, **extra)


_RESPONSE_FORMAT = _p(
    "string",
    "Response verbosity: 'concise' for summaries, 'detailed' for full payloads",
    enum=["concise", "detailed"],
    default="concise",
)


TOOL_DEFINITIONS: List[ToolSchema] = [
    # ------------------------------------------------------------------ read
    ToolSchema(
        name="get_workspace_info",
        description="Get information about the current workspace: name, path and detected project type.",
        category=ToolCategory.READ,
        executor=ExecutorType.HOST,
        parallel=True,
        timeout=5000,
        retryable=True,
        cacheable=True,
        cache_timeout=60000,
    ),
    ToolSchema(
        name="read_file",
        description="Read the contents of a file. Paths are relative to the workspace root.",
        category=ToolCategory.READ,
        parallel=True,
        timeout=10000,
        retryable=True,
        cacheable=True,
        cache_timeout=30000,
        params={
            "path": _p("string", "File path relative to the workspace", required=True),
            "encoding": _p("string", "Text encoding", default="utf-8"),
            "max_lines": _p("number", "Only return the first N lines"),
        },
    ),
    ToolSchema(
        name="list_dir",
        description="List the entries of a directory (one level).",
        category=ToolCategory.READ,
        parallel=True,
        timeout=10000,
        retryable=True,
        cacheable=True,
        cache_timeout=30000,
        params={
            "path": _p("string", "Directory path relative to the workspace", required=True),
        },
    ),
    ToolSchema(
        name="read_directory_tree",
        description="Read a directory tree recursively, skipping dependency and build folders.",
        category=ToolCategory.READ,
        parallel=True,
        timeout=30000,
        retryable=True,
        cacheable=True,
        cache_timeout=60000,
        params={
            "path": _p("string", "Root directory of the tree", required=True),
            "max_depth": _p("number", "Maximum depth (1-5)", default=3),
        },
    ),
    ToolSchema(
        name="search_code",
        description="Search the workspace for text or a regular expression.",
        category=ToolCategory.READ,
        parallel=True,
        timeout=30000,
        retryable=True,
        cacheable=True,
        cache_timeout=10000,
        params={
            "query": _p("string", "Text or pattern to search for", required=True),
            "file_pattern": _p("string", "Glob restricting which files are searched, e.g. '*.py'"),
            "is_regex": _p("boolean", "Treat query as a regular expression", default=False),
            "max_results": _p("number", "Maximum number of matches", default=50),
        },
    ),
    ToolSchema(
        name="get_project_context",
        description="Collect a project overview: structure, dependencies, git state, README and entry points.",
        category=ToolCategory.READ,
        executor=ExecutorType.HYBRID,
        parallel=True,
        timeout=30000,
        retryable=True,
        cacheable=True,
        cache_timeout=60000,
        params={
            "include": _p(
                "array",
                "Sections to include",
                items={
                    "type": "string",
                    "enum": ["structure", "dependencies", "git", "readme", "entry_points"],
                },
            ),
            "response_format": _RESPONSE_FORMAT,
        },
    ),
    ToolSchema(
        name="fs_batch_read",
        description="Read several files in one call. Failed files do not fail the batch.",
        category=ToolCategory.READ,
        parallel=True,
        timeout=30000,
        retryable=True,
        cacheable=True,
        cache_timeout=30000,
        params={
            "paths": _p("array", "File paths to read", required=True, items={"type": "string"}),
            "response_format": _RESPONSE_FORMAT,
            "max_chars_per_file": _p("number", "Truncate each file to this many characters", default=50000),
        },
    ),
    ToolSchema(
        name="find_symbols",
        description="Find function, class or interface definitions by name.",
        category=ToolCategory.READ,
        parallel=True,
        timeout=30000,
        retryable=True,
        cacheable=True,
        cache_timeout=15000,
        params={
            "query": _p("string", "Symbol name or fragment", required=True),
            "kind": _p(
                "string",
                "Kind of symbol",
                enum=["function", "class", "interface", "all"],
                default="all",
            ),
            "file_pattern": _p("string", "Glob restricting which files are searched"),
            "response_format": _RESPONSE_FORMAT,
        },
    ),
    # ----------------------------------------------------------------- write
    ToolSchema(
        name="create_file",
        description="Create a new file. Fails if the file already exists.",
        category=ToolCategory.WRITE,
        parallel=False,
        timeout=10000,
        params={
            "path": _p("string", "Path of the new file", required=True),
            "content": _p("string", "Initial content", default=""),
        },
    ),
    ToolSchema(
        name="write_file",
        description="Write content to a file, replacing what is there.",
        category=ToolCategory.WRITE,
        parallel=False,
        timeout=10000,
        params={
            "path": _p("string", "File path", required=True),
            "content": _p("string", "Full new content", required=True),
        },
    ),
    ToolSchema(
        name="edit_file",
        description="Replace one exact, unique occurrence of old_string with new_string.",
        category=ToolCategory.WRITE,
        parallel=False,
        timeout=15000,
        params={
            "path": _p("string", "File path", required=True),
            "old_string": _p("string", "Exact text to replace; must occur exactly once", required=True),
            "new_string": _p("string", "Replacement text", required=True),
        },
    ),
    ToolSchema(
        name="smart_edit",
        description=(
            "Apply several edits to one file atomically. Each edit is either "
            "{find, replace} or {start_line, end_line, content}. If any edit "
            "fails nothing is written."
        ),
        category=ToolCategory.WRITE,
        parallel=False,
        timeout=60000,
        params={
            "path": _p("string", "File path", required=True),
            "edits": _p(
                "array",
                "Ordered list of edits",
                required=True,
                items={
                    "type": "object",
                    "properties": {
                        "find": {"type": "string"},
                        "replace": {"type": "string"},
                        "start_line": {"type": "number"},
                        "end_line": {"type": "number"},
                        "content": {"type": "string"},
                    },
                },
            ),
            "verify": _p("boolean", "Run verify_changes after writing", default=False),
        },
    ),
    ToolSchema(
        name="delete_file",
        description="Delete a file.",
        category=ToolCategory.WRITE,
        parallel=False,
        timeout=5000,
        params={
            "path": _p("string", "File path", required=True),
        },
    ),
    # --------------------------------------------------------------- execute
    ToolSchema(
        name="run_command",
        description=(
            "Run a shell command in the workspace. A command that runs to "
            "completion is reported as success regardless of its exit code."
        ),
        category=ToolCategory.EXECUTE,
        parallel=False,
        timeout=120000,
        retryable=True,
        params={
            "command": _p("string", "Shell command", required=True),
            "cwd": _p("string", "Working directory relative to the workspace"),
            "timeout": _p("number", "Timeout in milliseconds (max 120000)", default=30000),
        },
    ),
    ToolSchema(
        name="run_tests",
        description="Run the project's tests, detecting the framework when not given.",
        category=ToolCategory.EXECUTE,
        parallel=False,
        timeout=300000,
        params={
            "target": _p("string", "Test file, directory or filter"),
            "framework": _p("string", "Test command to use instead of auto-detection"),
        },
    ),
    ToolSchema(
        name="format_file",
        description="Format a file with the formatter matching its extension.",
        category=ToolCategory.EXECUTE,
        parallel=True,
        timeout=30000,
        params={
            "path": _p("string", "File path", required=True),
        },
    ),
    ToolSchema(
        name="verify_changes",
        description="Type-check, lint, test or build the project and summarise errors and warnings.",
        category=ToolCategory.EXECUTE,
        parallel=False,
        timeout=120000,
        params={
            "scope": _p(
                "string",
                "What to verify",
                enum=["type-check", "lint", "test", "build", "all"],
                default="type-check",
            ),
            "fix": _p("boolean", "Let the linter apply automatic fixes", default=False),
        },
    ),
    # ------------------------------------------------------------------- git
    ToolSchema(
        name="git_status",
        description="Show the working tree status.",
        category=ToolCategory.GIT,
        parallel=True,
        timeout=10000,
        retryable=True,
        cacheable=True,
        cache_timeout=5000,
    ),
    ToolSchema(
        name="git_diff",
        description="Show unstaged or staged changes.",
        category=ToolCategory.GIT,
        parallel=True,
        timeout=15000,
        retryable=True,
        cacheable=True,
        cache_timeout=5000,
        params={
            "staged": _p("boolean", "Show staged changes", default=False),
            "path": _p("string", "Limit the diff to one path"),
        },
    ),
    ToolSchema(
        name="git_add",
        description="Stage files for commit.",
        category=ToolCategory.GIT,
        parallel=False,
        timeout=10000,
        retryable=True,
        params={
            "paths": _p("array", "Paths to stage", required=True, items={"type": "string"}),
        },
    ),
    ToolSchema(
        name="git_commit",
        description="Commit the staged changes.",
        category=ToolCategory.GIT,
        parallel=False,
        timeout=30000,
        params={
            "message": _p("string", "Commit message", required=True),
        },
    ),
    # -------------------------------------------------------------- analysis
    ToolSchema(
        name="get_diagnostics",
        description="Get compiler or linter diagnostics for a file or the whole project.",
        category=ToolCategory.ANALYSIS,
        parallel=True,
        timeout=15000,
        retryable=True,
        cacheable=True,
        cache_timeout=10000,
        params={
            "file": _p("string", "Restrict diagnostics to this file"),
        },
    ),
    ToolSchema(
        name="analyze_imports",
        description="List the modules a file imports and the names it exports.",
        category=ToolCategory.ANALYSIS,
        executor=ExecutorType.HYBRID,
        parallel=True,
        timeout=20000,
        retryable=True,
        cacheable=True,
        cache_timeout=30000,
        params={
            "path": _p("string", "File path", required=True),
        },
    ),
]

_TOOLS_BY_NAME: Dict[str, ToolSchema] = {tool.name: tool for tool in TOOL_DEFINITIONS}

# 破坏性工具：不可逆地修改文件系统或仓库历史，或执行任意命令
_DESTRUCTIVE_TOOLS = frozenset({"delete_file", "run_command", "git_commit"})
_MODERATE_TOOLS = frozenset({"git_add"})


# 模型常用的别名 -> 规范工具名
TOOL_ALIASES: Dict[str, str] = {
    "list_files": "list_dir",
    "read_dir": "list_dir",
    "ls": "list_dir",
    "cat": "read_file",
    "file_read": "read_file",
    "file_write": "write_file",
    "file_create": "create_file",
    "file_edit": "edit_file",
    "file_delete": "delete_file",
    "rm": "delete_file",
    "grep": "search_code",
    "find": "search_code",
    "exec": "run_command",
    "shell": "run_command",
    "test": "run_tests",
}


def resolve_tool_alias(name: str) -> str:
    """别名解析为规范名；非别名原样返回"""
    return TOOL_ALIASES.get(name, name)


def get_tool_by_name(name: str) -> Optional[ToolSchema]:
    """按名称精确查找工具（不解析别名）"""
    return _TOOLS_BY_NAME.get(name)


def get_all_tool_names() -> List[str]:
    return [tool.name for tool in TOOL_DEFINITIONS]


def get_tools_by_category(category: ToolCategory) -> List[ToolSchema]:
    return [tool for tool in TOOL_DEFINITIONS if tool.category == category]


def get_parallelizable_tools() -> List[ToolSchema]:
    return [tool for tool in TOOL_DEFINITIONS if tool.parallel]


def get_cacheable_tools() -> List[ToolSchema]:
    return [tool for tool in TOOL_DEFINITIONS if tool.cacheable]


def get_tool_risk_level(name: str) -> RiskLevel:
    """工具风险等级；未知工具视为 safe（它们根本无法被执行）"""
    if name in _DESTRUCTIVE_TOOLS:
        return RiskLevel.DESTRUCTIVE
    tool = _TOOLS_BY_NAME.get(name)
    if tool is None:
        return RiskLevel.SAFE
    if name in _MODERATE_TOOLS or tool.category in (ToolCategory.WRITE, ToolCategory.EXECUTE):
        return RiskLevel.MODERATE
    return RiskLevel.SAFE


def get_destructive_tools() -> List[str]:
    return [name for name in get_all_tool_names() if name in _DESTRUCTIVE_TOOLS]


def _select(names: Optional[List[str]]) -> List[ToolSchema]:
    if names is None:
        return list(TOOL_DEFINITIONS)
    return [_TOOLS_BY_NAME[name] for name in names if name in _TOOLS_BY_NAME]


def to_agent_tools(names: Optional[List[str]] = None) -> List[Dict[str, Any]]:
    """通用函数调用视图：``{name, description, parameters}``"""
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.parameters,
        }
        for tool in _select(names)
    ]


def to_openai_functions(names: Optional[List[str]] = None) -> List[Dict[str, Any]]:
    """OpenAI function calling 格式"""
    return [
        {
            "type": "function",
            "function": tool,
        }
        for tool in to_agent_tools(names)
    ]
