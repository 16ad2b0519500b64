"""Tool permission manager.

Decides whether a subagent configuration may use a tool, validates tool grants,
recommends tool sets and keeps a bounded per-agent usage history for auditing.
The history never influences permission decisions.
"""

import time
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Tuple

from .models.enums import RiskLevel, ToolCategory
from .models.subagent import (
    PermissionCheck,
    SubagentConfig,
    ToolCompatibility,
    ToolUsageReport,
    UsageStats,
)
from .tool_schema import (
    get_all_tool_names,
    get_destructive_tools,
    get_tool_by_name,
    get_tool_risk_level,
    get_tools_by_category,
    resolve_tool_alias,
)
from .utils.logging import get_logger

logger = get_logger("permissions")

MAX_HISTORY_PER_AGENT = 100

READ_ONLY_TOOLS = [
    "get_workspace_info", "read_file", "list_dir", "read_directory_tree",
    "search_code", "get_project_context", "fs_batch_read", "find_symbols",
    "analyze_imports", "get_diagnostics", "git_status", "git_diff",
]
WRITE_TOOLS = READ_ONLY_TOOLS + ["create_file", "write_file", "edit_file", "smart_edit"]
EXECUTE_TOOLS = WRITE_TOOLS + ["run_command", "run_tests", "format_file", "verify_changes"]

RECOMMENDED_TOOLS: Dict[str, List[str]] = {
    "read-only": READ_ONLY_TOOLS,
    "write": WRITE_TOOLS,
    "execute": EXECUTE_TOOLS,
}

# 能力 -> 提供该能力的工具
CAPABILITY_TOOLS: Dict[str, List[str]] = {
    "read": [t.name for t in get_tools_by_category(ToolCategory.READ)],
    "write": [t.name for t in get_tools_by_category(ToolCategory.WRITE)],
    "execute": [t.name for t in get_tools_by_category(ToolCategory.EXECUTE)],
    "git": [t.name for t in get_tools_by_category(ToolCategory.GIT)],
    "analysis": [t.name for t in get_tools_by_category(ToolCategory.ANALYSIS)],
}

# 描述关键词 -> (建议工具, 理由)
_KEYWORD_BUCKETS: List[Tuple[Tuple[str, ...], List[str], str]] = [
    (
        ("read", "analyze", "review", "inspect"),
        ["read_file", "list_dir", "search_code", "get_project_context"],
        "Reading and analysis tasks need file access and code search",
    ),
    (
        ("write", "create", "edit", "modify", "refactor", "fix"),
        ["create_file", "write_file", "edit_file"],
        "Tasks that change code need file editing tools",
    ),
    (
        ("run", "test", "execute", "build"),
        ["run_command", "run_tests"],
        "Running or testing code needs command execution",
    ),
    (
        ("git", "commit", "version"),
        ["git_status", "git_diff", "git_add", "git_commit"],
        "Version control tasks need git tools",
    ),
    (
        ("diagnostic", "lint", "error", "type"),
        ["get_diagnostics", "verify_changes"],
        "Finding errors needs diagnostics and verification",
    ),
    (
        ("document", "explain", "docs"),
        ["read_file", "list_dir", "analyze_imports"],
        "Documentation tasks need to read code and follow imports",
    ),
]


def check_tool_capabilities(tool_names: Iterable[str], required_capabilities: Iterable[str]) -> List[str]:
    """返回工具列表未覆盖的能力"""
    granted = {resolve_tool_alias(name) for name in tool_names}
    missing = []
    for capability in required_capabilities:
        providers = CAPABILITY_TOOLS.get(capability, [])
        if not granted.intersection(providers):
            missing.append(capability)
    return missing


def suggest_tools_from_description(description: str) -> Tuple[List[str], List[str]]:
    """
    根据任务描述中的关键词推荐工具

    Returns:
        (推荐工具列表, 推荐理由列表)
    """
    text = (description or "").lower()
    suggested: List[str] = []
    reasoning: List[str] = []
    for keywords, tools, reason in _KEYWORD_BUCKETS:
        if any(keyword in text for keyword in keywords):
            for tool in tools:
                if tool not in suggested:
                    suggested.append(tool)
            reasoning.append(reason)
    if not suggested:
        suggested = ["read_file", "list_dir", "search_code"]
        reasoning.append("No specific keywords found; defaulting to read-only exploration tools")
    return suggested, reasoning


class ToolPermissionManager:
    """工具权限管理器"""

    def __init__(self, max_history: int = MAX_HISTORY_PER_AGENT):
        self._max_history = max_history
        self._history: Dict[str, Deque[ToolUsageReport]] = {}

    def check_permission(self, config: SubagentConfig, tool_name: str) -> PermissionCheck:
        """
        检查智能体是否可以使用某个工具

        tools 为 "all" 时允许任何已知工具；否则必须在显式列表中（别名按规范名比较）。
        """
        granted = None if config.grants_all_tools else config.tool_names
        return self.check_tool_grant(config.id, granted, tool_name)

    def check_tool_grant(self, agent_id: str, granted: Optional[Iterable[str]], tool_name: str) -> PermissionCheck:
        """
        按授予列表检查权限

        Args:
            agent_id: 智能体 id（用于提示信息）
            granted: 授予的工具名；None 表示全部工具
            tool_name: 请求的工具名或别名
        """
        canonical = resolve_tool_alias(tool_name)
        if get_tool_by_name(canonical) is None:
            return PermissionCheck(
                allowed=False,
                reason=f"Tool '{tool_name}' does not exist",
                suggestion=f'Tool "{tool_name}" does not exist. Available tools: {", ".join(get_all_tool_names())}',
            )

        if granted is None:
            return PermissionCheck(allowed=True)

        if canonical in {resolve_tool_alias(name) for name in granted}:
            return PermissionCheck(allowed=True)

        return PermissionCheck(
            allowed=False,
            reason=f"Agent '{agent_id}' is not permitted to use tool '{canonical}'",
            suggestion=f'Add "{canonical}" to the tools array in agent config, or set tools: \'all\'',
        )

    def validate_tool_list(self, config: SubagentConfig) -> ToolCompatibility:
        """校验智能体的工具列表"""
        issues: List[str] = []
        warnings: List[str] = []

        if config.grants_all_tools:
            warnings.append(
                "Agent has access to destructive tools: " + ", ".join(get_destructive_tools())
            )
            return ToolCompatibility(compatible=True, issues=issues, warnings=warnings)

        names = config.tool_names
        if not names:
            warnings.append("Agent has no tools - it will not be able to take actions")

        for name in names:
            if get_tool_by_name(resolve_tool_alias(name)) is None:
                issues.append(f"Tool '{name}' does not exist")

        destructive = [
            resolve_tool_alias(n) for n in names
            if get_tool_risk_level(resolve_tool_alias(n)) == RiskLevel.DESTRUCTIVE
        ]
        if destructive:
            warnings.append("Agent has access to destructive tools: " + ", ".join(destructive))

        return ToolCompatibility(compatible=not issues, issues=issues, warnings=warnings)

    def get_recommended_tools(self, task_type: str) -> List[str]:
        """按任务类型推荐工具集合：read-only / write / execute / full"""
        if task_type == "full":
            return get_all_tool_names()
        return list(RECOMMENDED_TOOLS.get(task_type, READ_ONLY_TOOLS))

    def check_tool_compatibility(self, config: SubagentConfig, required_capabilities: Iterable[str]) -> ToolCompatibility:
        """检查工具列表是否覆盖所需能力"""
        names = get_all_tool_names() if config.grants_all_tools else config.tool_names
        missing = check_tool_capabilities(names, required_capabilities)
        issues = [f"Missing capability: {capability}" for capability in missing]
        return ToolCompatibility(compatible=not issues, issues=issues)

    # ------------------------------------------------------------------
    # usage history
    # ------------------------------------------------------------------

    def record_usage(self, agent_id: str, tool_name: str, allowed: bool) -> ToolUsageReport:
        """记录一次工具使用尝试；每个智能体最多保留最近 max_history 条"""
        report = ToolUsageReport(
            tool_name=resolve_tool_alias(tool_name),
            allowed=allowed,
            risk_level=get_tool_risk_level(resolve_tool_alias(tool_name)),
            timestamp=time.time(),
        )
        history = self._history.setdefault(agent_id, deque(maxlen=self._max_history))
        history.append(report)
        if not allowed:
            logger.warning("Agent %s was denied tool %s", agent_id, tool_name)
        return report

    def get_history(self, agent_id: str) -> List[ToolUsageReport]:
        return list(self._history.get(agent_id, ()))

    def get_usage_stats(self, agent_id: str) -> UsageStats:
        stats = UsageStats()
        for report in self._history.get(agent_id, ()):
            stats.total_attempts += 1
            if report.allowed:
                stats.allowed_uses += 1
                stats.tools_used[report.tool_name] = stats.tools_used.get(report.tool_name, 0) + 1
                stats.risk_profile[report.risk_level.value] += 1
            else:
                stats.denied_uses += 1
        return stats

    def clear_history(self, agent_id: Optional[str] = None) -> None:
        if agent_id is None:
            self._history.clear()
        else:
            self._history.pop(agent_id, None)

    def get_violations(self) -> Dict[str, List[ToolUsageReport]]:
        """返回每个智能体被拒绝的使用记录"""
        violations: Dict[str, List[ToolUsageReport]] = {}
        for agent_id, history in self._history.items():
            denied = [report for report in history if not report.allowed]
            if denied:
                violations[agent_id] = denied
        return violations
