"""Subagent factory: validates subagent configurations and builds agent descriptors."""

import re
from typing import Any, Dict, List, Optional

from .model_mapper import get_available_models, resolve_model
from .models.enums import RiskLevel
from .models.subagent import (
    AgentDescriptor,
    SubagentConfig,
    ValidationResult,
)
from .permissions import ToolPermissionManager, suggest_tools_from_description
from .tool_schema import (
    get_all_tool_names,
    get_tool_by_name,
    get_tool_risk_level,
    resolve_tool_alias,
    to_agent_tools,
)
from .utils.logging import get_logger

logger = get_logger("subagent_factory")

MIN_SYSTEM_PROMPT_LENGTH = 50
MAX_ITERATIONS_RANGE = (1, 50)
TEMPERATURE_RANGE = (0.0, 2.0)
MAX_TOKENS_RANGE = (100, 100000)
AGENT_ID_PATTERN = re.compile(r"^[a-z0-9-]+$")


class ConfigValidationError(Exception):
    """子智能体配置无效"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"Invalid subagent config: {'; '.join(self.errors)}")


class SubagentFactory:
    """
    子智能体工厂

    validate 收集全部错误而不是遇到第一个就返回；create 在配置无效时抛出
    ConfigValidationError。
    """

    def __init__(self, permission_manager: Optional[ToolPermissionManager] = None):
        self._permissions = permission_manager or ToolPermissionManager()

    @property
    def permission_manager(self) -> ToolPermissionManager:
        return self._permissions

    def validate(self, config: SubagentConfig) -> ValidationResult:
        """校验配置，返回全部错误和警告"""
        errors: List[str] = []
        warnings: List[str] = []

        if not config.id or not AGENT_ID_PATTERN.match(config.id):
            errors.append(f"Invalid agent id: '{config.id}' (use lowercase letters, digits and hyphens)")
        if not config.name or not config.name.strip():
            errors.append("Agent name is required")

        if not config.grants_all_tools:
            invalid = [name for name in config.tool_names if get_tool_by_name(resolve_tool_alias(name)) is None]
            if invalid:
                errors.append(f"Invalid tools: {', '.join(invalid)}")
            if not config.tool_names:
                warnings.append("No tools configured - the agent will not be able to take actions")

        resolution = resolve_model(config.model)
        if not resolution.known:
            errors.append(f"Invalid model: {config.model}")
        elif resolution.inferred:
            warnings.append(f"Model '{config.model}' is not in the model table; provider inferred as {resolution.binding.provider.value}")

        if len((config.system_prompt or "").strip()) < MIN_SYSTEM_PROMPT_LENGTH:
            errors.append(f"System prompt must be at least {MIN_SYSTEM_PROMPT_LENGTH} characters")

        low, high = MAX_ITERATIONS_RANGE
        if not isinstance(config.max_iterations, int) or not low <= config.max_iterations <= high:
            errors.append(f"max_iterations must be between {low} and {high}")

        low_t, high_t = TEMPERATURE_RANGE
        if not isinstance(config.temperature, (int, float)) or not low_t <= config.temperature <= high_t:
            errors.append(f"temperature must be between {low_t:g} and {high_t:g}")

        if config.max_tokens is not None:
            low_m, high_m = MAX_TOKENS_RANGE
            if not isinstance(config.max_tokens, int) or not low_m <= config.max_tokens <= high_m:
                errors.append(f"max_tokens must be between {low_m} and {high_m}")

        if not config.keywords and not config.patterns:
            warnings.append("No keywords or patterns - the agent can only be invoked explicitly")

        for pattern in config.patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                errors.append(f"Invalid regex pattern: {pattern} ({e})")

        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    def validate_with_permissions(self, config: SubagentConfig) -> ValidationResult:
        """基础校验 + 权限管理器对工具列表的检查"""
        result = self.validate(config)
        compatibility = self._permissions.validate_tool_list(config)
        errors = list(result.errors)
        for issue in compatibility.issues:
            if issue not in errors:
                errors.append(issue)
        warnings = list(result.warnings)
        for warning in compatibility.warnings:
            if warning not in warnings:
                warnings.append(warning)
        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    def resolve_tool_names(self, config: SubagentConfig) -> List[str]:
        """授予的规范工具名（去重，保持顺序）"""
        if config.grants_all_tools:
            return get_all_tool_names()
        names: List[str] = []
        for name in config.tool_names:
            canonical = resolve_tool_alias(name)
            if get_tool_by_name(canonical) is not None and canonical not in names:
                names.append(canonical)
        return names

    def create(self, config: SubagentConfig) -> AgentDescriptor:
        """
        根据配置构建智能体描述

        Raises:
            ConfigValidationError: 配置无效
        """
        result = self.validate(config)
        if not result.valid:
            raise ConfigValidationError(result.errors)

        resolution = resolve_model(config.model)
        if resolution.inferred:
            logger.warning(
                "Model '%s' for agent %s is not in the model table; using inferred provider %s",
                config.model, config.id, resolution.binding.provider.value,
            )

        return AgentDescriptor(
            agent_id=config.id,
            name=config.name,
            description=config.description,
            system_prompt=config.system_prompt,
            binding=resolution.binding,
            tools=to_agent_tools(self.resolve_tool_names(config)),
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            max_iterations=config.max_iterations,
        )

    def suggest_tools(self, description: str) -> Dict[str, List[str]]:
        """根据描述推荐工具"""
        tools, reasoning = suggest_tools_from_description(description)
        return {"tools": tools, "reasoning": reasoning}

    def test(self, config: SubagentConfig) -> Dict[str, Any]:
        """不运行智能体，检查配置能否构建"""
        validation = self.validate_with_permissions(config)
        report: Dict[str, Any] = {
            "valid": validation.valid,
            "errors": validation.errors,
            "warnings": validation.warnings,
        }
        if validation.valid:
            descriptor = self.create(config)
            report["model"] = descriptor.model_name
            report["tools"] = descriptor.tool_names
        return report

    def get_tool_stats(self, config: SubagentConfig) -> Dict[str, Any]:
        """统计授予工具的类别和风险分布"""
        names = self.resolve_tool_names(config)
        by_category: Dict[str, int] = {}
        by_risk: Dict[str, int] = {level.value: 0 for level in RiskLevel}
        parallel = 0
        for name in names:
            schema = get_tool_by_name(name)
            by_category[schema.category.value] = by_category.get(schema.category.value, 0) + 1
            by_risk[get_tool_risk_level(name).value] += 1
            if schema.parallel:
                parallel += 1
        return {
            "total_tools": len(names),
            "by_category": by_category,
            "by_risk": by_risk,
            "parallelizable": parallel,
            "destructive": [n for n in names if get_tool_risk_level(n) == RiskLevel.DESTRUCTIVE],
        }

    @staticmethod
    def get_available_models() -> List[str]:
        return get_available_models()

    @staticmethod
    def create_minimal(
        agent_id: str,
        name: str,
        system_prompt: str,
        tools: Any = "all",
        description: str = "",
    ) -> SubagentConfig:
        """以默认值构造一个最小配置"""
        return SubagentConfig(
            id=agent_id,
            name=name,
            description=description or name,
            system_prompt=system_prompt,
            tools=tools,
        )
