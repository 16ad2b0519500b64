"""Engine configuration management.

This module provides configuration for the tool engine:
- ExecutorSettings: executor concurrency, timeout and cache settings
- WorkspaceSettings: workspace root and file handler limits
- CommandSettings: shell command timeouts
- SubagentSettings: subagent execution defaults and agent definition directories
- EngineConfigLoader: loads settings from environment variables and YAML files

配置优先级（从高到低）：环境变量 > 配置文件 > 默认值。
"""

import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import yaml


class ConfigError(Exception):
    """配置文件格式错误"""
    pass


@dataclass
class ExecutorSettings:
    """执行器配置（时间单位：毫秒）"""
    max_concurrency: int = 10
    default_timeout: int = 30000
    enable_cache: bool = True
    cache_size: int = 200


@dataclass
class WorkspaceSettings:
    """工作区配置"""
    root: Optional[str] = None
    max_file_chars: int = 50000
    max_output_chars: int = 10000


@dataclass
class CommandSettings:
    """命令执行配置（毫秒）"""
    default_timeout: int = 30000
    max_timeout: int = 120000


@dataclass
class SubagentSettings:
    """子智能体配置"""
    timeout_ms: int = 120000
    max_iterations: int = 100
    include_tool_calls: bool = False
    user_agents_dir: str = field(default_factory=lambda: os.path.join(os.path.expanduser("~"), ".agent_engine", "agents"))
    project_agents_dir: Optional[str] = None
    host_url: Optional[str] = None
    dashscope_api_key: Optional[str] = None


@dataclass
class EngineConfig:
    """引擎配置"""
    executor: ExecutorSettings = field(default_factory=ExecutorSettings)
    workspace: WorkspaceSettings = field(default_factory=WorkspaceSettings)
    commands: CommandSettings = field(default_factory=CommandSettings)
    subagent: SubagentSettings = field(default_factory=SubagentSettings)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # 不输出密钥
        data["subagent"]["dashscope_api_key"] = "***" if self.subagent.dashscope_api_key else None
        return data


def _parse_bool(value: str) -> Optional[bool]:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    return None


class EngineConfigLoader:
    """引擎配置管理

    支持从环境变量和 YAML 配置文件加载配置，并提供配置验证功能。
    """

    def __init__(self, config_file: Optional[str] = None):
        """初始化配置管理器

        Args:
            config_file: 配置文件路径（可选）
        """
        self._config = EngineConfig()
        self._config_file = config_file

        if config_file:
            self.load_from_file(config_file)

        # 环境变量优先级更高
        self.load_from_env()

    @property
    def config(self) -> EngineConfig:
        return self._config

    def load_from_env(self) -> None:
        """从环境变量加载配置

        环境变量映射：
        - AGENT_ENGINE_WORKSPACE -> workspace.root
        - AGENT_ENGINE_MAX_CONCURRENCY -> executor.max_concurrency
        - AGENT_ENGINE_DEFAULT_TIMEOUT_MS -> executor.default_timeout
        - AGENT_ENGINE_ENABLE_CACHE -> executor.enable_cache
        - AGENT_ENGINE_CACHE_SIZE -> executor.cache_size
        - AGENT_ENGINE_COMMAND_TIMEOUT_MS -> commands.default_timeout
        - AGENT_ENGINE_COMMAND_MAX_TIMEOUT_MS -> commands.max_timeout
        - AGENT_ENGINE_SUBAGENT_TIMEOUT_MS -> subagent.timeout_ms
        - AGENT_ENGINE_SUBAGENT_MAX_ITERATIONS -> subagent.max_iterations
        - AGENT_ENGINE_HOST_URL -> subagent.host_url
        - AGENT_ENGINE_USER_AGENTS_DIR -> subagent.user_agents_dir
        - AGENT_ENGINE_PROJECT_AGENTS_DIR -> subagent.project_agents_dir
        - DASHSCOPE_API_KEY -> subagent.dashscope_api_key
        """
        cfg = self._config

        if workspace := os.environ.get("AGENT_ENGINE_WORKSPACE"):
            cfg.workspace.root = workspace

        int_fields = [
            ("AGENT_ENGINE_MAX_CONCURRENCY", cfg.executor, "max_concurrency"),
            ("AGENT_ENGINE_DEFAULT_TIMEOUT_MS", cfg.executor, "default_timeout"),
            ("AGENT_ENGINE_CACHE_SIZE", cfg.executor, "cache_size"),
            ("AGENT_ENGINE_COMMAND_TIMEOUT_MS", cfg.commands, "default_timeout"),
            ("AGENT_ENGINE_COMMAND_MAX_TIMEOUT_MS", cfg.commands, "max_timeout"),
            ("AGENT_ENGINE_SUBAGENT_TIMEOUT_MS", cfg.subagent, "timeout_ms"),
            ("AGENT_ENGINE_SUBAGENT_MAX_ITERATIONS", cfg.subagent, "max_iterations"),
        ]
        for env_name, section, attr in int_fields:
            if value := os.environ.get(env_name):
                try:
                    setattr(section, attr, int(value))
                except ValueError:
                    pass

        if enable_cache := os.environ.get("AGENT_ENGINE_ENABLE_CACHE"):
            parsed = _parse_bool(enable_cache)
            if parsed is not None:
                cfg.executor.enable_cache = parsed

        if host_url := os.environ.get("AGENT_ENGINE_HOST_URL"):
            cfg.subagent.host_url = host_url

        if user_dir := os.environ.get("AGENT_ENGINE_USER_AGENTS_DIR"):
            cfg.subagent.user_agents_dir = user_dir

        if project_dir := os.environ.get("AGENT_ENGINE_PROJECT_AGENTS_DIR"):
            cfg.subagent.project_agents_dir = project_dir

        if api_key := os.environ.get("DASHSCOPE_API_KEY"):
            cfg.subagent.dashscope_api_key = api_key

    def load_from_file(self, path: str) -> None:
        """从 YAML 配置文件加载配置

        Raises:
            FileNotFoundError: 配置文件不存在
            ConfigError: 配置文件格式错误
        """
        if not os.path.exists(path):
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid configuration file {path}: {e}") from e

        if not data:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Invalid configuration file {path}: top level must be a mapping")

        engine = data.get("engine", data)
        self._apply_section(self._config.executor, engine.get("executor") or {})
        self._apply_section(self._config.workspace, engine.get("workspace") or {})
        self._apply_section(self._config.commands, engine.get("commands") or {})
        self._apply_section(self._config.subagent, engine.get("subagent") or {})

    @staticmethod
    def _apply_section(section: Any, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            if not hasattr(section, key):
                continue
            current = getattr(section, key)
            try:
                if isinstance(current, bool):
                    value = bool(value)
                elif isinstance(current, int) and value is not None:
                    value = int(value)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid value for {key}: {value!r}") from e
            setattr(section, key, value)

    def validate(self) -> List[str]:
        """验证配置参数的有效性

        Returns:
            验证错误列表，配置有效时为空列表
        """
        errors: List[str] = []
        cfg = self._config

        if cfg.executor.max_concurrency < 1:
            errors.append(f"Invalid executor.max_concurrency: {cfg.executor.max_concurrency}. Must be at least 1.")
        if cfg.executor.default_timeout <= 0:
            errors.append(f"Invalid executor.default_timeout: {cfg.executor.default_timeout}. Must be positive.")
        if cfg.executor.cache_size < 1:
            errors.append(f"Invalid executor.cache_size: {cfg.executor.cache_size}. Must be at least 1.")
        if cfg.commands.default_timeout <= 0:
            errors.append(f"Invalid commands.default_timeout: {cfg.commands.default_timeout}. Must be positive.")
        if cfg.commands.max_timeout < cfg.commands.default_timeout:
            errors.append(
                f"Invalid commands.max_timeout: {cfg.commands.max_timeout}. "
                "Must not be smaller than commands.default_timeout."
            )
        if cfg.subagent.timeout_ms <= 0:
            errors.append(f"Invalid subagent.timeout_ms: {cfg.subagent.timeout_ms}. Must be positive.")
        if cfg.subagent.max_iterations < 1:
            errors.append(f"Invalid subagent.max_iterations: {cfg.subagent.max_iterations}. Must be at least 1.")
        if cfg.workspace.root and not os.path.isdir(cfg.workspace.root):
            errors.append(f"Workspace directory does not exist: {cfg.workspace.root}")

        return errors

    def __repr__(self) -> str:
        return f"EngineConfigLoader(config_file={self._config_file!r})"
