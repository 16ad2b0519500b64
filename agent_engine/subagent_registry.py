"""Subagent registry.

Agent definitions are markdown files with a YAML front-matter block::

    ---
    id: code-reviewer
    name: Code Reviewer
    description: Reviews diffs for bugs and style problems
    tools: [read_file, search_code, git_diff]
    keywords: [review, audit]
    ---
    You are a meticulous code reviewer...

The markdown body becomes the system prompt. Definitions are loaded from a
user directory and an optional project directory; a project definition with
the same id replaces the user one.
"""

import os
import re
from typing import Dict, Iterable, List, Optional, Tuple

import yaml

from .models.enums import AgentScope
from .models.subagent import SubagentConfig
from .subagent_factory import ConfigValidationError, SubagentFactory
from .utils.logging import get_logger

logger = get_logger("subagent_registry")

_FRONTMATTER = re.compile(r"^---\s*\n(.*?)\n---\s*(?:\n(.*))?$", re.DOTALL)


class SubagentNotFoundError(Exception):
    """子智能体不存在"""
    pass


class SubagentRegistryError(Exception):
    """注册表操作错误"""
    pass


def parse_agent_file(text: str, default_id: str = "", scope: AgentScope = AgentScope.USER) -> SubagentConfig:
    """
    解析带 YAML front-matter 的 markdown 定义

    Raises:
        SubagentRegistryError: 缺少 front-matter 或 YAML 无效
    """
    match = _FRONTMATTER.match(text.lstrip("\ufeff"))
    if not match:
        raise SubagentRegistryError("Missing YAML front-matter")
    try:
        meta = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as e:
        raise SubagentRegistryError(f"Invalid YAML front-matter: {e}") from e
    if not isinstance(meta, dict):
        raise SubagentRegistryError("Front-matter must be a mapping")

    meta.setdefault("id", default_id)
    meta["scope"] = scope.value
    body = (match.group(2) or "").strip()
    if body:
        meta["system_prompt"] = body
    return SubagentConfig.from_dict(meta)


def serialize_agent(config: SubagentConfig) -> str:
    """序列化为 markdown 定义"""
    meta = config.to_dict()
    prompt = meta.pop("system_prompt")
    meta.pop("scope")
    meta = {key: value for key, value in meta.items() if value not in (None, [], "")}
    front = yaml.safe_dump(meta, sort_keys=False, allow_unicode=True).strip()
    return f"---\n{front}\n---\n\n{prompt.strip()}\n"


class SubagentRegistry:
    """子智能体注册表"""

    def __init__(
        self,
        user_dir: Optional[str] = None,
        project_dir: Optional[str] = None,
        factory: Optional[SubagentFactory] = None,
    ):
        self._user_dir = user_dir
        self._project_dir = project_dir
        self._factory = factory or SubagentFactory()
        self._agents: Dict[str, SubagentConfig] = {}
        self._paths: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # loading
    # ------------------------------------------------------------------

    def load_all(self) -> Tuple[int, List[str]]:
        """
        重新加载全部定义

        Returns:
            (加载成功的数量, 错误信息列表)；无效文件被跳过
        """
        self._agents = {agent_id: c for agent_id, c in self._agents.items() if c.scope == AgentScope.PLUGIN}
        self._paths = {}
        errors: List[str] = []
        for directory, scope in ((self._user_dir, AgentScope.USER), (self._project_dir, AgentScope.PROJECT)):
            if directory:
                errors.extend(self._load_directory(directory, scope))
        logger.info("Loaded %d subagents (%d errors)", len(self._agents), len(errors))
        return len(self._agents), errors

    def _load_directory(self, directory: str, scope: AgentScope) -> List[str]:
        errors: List[str] = []
        if not os.path.isdir(directory):
            return errors
        for filename in sorted(os.listdir(directory)):
            if not filename.endswith(".md"):
                continue
            path = os.path.join(directory, filename)
            try:
                with open(path, "r", encoding="utf-8") as f:
                    config = parse_agent_file(f.read(), os.path.splitext(filename)[0], scope)
            except (OSError, SubagentRegistryError) as e:
                errors.append(f"{path}: {e}")
                continue

            validation = self._factory.validate(config)
            if not validation.valid:
                errors.append(f"{path}: {'; '.join(validation.errors)}")
                continue

            if config.id in self._agents:
                logger.debug("%s overrides %s definition of %s", path, self._agents[config.id].scope.value, config.id)
            self._agents[config.id] = config
            self._paths[config.id] = path
        return errors

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    def get(self, agent_id: str) -> Optional[SubagentConfig]:
        return self._agents.get(agent_id)

    def require(self, agent_id: str) -> SubagentConfig:
        config = self._agents.get(agent_id)
        if config is None:
            raise SubagentNotFoundError(f"Subagent not found: {agent_id}")
        return config

    def get_all(self) -> List[SubagentConfig]:
        """按优先级从高到低排列"""
        return sorted(self._agents.values(), key=lambda c: (-c.priority, c.name))

    def get_enabled(self) -> List[SubagentConfig]:
        return [c for c in self.get_all() if c.enabled]

    def search(self, query: str) -> List[SubagentConfig]:
        q = query.lower()
        results = []
        for config in self.get_all():
            haystack = [config.id, config.name, config.description] + config.tags + config.keywords
            if any(q in item.lower() for item in haystack):
                results.append(config)
        return results

    def find_by_keywords(self, keywords: Iterable[str]) -> List[SubagentConfig]:
        wanted = {k.lower() for k in keywords}
        return [c for c in self.get_enabled() if wanted.intersection(k.lower() for k in c.keywords)]

    def find_by_tag(self, tag: str) -> List[SubagentConfig]:
        return [c for c in self.get_all() if tag in c.tags]

    def route(self, task: str) -> Optional[SubagentConfig]:
        """
        为任务选择子智能体

        得分 = 命中的关键词数 + 2 × 命中的正则数；得分相同按 priority。
        没有任何命中时返回 None。
        """
        text = task.lower()
        best: Optional[SubagentConfig] = None
        best_key = (0, 0)
        for config in self.get_enabled():
            score = sum(1 for keyword in config.keywords if keyword.lower() in text)
            for pattern in config.patterns:
                try:
                    if re.search(pattern, task, re.IGNORECASE):
                        score += 2
                except re.error:
                    continue
            key = (score, config.priority)
            if score > 0 and key > best_key:
                best, best_key = config, key
        return best

    # ------------------------------------------------------------------
    # mutation
    # ------------------------------------------------------------------

    def register(self, config: SubagentConfig) -> None:
        """注册内存中的定义（例如插件提供的智能体）"""
        validation = self._factory.validate(config)
        if not validation.valid:
            raise ConfigValidationError(validation.errors)
        self._agents[config.id] = config

    def save(self, config: SubagentConfig) -> str:
        """写入 user 或 project 目录并注册，返回文件路径"""
        if config.scope == AgentScope.PLUGIN:
            raise SubagentRegistryError("Plugin agents cannot be saved")
        directory = self._project_dir if config.scope == AgentScope.PROJECT else self._user_dir
        if not directory:
            raise SubagentRegistryError(f"No directory configured for {config.scope.value} agents")

        self.register(config)
        os.makedirs(directory, exist_ok=True)
        path = os.path.join(directory, f"{config.id}.md")
        with open(path, "w", encoding="utf-8") as f:
            f.write(serialize_agent(config))
        self._paths[config.id] = path
        return path

    def delete(self, agent_id: str) -> bool:
        """删除定义及其文件；插件智能体不可删除"""
        config = self._agents.get(agent_id)
        if config is None:
            return False
        if config.scope == AgentScope.PLUGIN:
            raise SubagentRegistryError(f"Cannot delete plugin agent: {agent_id}")
        del self._agents[agent_id]
        path = self._paths.pop(agent_id, None)
        if path and os.path.exists(path):
            os.remove(path)
        return True

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._agents
