"""引擎配置测试：默认值、YAML 文件、环境变量优先级和校验。"""

import pytest

from agent_engine.config import ConfigError, EngineConfig, EngineConfigLoader

ENV_VARS = [
    "AGENT_ENGINE_WORKSPACE",
    "AGENT_ENGINE_MAX_CONCURRENCY",
    "AGENT_ENGINE_DEFAULT_TIMEOUT_MS",
    "AGENT_ENGINE_ENABLE_CACHE",
    "AGENT_ENGINE_CACHE_SIZE",
    "AGENT_ENGINE_COMMAND_TIMEOUT_MS",
    "AGENT_ENGINE_COMMAND_MAX_TIMEOUT_MS",
    "AGENT_ENGINE_SUBAGENT_TIMEOUT_MS",
    "AGENT_ENGINE_SUBAGENT_MAX_ITERATIONS",
    "AGENT_ENGINE_HOST_URL",
    "AGENT_ENGINE_USER_AGENTS_DIR",
    "AGENT_ENGINE_PROJECT_AGENTS_DIR",
    "DASHSCOPE_API_KEY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """清除会影响配置的环境变量"""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:

    def test_defaults(self):
        cfg = EngineConfigLoader().config
        assert cfg.executor.max_concurrency == 10
        assert cfg.executor.default_timeout == 30000
        assert cfg.executor.enable_cache is True
        assert cfg.executor.cache_size == 200
        assert cfg.commands.max_timeout == 120000
        assert cfg.subagent.timeout_ms == 120000
        assert cfg.workspace.root is None

    def test_defaults_validate(self):
        assert EngineConfigLoader().validate() == []

    def test_to_dict_masks_api_key(self):
        cfg = EngineConfig()
        cfg.subagent.dashscope_api_key = "sk-secret"
        assert cfg.to_dict()["subagent"]["dashscope_api_key"] == "***"


class TestFileAndEnv:

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text(
            "engine:\n"
            "  executor:\n"
            "    max_concurrency: 4\n"
            "    enable_cache: false\n"
            "  commands:\n"
            "    default_timeout: 5000\n"
            "  subagent:\n"
            "    include_tool_calls: true\n"
        )
        cfg = EngineConfigLoader(str(path)).config
        assert cfg.executor.max_concurrency == 4
        assert cfg.executor.enable_cache is False
        assert cfg.commands.default_timeout == 5000
        assert cfg.subagent.include_tool_calls is True

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "engine.yaml"
        path.write_text("executor:\n  max_concurrency: 4\n  cache_size: 50\n")
        monkeypatch.setenv("AGENT_ENGINE_MAX_CONCURRENCY", "7")
        cfg = EngineConfigLoader(str(path)).config
        assert cfg.executor.max_concurrency == 7
        assert cfg.executor.cache_size == 50

    def test_env_values(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AGENT_ENGINE_WORKSPACE", str(tmp_path))
        monkeypatch.setenv("AGENT_ENGINE_ENABLE_CACHE", "off")
        monkeypatch.setenv("AGENT_ENGINE_HOST_URL", "http://localhost:9000")
        monkeypatch.setenv("DASHSCOPE_API_KEY", "sk-test")
        cfg = EngineConfigLoader().config
        assert cfg.workspace.root == str(tmp_path)
        assert cfg.executor.enable_cache is False
        assert cfg.subagent.host_url == "http://localhost:9000"
        assert cfg.subagent.dashscope_api_key == "sk-test"

    def test_invalid_int_env_ignored(self, monkeypatch):
        monkeypatch.setenv("AGENT_ENGINE_CACHE_SIZE", "lots")
        assert EngineConfigLoader().config.executor.cache_size == 200

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            EngineConfigLoader(str(tmp_path / "nope.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("executor: [unclosed\n")
        with pytest.raises(ConfigError):
            EngineConfigLoader(str(path))

    def test_invalid_value_type(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("executor:\n  max_concurrency: many\n")
        with pytest.raises(ConfigError):
            EngineConfigLoader(str(path))


class TestValidate:

    def test_reports_errors(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AGENT_ENGINE_MAX_CONCURRENCY", "0")
        monkeypatch.setenv("AGENT_ENGINE_COMMAND_MAX_TIMEOUT_MS", "10")
        monkeypatch.setenv("AGENT_ENGINE_WORKSPACE", str(tmp_path / "missing"))
        errors = EngineConfigLoader().validate()
        assert any("max_concurrency" in e for e in errors)
        assert any("max_timeout" in e for e in errors)
        assert any("Workspace directory does not exist" in e for e in errors)
