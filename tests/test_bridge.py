"""handler 注册与配置好的执行器测试。"""

from typing import Any, Dict, List, Tuple

import pytest

from agent_engine.config import EngineConfig
from agent_engine.interfaces.host_bridge import IHostBridge
from agent_engine.models.tool import ToolResult, create_tool_call
from agent_engine.tool_schema import get_all_tool_names
from agent_engine.tool_executor import ToolExecutor
from agent_engine.tools.bridge import (
    build_tool_handlers,
    create_configured_executor,
    host_tool_names,
    register_remote_handlers,
    register_tool_handlers,
    settings_from_config,
)
from agent_engine.tools.context import WorkspaceContext


class RecordingBridge(IHostBridge):
    """记录转发调用的假宿主"""

    def __init__(self):
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    async def call_tool(self, tool: str, args: Dict[str, Any]) -> ToolResult:
        self.calls.append((tool, args))
        return ToolResult.ok({"from_host": tool})

    async def close(self) -> None:
        pass


class TestHandlerRegistry:

    def test_every_catalog_tool_has_a_handler(self, tmp_path):
        handlers = build_tool_handlers(WorkspaceContext(str(tmp_path)))
        assert set(handlers) == set(get_all_tool_names())

    def test_register_returns_count(self, tmp_path):
        executor = ToolExecutor()
        count = register_tool_handlers(executor, WorkspaceContext(str(tmp_path)))
        assert count == len(get_all_tool_names())
        assert executor.has_handler("read_file")
        assert executor.has_handler("cat")

    def test_settings_from_config(self):
        config = EngineConfig()
        config.workspace.max_file_chars = 123
        config.commands.max_timeout = 4567
        settings = settings_from_config(config)
        assert settings.max_file_chars == 123
        assert settings.command_max_timeout == 4567


class TestConfiguredExecutor:

    @pytest.mark.asyncio
    async def test_reads_workspace(self, tmp_path):
        (tmp_path / "a.txt").write_text("hello")
        executor = create_configured_executor(str(tmp_path))
        execution = await executor.execute(create_tool_call("read_file", {"path": "a.txt"}))
        assert execution.result.data["content"] == "hello"

    @pytest.mark.asyncio
    async def test_write_invalidates_read_cache(self, tmp_path):
        (tmp_path / "a.txt").write_text("old")
        executor = create_configured_executor(str(tmp_path))

        first = await executor.execute(create_tool_call("read_file", {"path": "a.txt"}))
        assert first.result.data["content"] == "old"
        assert executor.cache_size == 1

        await executor.execute(create_tool_call("write_file", {"path": "a.txt", "content": "new"}))
        assert executor.cache_size == 0

        second = await executor.execute(create_tool_call("read_file", {"path": "a.txt"}))
        assert second.result.cached is False
        assert second.result.data["content"] == "new"

    @pytest.mark.asyncio
    async def test_uses_config_values(self, tmp_path):
        config = EngineConfig()
        config.workspace.root = str(tmp_path)
        config.executor.max_concurrency = 3
        executor = create_configured_executor(config=config)
        assert executor.max_concurrency == 3
        info = await executor.execute(create_tool_call("get_workspace_info", {}))
        assert info.result.data["path"] == str(tmp_path)


class TestHostRouting:

    def test_host_tool_names(self):
        names = host_tool_names()
        assert "read_file" in names
        assert "run_command" in names
        assert "get_project_context" not in names
        assert "analyze_imports" not in names

    @pytest.mark.asyncio
    async def test_register_remote_subset(self, tmp_path):
        executor = ToolExecutor(enable_cache=False)
        register_tool_handlers(executor, WorkspaceContext(str(tmp_path)))
        bridge = RecordingBridge()
        forwarded = register_remote_handlers(executor, bridge, ["list_dir"])
        assert forwarded == ["list_dir"]
        execution = await executor.execute(create_tool_call("list_dir", {"path": "."}))
        assert execution.result.data == {"from_host": "list_dir"}
        assert bridge.calls == [("list_dir", {"path": "."})]

    @pytest.mark.asyncio
    async def test_host_tools_forwarded_hybrid_stay_local(self, tmp_path):
        """传入 bridge 时 host 工具转发，hybrid 工具仍在本地执行"""
        (tmp_path / "a.txt").write_text("local")
        bridge = RecordingBridge()
        executor = create_configured_executor(str(tmp_path), bridge=bridge)

        remote = await executor.execute(create_tool_call("read_file", {"path": "a.txt"}))
        assert remote.result.data == {"from_host": "read_file"}
        assert bridge.calls == [("read_file", {"path": "a.txt"})]

        local = await executor.execute(create_tool_call("get_project_context", {}))
        assert local.result.success is True
        assert "from_host" not in local.result.data
        assert len(bridge.calls) == 1

    @pytest.mark.asyncio
    async def test_no_host_url_runs_locally(self, tmp_path):
        (tmp_path / "a.txt").write_text("local")
        executor = create_configured_executor(str(tmp_path), config=EngineConfig())
        execution = await executor.execute(create_tool_call("read_file", {"path": "a.txt"}))
        assert execution.result.data["content"] == "local"
