"""HTTP bridge to a host process that executes tools on the engine's behalf.

Request body::

    {"type": "tool_call", "id": "<call id>", "tool": "<name>", "args": {...}}

Response body::

    {"type": "tool_result", "id": "<call id>", "result": {"success": ..., ...}}
"""

import asyncio
from typing import Any, Dict, Iterable, Optional

import aiohttp

from ..interfaces.host_bridge import IHostBridge
from ..models.tool import ToolHandler, ToolResult, create_tool_call
from ..utils.logging import get_logger

logger = get_logger("tools.host_bridge")


class HostBridgeError(Exception):
    """宿主桥接协议错误"""
    pass


class HttpHostBridge(IHostBridge):
    """
    基于 aiohttp 的宿主桥接

    传输错误、超时和协议错误都转为失败的 ToolResult。
    未注入 session 时每次调用使用独立的 ClientSession，桥接对象无需显式关闭。
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        endpoint: str = "/tool",
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Args:
            base_url: 宿主服务地址
            timeout: 单次请求超时（秒）
            endpoint: 工具调用路径
            session: 可选的共享会话（由调用方负责关闭）
        """
        self._url = base_url.rstrip("/") + endpoint
        self._timeout = timeout
        self._session = session

    @property
    def url(self) -> str:
        return self._url

    @staticmethod
    def _parse_response(call_id: str, body: Any) -> ToolResult:
        if not isinstance(body, dict) or body.get("type") != "tool_result":
            raise HostBridgeError("Malformed host response")
        if body.get("id") != call_id:
            raise HostBridgeError(f"Mismatched response id: expected {call_id}, got {body.get('id')}")
        result = body.get("result")
        if not isinstance(result, dict):
            raise HostBridgeError("Host response has no result")
        return ToolResult.from_dict(result)

    async def call_tool(self, tool: str, args: Dict[str, Any]) -> ToolResult:
        call = create_tool_call(tool, args)
        message = {"type": "tool_call", "id": call.id, "tool": tool, "args": call.args}
        try:
            if self._session is not None:
                return await self._post(self._session, call.id, message)
            async with aiohttp.ClientSession() as session:
                return await self._post(session, call.id, message)
        except asyncio.TimeoutError:
            return ToolResult.fail(f"Host bridge timed out after {int(self._timeout * 1000)}ms")
        except aiohttp.ClientError as e:
            logger.warning("Host bridge request for %s failed: %s", tool, e)
            return ToolResult.fail(f"Host bridge error: {e}")
        except (HostBridgeError, ValueError) as e:
            return ToolResult.fail(str(e))

    async def _post(self, session: aiohttp.ClientSession, call_id: str, message: Dict[str, Any]) -> ToolResult:
        timeout = aiohttp.ClientTimeout(total=self._timeout)
        async with session.post(self._url, json=message, timeout=timeout) as response:
            if response.status != 200:
                text = await response.text()
                return ToolResult.fail(f"Host returned HTTP {response.status}: {text[:200]}")
            body = await response.json(content_type=None)
        return self._parse_response(call_id, body)

    async def close(self) -> None:
        # 注入的 session 归调用方所有；自建的 session 在每次调用后已关闭
        pass

    async def __aenter__(self) -> "HttpHostBridge":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def create_remote_handlers(bridge: IHostBridge, tool_names: Iterable[str]) -> Dict[str, ToolHandler]:
    """为给定工具生成转发到宿主的 handler"""

    def make_handler(name: str) -> ToolHandler:
        async def handler(args: Dict[str, Any]) -> ToolResult:
            return await bridge.call_tool(name, args)
        handler.__name__ = f"remote_{name}"
        return handler

    return {name: make_handler(name) for name in tool_names}
