"""Subprocess helper used by the command-running handlers."""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class CommandOutput:
    """命令执行输出"""
    stdout: str
    stderr: str
    exit_code: Optional[int]
    timed_out: bool = False
    execution_time: float = 0.0  # 秒

    @property
    def combined_output(self) -> str:
        if self.stderr:
            return f"{self.stdout}\n--- stderr ---\n{self.stderr}"
        return self.stdout

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
            "combined_output": self.combined_output,
        }


async def run_shell(command: str, cwd: Optional[str] = None, timeout: float = 30.0) -> CommandOutput:
    """
    执行 shell 命令

    Args:
        command: 命令文本
        cwd: 工作目录
        timeout: 超时时间（秒），超时后进程被 kill

    Returns:
        命令输出；超时时 timed_out 为 True

    Raises:
        OSError: 进程无法启动（例如 cwd 不存在）
    """
    start_time = time.time()
    process = await asyncio.create_subprocess_shell(
        command,
        cwd=cwd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return CommandOutput(
            stdout="",
            stderr="",
            exit_code=None,
            timed_out=True,
            execution_time=time.time() - start_time,
        )
    except asyncio.CancelledError:
        process.kill()
        raise

    return CommandOutput(
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        exit_code=process.returncode,
        execution_time=time.time() - start_time,
    )
