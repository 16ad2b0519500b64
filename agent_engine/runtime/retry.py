"""Retry with exponential backoff for model runtime calls.

Only transient failures (timeouts, dropped connections, throttling and
gateway errors) are retried; anything else reaches the caller on the
first attempt.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from ..utils.logging import get_logger

logger = get_logger("runtime.retry")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """模型调用的重试策略，延迟单位为秒，每次失败后翻倍"""
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: bool = True

    @classmethod
    def no_wait(cls, max_attempts: int = 3) -> "RetryConfig":
        """不等待、立即重试"""
        return cls(max_attempts=max_attempts, base_delay=0.0, jitter=False)

    def backoff(self, retry_number: int) -> float:
        """第 retry_number 次重试（从 0 开始）前的等待时间

        抖动只向下取值：结果落在 [delay / 2, delay] 内，不会超过 max_delay。
        """
        delay = min(self.base_delay * (2 ** retry_number), self.max_delay)
        if self.jitter:
            delay = delay / 2 + random.uniform(0, delay / 2)
        return delay


_RETRYABLE_PATTERNS = (
    "timeout",
    "timed out",
    "connection",
    "network",
    "rate limit",
    "throttl",
    "too many requests",
    "502",
    "503",
    "504",
    "429",
)


def is_retryable_error(error: Exception) -> bool:
    """超时、连接错误、限流和网关错误可重试"""
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True
    message = str(error).lower()
    return any(pattern in message for pattern in _RETRYABLE_PATTERNS)


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    retry_config: Optional[RetryConfig] = None,
) -> T:
    """
    带重试的异步调用

    Raises:
        Exception: 不可重试的错误立即抛出；重试耗尽后抛出最后一个错误
    """
    cfg = retry_config or RetryConfig()
    last_error: Optional[Exception] = None

    for attempt in range(cfg.max_attempts):
        try:
            return await func()
        except Exception as e:
            last_error = e
            if not is_retryable_error(e):
                raise
            if attempt < cfg.max_attempts - 1:
                delay = cfg.backoff(attempt)
                logger.warning("Transient error, retrying in %.1fs (%d/%d): %s", delay, attempt + 1, cfg.max_attempts, e)
                await asyncio.sleep(delay)

    raise last_error or Exception("All retry attempts failed")
