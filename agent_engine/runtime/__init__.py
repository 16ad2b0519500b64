"""Agent runtime adapters."""

from .retry import RetryConfig, call_with_retry, is_retryable_error
from .dashscope_runtime import (
    DEFAULT_MODEL,
    DashScopeAPIError,
    DashScopeRuntime,
    RuntimeLoopError,
)

__all__ = [
    "RetryConfig",
    "call_with_retry",
    "is_retryable_error",
    "DEFAULT_MODEL",
    "DashScopeAPIError",
    "DashScopeRuntime",
    "RuntimeLoopError",
]
