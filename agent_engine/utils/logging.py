"""统一日志配置模块。

所有 logger 名称遵循 ``agent_engine.{module_name}`` 的层级命名约定，
工具执行、权限检查和子智能体运行的日志都挂在同一棵 logger 树下。
级别既可以是 ``logging`` 常量，也可以是 ``"DEBUG"`` 这样的名称
（便于直接使用配置文件或环境变量中的值）。
"""

import logging
from typing import Optional, Union

# 时间戳 [级别] 模块名: 消息
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_ROOT_LOGGER_NAME = "agent_engine"

LogLevel = Union[int, str]


def resolve_level(level: LogLevel) -> int:
    """
    把级别名称转换为数值

    Raises:
        ValueError: 未知的级别名称
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def get_logger(module_name: Optional[str], level: Optional[LogLevel] = None) -> logging.Logger:
    """获取 ``agent_engine.{module_name}`` logger。

    ``module_name`` 为空时返回根 logger ``agent_engine``；
    ``level`` 为 None 时继承父 logger 的级别。
    """
    logger_name = f"{_ROOT_LOGGER_NAME}.{module_name}" if module_name else _ROOT_LOGGER_NAME
    logger = logging.getLogger(logger_name)
    if level is not None:
        logger.setLevel(resolve_level(level))
    return logger


def configure_root_logger(
    level: LogLevel = logging.INFO,
    format_str: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> logging.Logger:
    """配置 ``agent_engine`` 根 logger 并返回它。

    已存在 handler 时只调整级别，不会重复添加。
    """
    numeric = resolve_level(level)
    root_logger = logging.getLogger(_ROOT_LOGGER_NAME)
    root_logger.setLevel(numeric)

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(format_str, datefmt=date_format))
        root_logger.addHandler(handler)
    for handler in root_logger.handlers:
        handler.setLevel(numeric)
    return root_logger
