"""
日志模块

控制台日志由 setup_logger 配置，配置文件中的 log_file 可额外写入滚动日志文件。
"""

import os
import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

CONSOLE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"
# 文件日志额外记录来源位置，便于排查并发任务
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} | {message}"


def resolve_level(level: Optional[str] = None) -> str:
    """未显式指定时由 MODDER_DEBUG 环境变量决定"""
    if level:
        return level.upper()
    return "DEBUG" if os.environ.get("MODDER_DEBUG", "0") == "1" else "INFO"


def setup_logger(
    level: Optional[str] = None,
    sink=sys.stderr,
    enqueue: bool = True,
    colorize: bool = True,
) -> str:
    """
    设置控制台日志

    日志写到 stderr，stdout 只留给命令输出。

    Args:
        level: 日志级别 (DEBUG, INFO, WARNING, ERROR)
        sink: 输出目标
        enqueue: 是否启用队列（线程安全）
        colorize: 是否启用颜色

    Returns:
        实际使用的日志级别
    """
    level = resolve_level(level)
    debug = level == "DEBUG"

    logger.remove()
    logger.add(
        sink=sink,
        format=CONSOLE_FORMAT,
        enqueue=enqueue,
        level=level,
        colorize=colorize,
        backtrace=debug,
        diagnose=debug,
    )

    if debug:
        logger.debug("DEBUG 模式已启用")
    return level


def add_file_sink(
    path: Union[str, Path],
    level: str = "DEBUG",
    rotation: str = "10 MB",
    retention: int = 5,
) -> int:
    """
    追加滚动日志文件

    Args:
        path: 日志文件路径，父目录不存在时自动创建
        level: 文件日志级别
        rotation: 单个文件的滚动阈值
        retention: 保留的历史文件数

    Returns:
        loguru 处理器 ID，可传给 logger.remove
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler_id = logger.add(
        str(path),
        format=FILE_FORMAT,
        level=level,
        rotation=rotation,
        retention=retention,
        encoding="utf-8",
        enqueue=True,
    )
    logger.debug(f"[日志] 写入文件 {path}")
    return handler_id


__all__ = ["logger", "setup_logger", "add_file_sink", "resolve_level"]
