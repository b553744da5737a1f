"""
Logger Configuration
各个包共用的 Rich 控制台日志
"""
import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler


console = Console()

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_FORMAT_SIMPLE = "%(message)s"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# 模块日志器都是 logging.getLogger(__name__)，按顶层包挂 handler
PACKAGE_LOGGERS = ("sources", "pipeline", "storage", "orchestrator", "intelligence", "webapp")


def resolve_level(level: Union[int, str]) -> int:
    """'debug' / 'INFO' / 10 -> logging 数值级别"""
    if isinstance(level, int):
        return level
    name = str(level).strip().upper()
    if name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {level!r}")
    return getattr(logging, name)


def setup_logger(
    name: str,
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    设置日志记录器

    重复调用只更新级别，不会重复添加 handler。

    Args:
        name: 日志记录器名称
        level: 日志级别 (数值或名称，大小写均可)
        log_file: 额外写入的日志文件路径
    """
    numeric = resolve_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(numeric)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(numeric)
        return logger

    console_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE))
    console_handler.setLevel(numeric)
    logger.addHandler(console_handler)

    if log_file:
        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(file_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(numeric)
        logger.addHandler(file_handler)

    return logger


def configure_package_loggers(level: Union[int, str] = logging.INFO, log_file: Optional[str] = None) -> None:
    """把各个包的模块日志器挂到统一的 Rich 输出上"""
    for package in PACKAGE_LOGGERS:
        setup_logger(package, level=level, log_file=log_file)
