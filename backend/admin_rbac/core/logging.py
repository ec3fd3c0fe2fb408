"""
loguru 日志配置

业务代码统一 `from admin_rbac.core.logging import logger`，
事件名使用 snake_case，附加字段放在 extra 中（如 role_grant_missing）。
"""
import logging
import sys

from loguru import logger

from admin_rbac.core.config import settings

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level> {extra}"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} - {message} {extra}"

# 每条 SQL / 每次连接操作都会输出的库，非 DEBUG 时只保留告警
_CHATTY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio")


class InterceptHandler(logging.Handler):
    """把标准库 logging 记录转交给 loguru，保留原始调用位置"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging():
    logger.remove()

    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format=_CONSOLE_FORMAT,
        serialize=settings.LOG_JSON_FORMAT,
        enqueue=settings.LOG_ASYNC,
        diagnose=settings.DEBUG,
    )

    if settings.LOG_FILE_PATH:
        logger.add(
            settings.LOG_FILE_PATH,
            level=settings.LOG_LEVEL,
            format=_FILE_FORMAT,
            rotation=settings.LOG_ROTATION,
            retention=settings.LOG_RETENTION,
            compression="zip",
            encoding="utf-8",
            enqueue=settings.LOG_ASYNC,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    chatty_level = logging.DEBUG if settings.DEBUG else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)

    return logger
