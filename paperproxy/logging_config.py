"""
日志配置模块 (Logging Configuration Module)

功能 (Function):
这个模块负责配置 Python 标准的 `logging` 模块，为整个 PaperProxy 应用提供统一的日志记录功能：
1. 定义日志格式 (Formatters)，包括时间戳、日志级别、模块名、行号、消息等。
2. 定义日志处理器 (Handlers)：控制台总是启用；当 `LOG_TO_FILE=true` 时，
   额外启用应用日志、错误日志、访问日志三个滚动文件。
3. 为 uvicorn、fastapi、httpx 以及应用本身 (`paperproxy`) 配置各自的日志级别。
4. 自定义格式化器 `OffsetTimeFormatter`，按配置的 UTC 偏移 (默认 UTC+8) 显示时间戳。

交互 (Interaction):
- 依赖 (Depends on): `paperproxy.core.config.Settings` (日志级别、日志目录、时区偏移、是否写文件)。
- 被导入 (Imported by): `paperproxy.main`，在创建应用之前调用 `setup_logging()`。
"""

import datetime
import logging
from logging.config import dictConfig
from pathlib import Path
from typing import Any, Dict, List, Optional

from paperproxy.core.config import Settings, settings as global_settings


class OffsetTimeFormatter(logging.Formatter):
    """
    日志格式化器，把时间戳转换到固定的 UTC 偏移时区再格式化。
    """

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        utc_offset_hours: int = 8,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.tz = datetime.timezone(datetime.timedelta(hours=utc_offset_hours))

    def formatTime(
        self, record: logging.LogRecord, datefmt: Optional[str] = None
    ) -> str:
        utc_dt = datetime.datetime.fromtimestamp(record.created, datetime.timezone.utc)
        local_dt = utc_dt.astimezone(self.tz)
        return local_dt.strftime(datefmt or "%Y-%m-%d %H:%M:%S")


def _log_files(log_dir: Path, tz: datetime.timezone) -> Dict[str, Path]:
    # 每次启动生成带时间戳的新文件
    timestamp = datetime.datetime.now(tz).strftime("%Y%m%d-%H%M%S")
    return {
        "app_file": log_dir / f"paperproxy_{timestamp}.log",
        "error_file": log_dir / f"paperproxy_error_{timestamp}.log",
        "access_file": log_dir / f"access_{timestamp}.log",
    }


def build_logging_config(settings: Settings) -> Dict[str, Any]:
    """Build the `dictConfig` dictionary for the given settings."""
    offset = settings.log_utc_offset_hours
    formatters = {
        "default": {
            "()": OffsetTimeFormatter,
            "format": "[%(asctime)s] %(levelname)s %(name)s:%(lineno)d - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
            "utc_offset_hours": offset,
        },
        "detailed": {
            "()": OffsetTimeFormatter,
            "format": "[%(asctime)s] %(levelname)s [%(name)s:%(filename)s:%(lineno)d] [%(process)d] - %(funcName)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
            "utc_offset_hours": offset,
        },
        "access": {
            "()": OffsetTimeFormatter,
            "format": "[%(asctime)s] [ACCESS] %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
            "utc_offset_hours": offset,
        },
    }

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "detailed" if settings.environment == "development" else "default",
            "level": "DEBUG",
        },
    }

    app_handlers: List[str] = ["console"]
    error_handlers: List[str] = ["console"]
    access_handlers: List[str] = ["console"]

    if settings.log_to_file:
        tz = datetime.timezone(datetime.timedelta(hours=offset))
        files = _log_files(Path(settings.log_dir), tz)
        levels = {"app_file": "DEBUG", "error_file": "ERROR", "access_file": "INFO"}
        for name, path in files.items():
            handlers[name] = {
                "class": "logging.handlers.RotatingFileHandler",
                "filename": str(path),
                "formatter": "access" if name == "access_file" else "detailed",
                "level": levels[name],
                "maxBytes": 10 * 1024 * 1024,  # 10MB
                "backupCount": 5,
                "encoding": "utf-8",
            }
        app_handlers = ["console", "app_file", "error_file"]
        error_handlers = ["console", "error_file", "app_file"]
        access_handlers = ["console", "access_file", "app_file"]

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": handlers,
        "loggers": {
            "uvicorn": {"handlers": app_handlers, "level": "INFO", "propagate": False},
            "uvicorn.error": {
                "handlers": error_handlers,
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": access_handlers,
                "level": "INFO",
                "propagate": False,
            },
            "fastapi": {"handlers": app_handlers, "level": "INFO", "propagate": False},
            # 每次出站请求 httpx 都会打一条 INFO，这里压到 WARNING
            "httpx": {"handlers": app_handlers, "level": "WARNING", "propagate": False},
            "httpcore": {"handlers": app_handlers, "level": "WARNING", "propagate": False},
            "paperproxy": {
                "handlers": app_handlers,
                "level": settings.log_level,
                "propagate": False,
            },
        },
        "root": {"handlers": app_handlers, "level": "INFO"},
    }


def setup_logging(settings: Settings = global_settings) -> Dict[str, Any]:
    """
    应用日志配置。

    在应用启动时调用；需要写文件时会先创建日志目录。返回实际生效的配置字典。
    """
    if settings.log_to_file:
        Path(settings.log_dir).mkdir(parents=True, exist_ok=True)

    config = build_logging_config(settings)
    dictConfig(config)

    logger = logging.getLogger("paperproxy")
    logger.info(
        f"Logging initialized (level={settings.log_level}, utc_offset={settings.log_utc_offset_hours}h)"
    )
    if settings.log_to_file:
        logger.info(f"Log files: {config['handlers']['app_file']['filename']}")
    return config
