from __future__ import annotations

import logging
import os
from enum import Enum
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Mapping, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from server_kit.config.capability import register_capability

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Marks handlers owned by init_logging so repeated calls replace them.
_HANDLER_ATTR = "_server_kit_handler"


class LogFormat(str, Enum):
    TEXT = "text"
    JSON = "json"

    @classmethod
    def _missing_(cls, value: object) -> LogFormat:
        if isinstance(value, str) and value.strip().lower() == "json":
            return cls.JSON
        return cls.TEXT


class FileRotationSettings(BaseModel):
    """
    Date-based rotation settings (daily).

    This maps to the standard library TimedRotatingFileHandler.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backup_count: int = 5


class FileLoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str = "data/logs/server.log"
    rotation: FileRotationSettings = Field(default_factory=FileRotationSettings)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str = "INFO"
    format: LogFormat = LogFormat.TEXT
    file: Optional[FileLoggingSettings] = None


def json_formatter() -> structlog.stdlib.ProcessorFormatter:
    """One JSON object per record: timestamp, level, logger, event and any exception."""
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


def _build_formatter(fmt: LogFormat) -> logging.Formatter:
    if fmt is LogFormat.JSON:
        return json_formatter()
    return logging.Formatter(_TEXT_FORMAT)


def _resolve_level(level: str) -> int:
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def init_logging(settings: LoggingSettings) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            root.removeHandler(handler)
            handler.close()

    formatter = _build_formatter(settings.format)
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if settings.file is not None:
        log_path = Path(settings.file.path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            TimedRotatingFileHandler(
                log_path,
                when="midnight",
                backupCount=settings.file.rotation.backup_count,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_ATTR, True)
        root.addHandler(handler)
    root.setLevel(_resolve_level(settings.level))


def init_logging_from_env(env: Optional[Mapping[str, str]] = None, *, default_level: str = "info") -> LoggingSettings:
    """Initialize logging from LOG_FORMAT (text/json) and LOG_LEVEL."""
    source = os.environ if env is None else env
    level = source.get("LOG_LEVEL") or default_level
    if not isinstance(logging.getLevelName(level.strip().upper()), int):
        level = default_level
    settings = LoggingSettings(
        level=level,
        format=LogFormat(source.get("LOG_FORMAT", LogFormat.TEXT.value)),
    )
    init_logging(settings)
    return settings


register_capability(LoggingSettings, LoggingSettings)
