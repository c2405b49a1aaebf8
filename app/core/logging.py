"""
Logging Setup

Configures loguru as the single logging backend. Records emitted through the
standard ``logging`` module (uvicorn, sqlalchemy, module level loggers) are
forwarded into loguru. Outside development every message passes through a
patcher that redacts e-mail addresses, UUIDs and JWTs.
"""

import logging
import re
import sys
from typing import Any, Mapping

from loguru import logger

from app.core.config import settings

LOG_PREFIX = "[HealthPal]"

EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
UUID_PATTERN = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\b"
)
JWT_PATTERN = re.compile(r"eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*")


def sanitize_message(text: str) -> str:
    """Redact e-mails, UUIDs and tokens from a string"""
    text = JWT_PATTERN.sub("[TOKEN]", text)
    text = EMAIL_PATTERN.sub("[EMAIL]", text)
    text = UUID_PATTERN.sub("[UUID]", text)
    return text


def sanitize_value(value: Any, development: bool = None) -> Any:
    """Prepare an arbitrary log argument for output"""
    if development is None:
        development = settings.is_development
    if development:
        return value
    if isinstance(value, str):
        return sanitize_message(value)
    if isinstance(value, (int, float, bool)) or value is None:
        return value
    return f"[Object: {type(value).__name__}]"


def log_error(context: str, error: BaseException, development: bool = None) -> None:
    """Log an error; outside development only the context and error type are kept"""
    if development is None:
        development = settings.is_development
    if development:
        logger.opt(exception=error).error(f"{context}: {error}")
    else:
        logger.error(f"{context} ({type(error).__name__})")


def _redacting_patcher(record: Mapping[str, Any]) -> None:
    record["message"] = sanitize_message(record["message"])


class InterceptHandler(logging.Handler):
    """Route standard logging records into loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging() -> None:
    """Install the loguru sink and the stdlib bridge"""
    level = "DEBUG" if settings.DEBUG else "INFO"
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
               + LOG_PREFIX + " {name}:{line} - {message}",
        backtrace=settings.is_development,
        diagnose=settings.is_development,
    )
    if not settings.is_development:
        logger.configure(patcher=_redacting_patcher)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine"):
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False
