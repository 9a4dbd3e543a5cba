import logging
import sys

from loguru import logger


class _InterceptHandler(logging.Handler):
    """Przekierowuje stdlib logging (klient giełdy, websocket) do loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(exception=record.exc_info).log(level, f"{record.name} | {record.getMessage()}")


def setup_logging(level: str = "INFO", log_file: str | None = "logs/runtime.log"):
    logger.remove()
    if log_file:
        logger.add(
            log_file,
            rotation="10 MB",
            retention="10 days",
            enqueue=True,
            backtrace=True,
            diagnose=False,
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | {message}",
        )
    logger.add(sys.stderr, level=level, format="{time:HH:mm:ss} | {level:<8} | {message}")
    logging.basicConfig(handlers=[_InterceptHandler()], level=getattr(logging, level, logging.INFO), force=True)
    return logger
