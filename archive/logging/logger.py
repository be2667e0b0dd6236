import logging
import sys
from enum import Enum


class LogCategory(str, Enum):
    """Functional area a log line belongs to, carried as `category` context."""

    OCR = "OCR"
    UPLOAD = "UPLOAD"
    DATABASE = "DATABASE"
    STORAGE = "STORAGE"
    DOSSIER = "DOSSIER"
    TAG = "TAG"
    USER_ACTION = "USER_ACTION"
    SYSTEM = "SYSTEM"


class Log:
    """Centralized logging with structured format."""

    _logger: logging.Logger = logging.getLogger("archive")

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Configure the logger with the specified level and stdout handler."""
        cls._logger.setLevel(log_level.upper())
        if not any(
            isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stdout
            for h in cls._logger.handlers
        ):
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
            )
            cls._logger.addHandler(handler)

    @classmethod
    def attach_sink(cls, handler: logging.Handler) -> None:
        """Forward records to an additional handler, e.g. a BatchLogSink."""
        if handler not in cls._logger.handlers:
            cls._logger.addHandler(handler)

    @classmethod
    def detach_sink(cls, handler: logging.Handler) -> None:
        cls._logger.removeHandler(handler)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        cls._log(logging.INFO, message, kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        cls._log(logging.ERROR, message, kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        cls._log(logging.WARNING, message, kwargs)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        cls._log(logging.DEBUG, message, kwargs)

    @classmethod
    def _log(cls, level: int, message: str, context: dict[str, object]) -> None:
        """Emit with ``context`` as record attributes; ``category`` defaults to SYSTEM."""
        context.setdefault("category", LogCategory.SYSTEM)
        cls._logger.log(level, message, extra=context)
