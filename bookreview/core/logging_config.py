import logging
import logging.config

from bookreview.core.config import settings

# Attributes present on every LogRecord; anything else came in through `extra=`.
_RESERVED_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """Appends the `extra={...}` context of a record as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not context:
            return base
        pairs = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return f"{base} | {pairs}"


def configure_logging(level: str = None) -> None:
    """Configure root logging once at application start."""
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "context": {
                    "()": ContextFormatter,
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "context",
                }
            },
            "root": {
                "level": (level or settings.LOG_LEVEL).upper(),
                "handlers": ["console"],
            },
            "loggers": {
                "sqlalchemy.engine": {
                    "level": "INFO" if settings.DB_ECHO else "WARNING",
                },
            },
        }
    )
