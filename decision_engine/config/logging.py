"""
Structured logging configuration.
Outputs logs in JSON format for production observability.
"""
import json
import logging
import sys

# Decision context attached through `extra=` by the services
CONTEXT_FIELDS = ("session_id", "group_id", "user_id")


class JsonFormatter(logging.Formatter):
    """Format log records as JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the record as JSON."""
        log_obj = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_obj[field] = getattr(record, field)

        return json.dumps(log_obj)


def configure_logging(debug: bool = False) -> None:
    """Configure root logger with JSON formatter."""
    handler = logging.StreamHandler(sys.stdout)

    if debug:
        # Human-readable format for debugging
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        )
    else:
        formatter = JsonFormatter()

    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Reduce noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").handlers = [handler]
