import atexit
import json
import logging
import logging.handlers
import queue
from pathlib import Path

from config.config_loader import ConfigLoader

_queue_listener: logging.handlers.QueueListener | None = None

# Keys copied from ``extra=`` into the JSON record when present
_EXTRA_FIELDS = ("guild_id", "user_id", "channel_id", "room_id", "command_name")


class CustomJsonFormatter(logging.Formatter):
    """One JSON object per record, carrying the dungeon context fields."""

    def format(self, record: logging.LogRecord) -> str:
        record_dict = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.name,
            "funcName": record.funcName,
            "lineno": record.lineno,
            "message": record.getMessage(),
        }
        record_dict.update(
            {key: getattr(record, key) for key in _EXTRA_FIELDS if hasattr(record, key)}
        )
        if record.exc_info:
            record_dict["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(record_dict, ensure_ascii=False, default=str)


def _daily_file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(path),
        when="midnight",
        backupCount=30,
        utc=True,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    return handler


def setup_logging(log_file: str = "logs/bot.log") -> None:
    """
    Route every record through a queue to the console, a daily bot log and
    an error-only JSONL log.

    Safe to call again (tests do): the previous listener is stopped first.
    """
    global _queue_listener

    logging_config = ConfigLoader.load_config().get("logging", {}) or {}
    log_level = getattr(
        logging, str(logging_config.get("level", "INFO")).upper(), logging.INFO
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    if _queue_listener:
        _queue_listener.stop()
    else:
        atexit.register(_stop_listener)

    log_path = Path(log_file)
    errors_dir = log_path.parent / "errors"
    errors_dir.mkdir(parents=True, exist_ok=True)

    formatter = CustomJsonFormatter(datefmt="%Y-%m-%d %H:%M:%S")
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    handlers = [
        console_handler,
        _daily_file_handler(log_path, log_level),
        _daily_file_handler(errors_dir / "errors.jsonl", logging.ERROR),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=1000)
    queue_handler = logging.handlers.QueueHandler(log_queue)
    queue_handler.setLevel(log_level)
    root_logger.addHandler(queue_handler)

    _queue_listener = logging.handlers.QueueListener(
        log_queue, *handlers, respect_handler_level=True
    )
    _queue_listener.start()

    logging.getLogger("discord").setLevel(logging.WARNING)


def _stop_listener() -> None:
    global _queue_listener
    if _queue_listener:
        _queue_listener.stop()
        _queue_listener = None


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


setup_logging()
