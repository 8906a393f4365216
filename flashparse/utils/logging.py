import json
import logging
import sys
import time
from logging import Handler
from pathlib import Path

from rich.logging import RichHandler


def configure_logging(level: int = logging.INFO, log_to_file: bool = False, log_dir: str = "logs") -> None:
    """
    Configure root logging for the application.

    A ``RichHandler`` is used when stderr is a terminal, a plain
    ``StreamHandler`` otherwise.
    """
    stream_handler: Handler
    if sys.stderr.isatty():
        stream_handler = RichHandler(rich_tracebacks=True, show_path=False)
        fmt = "%(message)s"
    else:
        stream_handler = logging.StreamHandler()
        fmt = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    handlers: list[Handler] = [stream_handler]
    if log_to_file:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(Path(log_dir) / "flashparse.log"), encoding="utf-8")
        handlers.append(file_handler)
    logging.basicConfig(level=level, format=fmt, handlers=handlers, force=True)


def get_logger(name: str = "") -> logging.Logger:
    """Return the named logger; handlers come from ``configure_logging``."""
    return logging.getLogger(name)


def log_event(event_type: str, data: dict, log_dir: str = "logs") -> None:
    """
    Append *data* as one JSON line to ``<log_dir>/<event_type>_<YYYYMMDD>.jsonl``.

    Used for per-parse diagnostics (template attempts, confidence) when
    ``LOG_EVENTS`` is on.
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_path = Path(log_dir) / f"{event_type}_{time.strftime('%Y%m%d')}.jsonl"
    entry = {"timestamp": time.time(), "event_type": event_type, **data}
    with open(log_path, "a", encoding="utf-8") as f:
        f.write(json.dumps(entry, ensure_ascii=False) + "\n")
    logging.getLogger(__name__).debug("Logged %s event to %s", event_type, log_path)
