"""
Structured, thread-safe log records for batch runs.

Every record is one line::

    2026-01-01 12:00:00 | [INFO] | job.complete | job="a 720p" | elapsed="4s" | worker="w2"

Timestamps are UTC. Values are rendered so a record never spans lines:
strings and paths are quoted with quotes and newlines escaped, ``None`` is
``null``, booleans are lowercase, enums log their value and sequences are
comma-joined. Lines go through ``tqdm.write`` so the batch progress bar stays
below the log.

Records carry the emitting worker. Pool threads are named
``hls-worker-<n>`` and log as ``w<n>``; the main thread logs as ``main``;
any other thread gets a ``t<n>`` id kept in thread-local storage, so ids die
with their threads.
"""
import itertools
import threading
from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePath
from typing import Any, Dict, Optional

from tqdm import tqdm

from hls.utils.constants import WORKER_THREAD_PREFIX

_print_lock = threading.Lock()
_thread_ids = threading.local()
_other_threads = itertools.count(1)
_separator = " | "


class LogLevel(Enum):
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4


_current_level = LogLevel.INFO


def set_log_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_log_level() -> LogLevel:
    return _current_level


def level_from_name(name: str, default: LogLevel = LogLevel.INFO) -> LogLevel:
    """Resolve a level name such as ``"debug"`` or ``"WARN"``; unknown names give ``default``."""
    try:
        return LogLevel[name.strip().upper()]
    except (KeyError, AttributeError):
        return default


def _quote(text: str) -> str:
    text = text.replace("\r", "\\r").replace("\n", "\\n").replace('"', '\\"')
    return f'"{text}"'


def _format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return _format_value(value.value)
    if isinstance(value, PurePath):
        return _quote(value.as_posix())
    if isinstance(value, float):
        return f"{value:.6g}"
    if isinstance(value, (list, tuple, set, frozenset)):
        return _quote(",".join(str(v) for v in value))
    if isinstance(value, str):
        return _quote(value)
    return str(value)


def _format_kv(data: Dict[str, Any]) -> str:
    return _separator.join(f"{key}={_format_value(value)}" for key, value in data.items())


def format_record(event: str, level: LogLevel, fields: Dict[str, Any], when: Optional[datetime] = None) -> str:
    """Render one record without writing it."""
    when = when or datetime.now(timezone.utc)
    line = f"{when:%Y-%m-%d %H:%M:%S}{_separator}[{level.name}]{_separator}{event}"
    if fields:
        line += _separator + _format_kv(fields)
    return line


def log(event: str, level: LogLevel = LogLevel.INFO, **kwargs) -> None:
    """
    Write a structured record if ``level`` passes the current threshold.

    Args:
        event: Dotted event name, e.g. ``job.start`` or ``pool.shutdown``.
        level: Severity of the record.
        **kwargs: Fields appended in call order; ``worker`` is filled in
            from the calling thread unless given.
    """
    if level.value < _current_level.value:
        return
    kwargs.setdefault("worker", get_worker_id())
    line = format_record(event, level, kwargs)
    with _print_lock:
        tqdm.write(line)


def get_worker_id() -> str:
    thread = threading.current_thread()
    if thread is threading.main_thread():
        return "main"
    if thread.name.startswith(WORKER_THREAD_PREFIX):
        return "w" + thread.name[len(WORKER_THREAD_PREFIX):]
    worker_id = getattr(_thread_ids, "worker_id", None)
    if worker_id is None:
        worker_id = _thread_ids.worker_id = f"t{next(_other_threads)}"
    return worker_id
