"""
Logging for LessonScribe.

Two sinks:
- debug_flow.txt: every debug_log() line, a full trace of prompts, batches
  and merges. Opened on the first write, never on import.
- the 'LessonScribe' logger: info/warning/error into logs/processing.log,
  echoed to the console in DEBUG mode.

Usage:
    from lessonscribe.logging_config import debug_log, info, warning, error, Timer

Strategies may run on a thread pool, so writes to the trace file are
serialized through a lock.
"""

import logging
import sys
import threading
import time
from datetime import datetime

from lessonscribe.config import DEBUG_FLOW_FILE, DEBUG_MODE, LOG_DATE_FORMAT, LOG_FILE, LOG_FORMAT

_trace_lock = threading.Lock()
_trace_file = None
_trace_unavailable = False


def _clock() -> str:
    return datetime.now().strftime("%H:%M:%S.%f")[:-3]


def _open_trace():
    """Open debug_flow.txt and write the session banner. Caller holds the lock."""
    global _trace_file, _trace_unavailable
    try:
        _trace_file = open(DEBUG_FLOW_FILE, 'a', encoding='utf-8')
    except OSError:
        _trace_unavailable = True
        return
    _trace_file.write(
        f"=== LessonScribe Debug Log ===\n"
        f"Started: {datetime.now().isoformat()}\n"
        f"DEBUG_MODE: {DEBUG_MODE}\n"
        f"{'=' * 60}\n\n"
    )


def _trace(message: str):
    with _trace_lock:
        if _trace_file is None:
            if _trace_unavailable:
                return
            _open_trace()
            if _trace_file is None:
                return
        _trace_file.write(f"[{_clock()}] {message}\n")
        _trace_file.flush()


def _build_logger() -> logging.Logger:
    logger = logging.getLogger('LessonScribe')
    logger.setLevel(logging.DEBUG if DEBUG_MODE else logging.INFO)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    try:
        file_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
    except OSError:
        file_handler = None  # no log directory; the trace file and console remain
    if file_handler is not None:
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if DEBUG_MODE:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(formatter)
        logger.addHandler(console)
    return logger


_logger = _build_logger()


def debug_log(message: str):
    """
    Write a trace line to debug_flow.txt, and to stdout in DEBUG mode.

    Prefix messages with the component, e.g.
    debug_log("[BatchExtractor] Batch 2/3: pages 40, 41, 42").
    """
    _trace(message)
    if not DEBUG_MODE:
        return
    line = f"[{_clock()}] {message}\n"
    try:
        sys.stdout.write(line)
    except UnicodeEncodeError:
        # Fijian macrons and box-drawing characters on narrow consoles
        sys.stdout.buffer.write(line.encode('utf-8', errors='replace'))
    sys.stdout.flush()


def info(message: str):
    _trace(f"[INFO] {message}")
    _logger.info(message)


def warning(message: str):
    """Log a warning; always reaches the log file whatever DEBUG_MODE says."""
    _trace(f"[WARNING] {message}")
    _logger.warning(message)


def error(message: str, exc_info: bool = False):
    """
    Log an error.

    Args:
        message: The error message
        exc_info: Attach the active traceback (honoured in DEBUG mode only)
    """
    _trace(f"[ERROR] {message}")
    _logger.error(message, exc_info=exc_info and DEBUG_MODE)


class Timer:
    """
    Context manager that measures a block and traces its duration.

    Usage:
        with Timer("Strategy Vision-11B-Full") as timer:
            run_strategy()
        elapsed = timer.get_duration_ms()
    """

    def __init__(self, operation_name: str, auto_log: bool = True):
        self.operation_name = operation_name
        self.auto_log = auto_log
        self._started: float | None = None
        self.duration_ms: float | None = None

    def __enter__(self):
        if self.auto_log:
            debug_log(f"Starting {self.operation_name}...")
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self._started) * 1000
        if self.auto_log:
            if self.duration_ms < 1000:
                shown = f"{self.duration_ms:.0f} ms"
            else:
                shown = f"{self.duration_ms / 1000:.1f} seconds"
            debug_log(f"{self.operation_name} took {shown}")
        return False

    def get_duration_ms(self) -> float:
        """
        Raises:
            ValueError: If the block has not finished yet
        """
        if self.duration_ms is None:
            raise ValueError("Timer has not been completed yet")
        return self.duration_ms


__all__ = ['debug_log', 'info', 'warning', 'error', 'Timer']
