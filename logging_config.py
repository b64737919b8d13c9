"""Centralized logging configuration with optional Supabase support.

This module provides:
- PlainFormatter for stderr output
- JSONFormatter for structured log entries ([TAG] prefixes become a field)
- SupabaseHandler for batched remote log collection
"""

import atexit
import logging
import re
import sys
import threading
from queue import Empty, Queue
from typing import Optional

TAG_PATTERN = re.compile(r"\[([A-Z_]+)\]\s*(.*)", re.DOTALL)


class JSONFormatter(logging.Formatter):
    """Formats a record as a dict row for the logs table."""

    def __init__(self, service_name: str = None, instance_id: str = None):
        super().__init__()
        self.service_name = service_name or "unknown"
        self.instance_id = instance_id

    def format(self, record: logging.LogRecord) -> dict:
        tag = None
        message = record.getMessage()
        tag_match = TAG_PATTERN.match(message)
        if tag_match:
            tag = tag_match.group(1)
            message = tag_match.group(2)

        log_entry = {
            "service_name": self.service_name,
            "instance_id": self.instance_id,
            "level": record.levelname,
            "tag": tag,
            "message": message,
            "module": record.module,
            "extra": {
                "function": record.funcName,
                "line": record.lineno,
            },
        }

        if record.exc_info:
            log_entry["extra"]["exception"] = self.formatException(record.exc_info)

        return log_entry


class PlainFormatter(logging.Formatter):
    """Plain text formatter for stderr output."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


class SupabaseHandler(logging.Handler):
    """Logging handler that batches records into a Supabase table.

    Records are queued and inserted in batches; a flush happens when
    batch_size records are waiting or every flush_interval seconds.
    """

    def __init__(
        self,
        supabase_client,
        service_name: str,
        instance_id: str = None,
        batch_size: int = 20,
        flush_interval: float = 10.0,
        table: str = "logs",
        start_worker: bool = True,
    ):
        super().__init__()
        self.supabase = supabase_client
        self.service_name = service_name
        self.instance_id = instance_id
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self.table = table

        self._queue: Queue = Queue()
        self._shutdown = threading.Event()
        self._flush_thread = None
        if start_worker:
            self._flush_thread = threading.Thread(target=self._flush_worker, daemon=True)
            self._flush_thread.start()
            atexit.register(self.close)

    def emit(self, record: logging.LogRecord):
        """Queue a record; flush if the batch is full."""
        try:
            if isinstance(self.formatter, JSONFormatter):
                log_entry = self.formatter.format(record)
            else:
                log_entry = {
                    "service_name": self.service_name,
                    "instance_id": self.instance_id,
                    "level": record.levelname,
                    "tag": None,
                    "message": record.getMessage(),
                    "module": record.module,
                    "extra": {},
                }

            self._queue.put(log_entry)

            if self._queue.qsize() >= self.batch_size:
                self.flush()
        except Exception:
            self.handleError(record)

    def _flush_worker(self):
        while not self._shutdown.wait(self.flush_interval):
            if not self._queue.empty():
                self.flush()

    def flush(self):
        """Send queued records to Supabase."""
        logs = []
        while len(logs) < self.batch_size * 2:
            try:
                logs.append(self._queue.get_nowait())
            except Empty:
                break

        if not logs or not self.supabase:
            return
        try:
            self.supabase.table(self.table).insert(logs).execute()
        except Exception as e:
            # stderr only, logging here would recurse
            print(f"[WARNING] Failed to send logs to Supabase: {e}", file=sys.stderr)

    def close(self):
        """Flush remaining records and stop the worker thread."""
        self._shutdown.set()
        self.flush()
        super().close()


_supabase_handler: Optional[SupabaseHandler] = None


def setup_logging(
    service_name: str = "multi-space-jira-mcp",
    instance_id: str = None,
    supabase_client=None,
    level: int = logging.INFO,
) -> logging.Logger:
    """Configure root logging.

    Args:
        service_name: Name stamped on remote log rows.
        instance_id: Optional host/instance identifier for remote rows.
        supabase_client: Supabase client for remote logging, or None.
        level: Root log level.

    Returns:
        Configured root logger.
    """
    global _supabase_handler

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(level)
    stderr_handler.setFormatter(PlainFormatter())
    root_logger.addHandler(stderr_handler)

    supabase_enabled = False
    if supabase_client:
        try:
            _supabase_handler = SupabaseHandler(
                supabase_client=supabase_client,
                service_name=service_name,
                instance_id=instance_id,
            )
            _supabase_handler.setLevel(level)
            _supabase_handler.setFormatter(JSONFormatter(service_name, instance_id))
            root_logger.addHandler(_supabase_handler)
            supabase_enabled = True
        except Exception as e:
            print(f"[WARNING] Supabase logging setup failed: {e}", file=sys.stderr)

    # Keep request-level HTTP client chatter out of the logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    if supabase_enabled:
        logger.info(f"[STARTUP] Supabase logging enabled for {service_name}")
    else:
        logger.info("[STARTUP] Supabase logging disabled (no client)")

    return root_logger


def flush_logs():
    """Flush pending records to Supabase."""
    if _supabase_handler:
        _supabase_handler.flush()
