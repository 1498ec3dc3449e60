from __future__ import annotations

import json
import logging
import os
import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from hostwatch.core.alerts.models import Alert
from hostwatch.core.errors import PersistenceError

DEFAULT_ALERTS_PATH = os.path.join("output", "alerts.json")


@dataclass
class PersisterStats:
    enqueued_total: int = 0
    written_total: int = 0
    dropped_total: int = 0
    failed_total: int = 0


class AlertPersister:
    """
    Append-only alert record writer.

    One worker thread drains a bounded queue and appends each batch as a single
    JSON array line, so concurrent breaches never interleave raw writes.
    `append` never blocks and never raises; failures are logged and counted.
    """

    def __init__(
        self,
        *,
        path: str = DEFAULT_ALERTS_PATH,
        max_queue_size: int = 1000,
        fsync: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.path = path
        self.fsync = bool(fsync)
        self.logger = logger or logging.getLogger("hostwatch.alerts.persister")
        self._q: "queue.Queue[List[Dict[str, Any]]]" = queue.Queue(maxsize=max(1, int(max_queue_size)))
        self._stats_lock = threading.Lock()
        self._stats = PersisterStats()
        self._closed = False
        self._close_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="hostwatch-alert-writer", daemon=True)
        self._thread.start()

    def append(self, alerts: Iterable[Alert]) -> bool:
        batch = [a.record() for a in alerts]
        if not batch:
            self.logger.debug("No alerts to send.")
            return False
        # nothing is enqueued once close() has started
        with self._close_lock:
            if self._closed:
                self.logger.warning(f"Alert persister closed; dropping {len(batch)} alert(s)")
                self._inc(dropped_total=1)
                return False
            try:
                self._q.put_nowait(batch)
            except queue.Full:
                self.logger.warning(f"Alert queue full; dropping {len(batch)} alert(s)")
                self._inc(dropped_total=1)
                return False
        self._inc(enqueued_total=1)
        return True

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Block until every queued batch has been written (or failed)."""
        deadline = None if timeout is None else time.monotonic() + float(timeout)
        with self._q.all_tasks_done:
            while self._q.unfinished_tasks:
                if deadline is None:
                    self._q.all_tasks_done.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._q.all_tasks_done.wait(remaining)
        return True

    def close(self, timeout: Optional[float] = None) -> bool:
        with self._close_lock:
            if self._closed:
                return False
            self._closed = True
        drained = self.flush(timeout)
        self._stop.set()
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout=max(0.5, float(timeout)) if timeout is not None else None)
        return drained

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> Dict[str, int]:
        with self._stats_lock:
            s = self._stats
            return {
                "enqueued_total": s.enqueued_total,
                "written_total": s.written_total,
                "dropped_total": s.dropped_total,
                "failed_total": s.failed_total,
                "queue_depth": self._q.qsize(),
            }

    # ---- internals ----
    def _run(self) -> None:
        while True:
            try:
                batch = self._q.get(timeout=0.1)
            except queue.Empty:
                if self._stop.is_set():
                    return
                continue
            try:
                self._write(batch)
            finally:
                self._q.task_done()

    def _write(self, batch: List[Dict[str, Any]]) -> None:
        try:
            try:
                line = json.dumps(batch, ensure_ascii=False, allow_nan=False)
            except (TypeError, ValueError) as e:
                raise PersistenceError("Alert batch is not JSON-serializable.", path=self.path, error=str(e)) from e
            try:
                parent = os.path.dirname(self.path)
                if parent:
                    os.makedirs(parent, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
                    if self.fsync:
                        f.flush()
                        os.fsync(f.fileno())
            except OSError as e:
                raise PersistenceError("Unable to append alert record.", path=self.path, error=str(e)) from e
        except PersistenceError as e:
            self._inc(failed_total=1)
            self.logger.error(f"{e.user_message} Dropped {len(batch)} alert(s): {e.context.get('error')}")
            return
        self._inc(written_total=1)
        self.logger.debug(f"Appended {len(batch)} alert(s) to {os.path.abspath(self.path)}")

    def _inc(self, **fields: int) -> None:
        with self._stats_lock:
            for k, n in fields.items():
                setattr(self._stats, k, getattr(self._stats, k) + int(n))
