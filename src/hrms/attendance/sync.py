"""Device-sync path: raw device logs in, ``record_punch`` out."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Protocol, Sequence

from ..core.enums import PunchDirection
from ..core.exceptions import DomainError
from .service import AttendanceService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceLog:
    device_user_id: str
    timestamp: datetime
    direction_hint: Optional[PunchDirection] = None


class DeviceFeed(Protocol):
    name: str

    def fetch_logs(self) -> Sequence[DeviceLog]:
        raise NotImplementedError


@dataclass
class SyncResult:
    device: str
    processed: int = 0
    duplicates: int = 0
    errors: list[str] = field(default_factory=list)
    success: bool = True

    @property
    def error_count(self) -> int:
        return len(self.errors)


class DeviceSyncService:
    def __init__(self, attendance: AttendanceService):
        self._attendance = attendance

    def process_logs(self, logs: Sequence[DeviceLog], *, device_name: str = "device") -> SyncResult:
        """Record each log; unknown employees and per-log failures are counted and skipped."""
        result = SyncResult(device=device_name)

        for log in sorted(logs, key=lambda item: item.timestamp):
            try:
                employee = self._attendance.find_employee(log.device_user_id)
                outcome = self._attendance.record_punch_for(
                    employee,
                    log.timestamp,
                    log.direction_hint,
                    source=f"{device_name}:{log.device_user_id}",
                    location=device_name,
                )
            except DomainError as e:
                logger.warning("Skipped log of %s at %s: %s", log.device_user_id, log.timestamp, e)
                result.errors.append(f"{log.device_user_id}@{log.timestamp.isoformat()}: {e}")
                continue

            if outcome.accepted:
                result.processed += 1
            else:
                result.duplicates += 1

        logger.info(
            "Sync %s: processed=%d duplicates=%d errors=%d",
            device_name,
            result.processed,
            result.duplicates,
            result.error_count,
        )
        return result

    def sync_all(self, feeds: Sequence[DeviceFeed]) -> list[SyncResult]:
        results = []
        for feed in feeds:
            try:
                logs = feed.fetch_logs()
            except Exception as e:
                logger.error("Fetching logs from %s failed: %s", feed.name, e)
                results.append(SyncResult(device=feed.name, success=False, errors=[str(e)]))
                continue
            results.append(self.process_logs(logs, device_name=feed.name))
        return results


class PeriodicSync:
    """Runs ``job`` every ``interval_seconds`` on a daemon thread.

    A tick that fires while the previous run is still going is skipped.
    """

    def __init__(self, job: Callable[[], object], *, interval_seconds: float):
        self._job = job
        self._interval = float(interval_seconds)
        self._running = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> bool:
        """Returns False when skipped because a run is in progress."""
        if not self._running.acquire(blocking=False):
            logger.info("Previous sync still running, skipping this tick")
            return False
        try:
            self._job()
        except Exception:
            logger.exception("Periodic sync failed")
        finally:
            self._running.release()
        return True

    def _loop(self) -> None:
        while not self._stop.wait(self._interval):
            self.run_once()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="device-sync", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
