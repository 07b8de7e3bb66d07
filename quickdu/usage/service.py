from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from quickdu.core.config import Settings, get_settings
from quickdu.core.security import SYSTEM, impersonate
from quickdu.db.session import get_session_factory
from quickdu.registry.service import FilesystemJobRegistry, RegistryUnavailableError, UnknownJobError
from quickdu.registry.types import HostRegistry
from quickdu.usage.builder import SnapshotBuilder
from quickdu.usage.repository import UsageRepository
from quickdu.usage.runner import DiskUsageRunner
from quickdu.usage.types import DirectoryUsage, JobUsage, UsageSnapshot

logger = logging.getLogger(__name__)


class SnapshotStore(Protocol):
    def load(self) -> UsageSnapshot: ...

    def save(self, snapshot: UsageSnapshot) -> None: ...


class DiskUsageService:
    """Owns the published snapshot and the single worker that refreshes it.

    Reads never wait for a pass. A pass is submitted only when none is queued
    or running, so at most one sizing process runs at a time.
    """

    def __init__(
        self,
        settings: Settings,
        registry: HostRegistry,
        builder: SnapshotBuilder,
        store: SnapshotStore | None = None,
    ):
        self._settings = settings
        self._registry = registry
        self._builder = builder
        self._store = store
        self._snapshot = UsageSnapshot()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="disk-usage-checker")
        self._cleanup_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="disk-usage-cleanup")
        self._submit_lock = threading.Lock()
        self._pending: Future[None] | None = None
        self._closed = False

    def _now(self) -> datetime:
        return datetime.now(tz=timezone.utc)

    @property
    def quiet_period(self) -> timedelta:
        return timedelta(seconds=self._settings.quiet_period_seconds)

    def start(self) -> None:
        if self._store is not None:
            try:
                self._snapshot = self._store.load()
            except (SQLAlchemyError, OSError) as exc:
                logger.warning("Failed to load persisted disk usage snapshot: %s", exc)
        if self._snapshot.is_running:
            # No pass can survive a restart; the stored state is left over from an unclean shutdown.
            self._snapshot = replace(self._snapshot, last_run_end=self._snapshot.last_run_start)

    def shutdown(self, wait: bool = True) -> None:
        with self._submit_lock:
            self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=not wait)
        self._cleanup_executor.shutdown(wait=wait, cancel_futures=not wait)

    def snapshot(self) -> UsageSnapshot:
        return self._snapshot

    def is_running(self) -> bool:
        return self._snapshot.is_running

    def since_last_run(self) -> timedelta:
        return self._now() - self._snapshot.last_run_end

    def request_refresh(self) -> Future[None] | None:
        with self._submit_lock:
            if self._closed:
                return None
            if self._pending is not None and not self._pending.done():
                return self._pending
            self._pending = self._executor.submit(self._run_pass)
            return self._pending

    def _refresh_if_stale(self) -> None:
        if self.since_last_run() >= self.quiet_period:
            self.request_refresh()

    def read_snapshot(self) -> UsageSnapshot:
        self._refresh_if_stale()
        return self._snapshot

    def read_directories(self) -> tuple[DirectoryUsage, ...]:
        return self.read_snapshot().directories

    def read_jobs(self) -> tuple[JobUsage, ...]:
        return self.read_snapshot().jobs

    def _run_pass(self) -> None:
        logger.info("Re-estimating disk usage")
        previous = replace(self._snapshot, last_run_start=self._now())
        self._snapshot = previous
        try:
            with impersonate(SYSTEM):
                directories, jobs = self._builder.run_pass(previous)
        except RegistryUnavailableError as exc:
            logger.info("Unable to run disk usage check: %s", exc)
            self._snapshot = replace(previous, last_run_end=previous.last_run_start)
        except Exception:
            logger.exception("Disk usage check failed")
            self._snapshot = replace(previous, last_run_end=previous.last_run_start)
        else:
            self._snapshot = UsageSnapshot(
                directories=directories,
                jobs=jobs,
                last_run_start=previous.last_run_start,
                last_run_end=self._now(),
            )
            logger.info("Finished re-estimating disk usage.")
        self._persist()

    def _persist(self) -> None:
        if self._store is None:
            return
        try:
            self._store.save(self._snapshot)
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Failed to save disk usage snapshot: %s", exc)

    def request_job_cleanup(self, full_name: str) -> Future[int]:
        home_root = self._registry.root_directory()
        if not home_root.is_dir():
            raise RegistryUnavailableError(f"Home root is not available: {home_root.as_posix()}")
        if not self._registry.is_still_tracked(full_name):
            raise UnknownJobError(f"Job not found: {full_name}")
        return self._cleanup_executor.submit(self._rotate_job, full_name)

    def _rotate_job(self, full_name: str) -> int:
        try:
            with impersonate(SYSTEM):
                return self._registry.rotate(full_name)
        except Exception:
            logger.warning("Retention cleanup failed for job %s", full_name, exc_info=True)
            return 0


_service: DiskUsageService | None = None
_service_lock = threading.Lock()


def build_usage_service(settings: Settings) -> DiskUsageService:
    registry = FilesystemJobRegistry(settings)
    runner = DiskUsageRunner(
        settings.du_command_args,
        timeout_seconds=settings.du_timeout_seconds,
        home_root=settings.home_root,
    )
    builder = SnapshotBuilder(settings, registry, runner)
    store = UsageRepository(get_session_factory())
    return DiskUsageService(settings, registry, builder, store)


def get_usage_service() -> DiskUsageService:
    global _service
    with _service_lock:
        if _service is None:
            _service = build_usage_service(get_settings())
            _service.start()
        return _service


def reset_usage_service() -> None:
    global _service
    with _service_lock:
        if _service is not None:
            _service.shutdown(wait=True)
        _service = None
