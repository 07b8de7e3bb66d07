from __future__ import annotations

import logging
import tempfile
import time
from pathlib import Path
from typing import Callable, Protocol

from quickdu.core.config import Settings
from quickdu.registry.types import HostRegistry
from quickdu.usage.reconcile import reconcile
from quickdu.usage.types import DirectoryUsage, JobUsage, UsageSnapshot

logger = logging.getLogger(__name__)


class SizeProbe(Protocol):
    def measure(self, path: Path | None) -> int | None: ...


class SnapshotBuilder:
    def __init__(
        self,
        settings: Settings,
        registry: HostRegistry,
        runner: SizeProbe,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._settings = settings
        self._registry = registry
        self._runner = runner
        self._sleep = sleep

    def _temp_directory(self) -> Path:
        if self._settings.temp_root is not None:
            return self._settings.temp_root
        return Path(tempfile.gettempdir()).resolve(strict=False)

    def directory_targets(self) -> dict[Path, str]:
        """Map each resolved directory to measure onto its label; a later label for the same path wins."""
        home_root = self._registry.root_directory()
        home_label = self._settings.home_label
        targets: dict[Path, str] = {home_root: home_label}

        try:
            children = sorted(home_root.iterdir(), key=lambda child: child.name)
        except OSError:
            children = []
        for child in children:
            if child.is_dir():
                targets[child.resolve(strict=False)] = f"{home_label}/{child.name}"

        targets[self._temp_directory()] = self._settings.temp_label
        return targets

    def compute_jobs(self, previous: tuple[JobUsage, ...]) -> tuple[JobUsage, ...]:
        fresh: list[JobUsage] = []
        for job in self._registry.list_trackable_items():
            fresh.append(
                JobUsage(
                    display_name=job.display_name,
                    path=job.root_dir,
                    size_kb=self._runner.measure(job.root_dir),
                    full_name=job.full_name,
                )
            )

        def keep(item: JobUsage) -> bool:
            return item.path.exists() and self._registry.is_still_tracked(item.full_name)

        return reconcile(previous, fresh, key=lambda item: item.key, keep=keep)

    def compute_directories(self, previous: tuple[DirectoryUsage, ...]) -> tuple[DirectoryUsage, ...]:
        targets = self.directory_targets()
        pacing = self._settings.directory_pacing_seconds

        fresh: list[DirectoryUsage] = []
        for path, label in targets.items():
            fresh.append(DirectoryUsage(display_name=label, path=path, size_kb=self._runner.measure(path)))
            if pacing > 0:
                self._sleep(pacing)

        def keep(item: DirectoryUsage) -> bool:
            return item.path.exists() and item.path in targets

        return reconcile(previous, fresh, key=lambda item: item.key, keep=keep)

    def run_pass(self, previous: UsageSnapshot) -> tuple[tuple[DirectoryUsage, ...], tuple[JobUsage, ...]]:
        jobs = self.compute_jobs(previous.jobs)
        directories = self.compute_directories(previous.directories)
        logger.debug("Measured %d directories and %d jobs", len(directories), len(jobs))
        return directories, jobs
