from __future__ import annotations

import logging
import shutil
from pathlib import Path

from quickdu.core.config import Settings
from quickdu.registry.types import TrackedJob

logger = logging.getLogger(__name__)


class RegistryUnavailableError(RuntimeError):
    pass


class UnknownJobError(RuntimeError):
    pass


class FilesystemJobRegistry:
    """Jobs are the top-level directories of ``<home_root>/<jobs_dirname>``."""

    def __init__(self, settings: Settings):
        self._settings = settings

    @property
    def jobs_root(self) -> Path:
        return self._settings.home_root / self._settings.jobs_dirname

    def root_directory(self) -> Path:
        return self._settings.home_root

    def _normalize_name(self, full_name: str) -> str | None:
        token = full_name.strip()
        if not token or "/" in token or token in {".", ".."} or token.startswith("."):
            return None
        return token

    def list_trackable_items(self) -> list[TrackedJob]:
        home_root = self.root_directory()
        if not home_root.is_dir():
            raise RegistryUnavailableError(f"Home root is not available: {home_root.as_posix()}")

        jobs_root = self.jobs_root
        if not jobs_root.exists():
            return []
        try:
            children = sorted(jobs_root.iterdir(), key=lambda child: child.name)
        except OSError as exc:
            raise RegistryUnavailableError(f"Unable to list jobs under {jobs_root.as_posix()}: {exc}") from exc

        return [
            TrackedJob(full_name=child.name, display_name=child.name, root_dir=child)
            for child in children
            if child.is_dir() and not child.name.startswith(".")
        ]

    def is_still_tracked(self, full_name: str) -> bool:
        name = self._normalize_name(full_name)
        if name is None:
            return False
        return (self.jobs_root / name).is_dir()

    def get_job(self, full_name: str) -> TrackedJob:
        name = self._normalize_name(full_name)
        if name is None or not (self.jobs_root / name).is_dir():
            raise UnknownJobError(f"Job not found: {full_name}")
        return TrackedJob(full_name=name, display_name=name, root_dir=self.jobs_root / name)

    def rotate(self, full_name: str) -> int:
        """Delete numbered build directories beyond the configured retention, newest kept."""
        job = self.get_job(full_name)
        builds_root = job.root_dir / self._settings.builds_dirname
        if not builds_root.is_dir():
            return 0

        numbered = [
            child
            for child in builds_root.iterdir()
            if child.name.isdigit() and child.is_dir() and not child.is_symlink()
        ]
        numbered.sort(key=lambda child: int(child.name), reverse=True)
        expired = numbered[self._settings.job_retention_builds :]
        for build_dir in expired:
            logger.debug("Removing build %s of job %s", build_dir.name, job.full_name)
            shutil.rmtree(build_dir)
        if expired:
            logger.info("Rotated %d builds of job %s", len(expired), job.full_name)
        return len(expired)
