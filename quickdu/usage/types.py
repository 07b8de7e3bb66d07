from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)
UNKNOWN_SIZE_DISPLAY = "n/a"

_SIZE_UNITS = ("KB", "MB", "GB", "TB", "PB")


def format_size_kb(size_kb: int | None) -> str:
    if size_kb is None:
        return UNKNOWN_SIZE_DISPLAY
    if size_kb < 1024:
        return f"{size_kb} KB"
    value = float(size_kb)
    unit = _SIZE_UNITS[0]
    for unit in _SIZE_UNITS[1:]:
        value /= 1024
        if value < 1024:
            break
    return f"{value:.1f} {unit}"


@dataclass(frozen=True, slots=True)
class DirectoryUsage:
    display_name: str
    path: Path
    size_kb: int | None

    @property
    def key(self) -> Path:
        return self.path

    @property
    def size_display(self) -> str:
        return format_size_kb(self.size_kb)


@dataclass(frozen=True, slots=True)
class JobUsage:
    display_name: str
    path: Path
    size_kb: int | None
    full_name: str

    @property
    def key(self) -> tuple[Path, str]:
        return (self.path, self.full_name)

    @property
    def size_display(self) -> str:
        return format_size_kb(self.size_kb)


@dataclass(frozen=True, slots=True)
class UsageSnapshot:
    directories: tuple[DirectoryUsage, ...] = field(default_factory=tuple)
    jobs: tuple[JobUsage, ...] = field(default_factory=tuple)
    last_run_start: datetime = EPOCH
    last_run_end: datetime = EPOCH

    @property
    def is_running(self) -> bool:
        return self.last_run_end < self.last_run_start
