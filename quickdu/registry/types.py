from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class TrackedJob:
    full_name: str
    display_name: str
    root_dir: Path


class HostRegistry(Protocol):
    def root_directory(self) -> Path: ...

    def list_trackable_items(self) -> list[TrackedJob]: ...

    def is_still_tracked(self, full_name: str) -> bool: ...

    def rotate(self, full_name: str) -> int: ...
