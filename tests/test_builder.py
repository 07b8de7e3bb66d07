from __future__ import annotations

import shutil
from pathlib import Path

from quickdu.core.config import Settings
from quickdu.registry.service import FilesystemJobRegistry
from quickdu.usage.builder import SnapshotBuilder
from quickdu.usage.types import DirectoryUsage, JobUsage, UsageSnapshot


class FakeRunner:
    def __init__(self, sizes: dict[Path, int | None] | None = None, default: int | None = 1):
        self.sizes = sizes or {}
        self.default = default
        self.calls: list[Path | None] = []

    def measure(self, path: Path | None) -> int | None:
        self.calls.append(path)
        if path is None or not path.is_dir():
            return None
        return self.sizes.get(path, self.default)


def make_settings(tmp_path: Path, **overrides: object) -> Settings:
    home = tmp_path / "home"
    home.mkdir(exist_ok=True)
    temp = tmp_path / "tmp"
    temp.mkdir(exist_ok=True)
    values: dict[str, object] = {
        "home_root": home,
        "state_root": tmp_path / "state",
        "temp_root": temp,
        "directory_pacing_seconds": 0,
    }
    values.update(overrides)
    return Settings(**values)


def test_scenario_directories_and_deleted_job(tmp_path: Path) -> None:
    settings = make_settings(tmp_path)
    home = settings.home_root
    (home / "jobs" / "alpha").mkdir(parents=True)
    (home / "jobs" / "beta").mkdir(parents=True)
    (home / "logs").mkdir()
    temp = settings.temp_root
    assert temp is not None

    runner = FakeRunner(
        {
            home / "jobs": 500,
            home / "logs": 300,
            temp: 10,
            home / "jobs" / "alpha": 40,
            home / "jobs" / "beta": 60,
        },
        default=810,
    )
    builder = SnapshotBuilder(settings, FilesystemJobRegistry(settings), runner)

    directories, jobs = builder.run_pass(UsageSnapshot())
    by_label = {item.display_name: item.size_kb for item in directories}
    assert by_label == {"HOME": 810, "HOME/jobs": 500, "HOME/logs": 300, "tmpdir": 10}
    assert [job.full_name for job in jobs] == ["alpha", "beta"]

    shutil.rmtree(home / "jobs" / "beta")
    _, jobs_after = builder.run_pass(UsageSnapshot(directories=directories, jobs=jobs))

    assert [job.full_name for job in jobs_after] == ["alpha"]
    assert jobs_after[0].size_kb == 40


def test_directory_targets_are_deduplicated_with_last_label_winning(tmp_path: Path) -> None:
    home = tmp_path / "home"
    (home / "scratch").mkdir(parents=True)
    settings = make_settings(tmp_path, temp_root=home / "scratch")
    runner = FakeRunner()
    builder = SnapshotBuilder(settings, FilesystemJobRegistry(settings), runner)

    targets = builder.directory_targets()
    assert targets[settings.home_root / "scratch"] == "tmpdir"

    directories = builder.compute_directories(())
    assert [item.display_name for item in directories] == ["HOME", "tmpdir"]
    assert runner.calls.count(settings.home_root / "scratch") == 1


def test_symlinked_home_child_is_measured_once_under_its_resolved_path(tmp_path: Path) -> None:
    settings = make_settings(tmp_path)
    temp = settings.temp_root
    assert temp is not None
    (settings.home_root / "tmp").symlink_to(temp, target_is_directory=True)
    runner = FakeRunner()
    builder = SnapshotBuilder(settings, FilesystemJobRegistry(settings), runner)

    directories = builder.compute_directories(())

    assert [(item.display_name, item.path) for item in directories] == [
        ("HOME", settings.home_root),
        ("tmpdir", temp),
    ]
    assert runner.calls.count(temp) == 1


def test_directory_measurements_are_paced(tmp_path: Path) -> None:
    settings = make_settings(tmp_path, directory_pacing_seconds=1.0)
    (settings.home_root / "logs").mkdir()
    (settings.home_root / "jobs" / "alpha").mkdir(parents=True)
    sleeps: list[float] = []
    builder = SnapshotBuilder(settings, FilesystemJobRegistry(settings), FakeRunner(), sleep=sleeps.append)

    directories, jobs = builder.run_pass(UsageSnapshot())

    assert len(jobs) == 1
    assert sleeps == [1.0] * len(directories)


def test_pacing_can_be_disabled(tmp_path: Path) -> None:
    settings = make_settings(tmp_path)
    sleeps: list[float] = []
    builder = SnapshotBuilder(settings, FilesystemJobRegistry(settings), FakeRunner(), sleep=sleeps.append)

    builder.run_pass(UsageSnapshot())

    assert sleeps == []


def test_stale_directory_entries_are_evicted(tmp_path: Path) -> None:
    settings = make_settings(tmp_path)
    removed = settings.home_root / "old"
    previous = UsageSnapshot(
        directories=(
            DirectoryUsage(display_name="HOME/old", path=removed, size_kb=5),
            DirectoryUsage(display_name="elsewhere", path=tmp_path, size_kb=5),
        )
    )
    builder = SnapshotBuilder(settings, FilesystemJobRegistry(settings), FakeRunner())

    directories, _ = builder.run_pass(previous)

    paths = {item.path for item in directories}
    assert removed not in paths
    assert tmp_path not in paths


def test_untracked_job_is_evicted_even_if_directory_remains(tmp_path: Path) -> None:
    settings = make_settings(tmp_path)
    orphan = tmp_path / "orphan"
    orphan.mkdir()
    previous = UsageSnapshot(jobs=(JobUsage(display_name="orphan", path=orphan, size_kb=1, full_name="orphan"),))
    builder = SnapshotBuilder(settings, FilesystemJobRegistry(settings), FakeRunner())

    _, jobs = builder.run_pass(previous)

    assert jobs == ()


def test_failed_measurements_are_kept_as_unknown(tmp_path: Path) -> None:
    settings = make_settings(tmp_path)
    (settings.home_root / "jobs" / "alpha").mkdir(parents=True)
    builder = SnapshotBuilder(settings, FilesystemJobRegistry(settings), FakeRunner(default=None))

    directories, jobs = builder.run_pass(UsageSnapshot())

    assert all(item.size_kb is None for item in directories)
    assert [(job.full_name, job.size_kb) for job in jobs] == [("alpha", None)]
