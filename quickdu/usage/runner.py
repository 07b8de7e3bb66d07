from __future__ import annotations

import logging
import os
import signal
import subprocess
from pathlib import Path
from typing import Sequence

logger = logging.getLogger(__name__)

DU_OUTPUT_SUFFIX = "\t.\n"
_REAP_TIMEOUT_SECONDS = 5


class DiskUsageRunner:
    """Runs the external sizing command inside a directory and reports kilobytes.

    Every failure mode except an unwritable home root collapses to ``None`` so a
    single slow or broken target never aborts a measurement pass.
    """

    def __init__(self, command: Sequence[str], *, timeout_seconds: float, home_root: Path):
        if not command:
            raise ValueError("command cannot be empty")
        self._command = list(command)
        self._timeout_seconds = timeout_seconds
        self._home_root = home_root

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def _touch_home_root(self) -> bool:
        # A frozen filesystem blocks this write instead of the reads below.
        if not self._home_root.is_dir():
            return False
        os.utime(self._home_root)
        return True

    def measure(self, path: Path | None) -> int | None:
        if path is None or not path.is_dir():
            return None
        logger.debug("Estimating usage for: %s", path)

        if not self._touch_home_root():
            return None

        try:
            process = subprocess.Popen(
                self._command,
                cwd=path,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                start_new_session=True,
            )
        except OSError as exc:
            logger.warning("Unable to launch %r for '%s': %s", self._command[0], path, exc)
            return None

        try:
            stdout, _ = process.communicate(timeout=self._timeout_seconds)
        except subprocess.TimeoutExpired:
            self._kill_process_group(process)
            logger.warning(
                "Time to compute the size of '%s' is too long. Process killed after %s seconds of activity. "
                "You might be experiencing storage slowness.",
                path,
                self._timeout_seconds,
            )
            return None

        if process.returncode != 0:
            logger.debug("Sizing command exited with status %s for '%s'", process.returncode, path)
            return None
        return parse_du_output(stdout)

    def _kill_process_group(self, process: subprocess.Popen[str]) -> None:
        # The command runs in its own session, so its pid is also the group id of every child it spawned.
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        if process.stdout is not None:
            process.stdout.close()
        try:
            process.wait(timeout=_REAP_TIMEOUT_SECONDS)
        except subprocess.TimeoutExpired:
            logger.warning("Sizing process %s did not exit after SIGKILL", process.pid)


def parse_du_output(output: str) -> int | None:
    raw = output.removesuffix(DU_OUTPUT_SUFFIX)
    try:
        return int(raw)
    except ValueError:
        return None
