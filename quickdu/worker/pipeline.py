from __future__ import annotations

from quickdu.core.config import get_settings
from quickdu.usage.service import build_usage_service, get_usage_service
from quickdu.usage.types import UsageSnapshot


class UsagePassError(RuntimeError):
    pass


def request_refresh() -> bool:
    return get_usage_service().request_refresh() is not None


def request_job_cleanup(full_name: str) -> None:
    get_usage_service().request_job_cleanup(full_name)


def run_usage_pass_once(*, timeout_seconds: float | None = None) -> UsageSnapshot:
    """Run one measurement pass in the foreground with a private service instance."""
    service = build_usage_service(get_settings())
    service.start()
    try:
        future = service.request_refresh()
        if future is None:
            raise UsagePassError("Disk usage service refused the pass")
        future.result(timeout=timeout_seconds)
        snapshot = service.snapshot()
    finally:
        service.shutdown(wait=True)

    if snapshot.last_run_end == snapshot.last_run_start:
        raise UsagePassError("Disk usage pass did not complete; see log for details")
    return snapshot
