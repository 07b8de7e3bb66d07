from quickdu.worker.pipeline import (
    UsagePassError,
    request_job_cleanup,
    request_refresh,
    run_usage_pass_once,
)

__all__ = [
    "UsagePassError",
    "request_refresh",
    "request_job_cleanup",
    "run_usage_pass_once",
]
