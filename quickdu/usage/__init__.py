from quickdu.usage.builder import SnapshotBuilder
from quickdu.usage.reconcile import reconcile
from quickdu.usage.repository import UsageRepository
from quickdu.usage.runner import DiskUsageRunner, parse_du_output
from quickdu.usage.service import DiskUsageService, get_usage_service, reset_usage_service
from quickdu.usage.types import DirectoryUsage, JobUsage, UsageSnapshot, format_size_kb

__all__ = [
    "DirectoryUsage",
    "DiskUsageRunner",
    "DiskUsageService",
    "JobUsage",
    "SnapshotBuilder",
    "UsageRepository",
    "UsageSnapshot",
    "format_size_kb",
    "get_usage_service",
    "parse_du_output",
    "reconcile",
    "reset_usage_service",
]
