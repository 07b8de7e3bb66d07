from quickdu.registry.service import (
    FilesystemJobRegistry,
    RegistryUnavailableError,
    UnknownJobError,
)
from quickdu.registry.types import HostRegistry, TrackedJob

__all__ = [
    "FilesystemJobRegistry",
    "HostRegistry",
    "RegistryUnavailableError",
    "TrackedJob",
    "UnknownJobError",
]
