"""Core finder orchestration."""

from .service import FinderService
from .sync_wrapper import SyncFinderService

__all__ = [
    "FinderService",
    "SyncFinderService",
]
