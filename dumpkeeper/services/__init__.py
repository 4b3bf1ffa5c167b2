"""
Servicios de la aplicación
"""
from .archive_service import ArchivePackager
from .backup_service import BackupService
from .cleanup_service import CleanupService
from .scheduler_service import SchedulerService

__all__ = [
    'ArchivePackager',
    'BackupService',
    'CleanupService',
    'SchedulerService'
]
