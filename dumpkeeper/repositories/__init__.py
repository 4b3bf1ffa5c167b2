"""
Repositorios de configuración y catálogo
"""
from .catalog_repository import BackupCatalog
from .config_repository import ConfigRepository
from .schedule_repository import ScheduleRepository

__all__ = [
    'BackupCatalog',
    'ConfigRepository',
    'ScheduleRepository'
]
