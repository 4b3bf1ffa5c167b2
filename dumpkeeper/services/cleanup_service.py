"""
Servicio de retención de backups (Single Responsibility)
"""
from collections import defaultdict
from pathlib import Path
from typing import Callable, Dict, List, Sequence
from ..logger import LoggerService
from ..models import BackupMetadata, RetentionPlan, RetentionSettings
from ..repositories.catalog_repository import BackupCatalog


def _partition_by_bucket(entries: Sequence[BackupMetadata], bucket_of: Callable[[BackupMetadata], str],
                         keep_buckets: int, plan: RetentionPlan):
    """
    Conserva el backup más reciente de los keep_buckets buckets más nuevos

    El resto del bucket, y los buckets más viejos completos, se marcan para eliminar.
    """
    by_bucket: Dict[str, List[BackupMetadata]] = defaultdict(list)
    for entry in entries:
        by_bucket[bucket_of(entry)].append(entry)

    kept_buckets = set(sorted(by_bucket, reverse=True)[:keep_buckets])

    for bucket, backups in by_bucket.items():
        if bucket in kept_buckets:
            backups = sorted(backups, key=lambda b: b.created, reverse=True)
            plan.keep.append(backups[0])
            plan.delete.extend(backups[1:])
        else:
            plan.delete.extend(backups)


class CleanupService:
    """Aplica la política de retención semanal/mensual sobre el catálogo"""

    def __init__(self, catalog: BackupCatalog):
        """
        Inicializa el servicio de limpieza

        Args:
            catalog: Catálogo de backups
        """
        self.catalog = catalog
        self.logger = LoggerService.get_logger("CleanupService")

    @staticmethod
    def plan(entries: Sequence[BackupMetadata], retention: RetentionSettings) -> RetentionPlan:
        """
        Decide qué backups conservar y cuáles eliminar (sin efectos secundarios)

        Los backups manuales se conservan siempre.

        Args:
            entries: Entradas del catálogo
            retention: Cantidad de semanas y meses a conservar

        Returns:
            RetentionPlan
        """
        plan = RetentionPlan()
        plan.keep.extend(e for e in entries if e.backup_type == 'manual')

        _partition_by_bucket(
            [e for e in entries if e.backup_type == 'weekly'],
            lambda e: e.week, retention.keep_weekly, plan
        )
        _partition_by_bucket(
            [e for e in entries if e.backup_type == 'monthly'],
            lambda e: e.month, retention.keep_monthly, plan
        )
        return plan

    def apply(self, entries: Sequence[BackupMetadata], retention: RetentionSettings) -> RetentionPlan:
        """
        Elimina los archivos marcados y guarda el catálogo sobreviviente

        Un error al eliminar un archivo no detiene la eliminación de los demás.

        Args:
            entries: Entradas del catálogo
            retention: Política de retención

        Returns:
            El plan aplicado
        """
        self.logger.info(
            f"Limpiando backups antiguos (conservar {retention.keep_weekly} semanas, "
            f"{retention.keep_monthly} meses)..."
        )
        plan = self.plan(entries, retention)

        for backup in plan.delete:
            try:
                Path(backup.file_path).unlink()
                self.logger.info(f"Eliminado backup antiguo: {backup.file_name}")
            except FileNotFoundError:
                self.logger.warning(f"El archivo ya no existía: {backup.file_name}")
            except OSError as e:
                self.logger.error(f"Error al eliminar {backup.file_name}: {e}")

        self.catalog.replace(plan.keep)
        self.logger.info(
            f"Limpieza completada: {len(plan.keep)} conservado(s), {len(plan.delete)} eliminado(s)"
        )
        return plan

    def cleanup_now(self, retention: RetentionSettings) -> RetentionPlan:
        """
        Limpieza completa: quita entradas huérfanas y aplica la retención

        Args:
            retention: Política de retención

        Returns:
            El plan aplicado
        """
        with self.catalog.lock:
            self.catalog.prune_missing()
            return self.apply(self.catalog.load(), retention)

    def get_backup_stats(self) -> dict:
        """
        Obtiene estadísticas de los backups del catálogo

        Returns:
            Diccionario con estadísticas
        """
        entries = self.catalog.load()
        dates = sorted(e.created for e in entries)
        return {
            'total_backups': len(entries),
            'weekly_backups': sum(1 for e in entries if e.backup_type == 'weekly'),
            'monthly_backups': sum(1 for e in entries if e.backup_type == 'monthly'),
            'manual_backups': sum(1 for e in entries if e.backup_type == 'manual'),
            'total_size': sum(e.size for e in entries),
            'total_size_mb': sum(e.size for e in entries) / (1024 * 1024),
            'oldest_backup': dates[0] if dates else None,
            'newest_backup': dates[-1] if dates else None,
        }
