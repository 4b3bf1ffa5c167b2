"""
Servicio principal que orquesta los backups
"""
import dataclasses
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union
from ..config import Config
from ..errors import (
    BackupError, BackupInProgressError, CatalogError, PackagingError, ProcessingTimeoutError,
)
from ..factories.strategy_factory import DumpStrategyFactory
from ..logger import LoggerService
from ..models import (
    BACKUP_TYPES, BackupMetadata, BackupOptions, BackupResult, BackupScheduleConfig,
    DatabaseConfig, DumpFile, RetentionPlan,
)
from ..repositories.catalog_repository import BackupCatalog
from ..repositories.config_repository import ConfigRepository
from ..repositories.schedule_repository import ScheduleRepository
from ..strategies.postgresql import PostgresExecutor
from ..strategies.postgresql.data_generator import check_deadline
from .archive_service import ArchivePackager, format_file_size
from .cleanup_service import CleanupService


class BackupService:
    """Servicio principal que orquesta los backups"""

    def __init__(self, config_repo: Optional[ConfigRepository] = None,
                 schedule_repo: Optional[ScheduleRepository] = None,
                 catalog: Optional[BackupCatalog] = None,
                 executor_factory: Optional[Callable[[DatabaseConfig], object]] = None,
                 packager: Optional[ArchivePackager] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Inicializa el servicio de backup

        Args:
            config_repo: Repositorio de conexiones
            schedule_repo: Repositorio de la programación
            catalog: Catálogo de backups
            executor_factory: Crea un handle de consultas para una base de datos
            packager: Empaquetador de dumps
            clock: Fuente de la hora actual
        """
        self.config_repo = config_repo or ConfigRepository()
        self.schedule_repo = schedule_repo or ScheduleRepository()
        self.packager = packager or ArchivePackager()
        self.catalog = catalog or BackupCatalog(self.packager.backup_dir / Config.CATALOG_FILE_NAME)
        self.executor_factory = executor_factory or PostgresExecutor.connect
        self.clock = clock
        self.logger = LoggerService.get_logger("BackupService")

        # Servicio de limpieza
        self.cleanup_service = CleanupService(self.catalog)

        # Un solo backup a la vez por proceso
        self._run_lock = threading.Lock()

    @property
    def backup_dir(self) -> Path:
        return self.packager.backup_dir

    @staticmethod
    def resolve_targets(selection: Iterable[str]) -> List[str]:
        """
        Expande la selección de bases de datos ('both' = primary + secondary)

        Args:
            selection: Nombres lógicos o 'both'

        Returns:
            Lista ordenada y sin duplicados
        """
        targets = []
        for name in selection:
            names = Config.DATABASE_TARGETS if name == 'both' else (name,)
            for target in names:
                if target not in targets:
                    targets.append(target)
        return sorted(targets, key=lambda t: (
            Config.DATABASE_TARGETS.index(t) if t in Config.DATABASE_TARGETS else len(Config.DATABASE_TARGETS)
        ))

    def run_backup(self, databases: Iterable[str] = ('both',), options: Optional[BackupOptions] = None,
                   archive_format: str = 'zip',
                   timeout_seconds: float = Config.PROCESSING_TIMEOUT_SECONDS,
                   backup_type: str = 'manual') -> BackupResult:
        """
        Realiza el backup de las bases seleccionadas y lo registra en el catálogo

        Args:
            databases: Selección de bases (primary, secondary, both)
            options: Opciones del dump
            archive_format: 'zip' o 'sql'
            timeout_seconds: Tiempo máximo de la operación
            backup_type: manual, weekly o monthly

        Returns:
            BackupResult (nunca lanza excepciones)
        """
        if not self._run_lock.acquire(blocking=False):
            error = BackupInProgressError("Ya hay un backup en ejecución")
            self.logger.warning(str(error))
            return BackupResult.failure(str(error), error.stage)
        try:
            return self._run_backup(list(databases), options or BackupOptions(),
                                    archive_format, timeout_seconds, backup_type)
        finally:
            self._run_lock.release()

    def _run_backup(self, databases: List[str], options: BackupOptions, archive_format: str,
                    timeout_seconds: float, backup_type: str) -> BackupResult:
        start_time = time.time()
        deadline = time.monotonic() + timeout_seconds
        files: List[DumpFile] = []

        self.logger.info("=" * 70)
        self.logger.info(f"INICIANDO BACKUP {backup_type.upper()} ({', '.join(databases)}, formato {archive_format})")
        self.logger.info("=" * 70)

        try:
            if backup_type not in BACKUP_TYPES:
                raise BackupError(f"Tipo de backup inválido: {backup_type}")
            if archive_format not in ('zip', 'sql'):
                raise BackupError(f"Formato inválido: {archive_format}")

            self.backup_dir.mkdir(parents=True, exist_ok=True)
            now = self.clock()
            tables = self._dump_databases(self.resolve_targets(databases), options, deadline, now, files)

            check_deadline(deadline, "packaging")
            prefix = 'database' if backup_type == 'manual' else backup_type
            file_name = f"{prefix}_backup_{now.strftime('%Y-%m-%dT%H-%M-%S')}.{archive_format}"
            if archive_format == 'zip':
                packaged = self.packager.create_zip_backup(files, file_name)
            else:
                packaged = self.packager.create_sql_backup(files, file_name)

            if not packaged.success:
                raise PackagingError(packaged.error)

            result = dataclasses.replace(
                packaged,
                duration_seconds=time.time() - start_time,
                tables_backed_up=tables,
                databases=tuple(f.database for f in files),
            )
            self._register(result, backup_type, now)
            self._log_summary(result)
            return result

        except BackupError as e:
            self._discard(files)
            self.logger.error(f"Backup fallido [{e.stage}]: {e}")
            return BackupResult.failure(str(e), e.stage, time.time() - start_time)
        except Exception as e:
            self._discard(files)
            self.logger.error(f"Error crítico durante backup: {e}", exc_info=True)
            return BackupResult.failure(str(e), BackupError.stage, time.time() - start_time)

    def _dump_databases(self, targets: List[str], options: BackupOptions, deadline: float,
                        now: datetime, files: List[DumpFile]) -> int:
        """
        Genera un dump temporario por base; un error en una base no detiene las demás

        Returns:
            Total de tablas respaldadas
        """
        failures: List[Exception] = []
        tables = 0

        for target in targets:
            check_deadline(deadline, target)
            self.logger.info("-" * 70)

            db_config = self.config_repo.get_database(target)
            if db_config is None or not db_config.enabled:
                self.logger.warning(f"Base de datos no configurada o deshabilitada: {target}")
                continue

            strategy = DumpStrategyFactory.create(db_config.type)
            if not strategy:
                self.logger.error(f"Tipo de base de datos no soportado: {db_config.type}")
                continue

            db_name = db_config.database_name
            temp_file = self.backup_dir / f"temp_{db_name}_{int(time.time() * 1000)}.sql"
            try:
                executor = self.executor_factory(db_config)
                try:
                    outcome = strategy.execute_dump(executor, db_name, temp_file, options, deadline)
                finally:
                    close = getattr(executor, 'close', None)
                    if close:
                        close()
            except ProcessingTimeoutError:
                raise
            except Exception as e:
                self.logger.error(f"Error respaldando {db_name}, se continúa con las demás: {e}")
                failures.append(e)
                continue

            files.append(DumpFile(
                database=db_name,
                name=f"{db_name}_backup_{now.date().isoformat()}.sql",
                path=temp_file
            ))
            tables += outcome.tables

        if not files:
            if failures and isinstance(failures[0], BackupError):
                raise failures[0]
            detail = f": {failures[0]}" if failures else ""
            raise PackagingError(f"No se respaldó ninguna base de datos{detail}")
        return tables

    def _register(self, result: BackupResult, backup_type: str, now: datetime):
        """
        Agrega el archivo generado al catálogo

        Un archivo que no quedó registrado nunca sería rotado por la retención,
        así que si la escritura falla se elimina y el backup se informa fallido.

        Raises:
            CatalogError: Si no se pudo guardar el catálogo
        """
        try:
            self.catalog.append(BackupMetadata.create(result, backup_type, now))
        except (OSError, ValueError) as e:
            output = Path(result.file_path)
            try:
                output.unlink()
            except FileNotFoundError:
                pass
            except OSError as unlink_error:
                self.logger.warning(f"No se pudo eliminar {output}: {unlink_error}")
            raise CatalogError(f"No se pudo registrar {result.file_name} en el catálogo: {e}") from e

    def _discard(self, files: List[DumpFile]):
        for dump in files:
            if dump.path.exists():
                try:
                    dump.path.unlink()
                except OSError as e:
                    self.logger.warning(f"No se pudo eliminar {dump.path}: {e}")

    def _log_summary(self, result: BackupResult):
        self.logger.info("=" * 70)
        self.logger.info("RESUMEN DEL PROCESO DE BACKUP")
        self.logger.info("=" * 70)
        self.logger.info(f"Archivo: {result.file_name} ({format_file_size(result.file_size)})")
        self.logger.info(f"Bases de datos: {', '.join(result.databases)}")
        self.logger.info(f"Tablas respaldadas: {result.tables_backed_up}")
        self.logger.info(f"Tiempo total: {result.duration_seconds:.2f}s")
        self.logger.info("=" * 70)

    def create_scheduled_backup(self, backup_type: str = 'weekly') -> BackupResult:
        """
        Backup programado: ZIP con datos completos, registro en catálogo y retención

        Args:
            backup_type: weekly o monthly

        Returns:
            BackupResult
        """
        schedule = self.schedule_repo.load()
        self.logger.info(f"Creando backup programado {backup_type}...")

        result = self.run_backup(
            schedule.databases,
            BackupOptions(include_data=True, schema_only=False),
            archive_format='zip',
            timeout_seconds=Config.SCHEDULED_TIMEOUT_SECONDS,
            backup_type=backup_type
        )
        if not result.success:
            return result

        try:
            self.cleanup_service.cleanup_now(schedule.retention)
        except OSError as e:
            self.logger.error(f"Error aplicando retención: {e}")
        return result

    def list_backups(self) -> List[BackupMetadata]:
        """Entradas del catálogo, la más reciente primero"""
        return sorted(self.catalog.load(), key=lambda e: e.created, reverse=True)

    def list_backup_files(self) -> List[Tuple[str, int, datetime]]:
        """
        Archivos .sql y .zip presentes en el directorio de backups

        Returns:
            Lista de (nombre, tamaño, fecha de modificación), el más reciente primero
        """
        if not self.backup_dir.exists():
            return []
        files = []
        for path in self.backup_dir.iterdir():
            if path.suffix in ('.sql', '.zip') and not path.name.startswith('temp_'):
                stat = path.stat()
                files.append((path.name, stat.st_size, datetime.fromtimestamp(stat.st_mtime)))
        return sorted(files, key=lambda f: f[2], reverse=True)

    def delete_backup(self, file_name: str) -> bool:
        """
        Elimina un backup del disco y del catálogo

        Returns:
            True si la entrada existía
        """
        with self.catalog.lock:
            entry = self.catalog.find(file_name)
            if entry is None:
                self.logger.warning(f"Backup no encontrado: {file_name}")
                return False
            try:
                Path(entry.file_path).unlink()
            except FileNotFoundError:
                self.logger.warning(f"El archivo ya no existía: {file_name}")
            self.catalog.remove(file_name)
        self.logger.info(f"Backup eliminado: {file_name}")
        return True

    def get_schedule_config(self) -> BackupScheduleConfig:
        return self.schedule_repo.load()

    def set_schedule_config(self, schedule: Union[BackupScheduleConfig, dict]) -> BackupScheduleConfig:
        """
        Guarda la programación

        Raises:
            ConfigError: si la configuración es inválida o no se pudo guardar
        """
        if isinstance(schedule, BackupScheduleConfig):
            return self.schedule_repo.save(schedule)
        return self.schedule_repo.update(schedule)

    def cleanup_now(self) -> RetentionPlan:
        """Aplica la retención configurada sobre el catálogo actual"""
        return self.cleanup_service.cleanup_now(self.schedule_repo.load().retention)

    def get_statistics(self) -> dict:
        return self.cleanup_service.get_backup_stats()
