"""
Servicio de empaquetado de dumps (SQL combinado o ZIP)
"""
import json
import os
import shutil
import time
import zipfile
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence
from ..config import Config
from ..errors import PackagingError
from ..logger import LoggerService
from ..models import BackupResult, DumpFile


def format_file_size(size: int) -> str:
    """Tamaño legible: 0 B, 1.5 KB, 2.25 MB..."""
    if size == 0:
        return "0 B"
    units = ['B', 'KB', 'MB', 'GB', 'TB']
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"


class ArchivePackager:
    """Combina los dumps temporarios de cada base en un único entregable"""

    METADATA_ENTRY = "backup_metadata.json"

    def __init__(self, backup_dir: Optional[Path] = None):
        """
        Args:
            backup_dir: Directorio de destino de los backups
        """
        self.backup_dir = backup_dir or Config.BACKUP_DIR
        self.logger = LoggerService.get_logger("ArchivePackager")

    def create_sql_backup(self, files: Sequence[DumpFile], file_name: str) -> BackupResult:
        """
        Genera el entregable .sql: renombra si hay un solo dump, combina si hay varios

        Args:
            files: Dumps temporarios
            file_name: Nombre del archivo final

        Returns:
            BackupResult
        """
        if len(files) != 1:
            return self.create_combined_backup(files, file_name)

        start_time = time.time()
        output_path = self.backup_dir / file_name
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            os.replace(files[0].path, output_path)
            size = output_path.stat().st_size
        except OSError as e:
            self.logger.error(f"Error al mover {files[0].path}: {e}")
            return BackupResult.failure(str(e), PackagingError.stage, time.time() - start_time)

        duration = time.time() - start_time
        self.logger.info(f"Backup SQL creado: {output_path} ({format_file_size(size)})")
        return BackupResult.ok(output_path, file_name, size, duration,
                               databases=[files[0].database])

    def create_combined_backup(self, files: Sequence[DumpFile], file_name: str) -> BackupResult:
        """
        Concatena los dumps en un único archivo .sql con delimitadores

        Args:
            files: Dumps temporarios
            file_name: Nombre del archivo final

        Returns:
            BackupResult
        """
        start_time = time.time()
        output_path = self.backup_dir / file_name

        try:
            if not files:
                raise PackagingError("No hay archivos de base de datos para combinar")

            self.backup_dir.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'wb') as out:
                self._write_text(out, [
                    "-- ====================================",
                    "-- Combined Database Backup",
                    f"-- Generated: {datetime.now().isoformat()}",
                    f"-- Databases: {', '.join(f.database for f in files)}",
                    f"-- Created by: {Config.CREATOR} {Config.VERSION}",
                    "-- ====================================",
                    "",
                ])

                for dump in files:
                    try:
                        size = dump.path.stat().st_size
                        self._write_text(out, [
                            f"---- Database File: {dump.name} ----",
                            f"-- Size: {format_file_size(size)}",
                            "",
                        ])
                        with open(dump.path, 'rb') as src:
                            shutil.copyfileobj(src, out)
                        self._write_text(out, ["", "", f"-- End of {dump.name}", ""])
                        self.logger.info(f"Agregado {dump.name} al backup combinado ({format_file_size(size)})")
                    except OSError as e:
                        self.logger.error(f"Error agregando {dump.name} al backup combinado: {e}")
                        self._write_text(out, [f"-- Error including {dump.name}: {e}", ""])

                self._write_text(out, [
                    "-- ====================================",
                    f"-- Backup completed at {datetime.now().isoformat()}",
                    f"-- Total databases: {len(files)}",
                    "-- ====================================",
                ])

            size = output_path.stat().st_size
        except (OSError, PackagingError) as e:
            return self._failure(e, output_path, start_time)

        self._remove_temp_files(files)
        duration = time.time() - start_time
        self.logger.info(f"Backup combinado creado: {output_path} ({format_file_size(size)}, {duration:.2f}s)")
        return BackupResult.ok(output_path, file_name, size, duration,
                               databases=[f.database for f in files])

    def create_zip_backup(self, files: Sequence[DumpFile], file_name: str) -> BackupResult:
        """
        Crea un ZIP (compresión máxima) con un .sql por base y backup_metadata.json

        Args:
            files: Dumps temporarios
            file_name: Nombre del archivo final

        Returns:
            BackupResult
        """
        start_time = time.time()
        zip_path = self.backup_dir / file_name

        try:
            if not files:
                raise PackagingError("No hay archivos de base de datos para empaquetar")

            self.backup_dir.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(zip_path, 'w', compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
                for dump in files:
                    try:
                        size = dump.path.stat().st_size
                    except OSError as e:
                        self.logger.error(f"Error agregando {dump.name} al ZIP: {e}")
                        archive.writestr(
                            f"ERROR_{dump.name}.txt",
                            f"-- Error: Could not include {dump.name}: {e}"
                        )
                        continue
                    self.logger.info(f"Agregando {dump.name} al ZIP ({format_file_size(size)})")
                    archive.write(dump.path, arcname=dump.name)

                metadata = {
                    "created": datetime.now().isoformat(),
                    "databases": [f.database for f in files],
                    "totalFiles": len(files),
                    "creator": Config.CREATOR,
                    "version": Config.VERSION,
                }
                archive.writestr(self.METADATA_ENTRY, json.dumps(metadata, indent=2))

            size = zip_path.stat().st_size
        except (OSError, zipfile.BadZipFile, PackagingError) as e:
            return self._failure(e, zip_path, start_time)

        self._remove_temp_files(files)
        duration = time.time() - start_time
        self.logger.info(f"Backup ZIP creado: {zip_path} ({format_file_size(size)}, {duration:.2f}s)")
        return BackupResult.ok(zip_path, file_name, size, duration,
                               databases=[f.database for f in files])

    @staticmethod
    def _write_text(out, lines: List[str]):
        out.write(("\n".join(lines) + "\n").encode('utf-8'))

    def _failure(self, error: Exception, output_path: Path, start_time: float) -> BackupResult:
        self.logger.error(f"Error al empaquetar backup: {error}")
        if output_path.exists():
            try:
                output_path.unlink()
            except OSError as e:
                self.logger.warning(f"No se pudo eliminar salida parcial {output_path}: {e}")
        return BackupResult.failure(str(error), PackagingError.stage, time.time() - start_time)

    def _remove_temp_files(self, files: Sequence[DumpFile]):
        for dump in files:
            try:
                dump.path.unlink()
                self.logger.info(f"Archivo temporario eliminado: {dump.path}")
            except FileNotFoundError:
                continue
            except OSError as e:
                self.logger.warning(f"No se pudo eliminar archivo temporario {dump.path}: {e}")
