"""
Catálogo de backups persistido en JSON
"""
import json
import os
import threading
from pathlib import Path
from typing import Iterable, List, Optional
from ..config import Config
from ..logger import LoggerService
from ..models import BackupMetadata


class BackupCatalog:
    """
    Registro de los backups producidos (backup-metadata.json)

    Es la fuente de verdad para la retención. Toda lectura-modificación-
    escritura se hace bajo el mismo lock y el archivo se reemplaza de forma
    atómica.
    """

    def __init__(self, catalog_file: Optional[Path] = None):
        self.catalog_file = catalog_file or Config.catalog_file()
        self.logger = LoggerService.get_logger("BackupCatalog")
        self.lock = threading.RLock()

    def load(self) -> List[BackupMetadata]:
        """
        Carga todas las entradas del catálogo

        Returns:
            Lista de BackupMetadata (vacía si el archivo no existe o es inválido)
        """
        with self.lock:
            if not self.catalog_file.exists():
                return []
            try:
                with open(self.catalog_file, "r", encoding='utf-8') as f:
                    raw = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                self.logger.error(f"Catálogo ilegible, se inicia vacío: {e}")
                return []

            entries = []
            for item in raw if isinstance(raw, list) else []:
                try:
                    entries.append(BackupMetadata.from_dict(item))
                except (KeyError, TypeError, ValueError) as e:
                    self.logger.warning(f"Entrada de catálogo inválida ignorada: {e}")
            return entries

    def save(self, entries: Iterable[BackupMetadata]) -> None:
        """Escribe el catálogo completo"""
        entries = list(entries)
        with self.lock:
            self.catalog_file.parent.mkdir(parents=True, exist_ok=True)
            tmp_file = self.catalog_file.with_name(self.catalog_file.name + ".tmp")
            with open(tmp_file, "w", encoding='utf-8') as f:
                json.dump([e.to_dict() for e in entries], f, indent=2, ensure_ascii=False)
            os.replace(tmp_file, self.catalog_file)
        self.logger.info(f"Catálogo guardado con {len(entries)} backup(s)")

    def append(self, entry: BackupMetadata) -> None:
        with self.lock:
            entries = self.load()
            entries.append(entry)
            self.save(entries)

    def remove(self, file_name: str) -> Optional[BackupMetadata]:
        """
        Quita una entrada por nombre de archivo

        Returns:
            La entrada eliminada o None si no existía
        """
        with self.lock:
            entries = self.load()
            for index, entry in enumerate(entries):
                if entry.file_name == file_name:
                    del entries[index]
                    self.save(entries)
                    return entry
            return None

    def replace(self, entries: Iterable[BackupMetadata]) -> None:
        self.save(entries)

    def find(self, file_name: str) -> Optional[BackupMetadata]:
        for entry in self.load():
            if entry.file_name == file_name:
                return entry
        return None

    def prune_missing(self) -> List[BackupMetadata]:
        """
        Elimina del catálogo las entradas cuyo archivo ya no existe

        Returns:
            Entradas eliminadas
        """
        with self.lock:
            entries = self.load()
            present = [e for e in entries if Path(e.file_path).exists()]
            missing = [e for e in entries if e not in present]
            if missing:
                for entry in missing:
                    self.logger.warning(f"Archivo de backup inexistente, se quita del catálogo: {entry.file_name}")
                self.save(present)
            return missing
