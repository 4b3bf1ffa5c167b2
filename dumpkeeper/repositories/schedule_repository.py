"""
Repositorio de la configuración de programación de backups
"""
import json
import os
from pathlib import Path
from typing import Optional
from ..config import Config
from ..errors import ConfigError
from ..logger import LoggerService
from ..models import BackupScheduleConfig


class ScheduleRepository:
    """Lee y guarda backup-schedule.json"""

    def __init__(self, schedule_file: Optional[Path] = None):
        """
        Args:
            schedule_file: Ruta al archivo de programación (opcional)
        """
        self.schedule_file = schedule_file or Config.SCHEDULE_FILE
        self.logger = LoggerService.get_logger("ScheduleRepository")

    def load(self) -> BackupScheduleConfig:
        """
        Carga la programación; si falta o es inválida usa los valores por defecto

        Returns:
            BackupScheduleConfig
        """
        if not self.schedule_file.exists():
            self.logger.info("No se encontró configuración de programación, usando valores por defecto")
            return BackupScheduleConfig.from_dict({})

        try:
            with open(self.schedule_file, "r", encoding='utf-8') as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ConfigError("La programación debe ser un objeto JSON")
            return BackupScheduleConfig.from_dict(raw)
        except (OSError, json.JSONDecodeError, ConfigError, KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Configuración de programación inválida ({e}), usando valores por defecto")
            return BackupScheduleConfig.from_dict({})

    def save(self, schedule: BackupScheduleConfig) -> BackupScheduleConfig:
        """
        Guarda la programación completa (escritura atómica)

        Args:
            schedule: Configuración a guardar

        Returns:
            La configuración guardada

        Raises:
            ConfigError: si no se pudo escribir el archivo
        """
        tmp_file = self.schedule_file.with_name(self.schedule_file.name + ".tmp")
        try:
            self.schedule_file.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_file, "w", encoding='utf-8') as f:
                json.dump(schedule.to_dict(), f, indent=2, ensure_ascii=False)
            os.replace(tmp_file, self.schedule_file)
        except OSError as e:
            raise ConfigError(f"No se pudo guardar la programación: {e}") from e
        self.logger.info("Configuración de programación guardada")
        return schedule

    def update(self, data: dict) -> BackupScheduleConfig:
        """
        Valida y guarda una programación recibida como diccionario

        Raises:
            ConfigError: si los valores son inválidos
        """
        try:
            schedule = BackupScheduleConfig.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(str(e)) from e
        return self.save(schedule)
