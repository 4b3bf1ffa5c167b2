"""
Estrategia base para dumps (Strategy Pattern)
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, TextIO
from ..logger import LoggerService
from ..models import BackupOptions, DumpOutcome
import time


class DumpStrategy(ABC):
    """Interfaz abstracta para estrategias de dump (Open/Closed Principle)"""

    def __init__(self):
        """Inicializa la estrategia"""
        self.logger = LoggerService.get_logger(self.__class__.__name__)

    @abstractmethod
    def write_dump(self, executor, database_name: str, sink: TextIO,
                   options: BackupOptions, deadline: Optional[float] = None) -> int:
        """
        Escribe el dump completo de la base de datos en el sink

        Args:
            executor: Handle capaz de ejecutar consultas parametrizadas
            database_name: Nombre lógico de la base de datos
            sink: Stream de texto donde se escribe el dump
            options: Opciones del dump
            deadline: Instante límite (time.monotonic) o None

        Returns:
            Cantidad de tablas incluidas
        """
        pass

    def execute_dump(self, executor, database_name: str, output_file: Path,
                     options: Optional[BackupOptions] = None,
                     deadline: Optional[float] = None) -> DumpOutcome:
        """
        Template method que abre el archivo de salida y mide el tiempo

        Args:
            executor: Handle capaz de ejecutar consultas parametrizadas
            database_name: Nombre lógico de la base de datos
            output_file: Archivo de salida para el dump
            options: Opciones del dump
            deadline: Instante límite (time.monotonic) o None

        Returns:
            DumpOutcome con la ruta y la cantidad de tablas

        Raises:
            BackupError: si el dump no puede completarse; el archivo parcial se elimina
        """
        options = options or BackupOptions()
        self.logger.info(f"Iniciando dump de {database_name}...")
        start_time = time.time()

        try:
            with open(output_file, 'w', encoding='utf-8', newline='\n') as sink:
                tables = self.write_dump(executor, database_name, sink, options, deadline)
        except Exception as e:
            self.logger.error(f"Error al generar dump de {database_name}: {e}")
            if output_file.exists():
                output_file.unlink()
            raise

        duration = time.time() - start_time
        file_size = output_file.stat().st_size / (1024 * 1024)  # MB
        self.logger.info(
            f"Dump exitoso: {output_file.name} "
            f"({file_size:.2f} MB, {tables} tablas, {duration:.2f}s)"
        )
        return DumpOutcome(
            database=database_name,
            output_file=output_file,
            tables=tables,
            duration_seconds=duration
        )
