"""
Servicio de logging siguiendo principio Single Responsibility
"""
import logging
import sys
from datetime import datetime
from .config import Config


class LoggerService:
    """
    Servicio centralizado de logging

    Todos los loggers cuelgan de ``dumpkeeper`` y comparten un único archivo
    diario (backup_YYYYMMDD.log) más la salida estándar.
    """

    ROOT_NAME = "dumpkeeper"

    _loggers = {}
    _root = None

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Obtiene o crea un logger con el nombre especificado

        Args:
            name: Nombre del componente (BackupService, SchedulerService...)

        Returns:
            Logger hijo de ``dumpkeeper``
        """
        if name not in cls._loggers:
            cls._configure_root()
            cls._loggers[name] = logging.getLogger(f"{cls.ROOT_NAME}.{name}")
        return cls._loggers[name]

    @classmethod
    def set_level(cls, level: int):
        """Cambia el nivel de todos los handlers (p. ej. DEBUG desde la CLI)"""
        root = cls._configure_root()
        root.setLevel(level)
        for handler in root.handlers:
            handler.setLevel(level)

    @classmethod
    def _configure_root(cls) -> logging.Logger:
        if cls._root is not None:
            return cls._root

        root = logging.getLogger(cls.ROOT_NAME)
        root.setLevel(Config.LOG_LEVEL)
        root.propagate = False
        formatter = logging.Formatter(Config.LOG_FORMAT)

        # Evitar duplicar handlers si otro código ya configuró el logger
        if not root.handlers:
            Config.LOG_DIR.mkdir(parents=True, exist_ok=True)
            log_file = Config.LOG_DIR / f"backup_{datetime.now().strftime('%Y%m%d')}.log"
            handlers = [
                logging.FileHandler(log_file, encoding='utf-8'),
                logging.StreamHandler(sys.stdout),
            ]
            for handler in handlers:
                handler.setLevel(Config.LOG_LEVEL)
                handler.setFormatter(formatter)
                root.addHandler(handler)

        cls._root = root
        return root
