"""
Configuración centralizada del sistema de backup
"""
import logging
import os
from pathlib import Path
from dotenv import load_dotenv, find_dotenv


class Config:
    """Configuración centralizada del sistema"""

    ENV_FILE = find_dotenv()

    # Cargar variables de entorno desde la raíz real del proyecto
    load_dotenv(ENV_FILE)

    # BASE_DIR debe ser la raíz donde está main.py
    BASE_DIR = Path(ENV_FILE).parent if ENV_FILE else Path(__file__).resolve().parents[1]

    BACKUP_DIR = Path(os.getenv("BACKUP_DIR")) if os.getenv("BACKUP_DIR") else (BASE_DIR / "backups")
    LOG_DIR = Path(os.getenv("LOG_DIR")) if os.getenv("LOG_DIR") else (BASE_DIR / "logs")
    CONFIG_FILE = BASE_DIR / "config.json"
    SCHEDULE_FILE = BASE_DIR / "backup-schedule.json"
    CATALOG_FILE_NAME = "backup-metadata.json"

    LOG_LEVEL = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    CREATOR = "dumpkeeper"
    VERSION = "1.0.0"

    # Campos de texto más largos que esto se truncan (en caracteres)
    MAX_FIELD_LENGTH = 1024 * 1024
    TRUNCATION_MARKER = "...[TRUNCATED BY BACKUP]"

    # (máximo de filas, tamaño de lote); tablas más grandes usan DEFAULT_BATCH_SIZE
    BATCH_SIZE_RULES = ((1000, 1000), (10000, 500), (100000, 100))
    DEFAULT_BATCH_SIZE = 50
    PROGRESS_ROW_THRESHOLD = 10000
    PROGRESS_BATCH_INTERVAL = 10

    PROCESSING_TIMEOUT_SECONDS = 600   # Backups manuales: 10 minutos
    SCHEDULED_TIMEOUT_SECONDS = 900    # Backups programados: 15 minutos

    CHECK_INTERVAL_MINUTES = 5
    DUE_WINDOW_MINUTES = 10  # dos intervalos de revisión

    SYSTEM_SCHEMAS = ('information_schema', 'pg_catalog', 'pg_toast')
    DATABASE_TARGETS = ('primary', 'secondary')

    DEFAULT_CONFIG = {
        "databases": [
            {
                "name": "primary",
                "type": "postgresql",
                "host": "${PRIMARY_DB_HOST}",
                "port": 5432,
                "user": "${PRIMARY_DB_USER}",
                "password": "${PRIMARY_DB_PASSWORD}",
                "database": "postgres",
                "enabled": True
            },
            {
                "name": "secondary",
                "type": "postgresql",
                "host": "${SECONDARY_DB_HOST}",
                "port": 5432,
                "user": "${SECONDARY_DB_USER}",
                "password": "${SECONDARY_DB_PASSWORD}",
                "database": "n8ndb",
                "enabled": True
            }
        ]
    }

    DEFAULT_SCHEDULE = {
        "enabled": True,
        "frequency": "weekly",
        "dayOfWeek": 0,  # Domingo
        "hour": 2,
        "minute": 0,
        "databases": ["both"],
        "retention": {
            "keepWeekly": 4,
            "keepMonthly": 3
        }
    }

    @classmethod
    def catalog_file(cls) -> Path:
        """Ruta del catálogo de backups dentro de BACKUP_DIR"""
        return cls.BACKUP_DIR / cls.CATALOG_FILE_NAME

    @classmethod
    def ensure_directories(cls):
        """Crea los directorios necesarios si no existen"""
        cls.BACKUP_DIR.mkdir(parents=True, exist_ok=True)
        cls.LOG_DIR.mkdir(parents=True, exist_ok=True)
