"""
Modelos de datos del sistema
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from .config import Config


BACKUP_TYPES = ('manual', 'weekly', 'monthly')
FREQUENCIES = ('daily', 'weekly', 'monthly')
DATABASE_SELECTIONS = ('primary', 'secondary', 'both')


def week_bucket(moment: datetime) -> str:
    """
    Clave de semana YYYY-WW (semanas que empiezan en domingo)

    La semana 1 es la que contiene el 1 de enero.
    """
    jan_first = date(moment.year, 1, 1)
    first_weekday = (jan_first.weekday() + 1) % 7  # domingo = 0
    past_days = moment.timetuple().tm_yday - 1
    week_number = (past_days + first_weekday + 1 + 6) // 7
    return f"{moment.year}-{week_number:02d}"


def month_bucket(moment: datetime) -> str:
    """Clave de mes YYYY-MM"""
    return f"{moment.year}-{moment.month:02d}"


def sunday_weekday(moment: datetime) -> int:
    """Día de la semana con domingo = 0 ... sábado = 6"""
    return (moment.weekday() + 1) % 7


def parse_timestamp(text: str) -> datetime:
    """
    ISO 8601 a hora local naive

    Acepta el sufijo Z y offsets explícitos (catálogos escritos por otras
    herramientas); el resultado se compara con datetime.now().
    """
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment


@dataclass
class DatabaseConfig:
    """Configuración de conexión de una base de datos"""
    name: str
    host: str
    port: int
    user: str
    password: str
    type: str = "postgresql"
    enabled: bool = True
    database: Optional[str] = None

    def __post_init__(self):
        """Validación después de inicialización"""
        if not self.name:
            raise ValueError("El nombre de la base de datos es obligatorio")
        if not self.type:
            raise ValueError("El tipo de base de datos es obligatorio")

    @property
    def database_name(self) -> str:
        """Nombre real de la base de datos en el servidor"""
        return self.database or self.name


@dataclass
class BackupOptions:
    """Opciones de una ejecución de dump"""
    include_data: bool = True
    schema_only: bool = False
    tables_to_include: Optional[FrozenSet[str]] = None
    tables_to_exclude: Optional[FrozenSet[str]] = None

    def __post_init__(self):
        if self.tables_to_include is not None:
            self.tables_to_include = frozenset(self.tables_to_include) or None
        if self.tables_to_exclude is not None:
            self.tables_to_exclude = frozenset(self.tables_to_exclude) or None

    @property
    def emits_data(self) -> bool:
        """schema_only gana siempre sobre include_data"""
        return self.include_data and not self.schema_only


@dataclass(frozen=True)
class BackupResult:
    """Resultado de una operación de empaquetado o backup"""
    success: bool
    file_path: Optional[str] = None
    file_name: Optional[str] = None
    file_size: int = 0
    duration_seconds: float = 0.0
    error: Optional[str] = None
    error_stage: Optional[str] = None
    tables_backed_up: Optional[int] = None
    databases: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.success and self.error is not None:
            raise ValueError("Un resultado exitoso no puede tener error")
        if not self.success and (self.file_path or self.file_name):
            raise ValueError("Un resultado fallido no puede tener archivo de salida")

    @classmethod
    def ok(cls, file_path, file_name: str, file_size: int, duration_seconds: float,
           tables_backed_up: Optional[int] = None, databases=()) -> 'BackupResult':
        return cls(
            success=True,
            file_path=str(file_path),
            file_name=file_name,
            file_size=file_size,
            duration_seconds=duration_seconds,
            tables_backed_up=tables_backed_up,
            databases=tuple(databases),
        )

    @classmethod
    def failure(cls, error: str, stage: str, duration_seconds: float = 0.0) -> 'BackupResult':
        return cls(success=False, error=error, error_stage=stage, duration_seconds=duration_seconds)

    def __str__(self):
        if self.success:
            return f"✓ {self.file_name} ({self.file_size} bytes, {self.duration_seconds:.2f}s)"
        else:
            return f"✗ [{self.error_stage}] {self.error}"


@dataclass(frozen=True)
class DumpFile:
    """Dump temporario de una base de datos, listo para empaquetar"""
    database: str
    name: str
    path: Path


@dataclass(frozen=True)
class DumpOutcome:
    """Resultado del dump completo de una base de datos"""
    database: str
    output_file: Path
    tables: int
    duration_seconds: float


@dataclass
class BackupMetadata:
    """Entrada del catálogo de backups"""
    file_name: str
    file_path: str
    created: datetime
    databases: List[str]
    backup_type: str
    size: int
    week: str
    month: str

    def __post_init__(self):
        if self.backup_type not in BACKUP_TYPES:
            raise ValueError(f"Tipo de backup inválido: {self.backup_type}")

    @classmethod
    def create(cls, result: BackupResult, backup_type: str, created: datetime) -> 'BackupMetadata':
        """Construye la entrada a partir de un resultado exitoso"""
        return cls(
            file_name=result.file_name,
            file_path=result.file_path,
            created=created,
            databases=list(result.databases),
            backup_type=backup_type,
            size=result.file_size,
            week=week_bucket(created),
            month=month_bucket(created),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fileName": self.file_name,
            "filePath": self.file_path,
            "created": self.created.isoformat(),
            "databases": list(self.databases),
            "type": self.backup_type,
            "size": self.size,
            "week": self.week,
            "month": self.month,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BackupMetadata':
        created = parse_timestamp(data["created"])
        return cls(
            file_name=data["fileName"],
            file_path=data["filePath"],
            created=created,
            databases=list(data.get("databases", [])),
            backup_type=data.get("type", "manual"),
            size=int(data.get("size", 0)),
            week=data.get("week") or week_bucket(created),
            month=data.get("month") or month_bucket(created),
        )


@dataclass(frozen=True)
class RetentionSettings:
    """Cantidad de backups semanales y mensuales a conservar"""
    keep_weekly: int = 4
    keep_monthly: int = 3

    def __post_init__(self):
        if self.keep_weekly < 1:
            raise ValueError("keepWeekly debe ser mayor a 0")
        if self.keep_monthly < 1:
            raise ValueError("keepMonthly debe ser mayor a 0")


@dataclass
class BackupScheduleConfig:
    """Configuración persistida de la programación de backups"""
    enabled: bool = True
    frequency: str = "weekly"
    day_of_week: int = 0
    hour: int = 2
    minute: int = 0
    databases: Tuple[str, ...] = ("both",)
    retention: RetentionSettings = field(default_factory=RetentionSettings)

    def __post_init__(self):
        """Validación después de inicialización"""
        self.databases = tuple(self.databases)
        if self.frequency not in FREQUENCIES:
            raise ValueError(f"Frecuencia inválida: {self.frequency}")
        if not 0 <= self.day_of_week <= 6:
            raise ValueError("dayOfWeek debe estar entre 0 (domingo) y 6 (sábado)")
        if not 0 <= self.hour <= 23:
            raise ValueError("hour debe estar entre 0 y 23")
        if not 0 <= self.minute <= 59:
            raise ValueError("minute debe estar entre 0 y 59")
        if not self.databases:
            raise ValueError("Debe seleccionarse al menos una base de datos")
        for selection in self.databases:
            if selection not in DATABASE_SELECTIONS:
                raise ValueError(f"Base de datos inválida: {selection}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "frequency": self.frequency,
            "dayOfWeek": self.day_of_week,
            "hour": self.hour,
            "minute": self.minute,
            "databases": list(self.databases),
            "retention": {
                "keepWeekly": self.retention.keep_weekly,
                "keepMonthly": self.retention.keep_monthly,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BackupScheduleConfig':
        """Combina los valores recibidos con los valores por defecto"""
        merged = {**Config.DEFAULT_SCHEDULE, **(data or {})}
        retention = {**Config.DEFAULT_SCHEDULE["retention"], **(merged.get("retention") or {})}
        return cls(
            enabled=bool(merged["enabled"]),
            frequency=merged["frequency"],
            day_of_week=int(merged["dayOfWeek"]),
            hour=int(merged["hour"]),
            minute=int(merged["minute"]),
            databases=tuple(merged["databases"]),
            retention=RetentionSettings(
                keep_weekly=int(retention["keepWeekly"]),
                keep_monthly=int(retention["keepMonthly"]),
            ),
        )


@dataclass
class RetentionPlan:
    """Partición del catálogo en backups a conservar y a eliminar"""
    keep: List[BackupMetadata] = field(default_factory=list)
    delete: List[BackupMetadata] = field(default_factory=list)


@dataclass
class SchedulerStatus:
    """Estado del programador"""
    running: bool
    next_check: Optional[datetime] = None
    last_check: Optional[datetime] = None
    last_result: Optional[BackupResult] = None
