"""
Jerarquía de errores del sistema de backup

Cada error lleva la etapa (``stage``) en la que ocurrió para que quien llama
pueda decidir: un timeout sugiere reducir el alcance, un error de
empaquetado sugiere problemas de disco.
"""


class BackupError(Exception):
    """Error base de las operaciones de backup"""
    stage = "backup"


class IntrospectionError(BackupError):
    """Falló la consulta de metadatos de tablas o columnas"""
    stage = "introspection"


class DataExportError(BackupError):
    """Falló la lectura de datos de una tabla"""
    stage = "export"


class PackagingError(BackupError):
    """Falló la creación del archivo final (SQL combinado o ZIP)"""
    stage = "packaging"


class ProcessingTimeoutError(BackupError):
    """La operación superó el tiempo máximo permitido"""
    stage = "timeout"


class ConfigError(BackupError):
    """Configuración de programación inválida"""
    stage = "config"


class BackupInProgressError(BackupError):
    """Ya hay un backup en ejecución"""
    stage = "busy"


class CatalogError(BackupError):
    """No se pudo registrar el archivo generado en el catálogo"""
    stage = "catalog"


__all__ = [
    'BackupError',
    'IntrospectionError',
    'DataExportError',
    'PackagingError',
    'ProcessingTimeoutError',
    'ConfigError',
    'BackupInProgressError',
    'CatalogError',
]
