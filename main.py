#!/usr/bin/env python3
"""
Sistema de Backup Automático de Bases de Datos PostgreSQL
Punto de entrada principal

Uso:
    python main.py                  # Modo scheduler (automático)
    python main.py once             # Ejecutar backup una vez
    python main.py --db primary     # Backup de una BD específica
    python main.py --help           # Ayuda
"""
import sys
import argparse
import logging
import signal
from pathlib import Path

# Agregar directorio raíz al path
sys.path.insert(0, str(Path(__file__).parent))

from dumpkeeper.config import Config
from dumpkeeper.logger import LoggerService
from dumpkeeper.models import BackupOptions
from dumpkeeper.repositories.config_repository import ConfigRepository
from dumpkeeper.repositories.schedule_repository import ScheduleRepository
from dumpkeeper.services.archive_service import format_file_size
from dumpkeeper.services.backup_service import BackupService
from dumpkeeper.services.scheduler_service import SchedulerService


def parse_arguments(argv=None):
    """
    Parsea argumentos de línea de comandos

    Returns:
        Namespace con los argumentos parseados
    """
    parser = argparse.ArgumentParser(
        description='Sistema de Backup Automático de Bases de Datos PostgreSQL',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Ejemplos:
  python main.py                          # Iniciar servicio automático
  python main.py once                     # Ejecutar backup una sola vez
  python main.py once --format sql        # Backup en un único archivo .sql
  python main.py --db primary --schema-only
  python main.py --stats                  # Ver estadísticas de backups
  python main.py --cleanup                # Aplicar retención ahora
  python main.py --init                   # Crear archivos de configuración
        """
    )

    parser.add_argument(
        'mode',
        nargs='?',
        choices=['once', 'scheduler'],
        default='scheduler',
        help='Modo de ejecución (default: scheduler)'
    )

    parser.add_argument(
        '--db',
        choices=['primary', 'secondary', 'both'],
        metavar='NOMBRE',
        help='Realizar backup de una base de datos específica (primary, secondary, both)'
    )

    parser.add_argument('--format', choices=['zip', 'sql'], default='zip',
                        help='Formato del archivo final (default: zip)')
    parser.add_argument('--schema-only', action='store_true', help='Solo estructura, sin datos')
    parser.add_argument('--no-data', action='store_true', help='No incluir datos')
    parser.add_argument('--include', nargs='+', metavar='PATRON', help='Tablas a incluir')
    parser.add_argument('--exclude', nargs='+', metavar='PATRON', help='Tablas a excluir')

    parser.add_argument('--stats', action='store_true', help='Mostrar estadísticas de backups')
    parser.add_argument('--list', action='store_true', help='Listar backups del catálogo')
    parser.add_argument('--cleanup', action='store_true', help='Aplicar la política de retención')
    parser.add_argument('--check', action='store_true', help='Revisar la programación una vez')
    parser.add_argument('--init', action='store_true', help='Crear archivos de configuración de ejemplo')
    parser.add_argument('--now', action='store_true',
                        help='Revisar la programación inmediatamente al iniciar scheduler')
    parser.add_argument('-v', '--verbose', action='store_true', help='Logging en nivel DEBUG')

    return parser.parse_args(argv)


def initialize_config():
    """
    Inicializa archivos de configuración si no existen

    Returns:
        True si se creó algún archivo
    """
    logger = LoggerService.get_logger("Init")
    created_files = []

    if not Config.CONFIG_FILE.exists():
        if ConfigRepository().create_example_config():
            created_files.append(str(Config.CONFIG_FILE))

    if not Config.SCHEDULE_FILE.exists():
        schedule_repo = ScheduleRepository()
        schedule_repo.save(schedule_repo.load())
        created_files.append(str(Config.SCHEDULE_FILE))

    env_example = Config.BASE_DIR / ".env.example"
    if not env_example.exists():
        env_content = """# Variables de entorno para credenciales
# Copia este archivo como .env y completa con tus credenciales

PRIMARY_DB_HOST=localhost
PRIMARY_DB_USER=postgres
PRIMARY_DB_PASSWORD=tu_password_seguro

SECONDARY_DB_HOST=localhost
SECONDARY_DB_USER=n8n
SECONDARY_DB_PASSWORD=otro_password

# BACKUP_DIR=/var/backups/dumpkeeper
# LOG_DIR=/var/log/dumpkeeper
"""
        try:
            with open(env_example, 'w', encoding='utf-8') as f:
                f.write(env_content)
            created_files.append(str(env_example))
        except OSError as e:
            logger.error(f"Error creando .env.example: {e}")

    if created_files:
        logger.info("=" * 70)
        logger.info("ARCHIVOS DE CONFIGURACIÓN CREADOS")
        logger.info("=" * 70)
        for file in created_files:
            logger.info(f"  - {file}")
        logger.info("")
        logger.info("IMPORTANTE:")
        logger.info("1. Copia .env.example como .env y completa tus credenciales")
        logger.info("2. Revisa config.json y backup-schedule.json")
        logger.info("3. Ejecuta nuevamente este script")
        logger.info("=" * 70)
        return True

    return False


def show_statistics(backup_service: BackupService):
    """
    Muestra estadísticas de backups

    Args:
        backup_service: Servicio de backup
    """
    logger = LoggerService.get_logger("Stats")
    stats = backup_service.get_statistics()
    config = backup_service.get_schedule_config()

    logger.info("=" * 70)
    logger.info("ESTADÍSTICAS DE BACKUPS")
    logger.info("=" * 70)
    logger.info(f"Directorio: {backup_service.backup_dir}")
    logger.info(f"Total de backups: {stats['total_backups']}")
    logger.info(f"  Semanales: {stats['weekly_backups']}")
    logger.info(f"  Mensuales: {stats['monthly_backups']}")
    logger.info(f"  Manuales: {stats['manual_backups']}")
    logger.info(f"Espacio utilizado: {stats['total_size_mb']:.2f} MB")

    if stats['oldest_backup']:
        logger.info(f"Backup más antiguo: {stats['oldest_backup']}")
    if stats['newest_backup']:
        logger.info(f"Backup más reciente: {stats['newest_backup']}")

    logger.info(
        f"Retención configurada: {config.retention.keep_weekly} semanas, "
        f"{config.retention.keep_monthly} meses"
    )
    logger.info("=" * 70)


def show_backups(backup_service: BackupService):
    """Lista las entradas del catálogo"""
    logger = LoggerService.get_logger("List")
    for entry in backup_service.list_backups():
        logger.info(
            f"{entry.created:%Y-%m-%d %H:%M} [{entry.backup_type:>7}] {entry.file_name} "
            f"({format_file_size(entry.size)}) {', '.join(entry.databases)}"
        )


def run_scheduler(backup_service: BackupService, run_immediately: bool):
    """Corre el programador en primer plano hasta recibir SIGINT/SIGTERM"""
    scheduler = SchedulerService(backup_service)

    def _signal_handler(signum, frame):
        LoggerService.get_logger("Main").info(f"Señal recibida: {signal.Signals(signum).name}")
        scheduler.stop()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)
    scheduler.run_forever(run_immediately=run_immediately)


def main(argv=None):
    """Función principal"""
    args = parse_arguments(argv)
    if args.verbose:
        LoggerService.set_level(logging.DEBUG)

    # Modo inicialización
    if args.init:
        initialize_config()
        return 0

    Config.ensure_directories()
    backup_service = BackupService()
    logger = LoggerService.get_logger("Main")

    if args.stats:
        show_statistics(backup_service)
        return 0

    if args.list:
        show_backups(backup_service)
        return 0

    if args.cleanup:
        plan = backup_service.cleanup_now()
        logger.info(f"Conservados: {len(plan.keep)}, eliminados: {len(plan.delete)}")
        return 0

    if args.check:
        result = SchedulerService(backup_service).trigger_check_now()
        if result is None:
            logger.info("No corresponde backup en este momento")
            return 0
        return 0 if result.success else 1

    # Backup manual (once o --db)
    if args.mode == 'once' or args.db:
        if not Config.CONFIG_FILE.exists():
            logger.error(f"No se encontró {Config.CONFIG_FILE}. Ejecuta: python main.py --init")
            return 1

        options = BackupOptions(
            include_data=not args.no_data,
            schema_only=args.schema_only,
            tables_to_include=args.include,
            tables_to_exclude=args.exclude
        )
        result = backup_service.run_backup([args.db or 'both'], options, archive_format=args.format)
        if result.success:
            logger.info(f"✓ Backup exitoso: {result.file_path}")
            return 0
        logger.error(f"✗ Backup fallido [{result.error_stage}]: {result.error}")
        return 1

    # Modo scheduler (por defecto)
    run_scheduler(backup_service, run_immediately=args.now)
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nPrograma interrumpido por el usuario")
        sys.exit(0)
