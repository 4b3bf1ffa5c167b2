"""
Servicio de programación de tareas de backup
"""
import schedule
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence
from ..config import Config
from ..logger import LoggerService
from ..models import (
    BackupMetadata, BackupResult, BackupScheduleConfig, SchedulerStatus,
    month_bucket, sunday_weekday, week_bucket,
)
from .backup_service import BackupService


def due_slot(config: BackupScheduleConfig, now: datetime) -> Optional[datetime]:
    """
    Instante programado cuya ventana contiene a now

    La ventana dura DUE_WINDOW_MINUTES y puede cruzar la hora o la medianoche,
    así que también se prueba el horario del día anterior.
    """
    window = timedelta(minutes=Config.DUE_WINDOW_MINUTES)
    today = now.replace(hour=config.hour, minute=config.minute, second=0, microsecond=0)
    for slot in (today, today - timedelta(days=1)):
        if timedelta(0) <= now - slot < window:
            return slot
    return None


def due_backup_type(config: BackupScheduleConfig, entries: Sequence[BackupMetadata],
                    now: datetime) -> Optional[str]:
    """
    Decide si corresponde un backup programado ahora

    Args:
        config: Programación vigente
        entries: Catálogo actual
        now: Hora actual

    Returns:
        'weekly' o 'monthly' si hay que respaldar, None en caso contrario
    """
    if not config.enabled:
        return None

    slot = due_slot(config, now)
    if slot is None:
        return None

    if config.frequency == 'weekly':
        backup_type = 'weekly'
        if sunday_weekday(slot) != config.day_of_week:
            return None
        current_week = week_bucket(slot)
        if any(e.backup_type == 'weekly' and e.week == current_week for e in entries):
            return None

    elif config.frequency == 'monthly':
        backup_type = 'monthly'
        if slot.day != 1:
            return None
        current_month = month_bucket(slot)
        if any(e.backup_type == 'monthly' and e.month == current_month for e in entries):
            return None

    else:
        # Los backups diarios se registran como semanales: la retención conserva uno por semana
        backup_type = 'weekly'
        day = slot.date()
        if any(e.backup_type == 'weekly' and e.created.date() == day for e in entries):
            return None

    # Un backup ya iniciado dentro de esta ventana también cuenta
    if any(e.backup_type == backup_type and e.created >= slot for e in entries):
        return None
    return backup_type


class SchedulerService:
    """Servicio para programar y ejecutar backups automáticos"""

    STOP_TIMEOUT_SECONDS = 30

    def __init__(self, backup_service: BackupService,
                 check_interval_minutes: int = Config.CHECK_INTERVAL_MINUTES,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Inicializa el servicio de programación

        Args:
            backup_service: Servicio de backup a ejecutar
            check_interval_minutes: Cada cuántos minutos se revisa la programación
            clock: Fuente de la hora actual
        """
        self.backup_service = backup_service
        self.check_interval_minutes = check_interval_minutes
        self.clock = clock
        self.logger = LoggerService.get_logger("SchedulerService")

        # Cada loop tiene su propio Scheduler y su propio Event: reiniciar no
        # puede reactivar un loop anterior que todavía está terminando un tick
        self._jobs = schedule.Scheduler()
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_check: Optional[datetime] = None
        self._last_result: Optional[BackupResult] = None

    @property
    def running(self) -> bool:
        return self._alive() and not self._stop_event.is_set()

    @property
    def stopping(self) -> bool:
        """True si se pidió stop() pero el loop sigue dentro de un tick"""
        return self._alive() and self._stop_event.is_set()

    def _alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """
        Inicia el loop de revisión en segundo plano

        Returns:
            True si se inició un loop nuevo; False si ya había uno corriendo
            o el anterior todavía no terminó
        """
        with self._lock:
            if self.running:
                self.logger.info("El programador de backups ya está corriendo")
                return False
            if self.stopping:
                self.logger.warning(
                    "El loop anterior todavía está terminando una revisión, no se inicia otro"
                )
                return False

            jobs = schedule.Scheduler()
            jobs.every(self.check_interval_minutes).minutes.do(self._run_check_job)
            stop_event = threading.Event()
            self._jobs = jobs
            self._stop_event = stop_event
            self._thread = threading.Thread(
                target=self._loop, args=(jobs, stop_event), name="backup-scheduler", daemon=True
            )
            self._thread.start()

        config = self.backup_service.get_schedule_config()
        self.logger.info("=" * 70)
        self.logger.info("SERVICIO DE BACKUP AUTOMÁTICO INICIADO")
        self.logger.info("=" * 70)
        self.logger.info(f"Revisión cada {self.check_interval_minutes} minutos")
        self.logger.info(
            f"Programación: {config.frequency} {config.hour:02d}:{config.minute:02d} "
            f"({'habilitada' if config.enabled else 'deshabilitada'})"
        )
        self.logger.info(
            f"Retención: {config.retention.keep_weekly} semanas, {config.retention.keep_monthly} meses"
        )
        self.logger.info(f"Próxima revisión: {self.get_next_run()}")
        self.logger.info("=" * 70)
        return True

    def stop(self, timeout: float = STOP_TIMEOUT_SECONDS):
        """
        Detiene el loop (no-op si no está corriendo)

        Args:
            timeout: Segundos a esperar que termine el tick en curso. Si el loop
                sigue vivo se conserva la referencia y start() no inicia otro.
        """
        with self._lock:
            if not self.running:
                self.logger.info("El programador de backups no está corriendo")
                return
            self.logger.info("Deteniendo servicio de backup...")
            self._stop_event.set()
            self._jobs.clear()
            thread = self._thread
        thread.join(timeout=timeout)
        if thread.is_alive():
            self.logger.warning("El loop sigue terminando una revisión; se detendrá al finalizarla")
            return
        with self._lock:
            if self._thread is thread:
                self._thread = None
        self.logger.info("Servicio detenido correctamente")

    @staticmethod
    def _loop(jobs: schedule.Scheduler, stop_event: threading.Event):
        while not stop_event.wait(1):
            jobs.run_pending()

    def run_forever(self, run_immediately: bool = False):
        """
        Inicia el programador y bloquea hasta que se llame a stop()

        Args:
            run_immediately: Si es True, revisa la programación al iniciar
        """
        self.start()
        if run_immediately:
            self._run_check_job()
        while self.running:
            self._stop_event.wait(1)

    def _run_check_job(self):
        """Revisión periódica: cualquier error se registra y el loop sigue"""
        try:
            self.trigger_check_now()
        except Exception as e:
            self.logger.error(f"Error crítico durante la revisión de backups: {e}", exc_info=True)

    def trigger_check_now(self) -> Optional[BackupResult]:
        """
        Ejecuta una revisión sincrónica de la programación

        Returns:
            BackupResult si se ejecutó un backup, None si no correspondía
        """
        now = self.clock()
        self._last_check = now
        config = self.backup_service.get_schedule_config()
        backup_type = due_backup_type(config, self.backup_service.catalog.load(), now)

        if backup_type is None:
            self.logger.debug(f"Revisión {now:%Y-%m-%d %H:%M}: no corresponde backup")
            return None

        self.logger.info(f"Hora de backup programado detectada, creando backup {backup_type}...")
        result = self.backup_service.create_scheduled_backup(backup_type)
        self._last_result = result

        if result.success:
            self.logger.info(f"Backup programado completado: {result.file_name}")
        else:
            self.logger.error(f"Backup programado fallido [{result.error_stage}]: {result.error}")
        return result

    def status(self) -> SchedulerStatus:
        """
        Estado actual del programador

        Returns:
            SchedulerStatus con la próxima revisión estimada
        """
        next_check = None
        if self.running:
            next_check = self._jobs.next_run or (
                datetime.now() + timedelta(minutes=self.check_interval_minutes)
            )
        return SchedulerStatus(
            running=self.running,
            next_check=next_check,
            last_check=self._last_check,
            last_result=self._last_result
        )

    def get_next_run(self) -> str:
        """
        Obtiene la hora de la próxima revisión

        Returns:
            String con la hora de la próxima revisión
        """
        next_run = self._jobs.next_run
        if next_run:
            return next_run.strftime('%Y-%m-%d %H:%M:%S')
        return "No hay revisiones programadas"
