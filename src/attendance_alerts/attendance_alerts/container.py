from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .alerts.generator import AlertGenerator
from .alerts.lifecycle import AlertLifecycleManager
from .alerts.mysql_alert_repository import MySQLAlertRepository
from .alerts.repository import AlertRepository
from .alerts.service import AlertService
from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .biometrics.rate_limiter import BiometricRateLimiter
from .biometrics.verifier import BiometricVerifier
from .core import constants
from .core.policy import AlertPolicy, AttendancePolicy, policy_from_mapping
from .database.connection import DBConfig, DatabaseConnection
from .directory.mysql_directory import MySQLEscalationDirectory
from .directory.repository import EscalationDirectory, StaticEscalationDirectory
from .facilities.mysql_facility_repository import MySQLFacilityRepository
from .facilities.repository import FacilityRepository
from .notifications.dispatcher import NotificationDispatcher
from .notifications.gateways import EmailGateway, SendGridEmailGateway, SmsGateway, TwilioSmsGateway
from .notifications.outbox import EventOutbox, EventPublisher
from .notifications.realtime import LocalPubSub
from .reports.service import StatisticsService
from .staff.mysql_staff_repository import MySQLStaffRepository
from .staff.repository import StaffRepository


@dataclass(frozen=True)
class Container:
    staff_repo: StaffRepository
    facilities_repo: FacilityRepository
    attendance_repo: AttendanceRepository
    alerts_repo: AlertRepository
    directory: EscalationDirectory

    realtime: LocalPubSub
    events: EventPublisher
    dispatcher: NotificationDispatcher

    alert_service: AlertService
    alert_lifecycle: AlertLifecycleManager
    attendance_service: AttendanceService
    statistics_service: StatisticsService

    conn: Optional[DatabaseConnection] = None

    def shutdown(self) -> None:
        if isinstance(self.events, EventOutbox):
            self.events.close()
        self.alert_service.close()
        self.dispatcher.close()


def _setting(settings: Any, name: str, default: Any) -> Any:
    return getattr(settings, name, default) if settings is not None else default


def attendance_policy_from(settings: Any) -> AttendancePolicy:
    overrides = dict(_setting(settings, "ATTENDANCE_POLICY", None) or {})
    overrides.setdefault("enforce_geofence", bool(_setting(settings, "ENFORCE_GEOFENCE", False)))
    overrides.setdefault(
        "geofence_radius_meters",
        float(_setting(settings, "GEOFENCE_RADIUS_METERS", constants.GEOFENCE_RADIUS_METERS)),
    )
    return policy_from_mapping(AttendancePolicy, overrides)


def alert_policy_from(settings: Any) -> AlertPolicy:
    return policy_from_mapping(AlertPolicy, _setting(settings, "ALERT_POLICY", None))


def assemble(
    *,
    staff_repo: StaffRepository,
    facilities_repo: FacilityRepository,
    attendance_repo: AttendanceRepository,
    alerts_repo: AlertRepository,
    directory: EscalationDirectory,
    sms: SmsGateway,
    email: EmailGateway,
    realtime: Optional[LocalPubSub] = None,
    events: Optional[EventPublisher] = None,
    settings: Any = None,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over the given adapters (MySQL in production, fakes in tests)."""

    realtime = realtime or LocalPubSub()
    if events is None:
        events = EventOutbox(realtime, maxsize=int(_setting(settings, "EVENT_QUEUE_SIZE", constants.EVENT_QUEUE_SIZE))).start()

    dispatcher = NotificationDispatcher(
        alerts_repo,
        sms=sms,
        email=email,
        realtime=realtime,
        max_workers=int(_setting(settings, "NOTIFY_MAX_WORKERS", constants.DISPATCH_MAX_WORKERS)),
        channel_timeout=float(_setting(settings, "CHANNEL_TIMEOUT_SECONDS", constants.CHANNEL_TIMEOUT_SECONDS)),
        retry_delay_seconds=float(_setting(settings, "DISPATCH_RETRY_DELAY_SECONDS", 0.0)),
    )
    generator = AlertGenerator(alerts_repo, directory, policy=alert_policy_from(settings))
    alert_service = AlertService(
        generator,
        dispatcher,
        background=bool(_setting(settings, "ASYNC_DISPATCH", False)),
        max_workers=int(_setting(settings, "NOTIFY_BACKGROUND_WORKERS", constants.NOTIFY_BACKGROUND_WORKERS)),
    )
    lifecycle = AlertLifecycleManager(alerts_repo, attendance_repo, staff_repo, facilities_repo, alert_service)

    attendance_service = AttendanceService(
        attendance_repo,
        staff_repo,
        facilities_repo,
        verifier=BiometricVerifier(),
        rate_limiter=BiometricRateLimiter(
            max_attempts=int(_setting(settings, "BIOMETRIC_MAX_ATTEMPTS", constants.BIOMETRIC_MAX_ATTEMPTS)),
            window_seconds=float(_setting(settings, "BIOMETRIC_WINDOW_SECONDS", constants.BIOMETRIC_WINDOW_SECONDS)),
        ),
        alerts=alert_service,
        events=events,
        policy=attendance_policy_from(settings),
        strategy_factory=AttendanceStrategyFactory(),
        lifecycle=lifecycle,
    )
    statistics_service = StatisticsService(attendance_repo, alerts_repo)

    return Container(
        staff_repo=staff_repo,
        facilities_repo=facilities_repo,
        attendance_repo=attendance_repo,
        alerts_repo=alerts_repo,
        directory=directory,
        realtime=realtime,
        events=events,
        dispatcher=dispatcher,
        alert_service=alert_service,
        alert_lifecycle=lifecycle,
        attendance_service=attendance_service,
        statistics_service=statistics_service,
        conn=conn,
    )


def build_container(*, settings: Any) -> Container:
    db_config = settings.DB_CONFIG
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    contacts = _setting(settings, "ESCALATION_CONTACTS", None)
    directory: EscalationDirectory = StaticEscalationDirectory(contacts) if contacts else MySQLEscalationDirectory(conn)

    timeout = float(_setting(settings, "CHANNEL_TIMEOUT_SECONDS", constants.CHANNEL_TIMEOUT_SECONDS))
    sms = TwilioSmsGateway(
        _setting(settings, "TWILIO_SID", None),
        _setting(settings, "TWILIO_TOKEN", None),
        _setting(settings, "TWILIO_PHONE", None),
        timeout=timeout,
    )
    email = SendGridEmailGateway(
        _setting(settings, "SENDGRID_API_KEY", None),
        _setting(settings, "ALERT_FROM_EMAIL", "alerts@phc-monitor.gov.in"),
        timeout=timeout,
    )

    return assemble(
        staff_repo=MySQLStaffRepository(conn),
        facilities_repo=MySQLFacilityRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        alerts_repo=MySQLAlertRepository(conn),
        directory=directory,
        sms=sms,
        email=email,
        settings=settings,
        conn=conn,
    )
