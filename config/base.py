import json
import os


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _json(name: str):
    raw = os.getenv(name, "").strip()
    return json.loads(raw) if raw else None


DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_alerts"),
}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Notification gateways; unset credentials disable the channel
TWILIO_SID = os.getenv("TWILIO_SID")
TWILIO_TOKEN = os.getenv("TWILIO_TOKEN")
TWILIO_PHONE = os.getenv("TWILIO_PHONE")
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
ALERT_FROM_EMAIL = os.getenv("ALERT_FROM_EMAIL", "alerts@phc-monitor.gov.in")

# {"<facility_id>" | "*": [{"recipient_id", "name", "role", "email", "phone"}, ...]}
# When unset, contacts are read from the escalation_contacts table.
ESCALATION_CONTACTS = _json("ESCALATION_CONTACTS")

# Run alert fan-out off the request thread
ASYNC_DISPATCH = _flag("ASYNC_DISPATCH", "1")
NOTIFY_BACKGROUND_WORKERS = int(os.getenv("NOTIFY_BACKGROUND_WORKERS", "2"))
NOTIFY_MAX_WORKERS = int(os.getenv("NOTIFY_MAX_WORKERS", "8"))
CHANNEL_TIMEOUT_SECONDS = float(os.getenv("CHANNEL_TIMEOUT_SECONDS", "8"))
DISPATCH_RETRY_DELAY_SECONDS = float(os.getenv("DISPATCH_RETRY_DELAY_SECONDS", "0"))
EVENT_QUEUE_SIZE = int(os.getenv("EVENT_QUEUE_SIZE", "1000"))

BIOMETRIC_MAX_ATTEMPTS = int(os.getenv("BIOMETRIC_MAX_ATTEMPTS", "5"))
BIOMETRIC_WINDOW_SECONDS = float(os.getenv("BIOMETRIC_WINDOW_SECONDS", "300"))

ENFORCE_GEOFENCE = _flag("ENFORCE_GEOFENCE")
GEOFENCE_RADIUS_METERS = float(os.getenv("GEOFENCE_RADIUS_METERS", "100"))

# Optional JSON overrides, e.g. {"grace_minutes": 5} / {"absence_threshold": 4}
ATTENDANCE_POLICY = _json("ATTENDANCE_POLICY")
ALERT_POLICY = _json("ALERT_POLICY")
