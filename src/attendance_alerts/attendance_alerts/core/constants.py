"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
Policy thresholds are collected into overridable dataclasses in ``core.policy``.
"""

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_ALERT_LIST_LIMIT = 50
DEFAULT_LATE_GRACE_MINUTES = 0

# Alert severity tiers
LATE_HIGH_SEVERITY_MINUTES = 60
EARLY_HIGH_SEVERITY_MINUTES = 120

# Aggregation rule for multiple absences
ABSENCE_ALERT_THRESHOLD = 3
ABSENCE_CRITICAL_COUNT = 5

# Biometric rate limiting
BIOMETRIC_MAX_ATTEMPTS = 5
BIOMETRIC_WINDOW_SECONDS = 300

# Geofence
EARTH_RADIUS_METERS = 6_371_000.0
GEOFENCE_RADIUS_METERS = 100.0

# Tamper heuristics
LOW_GPS_ACCURACY_METERS = 1000.0
LOW_BIOMETRIC_QUALITY = 0.7

# Dispatch
DEFAULT_MAX_RETRIES = 3
DISPATCH_MAX_WORKERS = 8
CHANNEL_TIMEOUT_SECONDS = 8.0
NOTIFY_BACKGROUND_WORKERS = 2
EVENT_QUEUE_SIZE = 1000
