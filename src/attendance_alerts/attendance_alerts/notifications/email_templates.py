"""Email bodies for alert notifications."""

from __future__ import annotations

from html import escape

from ..alerts.model import Alert
from ..core.enums import Severity

SENDER_NAME = "Attendance Alert System"

SEVERITY_COLORS = {
    Severity.LOW: "#28a745",
    Severity.MEDIUM: "#ffc107",
    Severity.HIGH: "#fd7e14",
    Severity.CRITICAL: "#dc3545",
}


def build_subject(alert: Alert) -> str:
    return f"[{alert.severity.value}] {alert.title}"


def build_sms_body(alert: Alert) -> str:
    return f"[{alert.severity.value}] {alert.title}: {alert.message}"


def build_text(alert: Alert, recipient_name: str) -> str:
    return (
        f"Dear {recipient_name},\n\n"
        f"{alert.message}\n\n"
        f"Facility ID: {alert.facility_id}\n"
        f"Staff ID: {alert.staff_id or '-'}\n"
        f"Time: {alert.created_at:%Y-%m-%d %H:%M}\n\n"
        "Please take appropriate action.\n\n"
        f"Regards,\n{SENDER_NAME}"
    )


def build_html(alert: Alert, recipient_name: str) -> str:
    color = SEVERITY_COLORS.get(alert.severity, "#6c757d")
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background-color: {color}; color: white; padding: 20px; text-align: center;">
    <h2>{escape(alert.title)}</h2>
    <p style="margin: 0; font-size: 14px;">Severity: {alert.severity.value}</p>
  </div>
  <div style="padding: 20px; background-color: #f8f9fa;">
    <p>Dear {escape(recipient_name)},</p>
    <p>{escape(alert.message)}</p>
    <div style="background-color: white; padding: 15px; border-left: 4px solid {color}; margin: 20px 0;">
      <p><strong>Details:</strong></p>
      <ul style="list-style: none; padding: 0;">
        <li><strong>Facility ID:</strong> {escape(alert.facility_id)}</li>
        <li><strong>Staff ID:</strong> {escape(alert.staff_id or '-')}</li>
        <li><strong>Time:</strong> {alert.created_at:%Y-%m-%d %H:%M}</li>
        <li><strong>Alert Type:</strong> {alert.alert_type.value}</li>
      </ul>
    </div>
    <p>Please take appropriate action.</p>
    <p>Regards,<br>{SENDER_NAME}</p>
  </div>
</div>
"""
