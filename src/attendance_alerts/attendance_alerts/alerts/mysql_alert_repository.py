from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from ..core.enums import AlertStatus, AlertType, Severity
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    duplicate_key_as_conflict,
    fetchall,
    from_json,
    placeholders,
    to_json,
)
from .model import ActorRef, Alert, DeliveryFlags, NotificationRecipient
from .repository import AlertRepository

_COLUMNS = """
    alert_id, facility_id, staff_id, alert_type, severity, title, message, payload,
    status, created_at, sent_at, acknowledged_at, acknowledged_by_id, acknowledged_by_name,
    acknowledged_by_role, resolved_at, resolved_by_id, resolved_by_name, resolved_by_role,
    resolution_notes, retry_count, max_retries, dedupe_key
"""

# transition() change keys -> columns; ActorRef values expand to three columns
_SCALAR_CHANGES = {"sent_at", "acknowledged_at", "resolved_at", "resolution_notes"}
_ACTOR_CHANGES = {"acknowledged_by", "resolved_by"}


def _actor(r: Dict[str, Any], prefix: str) -> Optional[ActorRef]:
    if not r.get(f"{prefix}_id"):
        return None
    return ActorRef(actor_id=r[f"{prefix}_id"], name=r.get(f"{prefix}_name") or "", role=r.get(f"{prefix}_role") or "")


def _to_recipient(r: Dict[str, Any]) -> NotificationRecipient:
    return NotificationRecipient(
        recipient_id=r["recipient_id"],
        name=r["name"],
        role=r["role"],
        email=r.get("email"),
        phone=r.get("phone"),
        delivered=DeliveryFlags(
            sms=bool(r.get("sms_delivered")),
            email=bool(r.get("email_delivered")),
            push=bool(r.get("push_delivered")),
            dashboard=bool(r.get("dashboard_delivered")),
        ),
    )


def _to_alert(r: Dict[str, Any], recipients: Sequence[NotificationRecipient]) -> Alert:
    return Alert(
        alert_id=int(r["alert_id"]),
        facility_id=r["facility_id"],
        staff_id=r.get("staff_id"),
        alert_type=AlertType(r["alert_type"]),
        severity=Severity(r["severity"]),
        title=r["title"],
        message=r["message"],
        payload=from_json(r.get("payload")) or {},
        recipients=tuple(recipients),
        status=AlertStatus(r["status"]),
        created_at=r["created_at"],
        sent_at=r.get("sent_at"),
        acknowledged_at=r.get("acknowledged_at"),
        acknowledged_by=_actor(r, "acknowledged_by"),
        resolved_at=r.get("resolved_at"),
        resolved_by=_actor(r, "resolved_by"),
        resolution_notes=r.get("resolution_notes"),
        retry_count=int(r.get("retry_count") or 0),
        max_retries=int(r.get("max_retries") or 0),
        dedupe_key=r.get("dedupe_key"),
    )


class MySQLAlertRepository(AlertRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load_recipients(self, cur, alert_ids: Sequence[int]) -> Dict[int, list[NotificationRecipient]]:
        by_id: Dict[int, list[NotificationRecipient]] = defaultdict(list)
        if not alert_ids:
            return by_id
        cur.execute(
            f"""
            SELECT alert_id, recipient_id, name, role, email, phone,
                   sms_delivered, email_delivered, push_delivered, dashboard_delivered
            FROM alert_recipients
            WHERE alert_id IN ({placeholders(len(alert_ids))})
            ORDER BY alert_id, position
            """,
            tuple(alert_ids),
        )
        for r in fetchall(cur):
            by_id[int(r["alert_id"])].append(_to_recipient(r))
        return by_id

    def _select(self, where: str, params: tuple, limit: Optional[int] = None) -> list[Alert]:
        sql = f"SELECT {_COLUMNS} FROM alerts WHERE {where} ORDER BY created_at DESC, alert_id DESC"
        if limit is not None:
            sql += " LIMIT %s"
            params = (*params, int(limit))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            rows = fetchall(cur)
            recipients = self._load_recipients(cur, [int(r["alert_id"]) for r in rows])
            return [_to_alert(r, recipients.get(int(r["alert_id"]), ())) for r in rows]

    def create(
        self,
        *,
        alert_type: AlertType,
        severity: Severity,
        facility_id: str,
        staff_id: Optional[str],
        title: str,
        message: str,
        payload: Mapping[str, Any],
        recipients: Sequence[NotificationRecipient],
        max_retries: int,
        created_at: datetime,
        dedupe_key: Optional[str] = None,
    ) -> Alert:
        with duplicate_key_as_conflict("An open alert already exists for this key"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO alerts(
                    facility_id, staff_id, alert_type, severity, title, message, payload,
                    status, created_at, retry_count, max_retries, dedupe_key
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,0,%s,%s)
                """,
                (
                    facility_id,
                    staff_id,
                    alert_type.value,
                    severity.value,
                    title,
                    message,
                    to_json(dict(payload)),
                    AlertStatus.PENDING.value,
                    created_at,
                    int(max_retries),
                    dedupe_key,
                ),
            )
            alert_id = int(cur.lastrowid)
            for position, r in enumerate(recipients):
                cur.execute(
                    """
                    INSERT INTO alert_recipients(alert_id, position, recipient_id, name, role, email, phone)
                    VALUES(%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (alert_id, position, r.recipient_id, r.name, r.role, r.email, r.phone),
                )

        return Alert(
            alert_id=alert_id,
            facility_id=facility_id,
            staff_id=staff_id,
            alert_type=alert_type,
            severity=severity,
            title=title,
            message=message,
            payload=dict(payload),
            recipients=tuple(recipients),
            created_at=created_at,
            max_retries=int(max_retries),
            dedupe_key=dedupe_key,
        )

    def get_by_id(self, alert_id: int) -> Optional[Alert]:
        rows = self._select("alert_id=%s", (int(alert_id),))
        return rows[0] if rows else None

    def find_by_dedupe_key(self, dedupe_key: str) -> Optional[Alert]:
        rows = self._select("dedupe_key=%s", (dedupe_key,))
        return rows[0] if rows else None

    def list_alerts(
        self,
        *,
        facility_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        alert_type: Optional[AlertType] = None,
        severity: Optional[Severity] = None,
        status: Optional[AlertStatus] = None,
        limit: int = 50,
    ) -> Sequence[Alert]:
        clauses = ["1=1"]
        params: list[object] = []
        for column, value in (
            ("facility_id", facility_id),
            ("staff_id", staff_id),
            ("alert_type", alert_type.value if alert_type else None),
            ("severity", severity.value if severity else None),
            ("status", status.value if status else None),
        ):
            if value is not None:
                clauses.append(f"{column}=%s")
                params.append(value)
        return self._select(" AND ".join(clauses), tuple(params), limit=limit)

    def update_recipient_delivery(self, *, alert_id: int, recipient_id: str, delivered: DeliveryFlags) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE alert_recipients
                SET sms_delivered=%s, email_delivered=%s, push_delivered=%s, dashboard_delivered=%s
                WHERE alert_id=%s AND recipient_id=%s
                """,
                (
                    int(delivered.sms),
                    int(delivered.email),
                    int(delivered.push),
                    int(delivered.dashboard),
                    int(alert_id),
                    recipient_id,
                ),
            )
            return cur.rowcount > 0

    def increment_retry(self, *, alert_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE alerts SET retry_count=retry_count+1 WHERE alert_id=%s AND retry_count < max_retries",
                (int(alert_id),),
            )
            return cur.rowcount > 0

    def transition(
        self,
        *,
        alert_id: int,
        from_statuses: Iterable[AlertStatus],
        to_status: AlertStatus,
        changes: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        sources = [s.value for s in from_statuses]
        if not sources:
            return False

        sets = ["status=%s"]
        params: list[object] = [to_status.value]
        for key, value in (changes or {}).items():
            if key in _SCALAR_CHANGES:
                sets.append(f"{key}=%s")
                params.append(value)
            elif key in _ACTOR_CHANGES:
                sets.extend([f"{key}_id=%s", f"{key}_name=%s", f"{key}_role=%s"])
                params.extend([value.actor_id, value.name, value.role])
            else:
                raise ValueError(f"Unsupported alert change: {key}")
        if to_status == AlertStatus.RESOLVED:
            sets.append("dedupe_key=NULL")

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE alerts SET {", ".join(sets)}
                WHERE alert_id=%s AND status IN ({placeholders(len(sources))})
                """,
                (*params, int(alert_id), *sources),
            )
            return cur.rowcount > 0

    def count_by_type_and_severity(
        self, *, facility_id: str, start: datetime, end: datetime
    ) -> Sequence[tuple[AlertType, Severity, int]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT alert_type, severity, COUNT(*) AS total
                FROM alerts
                WHERE facility_id=%s AND created_at BETWEEN %s AND %s
                GROUP BY alert_type, severity
                ORDER BY alert_type, severity
                """,
                (facility_id, start, end),
            )
            return [(AlertType(r["alert_type"]), Severity(r["severity"]), int(r["total"])) for r in fetchall(cur)]
