from __future__ import annotations

from typing import Sequence

from ..alerts.model import NotificationRecipient
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .repository import EscalationDirectory


class MySQLEscalationDirectory(EscalationDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def lookup_recipients(self, facility_id: str) -> Sequence[NotificationRecipient]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT recipient_id, name, role, email, phone
                FROM escalation_contacts
                WHERE (facility_id=%s OR facility_id='*') AND is_active=1
                ORDER BY escalation_level ASC, recipient_id ASC
                """,
                (facility_id,),
            )
            return [
                NotificationRecipient(
                    recipient_id=r["recipient_id"],
                    name=r["name"],
                    role=r["role"],
                    email=r.get("email") or None,
                    phone=r.get("phone") or None,
                )
                for r in fetchall(cur)
            ]
