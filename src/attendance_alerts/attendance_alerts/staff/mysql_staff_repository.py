from __future__ import annotations

from typing import Any, Dict, Optional

from ..core.enums import StaffRole, StaffStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import BiometricTemplates, StaffMember
from .repository import StaffRepository

_COLUMNS = """
    staff_id, name, role, designation, facility_id, status,
    fingerprint_hash, facial_hash, iris_hash, manual_pin_hash, email, phone
"""


def _to_staff(r: Dict[str, Any]) -> StaffMember:
    return StaffMember(
        staff_id=r["staff_id"],
        name=r["name"],
        role=StaffRole(r["role"]),
        designation=r["designation"],
        facility_id=r["facility_id"],
        status=StaffStatus(r["status"]),
        templates=BiometricTemplates(
            fingerprint_hash=r.get("fingerprint_hash"),
            facial_hash=r.get("facial_hash"),
            iris_hash=r.get("iris_hash"),
        ),
        manual_pin_hash=r.get("manual_pin_hash"),
        email=r.get("email"),
        phone=r.get("phone"),
    )


class MySQLStaffRepository(StaffRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, staff_id: str) -> Optional[StaffMember]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM staff_members WHERE staff_id=%s", (staff_id,))
            r = fetchone(cur)
            return _to_staff(r) if r else None
