from __future__ import annotations

from typing import Optional

from ..core.enums import FacilityStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_time, db_cursor, fetchone
from ..geo.geofence import GeoPoint
from .model import Facility, OperatingHours
from .repository import FacilityRepository


class MySQLFacilityRepository(FacilityRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, facility_id: str) -> Optional[Facility]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT facility_id, name, facility_type, district, lat, lng,
                       opening_time, closing_time, status
                FROM facilities
                WHERE facility_id=%s
                """,
                (facility_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Facility(
                facility_id=r["facility_id"],
                name=r["name"],
                location=GeoPoint(lat=float(r["lat"]), lng=float(r["lng"])),
                operating_hours=OperatingHours(
                    start=as_time(r["opening_time"]),
                    end=as_time(r["closing_time"]),
                ),
                status=FacilityStatus(r["status"]),
                facility_type=r.get("facility_type") or "PHC",
                district=r.get("district"),
            )
