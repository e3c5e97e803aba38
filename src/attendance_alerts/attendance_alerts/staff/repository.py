from __future__ import annotations

from typing import Optional, Protocol

from .model import StaffMember


class StaffRepository(Protocol):
    """Read-only view of staff owned by the administrative subsystem."""

    def get_by_id(self, staff_id: str) -> Optional[StaffMember]:
        raise NotImplementedError
