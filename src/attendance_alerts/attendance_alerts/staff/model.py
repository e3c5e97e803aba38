from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..core.enums import BiometricModality, StaffRole, StaffStatus


@dataclass(frozen=True)
class BiometricTemplates:
    """Salted one-way hashes of the enrolled templates, one per modality."""

    fingerprint_hash: Optional[str] = None
    facial_hash: Optional[str] = None
    iris_hash: Optional[str] = None


@dataclass(frozen=True)
class StaffMember:
    """Domain entity: a staff member assigned to exactly one facility.

    Note: Plain data object, owned by the administrative subsystem and read-only here.
    """

    staff_id: str
    name: str
    role: StaffRole
    designation: str
    facility_id: str
    status: StaffStatus = StaffStatus.ACTIVE
    templates: BiometricTemplates = field(default_factory=BiometricTemplates)
    manual_pin_hash: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == StaffStatus.ACTIVE

    def template_for(self, modality: BiometricModality) -> Optional[str]:
        return {
            BiometricModality.FINGERPRINT: self.templates.fingerprint_hash,
            BiometricModality.FACIAL: self.templates.facial_hash,
            BiometricModality.IRIS: self.templates.iris_hash,
            BiometricModality.MANUAL: self.manual_pin_hash,
        }.get(modality)
