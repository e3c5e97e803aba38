from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.constants import LOW_BIOMETRIC_QUALITY, LOW_GPS_ACCURACY_METERS


@dataclass(frozen=True)
class TamperReport:
    warnings: tuple[str, ...] = ()

    @property
    def is_suspicious(self) -> bool:
        return bool(self.warnings)


def detect_tampering(
    *,
    location_accuracy: Optional[float] = None,
    quality_score: Optional[float] = None,
    device_id: Optional[str] = None,
    expected_device_id: Optional[str] = None,
) -> TamperReport:
    """Heuristic spoofing checks on a punch. Advisory only."""

    warnings: list[str] = []
    if location_accuracy is not None and location_accuracy > LOW_GPS_ACCURACY_METERS:
        warnings.append("Low GPS accuracy detected")
    if quality_score is not None and quality_score < LOW_BIOMETRIC_QUALITY:
        warnings.append("Low biometric quality detected")
    if device_id and expected_device_id and device_id != expected_device_id:
        warnings.append("Device changed since check-in")
    return TamperReport(warnings=tuple(warnings))
