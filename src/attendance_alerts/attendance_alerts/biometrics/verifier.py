from __future__ import annotations

import logging
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..core.enums import BiometricModality

logger = logging.getLogger(__name__)

SUPPORTED_MODALITIES = frozenset(BiometricModality)


def hash_template(raw: str, *, method: str = "scrypt") -> str:
    """Produce the salted one-way hash stored at enrolment (template or manual PIN)."""

    if not raw:
        raise ValueError("Cannot enrol an empty biometric template")
    return generate_password_hash(raw, method=method)


class BiometricVerifier:
    """Compares a submitted sample against an enrolled hash.

    Fails closed: a missing template, an unsupported modality or any error while
    comparing yields ``False``; nothing is raised past this boundary.
    """

    def verify(self, enrolled_hash: Optional[str], sample: Optional[str], modality) -> bool:
        try:
            modality = BiometricModality(modality)
        except ValueError:
            logger.warning("Unsupported biometric modality: %r", modality)
            return False

        if modality not in SUPPORTED_MODALITIES:
            return False
        if not enrolled_hash:
            logger.warning("No enrolled %s template available", modality.value)
            return False
        if not sample:
            return False

        try:
            return bool(check_password_hash(enrolled_hash, sample))
        except Exception:
            # e.g. placeholder or corrupted hashes
            logger.exception("Biometric comparison failed for modality %s", modality.value)
            return False
