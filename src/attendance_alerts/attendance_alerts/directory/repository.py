from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

from ..alerts.model import NotificationRecipient


class EscalationDirectory(Protocol):
    """Maps a facility to the contacts who receive its alerts.

    May return an empty list; may raise, in which case callers degrade to empty.
    """

    def lookup_recipients(self, facility_id: str) -> Sequence[NotificationRecipient]:
        raise NotImplementedError


class StaticEscalationDirectory(EscalationDirectory):
    """Contacts configured in settings.

    ``contacts`` maps a facility id (or ``"*"`` for every facility) to a list of
    dicts with ``recipient_id``, ``name``, ``role``, ``email`` and ``phone``.
    """

    def __init__(self, contacts: Mapping[str, Sequence[Mapping[str, Any]]] | None = None):
        self._contacts = dict(contacts or {})

    def lookup_recipients(self, facility_id: str) -> Sequence[NotificationRecipient]:
        entries = list(self._contacts.get(facility_id, ())) + list(self._contacts.get("*", ()))
        return [
            NotificationRecipient(
                recipient_id=str(e["recipient_id"]),
                name=str(e.get("name", "")),
                role=str(e.get("role", "")),
                email=e.get("email") or None,
                phone=e.get("phone") or None,
            )
            for e in entries
        ]
