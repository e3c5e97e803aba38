from __future__ import annotations

import logging
from typing import Optional, Protocol

import requests

from ..core.constants import CHANNEL_TIMEOUT_SECONDS
from ..core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

TWILIO_API_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"


class SmsGateway(Protocol):
    @property
    def is_configured(self) -> bool:
        raise NotImplementedError

    def send(self, *, to: str, body: str) -> None:
        """Send one SMS; raise ``ExternalServiceError`` on failure."""

        raise NotImplementedError


class EmailGateway(Protocol):
    @property
    def is_configured(self) -> bool:
        raise NotImplementedError

    def send(self, *, to: str, to_name: str, subject: str, text: str, html: str) -> None:
        """Send one email; raise ``ExternalServiceError`` on failure."""

        raise NotImplementedError


class TwilioSmsGateway(SmsGateway):
    def __init__(
        self,
        account_sid: Optional[str],
        auth_token: Optional[str],
        from_number: Optional[str],
        *,
        timeout: float = CHANNEL_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self._sid = account_sid or ""
        self._token = auth_token or ""
        self._from = from_number or ""
        self._timeout = timeout
        self._http = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return self._sid.startswith("AC") and bool(self._token) and bool(self._from)

    def send(self, *, to: str, body: str) -> None:
        if not self.is_configured:
            raise ExternalServiceError("SMS gateway is not configured")
        try:
            resp = self._http.post(
                TWILIO_API_URL.format(sid=self._sid),
                auth=(self._sid, self._token),
                data={"From": self._from, "To": to, "Body": body},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise ExternalServiceError(f"SMS request failed: {exc}") from exc

        if resp.status_code not in (200, 201):
            raise ExternalServiceError(f"Twilio returned {resp.status_code}: {resp.text[:200]}")
        logger.info("SMS sent to %s - sid: %s", to, resp.json().get("sid", ""))


class SendGridEmailGateway(EmailGateway):
    def __init__(
        self,
        api_key: Optional[str],
        from_email: str,
        *,
        from_name: str = "Attendance Alert System",
        timeout: float = CHANNEL_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self._api_key = api_key or ""
        self._from_email = from_email
        self._from_name = from_name
        self._timeout = timeout
        self._http = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return self._api_key.startswith("SG.") and bool(self._from_email)

    def send(self, *, to: str, to_name: str, subject: str, text: str, html: str) -> None:
        if not self.is_configured:
            raise ExternalServiceError("Email gateway is not configured")
        message = {
            "personalizations": [{"to": [{"email": to, "name": to_name}]}],
            "from": {"email": self._from_email, "name": self._from_name},
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": text},
                {"type": "text/html", "value": html},
            ],
        }
        try:
            resp = self._http.post(
                SENDGRID_API_URL,
                headers={"Authorization": f"Bearer {self._api_key}"},
                json=message,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise ExternalServiceError(f"Email request failed: {exc}") from exc

        if resp.status_code not in (200, 202):
            raise ExternalServiceError(f"SendGrid returned {resp.status_code}: {resp.text[:200]}")
        logger.info("Alert email sent to %s", to)
