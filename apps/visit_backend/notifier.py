from __future__ import annotations

import json
import logging
import smtplib
from email.message import EmailMessage

from apps.visit_backend.models import Visit
from common_core.config import settings

log = logging.getLogger("windtrack.notify")

FALLBACK_SITE = "OTHER"


class NotificationSink:
    """Something that can deliver a plain-text message to a list of addresses."""

    def send(self, subject: str, body: str, recipients: list[str]) -> None:
        raise NotImplementedError


class SmtpNotificationSink(NotificationSink):
    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        secure: bool | None = None,
        user: str | None = None,
        password: str | None = None,
        sender: str | None = None,
        timeout: float = 15,
    ) -> None:
        self.host = settings.smtp_host if host is None else host
        self.port = settings.smtp_port if port is None else port
        self.secure = settings.smtp_secure if secure is None else secure
        self.user = settings.smtp_user if user is None else user
        self.password = settings.smtp_pass if password is None else password
        self.sender = settings.smtp_from if sender is None else sender
        self.timeout = timeout

    def send(self, subject: str, body: str, recipients: list[str]) -> None:
        if not self.host:
            log.info("smtp_not_configured_skip", extra={"component": "notify"})
            return

        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = ", ".join(recipients)
        msg["Subject"] = subject
        msg.set_content(body)

        if self.secure:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as s:
                self._deliver(s, msg)
            return

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as s:
            s.ehlo()
            if s.has_extn("starttls"):
                s.starttls()
                s.ehlo()
            self._deliver(s, msg)

    def _deliver(self, s: smtplib.SMTP, msg: EmailMessage) -> None:
        if self.user:
            s.login(self.user, self.password)
        s.send_message(msg)


def recipients_for_site(power_plant: str | None, matrix_raw: str | None = None) -> list[str]:
    if not power_plant:
        return []
    raw_matrix = settings.notify_matrix if matrix_raw is None else matrix_raw
    try:
        matrix = json.loads(raw_matrix or "{}")
    except ValueError:
        log.warning("notify_matrix_invalid", extra={"component": "notify"})
        return []
    if not isinstance(matrix, dict):
        log.warning("notify_matrix_invalid", extra={"component": "notify"})
        return []

    raw = matrix.get(power_plant) or matrix.get(FALLBACK_SITE)
    if not raw:
        return []
    if isinstance(raw, list):
        raw = ",".join(str(r) for r in raw)
    return [s.strip() for s in str(raw).split(",") if s.strip()]


def _site_title(v: Visit) -> str:
    return f"{v.power_plant} - {v.equipment_name}" if v.equipment_name else f"{v.power_plant}"


def checkin_message(v: Visit) -> tuple[str, str]:
    subject = f"[IN] {_site_title(v)}"
    body = (
        "Check-IN\n"
        f"Site: {v.power_plant}\n"
        f"Equipment: {v.equipment_name or '-'}\n"
        f"Techs: {', '.join(v.technicians or [])}\n"
        f"Company: {v.maintenance_company or '-'}\n"
        f"Reason: {v.reason or '-'}\n"
        f"Malfunction: {v.malfunction_type or '-'}\n"
    )
    return subject, body


def checkout_message(v: Visit) -> tuple[str, str]:
    subject = f"[OUT] {_site_title(v)}"
    body = (
        "Check-OUT\n"
        f"Site: {v.power_plant}\n"
        f"Equipment: {v.equipment_name or '-'}\n"
        f"TurbineId: {v.turbine_id}\n"
        f"Techs: {', '.join(v.technicians or [])}\n"
    )
    return subject, body


def notify_site(
    sink: NotificationSink, power_plant: str | None, subject: str, body: str, visit_id: str
) -> None:
    """Best effort: never raises, never retries."""
    recipients = recipients_for_site(power_plant)
    if not recipients:
        return
    try:
        sink.send(subject, body, recipients)
        log.info(
            "notification_sent",
            extra={"visit_id": visit_id, "power_plant": power_plant, "recipients": len(recipients)},
        )
    except Exception as e:
        log.warning(
            "notification_failed",
            extra={"visit_id": visit_id, "power_plant": power_plant, "error": str(e)},
        )
