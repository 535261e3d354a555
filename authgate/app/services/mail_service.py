"""
services/mail_service.py — Outbound mail collaborator.

The auth services only depend on the Mailer protocol:

    send_verification_email(code, to) -> SendResult

One attempt per call, no retries. Transport failures are reported as
SendResult(ok=False); they never raise into the caller, which turns a failed
send into EMAIL_DELIVERY_FAILED without touching any state.

SmtpMailer is the production implementation (stdlib smtplib). Tests inject a
recording double through create_app(..., mailer=...).
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Mapping, Protocol

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    ok: bool
    error: str | None = None


class Mailer(Protocol):

    def send_verification_email(self, code: int, to: str) -> SendResult: ...


class SmtpMailer:
    """SMTP transport configured from EMAIL_* settings."""

    def __init__(
            self,
            host: str,
            port: int,
            user: str,
            password: str,
            secure: bool = False,
            verification_expires_in: str = "15m",
            timeout: int = 10,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.secure = secure
        self.verification_expires_in = verification_expires_in
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: Mapping, verification_expires_in: str) -> "SmtpMailer":
        """verification_expires_in comes from AuthSettings, already validated."""
        return cls(
            host=config["EMAIL_HOST"],
            port=int(config["EMAIL_PORT"]),
            user=config.get("EMAIL_USER", ""),
            password=config.get("EMAIL_PASS", ""),
            secure=bool(config.get("EMAIL_SECURE", False)),
            verification_expires_in=verification_expires_in,
            timeout=int(config.get("EMAIL_TIMEOUT_SECONDS", 10)),
        )

    def _connect(self) -> smtplib.SMTP:
        if self.secure:
            return smtplib.SMTP_SSL(
                self.host,
                self.port,
                timeout=self.timeout,
                context=ssl.create_default_context(),
            )
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        if server.has_extn("starttls"):
            server.starttls(context=ssl.create_default_context())
        return server

    def send_email(self, to: str, subject: str, text: str, html: str) -> SendResult:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.user
        msg["To"] = to
        msg.attach(MIMEText(text, "plain"))
        msg.attach(MIMEText(html, "html"))

        try:
            with self._connect() as server:
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Failed to send email to %s: %s", to, exc)
            return SendResult(ok=False, error=str(exc))

        return SendResult(ok=True)

    def send_verification_email(self, code: int, to: str) -> SendResult:
        text = (
            f"Your email verification code is {code}.\n"
            f"The code will expire in {self.verification_expires_in}."
        )
        html = (
            f"<p>Your email verification code is <strong>{code}</strong>.</p>"
            f"<p>The code will expire in {self.verification_expires_in}.</p>"
        )
        return self.send_email(to, "Email verification", text, html)
