"""
Email adapter for basekit.

The default implementation uses SMTP, reading credentials from MailConfig.
When mail is disabled (SMTP_HOST unset or incomplete) every send attempt
raises MailConfigurationError instead of silently dropping the message.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
import logging
import smtplib
import ssl
from typing import Optional, Protocol, Sequence

from .config import MailConfig
from .errors import MailConfigurationError, MailDeliveryError

logger = logging.getLogger(__name__)

SMTPS_PORT = 465


@dataclass(frozen=True)
class Attachment:
    filename: str
    content_type: str
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class Email:
    subject: str
    text: str
    html: Optional[str] = None
    attachments: Sequence[Attachment] = ()
    to: Sequence[str] = ()
    cc: Sequence[str] = ()
    bcc: Sequence[str] = ()


class EmailSender(Protocol):
    def send(self, email: Email) -> None:
        ...


def _attachment_part(attachment: Attachment) -> MIMEBase:
    maintype, _, subtype = attachment.content_type.partition("/")
    part = MIMEBase(maintype or "application", subtype or "octet-stream")
    part.set_payload(attachment.data)
    encoders.encode_base64(part)
    part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
    return part


def _alternative(text: str, html: str) -> MIMEMultipart:
    alternative = MIMEMultipart("alternative")
    alternative.attach(MIMEText(text, "plain", "utf-8"))
    alternative.attach(MIMEText(html, "html", "utf-8"))
    return alternative


class SmtpEmailSender:
    """Send :class:`Email` objects through an SMTP relay."""

    def __init__(self, config: Optional[MailConfig]) -> None:
        self._config = config
        if config is None:
            logger.info("SMTP disabled; send attempts will fail with MailConfigurationError")
            return
        logger.info(
            "SMTP init: host=%s port=%s user=%s from=%s default_to_count=%d",
            config.host,
            config.port,
            config.username,
            config.from_email,
            len(config.notify_to),
        )

    @property
    def enabled(self) -> bool:
        return self._config is not None

    def build_message(self, email: Email) -> tuple[MIMEBase, list[str]]:
        """Return the MIME message and the full envelope recipient list."""
        config = self._require_config()
        to = list(email.to) or list(config.notify_to)
        if not to and not email.cc and not email.bcc:
            raise MailConfigurationError("No recipients given and NOTIFY_TO_EMAIL is empty.")

        if email.html is not None:
            body: MIMEBase = _alternative(email.text, email.html)
        else:
            body = MIMEText(email.text, "plain", "utf-8")
        if email.attachments:
            msg: MIMEBase = MIMEMultipart("mixed")
            msg.attach(body)
            for attachment in email.attachments:
                msg.attach(_attachment_part(attachment))
        else:
            msg = body

        msg["Subject"] = email.subject.replace("\r", "").replace("\n", "")
        msg["From"] = formataddr((config.from_name, config.from_email))
        if to:
            msg["To"] = ", ".join(to)
        if email.cc:
            msg["Cc"] = ", ".join(email.cc)
        return msg, to + list(email.cc) + list(email.bcc)

    def send(self, email: Email) -> None:
        config = self._require_config()
        msg, recipients = self.build_message(email)
        try:
            if config.port == SMTPS_PORT:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(config.host, config.port, context=context) as server:
                    server.login(config.username, config.password)
                    server.sendmail(config.from_email, recipients, msg.as_string())
            else:
                with smtplib.SMTP(config.host, config.port) as server:
                    server.ehlo()
                    server.starttls(context=ssl.create_default_context())
                    server.login(config.username, config.password)
                    server.sendmail(config.from_email, recipients, msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP send failed for %d recipient(s): %s", len(recipients), exc)
            raise MailDeliveryError(f"SMTP send failed: {exc}") from exc
        logger.info("Mail sent to %d recipient(s)", len(recipients))

    def _require_config(self) -> MailConfig:
        if self._config is None:
            raise MailConfigurationError("Mail is disabled: SMTP_HOST is not configured.")
        return self._config
