"""
This module provides communication clients for external systems used by the order intake service:
- Mail transport (SMTP) for delivering purchase orders to the store owner and the buyer
Each class encapsulates its protocol logic, error handling, and connection management.
"""

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Optional, Protocol, Sequence

log = logging.getLogger(__name__)


class NotificationError(Exception):
    """The purchase order could not be handed to the mail transport."""


class Notifier(Protocol):
    def send_purchase_order(self, recipients: Sequence[str], subject: str, body: str,
                            attachment: bytes, filename: str) -> None: ...


# --- Mail Client (SMTP) ---
class MailClient:
    """
    Client for the outgoing mail server (SMTP).
    Delivers purchase orders as PDF attachments.
    """

    def __init__(self, host: str, port: int, sender: str, username: Optional[str] = None,
                 password: Optional[str] = None, starttls: bool = True, timeout: float = 15.0):
        """
        Stores the transport configuration. A connection is opened per message,
        so the client holds no socket between orders.
        """
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "MailClient":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            sender=settings.sender_address,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASS,
            starttls=settings.SMTP_STARTTLS,
            timeout=settings.SMTP_TIMEOUT,
        )

    def build_message(self, recipients: Sequence[str], subject: str, body: str,
                      attachment: bytes, filename: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = ", ".join(recipients)
        message["Subject"] = subject
        message["Date"] = formatdate(localtime=True)
        message["Message-ID"] = make_msgid()
        message.set_content(body)
        message.add_attachment(attachment, maintype="application", subtype="pdf", filename=filename)
        return message

    def send_purchase_order(self, recipients: Sequence[str], subject: str, body: str,
                            attachment: bytes, filename: str) -> None:
        """
        Sends one message with the PDF attached to all recipients.
        Args:
            recipients (Sequence[str]): Envelope and header recipients.
            subject (str): Subject line.
            body (str): Plain-text body.
            attachment (bytes): The rendered purchase order.
            filename (str): Attachment file name.
        Raises:
            NotificationError: If connecting, authenticating or sending fails.
        """
        message = self.build_message(recipients, subject, body, attachment, filename)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.starttls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(message, from_addr=self.sender, to_addrs=list(recipients))
        except (smtplib.SMTPException, OSError) as e:
            log.error(f"SMTP delivery via {self.host}:{self.port} failed: {e}")
            raise NotificationError(str(e)) from e
        log.info(f"PO {filename} mailed to {', '.join(recipients)}")
