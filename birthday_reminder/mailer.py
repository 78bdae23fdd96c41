import logging
import smtplib
import threading
from email.message import EmailMessage

import requests

from birthday_reminder.config import Config
from birthday_reminder.exceptions import ConfigurationError, DeliveryError

logger = logging.getLogger(__name__)


class EmailGateway:
    """Sends one HTML email to one recipient."""

    name = "base"

    def send(self, subject: str, body: str, recipient: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class ResendGateway(EmailGateway):
    """Transactional email through the Resend HTTP API."""

    name = "resend"

    def __init__(self, api_key, sender, api_url=Config.RESEND_API_URL, timeout=Config.EMAIL_TIMEOUT):
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.timeout = timeout

    def send(self, subject, body, recipient):
        if not self.api_key:
            raise ConfigurationError("RESEND_API_KEY is not configured", recipient)
        if not self.sender:
            raise ConfigurationError("EMAIL_BOX is not configured", recipient)

        payload = {"from": self.sender, "to": recipient, "subject": subject, "html": body}
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            response = requests.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise DeliveryError(f"Resend request failed: {e}", recipient) from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        error = data.get("error")
        if error is None and not response.ok:
            error = data.get("message") or response.text or f"HTTP {response.status_code}"
        if error:
            if isinstance(error, dict):
                error = error.get("message", error)
            raise DeliveryError(f"Failed to send email via Resend: {error}", recipient)

        logger.info("📨 Resend accepted email to %s (id=%s)", recipient, data.get("id"))


class SmtpGateway(EmailGateway):
    """
    Email over a single SMTP-over-SSL session.

    The session is opened on the first send and reused afterwards. smtplib
    connections are not thread safe, so sends are serialized on a lock.
    """

    name = "smtp"

    def __init__(self, user, password, host=Config.SMTP_HOST, port=Config.SMTP_PORT, timeout=Config.EMAIL_TIMEOUT):
        self.user = user
        self.password = password
        self.host = host
        self.port = port
        self.timeout = timeout
        self._session = None
        self._lock = threading.Lock()

    def _connect(self):
        if not self.user or not self.password:
            raise ConfigurationError("EMAIL_BOX and MAILER_PASS must both be configured")
        logger.info("🔌 Opening SMTP session to %s:%s", self.host, self.port)
        session = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        try:
            session.login(self.user, self.password)
        except smtplib.SMTPException:
            session.close()
            raise
        return session

    def _live_session(self):
        """Return the cached session, reopening it if the server dropped it while idle."""
        if self._session is not None:
            try:
                code, _ = self._session.noop()
                if code == 250:
                    return self._session
            except (smtplib.SMTPServerDisconnected, OSError) as e:
                logger.info("🔌 Cached SMTP session is stale (%s), reconnecting", e)
            self._discard_session()
        self._session = self._connect()
        return self._session

    def _discard_session(self):
        try:
            self._session.close()
        except OSError:
            pass
        self._session = None

    def send(self, subject, body, recipient):
        message = EmailMessage()
        message["From"] = self.user
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body, subtype="html")

        with self._lock:
            try:
                self._live_session().send_message(message)
            except ConfigurationError as e:
                e.recipient = recipient
                raise
            except smtplib.SMTPServerDisconnected as e:
                # next send opens a fresh session
                self._session = None
                raise DeliveryError(f"SMTP connection dropped: {e}", recipient) from e
            except (smtplib.SMTPException, OSError) as e:
                raise DeliveryError(f"Failed to send email via SMTP: {e}", recipient) from e

        logger.info("📨 SMTP accepted email to %s", recipient)

    def close(self):
        with self._lock:
            if self._session is None:
                return
            try:
                self._session.quit()
            except (smtplib.SMTPException, OSError) as e:
                logger.warning("⚠️ SMTP session did not close cleanly: %s", e)
            self._session = None


def build_gateway(config=Config) -> EmailGateway:
    """Pick the mail backend for the configured mode."""
    if config.APP_ENV == "production":
        return ResendGateway(
            api_key=config.RESEND_API_KEY,
            sender=config.EMAIL_BOX,
            api_url=config.RESEND_API_URL,
            timeout=config.EMAIL_TIMEOUT,
        )
    return SmtpGateway(
        user=config.EMAIL_BOX,
        password=config.MAILER_PASS,
        host=config.SMTP_HOST,
        port=config.SMTP_PORT,
        timeout=config.EMAIL_TIMEOUT,
    )


_gateway = None
_gateway_lock = threading.Lock()


def get_gateway() -> EmailGateway:
    """Return the process-wide gateway, creating it on first use."""
    global _gateway
    if _gateway is None:
        with _gateway_lock:
            if _gateway is None:
                _gateway = build_gateway()
                logger.info("✉️ Using %s email backend (APP_ENV=%s)", _gateway.name, Config.APP_ENV)
    return _gateway


def close_gateway():
    global _gateway
    with _gateway_lock:
        if _gateway is not None:
            _gateway.close()
            _gateway = None
