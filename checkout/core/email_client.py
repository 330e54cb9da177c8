# checkout/core/email_client.py
"""
SMTP client for transactional mail (order confirmations).

SMTP settings come straight from the environment:

    SMTP_HOST=smtp.example.com
    SMTP_PORT=587
    SMTP_USERNAME=orders@example.com
    SMTP_PASSWORD=...
    SMTP_FROM_EMAIL=orders@example.com
    SMTP_FROM_NAME=Shop Orders
    SMTP_USE_TLS=true
    SMTP_USE_SSL=false

With SMTP_HOST unset, mail is disabled and `is_configured()` is False.
"""
from __future__ import annotations

import logging
import os
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage

logger = logging.getLogger(__name__)


def _get_bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y"}


@dataclass(frozen=True)
class SmtpConfig:
    host: str | None
    port: int
    username: str | None
    password: str | None
    from_email: str
    from_name: str
    use_tls: bool
    use_ssl: bool

    @classmethod
    def from_env(cls) -> "SmtpConfig":
        username = os.getenv("SMTP_USERNAME")
        return cls(
            host=os.getenv("SMTP_HOST"),
            port=int(os.getenv("SMTP_PORT", "587")),
            username=username,
            password=os.getenv("SMTP_PASSWORD"),
            # Fallback: if FROM_EMAIL is not set, default to username
            from_email=os.getenv("SMTP_FROM_EMAIL", username or ""),
            from_name=os.getenv("SMTP_FROM_NAME", "Shop Orders"),
            use_tls=_get_bool_env("SMTP_USE_TLS", default=True),
            use_ssl=_get_bool_env("SMTP_USE_SSL", default=False),
        )


def is_configured(config: SmtpConfig | None = None) -> bool:
    config = config or SmtpConfig.from_env()
    return bool(config.host and config.username and config.password)


def _create_smtp_client(config: SmtpConfig) -> smtplib.SMTP:
    """
    SSL (commonly port 465) when use_ssl, otherwise plain SMTP upgraded
    with STARTTLS when use_tls (commonly port 587).
    """
    if config.use_ssl:
        server: smtplib.SMTP = smtplib.SMTP_SSL(config.host, config.port, timeout=30)
    else:
        server = smtplib.SMTP(config.host, config.port, timeout=30)
        if config.use_tls:
            server.starttls()
    return server


def send_email(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
    config: SmtpConfig | None = None,
) -> None:
    """
    Send an email to a single recipient.

    Raises
    ------
    RuntimeError:
        If required SMTP configuration is missing.
    smtplib.SMTPException:
        If the underlying SMTP connection or send fails.
    """
    config = config or SmtpConfig.from_env()
    if not is_configured(config):
        raise RuntimeError(
            "SMTP is not configured. "
            "Set SMTP_HOST, SMTP_USERNAME and SMTP_PASSWORD."
        )

    msg = EmailMessage()
    msg["From"] = (
        f"{config.from_name} <{config.from_email}>"
        if config.from_email
        else config.username
    )
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(text_body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")

    server = _create_smtp_client(config)
    try:
        server.login(config.username, config.password)  # type: ignore[arg-type]
        server.send_message(msg)
    finally:
        try:
            server.quit()
        except smtplib.SMTPException as exc:
            logger.debug("SMTP quit failed: %s", exc)
