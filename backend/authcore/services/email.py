from __future__ import annotations

import logging
import smtplib
from email.mime.text import MIMEText
from email.utils import formatdate
from html import escape as html_escape

import boto3
import httpx
import resend
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError, NoCredentialsError

from authcore.core.config import settings

logger = logging.getLogger(__name__)


class EmailNotConfiguredError(RuntimeError):
    pass


class EmailDeliveryError(RuntimeError):
    """
    Raised when a provider is configured but delivery fails.
    """


def _normalize_provider(raw: str | None) -> str:
    """
    Supported providers:
    - resend (default when unset)
    - ses
    - gmail
    - mailchannels
    Legacy alias:
    - smtp -> gmail
    """
    provider = (raw or "").strip().lower()
    if not provider:
        return "resend"
    if provider == "smtp":
        return "gmail"
    if provider in {"resend", "ses", "gmail", "mailchannels"}:
        return provider
    raise EmailNotConfiguredError(
        f"Unsupported EMAIL_PROVIDER={provider!r}. Supported: resend (default), ses, gmail, mailchannels. "
        "Legacy alias: smtp -> gmail."
    )


def _require_from_email() -> str:
    """
    FROM_EMAIL is used for: ses, resend, mailchannels.
    gmail/smtp keeps the SMTP-authenticated From address.
    """
    if not settings.FROM_EMAIL:
        raise EmailNotConfiguredError("FROM_EMAIL is not set")
    return settings.FROM_EMAIL


def _require_smtp_config() -> None:
    if not settings.SMTP_HOST:
        raise EmailNotConfiguredError("SMTP_HOST is not set")
    if not settings.SMTP_FROM_EMAIL:
        raise EmailNotConfiguredError("SMTP_FROM_EMAIL is not set")


def _require_ses_config() -> tuple[str, str]:
    region = (settings.AWS_REGION or "").strip()
    if not region:
        raise EmailNotConfiguredError("AWS_REGION is not set (required for SES)")
    return region, _require_from_email()


def _require_resend_config() -> tuple[str, str]:
    api_key = (settings.RESEND_API_KEY or "").strip()
    if not api_key:
        raise EmailNotConfiguredError("RESEND_API_KEY is not set")
    return api_key, _require_from_email()


def _send_email_ses(to_email: str, subject: str, body: str) -> str | None:
    region, from_email = _require_ses_config()
    client = boto3.client("ses", region_name=region)

    try:
        res = client.send_email(
            Source=from_email,
            Destination={"ToAddresses": [to_email]},
            Message={
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": {"Text": {"Data": body, "Charset": "UTF-8"}},
            },
        )
        msg_id = res.get("MessageId")
        logger.info("SES email sent: to=%s msg_id=%s", to_email, msg_id)
        return msg_id
    except NoCredentialsError as e:
        logger.exception("SES email failed (no AWS credentials)")
        raise EmailDeliveryError("SES email failed: AWS credentials not available") from e
    except EndpointConnectionError as e:
        logger.exception("SES email failed (endpoint connection)")
        raise EmailDeliveryError("SES email failed: could not connect to SES endpoint") from e
    except ClientError as e:
        logger.exception("SES email failed (client error)")
        code = (e.response or {}).get("Error", {}).get("Code", "ClientError")
        raise EmailDeliveryError(f"SES email failed: {code}") from e
    except BotoCoreError as e:
        logger.exception("SES email failed (botocore)")
        raise EmailDeliveryError("SES email failed") from e


def _send_email_resend(to_email: str, subject: str, body: str) -> str | None:
    api_key, from_email = _require_resend_config()

    payload = {
        "from": from_email,
        "to": [to_email],
        "subject": subject,
        "text": body,
        "html": f"<pre>{html_escape(body)}</pre>",
    }

    try:
        resend.api_key = api_key
        res = resend.Emails.send(payload)  # type: ignore[attr-defined]
    except Exception as e:  # noqa: BLE001
        raise EmailDeliveryError(f"Resend send failed: {e}") from e

    msg_id: str | None = None
    if isinstance(res, dict):
        if res.get("error"):
            raise EmailDeliveryError(f"Resend API error: {res.get('error')}")
        v = res.get("id")
        if isinstance(v, str) and v.strip():
            msg_id = v.strip()

    logger.info("Resend email sent: to=%s msg_id=%s", to_email, msg_id)
    return msg_id


def build_mailchannels_payload(to_email: str, subject: str, body: str) -> dict:
    from_email = _require_from_email()
    personalization: dict = {"to": [{"email": to_email}]}
    if settings.DKIM_PRIVATE_KEY:
        personalization.update(
            {
                "dkim_domain": settings.DKIM_DOMAIN or from_email.rsplit("@", 1)[-1],
                "dkim_selector": settings.DKIM_SELECTOR,
                "dkim_private_key": settings.DKIM_PRIVATE_KEY,
            }
        )
    return {
        "personalizations": [personalization],
        "from": {"email": from_email, "name": settings.FROM_NAME},
        "subject": subject,
        "content": [{"type": "text/plain", "value": body}],
    }


def _send_email_mailchannels(to_email: str, subject: str, body: str) -> None:
    payload = build_mailchannels_payload(to_email, subject, body)
    try:
        res = httpx.post(settings.MAILCHANNELS_API_URL, json=payload, timeout=10.0)
    except httpx.HTTPError as e:
        logger.exception("MailChannels email failed (transport)")
        raise EmailDeliveryError("MailChannels email failed: could not reach API") from e

    if res.status_code >= 400:
        logger.error("MailChannels email failed: status=%s", res.status_code)
        raise EmailDeliveryError(f"MailChannels email failed: HTTP {res.status_code}")

    logger.info("MailChannels email sent: to=%s", to_email)


def _send_email_smtp(to_email: str, subject: str, body: str) -> None:
    """
    Send a plaintext email via SMTP using stdlib only.
    """
    _require_smtp_config()

    msg = MIMEText(body, "plain", "utf-8")
    msg["From"] = settings.SMTP_FROM_EMAIL
    msg["To"] = to_email
    msg["Subject"] = subject
    msg["Date"] = formatdate(localtime=True)

    try:
        if settings.SMTP_USE_SSL:
            server: smtplib.SMTP = smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10)
        else:
            server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10)
    except (OSError, smtplib.SMTPException) as e:
        raise EmailDeliveryError("SMTP email failed: could not connect") from e

    try:
        server.ehlo()
        if settings.SMTP_USE_TLS and not settings.SMTP_USE_SSL:
            server.starttls()
            server.ehlo()

        if settings.SMTP_USERNAME:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)

        server.sendmail(settings.SMTP_FROM_EMAIL, [to_email], msg.as_string())
    except smtplib.SMTPException as e:
        raise EmailDeliveryError("SMTP email failed") from e
    finally:
        try:
            server.quit()
        except (OSError, smtplib.SMTPException):
            pass


def send_email(to_email: str, subject: str, body: str) -> str | None:
    """
    Sends email using configured provider.
    - EMAIL_ENABLED=false: nothing is sent, the message is logged instead
    - EMAIL_PROVIDER=resend (default): Resend API
    - EMAIL_PROVIDER=ses: AWS SES via boto3
    - EMAIL_PROVIDER=gmail: SMTP via stdlib
    - EMAIL_PROVIDER=mailchannels: MailChannels HTTP API (optional DKIM signing)
    - EMAIL_PROVIDER=smtp: legacy alias for gmail
    """
    if not settings.EMAIL_ENABLED:
        logger.info("Email delivery disabled; logging instead. to=%s subject=%r body=%r", to_email, subject, body)
        return None

    provider = _normalize_provider(settings.EMAIL_PROVIDER)
    if provider == "gmail":
        _send_email_smtp(to_email=to_email, subject=subject, body=body)
        return None
    if provider == "ses":
        return _send_email_ses(to_email=to_email, subject=subject, body=body)
    if provider == "mailchannels":
        _send_email_mailchannels(to_email=to_email, subject=subject, body=body)
        return None
    return _send_email_resend(to_email=to_email, subject=subject, body=body)


def send_email_or_log(to_email: str, subject: str, body: str) -> bool:
    """
    Best-effort delivery: failures are logged and reported as False, never raised.
    """
    try:
        send_email(to_email=to_email, subject=subject, body=body)
    except EmailNotConfiguredError as e:
        logger.warning("Email delivery not configured: %s", e)
        return False
    except EmailDeliveryError as e:
        logger.warning("Email delivery failed: to=%s error=%s", to_email, e)
        return False
    return True
