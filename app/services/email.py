import logging
import smtplib
from email.message import EmailMessage
from urllib.parse import urlencode

from app.core.config import settings

logger = logging.getLogger(__name__)


def verification_url(token: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/verify-email?{urlencode({'token': token})}"


def _verification_html(username: str, url: str) -> str:
    return f"""\
<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; background: #000; color: #fff;">
    <div style="max-width: 600px; margin: 0 auto; padding: 40px 20px;">
      <h1 style="text-align: center;">Welcome!</h1>
      <p>Hi <strong>{username}</strong>,</p>
      <p>Thanks for signing up! Please verify your email address to get started.</p>
      <a href="{url}" style="background: #7c3aed; color: white; padding: 12px 30px;
         border-radius: 8px; text-decoration: none; display: inline-block; margin: 20px 0;">Verify Email</a>
      <p style="color: #aaa; font-size: 14px;">Or copy this link:</p>
      <p style="word-break: break-all; color: #888; font-size: 12px;">{url}</p>
    </div>
  </body>
</html>
"""


def send_verification_email(email: str, token: str, username: str) -> bool:
    """Best-effort delivery; returns False instead of raising."""
    if not settings.SMTP_USER:
        logger.info("SMTP not configured, skipping verification email for %s", username)
        return False

    url = verification_url(token)
    msg = EmailMessage()
    msg["Subject"] = "Verify your account"
    msg["From"] = settings.SMTP_FROM
    msg["To"] = email
    msg.set_content(f"Hi {username},\n\nVerify your email address: {url}\n")
    msg.add_alternative(_verification_html(username, url), subtype="html")

    try:
        if settings.SMTP_SECURE:
            with smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
                smtp.login(settings.SMTP_USER, settings.SMTP_PASS)
                smtp.send_message(msg)
        else:
            with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
                smtp.starttls()
                smtp.login(settings.SMTP_USER, settings.SMTP_PASS)
                smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("Error sending verification email to %s: %s", email, e)
        return False

    logger.info("Sent verification email to %s", email)
    return True
