import smtplib
import ssl
from email.message import EmailMessage

from loguru import logger

from app.core.config import settings


def send_email(to: str, subject: str, body: str) -> bool:
    """Send a plain-text e-mail; without SMTP settings the message is only logged"""
    if not settings.SMTP_HOST:
        logger.info(f"SMTP not configured, skipping e-mail '{subject}' to {to}")
        return False

    message = EmailMessage()
    message["From"] = settings.EMAIL_FROM_ADDRESS
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)

    context = ssl.create_default_context()
    if settings.SMTP_PORT == 465:
        server = smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, context=context, timeout=30)
    else:
        server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30)
    try:
        if settings.SMTP_PORT != 465:
            server.starttls(context=context)
        if settings.SMTP_USER:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD or "")
        server.send_message(message)
    finally:
        server.quit()

    logger.info(f"E-mail '{subject}' sent to {to}")
    return True


def send_password_reset_email(to: str, reset_link: str) -> bool:
    return send_email(
        to,
        "Restablece tu contraseña",
        f"Recibimos una solicitud para restablecer tu contraseña.\n\n{reset_link}\n\n"
        "Si no la solicitaste, ignora este mensaje.",
    )
