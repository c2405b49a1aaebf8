from typing import Optional
import logging
import uuid

from app.workers.celery_app import celery_app
from app.infrastructure.database import SessionLocal
from app.domain.profiles.models import Profile
from app.domain.profiles.repository import UserSettingsRepository
from app.services.email import send_email, send_password_reset_email

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def send_notification_email(self, user_id: str, title: str, body: Optional[str] = None):
    """E-mail copy of an in-app notification, honouring the user's settings"""
    db = SessionLocal()
    try:
        recipient_id = uuid.UUID(user_id)
        preferences = UserSettingsRepository(db).get_or_create(recipient_id)
        if not preferences.email_notifications:
            return {"status": "skipped", "reason": "email_notifications disabled"}

        profile = db.query(Profile).filter(Profile.id == recipient_id).first()
        if profile is None or not profile.email:
            return {"status": "skipped", "reason": "no e-mail address"}

        send_email(profile.email, title, body or title)
        return {"status": "success"}

    except Exception as exc:
        logger.error(f"Failed to send notification e-mail: {type(exc).__name__}")
        # Retry with exponential backoff
        countdown = 2 ** self.request.retries
        raise self.retry(exc=exc, countdown=countdown)
    finally:
        db.close()


@celery_app.task(bind=True, max_retries=3)
def send_password_reset(self, email: str, reset_link: str):
    """Deliver the password reset link"""
    try:
        send_password_reset_email(email, reset_link)
        return {"status": "success"}
    except Exception as exc:
        logger.error(f"Failed to send password reset e-mail: {type(exc).__name__}")
        raise self.retry(exc=exc, countdown=60)
