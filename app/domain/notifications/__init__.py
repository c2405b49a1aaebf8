# Notifications domain module
from app.domain.notifications.models import Notification, NotificationType

__all__ = [
    "Notification",
    "NotificationType",
]
