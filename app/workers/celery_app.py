from celery import Celery
from app.core.config import settings

# Create Celery app
celery_app = Celery(
    "healthpal_portal",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["app.workers.tasks"]
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Worker settings
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    worker_max_tasks_per_child=1000,

    # Task routing
    task_routes={
        "app.workers.tasks.send_notification_email": {"queue": "email"},
        "app.workers.tasks.send_password_reset": {"queue": "email"},
    },

    # Result backend settings
    result_expires=3600,

    # Error handling
    task_reject_on_worker_lost=True,

    broker_connection_retry_on_startup=True,
)

if settings.ENVIRONMENT == "production":
    celery_app.conf.update(
        worker_concurrency=4,
        broker_pool_limit=10,
    )

if settings.ENVIRONMENT == "test":
    celery_app.conf.update(
        task_always_eager=True,
        task_eager_propagates=True,
        broker_url="memory://",
        result_backend="cache+memory://",
    )


if __name__ == "__main__":
    celery_app.start()
