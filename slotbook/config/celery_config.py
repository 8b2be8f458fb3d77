"""Celery application configuration"""
from celery import Celery

from slotbook.config.settings import get_settings


def create_celery_app() -> Celery:
    """Create the Celery app used for background side effects"""
    settings = get_settings()

    app = Celery(
        "slotbook",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=["slotbook.tasks.audit_tasks"],
    )

    app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        task_acks_late=True,
        task_ignore_result=True,
        # Audit publishes run inside request handling: one short attempt, no retry
        task_publish_retry=False,
        broker_connection_timeout=settings.CELERY_PUBLISH_TIMEOUT_SECONDS,
        broker_transport_options={
            "socket_connect_timeout": settings.CELERY_PUBLISH_TIMEOUT_SECONDS,
        },
        broker_connection_retry_on_startup=True,
    )

    return app


celery_app = create_celery_app()
