import os

from celery import Celery
from celery.utils.log import get_task_logger

from . import notify

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "memory://")
celery_app = Celery("bap", broker=CELERY_BROKER_URL)
celery_app.conf.task_always_eager = (
    CELERY_BROKER_URL == "memory://" or os.getenv("TESTING") == "1"
)

_logger = get_task_logger(__name__)


@celery_app.task(
    autoretry_for=(OSError,),
    retry_backoff=True,
    max_retries=3,
)
def send_email_task(to_email: str, subject: str, message: str, bcc: str | None = None):
    notify.send_email(to_email, subject, message, bcc=bcc)
    _logger.info("Sent email %r to %s", subject, to_email)


def enqueue_email(to_email: str, subject: str, message: str, bcc: str | None = None):
    if celery_app.conf.task_always_eager:
        send_email_task(to_email, subject, message, bcc)
    else:
        send_email_task.delay(to_email, subject, message, bcc)
