"""Celery app and tasks for reviewer notifications."""

import smtplib

from celery import Celery
from knowledge_base.core.config import settings

celery_app = Celery(
    "knowledge_base",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_ignore_result=True,
    task_soft_time_limit=60,
    task_time_limit=120,
)


@celery_app.task(
    name="send_new_question_notice",
    autoretry_for=(smtplib.SMTPException, OSError),
    retry_backoff=True,
    max_retries=3,
)
def send_new_question_notice(recipients: list, question: dict, author: dict) -> int:
    """Alert reviewers that a user raised a new question."""
    from knowledge_base.services.notification_service import deliver, render_new_question

    subject, body = render_new_question(question, author or {})
    return deliver(recipients, subject, body)


@celery_app.task(
    name="send_pending_answer_notice",
    autoretry_for=(smtplib.SMTPException, OSError),
    retry_backoff=True,
    max_retries=3,
)
def send_pending_answer_notice(
    recipients: list, question: dict, answer: dict, author: dict,
) -> int:
    """Alert reviewers that a supervisor's answer awaits approval."""
    from knowledge_base.services.notification_service import deliver, render_pending_answer

    subject, body = render_pending_answer(question, answer, author or {})
    return deliver(recipients, subject, body)
