"""Notification service — reviewer alerts for new questions and pending answers.

The moderation service hands plain-dict snapshots to a dispatcher *after* its
transaction commits. The default dispatcher only enqueues Celery tasks, so a
slow or failing mail path never blocks or rolls back content changes; the
tasks render the message and deliver it over SMTP when one is configured.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Dict, Any, List, Optional, Tuple

from knowledge_base.core.config import settings

logger = logging.getLogger("knowledge_base")

CATEGORY_LABELS = {
    "ibml": "IBML Scanners",
    "softtrac": "SoftTrac",
    "omniscan": "OmniScan",
}


class NotificationDispatcher:
    """Interface the moderation service notifies through."""

    def notify_new_question(
        self, recipients: List[str], question: Dict[str, Any], author: Dict[str, Any],
    ) -> None:
        raise NotImplementedError

    def notify_pending_answer(
        self,
        recipients: List[str],
        question: Dict[str, Any],
        answer: Dict[str, Any],
        author: Dict[str, Any],
    ) -> None:
        raise NotImplementedError


class CeleryNotificationDispatcher(NotificationDispatcher):
    """Enqueues notification tasks on the Celery broker."""

    def notify_new_question(self, recipients, question, author) -> None:
        if not recipients:
            logger.info("No reviewer addresses configured; skipping new-question notice")
            return
        from knowledge_base.tasks.celery_app import send_new_question_notice

        send_new_question_notice.delay(recipients, question, author)

    def notify_pending_answer(self, recipients, question, answer, author) -> None:
        if not recipients:
            logger.info("No reviewer addresses configured; skipping pending-answer notice")
            return
        from knowledge_base.tasks.celery_app import send_pending_answer_notice

        send_pending_answer_notice.delay(recipients, question, answer, author)


# ---- Rendering ----

def _question_link(question: Dict[str, Any]) -> str:
    return f"{settings.APP_URL.rstrip('/')}/questions/{question['id']}"


def render_new_question(question: Dict[str, Any], author: Dict[str, Any]) -> Tuple[str, str]:
    """Subject and plain-text body for a newly raised question."""
    category = CATEGORY_LABELS.get(question.get("category"), question.get("category"))
    subject = f"New Issue Raised: {question['title']}"
    body = "\n".join([
        "A new issue has been raised and requires your attention:",
        "",
        question["title"],
        f"Category: {category}",
        f"Priority: {question.get('priority', 'medium')}",
        f"Raised by: {author.get('display_name') or author.get('username')}",
        "",
        "Description:",
        question.get("description", ""),
        "",
        f"View the issue: {_question_link(question)}",
    ])
    return subject, body


def render_pending_answer(
    question: Dict[str, Any], answer: Dict[str, Any], author: Dict[str, Any],
) -> Tuple[str, str]:
    """Subject and plain-text body for an answer awaiting approval."""
    text = answer.get("answer_text", "")
    limit = settings.NOTIFY_PREVIEW_CHARS
    preview = text[:limit] + ("..." if len(text) > limit else "")
    subject = f"Answer Pending Approval: {question['title']}"
    body = "\n".join([
        "A new answer has been submitted and requires approval:",
        "",
        f"Question: {question['title']}",
        f"Answer by: {author.get('display_name') or author.get('username')}",
        "",
        "Answer preview:",
        preview,
        "",
        f"Review the answer: {_question_link(question)}",
    ])
    return subject, body


# ---- Delivery ----

def deliver(recipients: List[str], subject: str, body: str) -> int:
    """Send one message per recipient. Returns the number handed to SMTP.

    Without ``SMTP_HOST`` the message is only logged.
    """
    if not settings.SMTP_HOST:
        logger.info("Notification for %s: %s", ", ".join(recipients), subject)
        return 0

    sent = 0
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as smtp:
        if settings.SMTP_USE_TLS:
            smtp.starttls()
        if settings.SMTP_USERNAME:
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD or "")
        for recipient in recipients:
            message = EmailMessage()
            message["From"] = settings.SMTP_FROM
            message["To"] = recipient
            message["Subject"] = subject
            message.set_content(body)
            smtp.send_message(message)
            sent += 1
    logger.info("Sent '%s' to %d reviewer(s)", subject, sent)
    return sent


def question_snapshot(question) -> Dict[str, Any]:
    return {
        "id": question.id,
        "title": question.title,
        "description": question.description,
        "category": question.category.value,
        "priority": question.priority.value,
    }


def answer_snapshot(answer) -> Dict[str, Any]:
    return {
        "id": answer.id,
        "question_id": answer.question_id,
        "answer_text": answer.answer_text,
    }


def author_snapshot(user) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.username,
        "display_name": user.display_name,
    }


notification_dispatcher = CeleryNotificationDispatcher()
