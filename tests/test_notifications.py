"""Reviewer notice rendering, delivery and task dispatch."""

import pytest

from knowledge_base.core.config import settings
from knowledge_base.services import notification_service
from knowledge_base.services.notification_service import (
    CeleryNotificationDispatcher, deliver, render_new_question, render_pending_answer,
)
from knowledge_base.tasks import celery_app as tasks

QUESTION = {
    "id": "q-1",
    "title": "Scanner jam error 42",
    "description": "Feeder stops mid-batch",
    "category": "ibml",
    "priority": "high",
}
AUTHOR = {"id": "u-1", "username": "u1", "display_name": "Test User 1"}


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.sent = []
        self.started_tls = False
        self.login_args = None
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, username, password):
        self.login_args = (username, password)

    def send_message(self, message):
        self.sent.append(message)


@pytest.fixture
def smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(settings, "SMTP_HOST", "mail.example.com")
    monkeypatch.setattr(settings, "SMTP_USERNAME", "relay")
    monkeypatch.setattr(settings, "SMTP_PASSWORD", "secret")
    monkeypatch.setattr(settings, "SMTP_USE_TLS", True)
    monkeypatch.setattr(notification_service.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


class TestRendering:
    def test_new_question(self):
        subject, body = render_new_question(QUESTION, AUTHOR)
        assert subject == "New Issue Raised: Scanner jam error 42"
        assert "Category: IBML Scanners" in body
        assert "Raised by: Test User 1" in body
        assert body.rstrip().endswith("/questions/q-1")

    def test_pending_answer_preview_is_truncated(self, monkeypatch):
        monkeypatch.setattr(settings, "NOTIFY_PREVIEW_CHARS", 10)
        answer = {"id": "a-1", "question_id": "q-1", "answer_text": "Clean the rollers first"}

        subject, body = render_pending_answer(QUESTION, answer, AUTHOR)
        assert subject == "Answer Pending Approval: Scanner jam error 42"
        assert "Clean the ..." in body
        assert "rollers" not in body

    def test_short_answer_is_not_truncated(self):
        answer = {"id": "a-1", "question_id": "q-1", "answer_text": "Reboot"}
        _, body = render_pending_answer(QUESTION, answer, AUTHOR)
        assert "Reboot\n" in body
        assert "Reboot..." not in body


class TestDelivery:
    def test_without_smtp_only_logs(self, monkeypatch):
        monkeypatch.setattr(settings, "SMTP_HOST", None)
        assert deliver(["admin@example.com"], "subject", "body") == 0

    def test_sends_one_message_per_recipient(self, smtp):
        sent = deliver(["a@example.com", "b@example.com"], "Hello", "Body")

        assert sent == 2
        client = smtp.instances[0]
        assert client.started_tls
        assert client.login_args == ("relay", "secret")
        assert [m["To"] for m in client.sent] == ["a@example.com", "b@example.com"]
        assert client.sent[0]["Subject"] == "Hello"

    def test_task_renders_and_delivers(self, smtp):
        sent = tasks.send_new_question_notice(["admin@example.com"], QUESTION, AUTHOR)
        assert sent == 1
        assert smtp.instances[0].sent[0]["Subject"] == "New Issue Raised: Scanner jam error 42"

    def test_pending_answer_task(self, smtp):
        answer = {"id": "a-1", "question_id": "q-1", "answer_text": "Clean the rollers"}
        tasks.send_pending_answer_notice(["admin@example.com"], QUESTION, answer, AUTHOR)
        assert smtp.instances[0].sent[0]["Subject"].startswith("Answer Pending Approval")


class TestCeleryDispatcher:
    def test_enqueues_tasks(self, monkeypatch):
        calls = []
        monkeypatch.setattr(
            tasks.send_new_question_notice, "delay", lambda *args: calls.append(("question", args)),
        )
        monkeypatch.setattr(
            tasks.send_pending_answer_notice, "delay", lambda *args: calls.append(("answer", args)),
        )
        dispatcher = CeleryNotificationDispatcher()

        dispatcher.notify_new_question(["admin@example.com"], QUESTION, AUTHOR)
        dispatcher.notify_pending_answer(["admin@example.com"], QUESTION, {"answer_text": "x"}, AUTHOR)

        assert [kind for kind, _ in calls] == ["question", "answer"]

    def test_no_recipients_skips_enqueue(self, monkeypatch):
        calls = []
        monkeypatch.setattr(tasks.send_new_question_notice, "delay", lambda *args: calls.append(args))

        CeleryNotificationDispatcher().notify_new_question([], QUESTION, AUTHOR)
        assert calls == []
