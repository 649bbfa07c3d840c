import asyncio
import json

import httpx
import pytest

from app.core import mailer
from app.clubs.models import Club, ClubRole, Membership, User
from app.clubs.services import notification_service
from app.clubs.services.notification_service import EmailNotifier, notify_safely


@pytest.mark.asyncio
async def test_send_email_posts_to_relay(monkeypatch):
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return httpx.Response(202, json={"id": "msg-1"})

    monkeypatch.setattr(mailer, "MAIL_API_URL", "https://mail.example.com/send")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        assert await mailer.send_email("ana@example.com", "Oi", "<p>Oi</p>", client=client)

    assert sent[0]["to"] == ["ana@example.com"]
    assert sent[0]["subject"] == "Oi"


@pytest.mark.asyncio
async def test_send_email_reports_relay_errors(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    monkeypatch.setattr(mailer, "MAIL_API_URL", "https://mail.example.com/send")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        assert not await mailer.send_email("ana@example.com", "Oi", "<p>Oi</p>", client=client)


@pytest.mark.asyncio
async def test_send_email_without_relay(monkeypatch):
    monkeypatch.setattr(mailer, "MAIL_API_URL", None)

    assert not await mailer.send_email("ana@example.com", "Oi", "<p>Oi</p>")


@pytest.mark.asyncio
async def test_email_notifier_uses_club_and_role(monkeypatch):
    calls = []

    async def fake_send_email(to, subject, html, client=None):
        calls.append((to, subject, html))
        return True

    monkeypatch.setattr(notification_service, "send_email", fake_send_email)
    member = User(id=1, name="Ana", email="ana@example.com")
    club = Club(id=2, name="Águias", slug="aguias", country="Brasil")
    membership = Membership(user_id=1, club_id=2, role=ClubRole.INSTRUTOR)

    await EmailNotifier().notify_approved(member, club, membership)

    to, subject, html = calls[0]
    assert to == "ana@example.com"
    assert "Águias" in subject
    assert "INSTRUTOR" in html


@pytest.mark.asyncio
async def test_notify_safely_swallows_failures():
    async def failing():
        raise RuntimeError("relay down")

    async def slow():
        await asyncio.sleep(1)

    await notify_safely(failing(), "failing")
    await notify_safely(slow(), "slow", timeout=0.01)
