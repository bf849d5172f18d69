"""Tests for the welcome email job."""

from unittest.mock import AsyncMock

import pytest

from app.config import Settings
from app.errors import TerminalJobError
from app.jobs import notifications
from app.jobs.models import WelcomeJob
from app.jobs.notifications import WELCOME_SUBJECT, build_welcome_message, process_welcome_job


@pytest.fixture
def smtp_settings() -> Settings:
    return Settings(smtp_host="smtp.example.com", smtp_port=587, smtp_from="noreply@example.com")


@pytest.fixture
def mock_send(monkeypatch) -> AsyncMock:
    send = AsyncMock()
    monkeypatch.setattr(notifications.aiosmtplib, "send", send)
    return send


def test_build_welcome_message() -> None:
    msg = build_welcome_message("new@example.com", "noreply@example.com")
    assert msg["To"] == "new@example.com"
    assert msg["From"] == "noreply@example.com"
    assert msg["Subject"] == WELCOME_SUBJECT
    assert "new@example.com" in msg.get_content()


@pytest.mark.asyncio
async def test_sends_welcome_email(users, db, smtp_settings, mock_send) -> None:
    owner, _ = users
    await process_welcome_job(WelcomeJob(user_id=owner.id), db, smtp_settings)
    mock_send.assert_awaited_once()
    message = mock_send.await_args.args[0]
    assert message["To"] == owner.email
    kwargs = mock_send.await_args.kwargs
    assert kwargs["hostname"] == "smtp.example.com"
    assert kwargs["port"] == 587
    assert kwargs["use_tls"] is False


@pytest.mark.asyncio
async def test_port_465_uses_tls(users, db, mock_send) -> None:
    owner, _ = users
    settings = Settings(smtp_host="smtp.example.com", smtp_port=465, smtp_from="noreply@example.com")
    await process_welcome_job(WelcomeJob(user_id=owner.id), db, settings)
    assert mock_send.await_args.kwargs["use_tls"] is True


@pytest.mark.asyncio
async def test_skips_when_smtp_not_configured(users, db, mock_send) -> None:
    owner, _ = users
    await process_welcome_job(WelcomeJob(user_id=owner.id), db, Settings(smtp_host="", smtp_from=""))
    mock_send.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_or_unknown_user_is_terminal(db, smtp_settings, mock_send) -> None:
    with pytest.raises(TerminalJobError, match="Missing userId"):
        await process_welcome_job(WelcomeJob(), db, smtp_settings)
    with pytest.raises(TerminalJobError, match="User not found"):
        await process_welcome_job(WelcomeJob(user_id=404), db, smtp_settings)
    with pytest.raises(TerminalJobError, match="User not found"):
        await process_welcome_job(WelcomeJob(user_id=2**70), db, smtp_settings)
    with pytest.raises(TerminalJobError, match="User not found"):
        await process_welcome_job(WelcomeJob(user_id=0), db, smtp_settings)
    mock_send.assert_not_awaited()


@pytest.mark.asyncio
async def test_smtp_failure_propagates_for_retry(users, db, smtp_settings, mock_send) -> None:
    owner, _ = users
    mock_send.side_effect = OSError("connection refused")
    with pytest.raises(OSError):
        await process_welcome_job(WelcomeJob(user_id=owner.id), db, smtp_settings)
