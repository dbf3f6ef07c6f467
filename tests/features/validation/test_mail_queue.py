"""Tests for the background mail queue."""

import logging
from unittest.mock import AsyncMock

import pytest

from lorawan_identity.features.validation.adapters.mail_queue import EmailQueue
from lorawan_identity.features.validation.entities.protocols import MailMessage

from ...conftest import RecordingMailSender


def message(recipient="dave@example.com", template="validate"):
    return MailMessage(recipient=recipient, subject="Subject", template=template)


class TestEmailQueue:
    """Test mail dispatch."""

    @pytest.mark.asyncio
    async def test_delivers_in_order(self):
        sender = RecordingMailSender()
        queue = EmailQueue(sender)

        assert queue.enqueue(message("a@example.com"))
        assert queue.enqueue(message("b@example.com"))
        await queue.join()
        await queue.stop()

        assert [m.recipient for m in sender.messages] == ["a@example.com", "b@example.com"]
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_full_queue_drops_message(self, caplog):
        sender = RecordingMailSender()
        queue = EmailQueue(sender, queue_size=1)

        with caplog.at_level(logging.WARNING):
            assert queue.enqueue(message("a@example.com"))
            assert not queue.enqueue(message("b@example.com"))
        await queue.stop()

        assert "Email queue full" in caplog.text
        assert [m.recipient for m in sender.messages] == ["a@example.com"]

    @pytest.mark.asyncio
    async def test_sender_failure_does_not_stop_worker(self, caplog):
        sender = AsyncMock()
        sender.send = AsyncMock(side_effect=[RuntimeError("smtp down"), None])
        queue = EmailQueue(sender)

        with caplog.at_level(logging.ERROR):
            queue.enqueue(message("a@example.com"))
            queue.enqueue(message("b@example.com"))
            await queue.join()
        await queue.stop()

        assert sender.send.await_count == 2
        assert "Failed to send `validate` mail to a@example.com" in caplog.text

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        queue = EmailQueue(RecordingMailSender())

        await queue.start()
        await queue.start()
        await queue.stop()
        await queue.stop()

        assert queue._worker is None
