"""Validation adapters."""

from .mail_queue import EmailQueue, LoggingMailSender

__all__ = ["EmailQueue", "LoggingMailSender"]
